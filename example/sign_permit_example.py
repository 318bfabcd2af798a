from eip712_signer import SigningService, verify_typed_data
from eip712_signer.signing.standards import permit_types

wpk = "0xxxx"  # Replace with actual private key

service = SigningService(wpk, deadline_duration=1800)


def main():
    result = service.sign_permit(
        token_name="USDC",
        token_version="2",
        chain_id=11155111,
        verifying_contract="0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238",
        spender="0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D",
        value=800000,
        nonce=0,
    )

    domain = {
        "name": "USDC",
        "version": "2",
        "chainId": 11155111,
        "verifyingContract": "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238",
    }
    assert verify_typed_data(domain, permit_types(), result.final_value_tree, result.signature_hex, result.signer_address)
    return result


if __name__ == "__main__":
    result = main()
    print("Signature:", result.signature_hex)
    print("Deadline:", result.deadline)
    print("Breakdown:", service.breakdown(
        {
            "name": "USDC",
            "version": "2",
            "chainId": 11155111,
            "verifyingContract": "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238",
        },
        permit_types(),
        result.final_value_tree,
    ).model_dump_json(indent=2))
