"""
Command line front end.

    eip712-signer --permit --domain-name "USD Coin" --chain-id 1 \\
        --verifying-contract 0xA0b8... --spender 0x7a25... \\
        --value 1000000000000000000 --nonce 0

    eip712-signer --domain-name MyApp --custom-json \\
        '{"types":{"Message":[{"name":"content","type":"string"}]},"message":{"content":"Hello"}}'

The private key comes from ``--private-key`` or, when omitted, from
``EIP712_PRIVATE_KEY`` / ``EVM_PRIVATE_KEY`` (a ``.env`` file is honoured).
The result is printed as JSON on stdout; errors go to stderr with exit
status 1.
"""

import argparse
import json
import sys
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .config import load_settings
from .encoding.domain import ZERO_ADDRESS
from .encoding.reconcile import ExtraFieldPolicy
from .engine.exceptions import ConfigurationError, EIP712Error
from .signing.signatures import SigningService
from .signing.standards import permit_types
from .utils import setup_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="eip712-signer",
        description="Generate EIP-712 signatures with automatic deadline generation.",
    )
    parser.add_argument("--private-key", help="Signing key (default: EIP712_PRIVATE_KEY)")

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--permit", action="store_true", help="Generate an ERC-20 permit signature")
    mode.add_argument("--custom-json", help='Custom typed data as JSON: {"types", "message", "primaryType"?}')

    parser.add_argument("--domain-name", help="Domain name")
    parser.add_argument("--domain-version", default="1", help='Domain version (default: "1")')
    parser.add_argument("--chain-id", type=int, default=1, help="Chain ID (default: 1)")
    parser.add_argument("--verifying-contract", help="Verifying contract address")
    parser.add_argument("--primary-type", help="Primary type (default: derived from types)")

    parser.add_argument("--owner", help="Permit owner (default: signer address)")
    parser.add_argument("--spender", help="Permit spender (required for --permit)")
    parser.add_argument("--value", help="Permit amount (required for --permit)")
    parser.add_argument("--nonce", type=int, default=0, help="Permit nonce (default: 0)")

    parser.add_argument("--deadline", type=int, help="Explicit deadline (default: now + duration)")
    parser.add_argument("--deadline-duration", type=int, help="Deadline duration in seconds (default: 3600)")
    parser.add_argument("--strict-fields", action="store_true",
                        help="Reject message fields the type does not declare instead of dropping them")
    parser.add_argument("--breakdown", action="store_true",
                        help="Include the intermediate hashes of the digest in the output")
    parser.add_argument("--log-level", default="WARNING", type=str.upper,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Log level (default: WARNING)")
    return parser


def _build_service(args: argparse.Namespace) -> SigningService:
    settings = load_settings()
    updates: Dict[str, Any] = {}
    if args.private_key:
        updates["private_key"] = args.private_key
    if args.deadline_duration is not None:
        updates["deadline_duration"] = args.deadline_duration
    if args.strict_fields:
        updates["extra_field_policy"] = ExtraFieldPolicy.ERROR
    if updates:
        try:
            settings = settings.model_validate({**settings.model_dump(), **updates})
        except ValidationError as e:
            fields = ", ".join(str(err["loc"][0]) for err in e.errors())
            raise ConfigurationError(f"Invalid signer configuration: {fields}") from None
    return SigningService.from_settings(settings)


def _sign_permit(service: SigningService, args: argparse.Namespace) -> Dict[str, Any]:
    if not (args.verifying_contract and args.spender and args.value):
        raise ConfigurationError(
            "For permit signatures, --verifying-contract, --spender, and --value are required"
        )
    result = service.sign_permit(
        token_name=args.domain_name or "Token",
        token_version=args.domain_version,
        chain_id=args.chain_id,
        verifying_contract=args.verifying_contract,
        owner=args.owner,
        spender=args.spender,
        value=args.value,
        nonce=args.nonce,
        deadline=args.deadline,
    )
    output = result.to_output()
    if args.breakdown:
        output["breakdown"] = service.breakdown(
            {
                "name": args.domain_name or "Token",
                "version": args.domain_version,
                "chainId": args.chain_id,
                "verifyingContract": args.verifying_contract,
            },
            permit_types(),
            result.final_value_tree,
            primary_type="Permit",
        ).model_dump(mode="json")
    return output


def _sign_custom(service: SigningService, args: argparse.Namespace) -> Dict[str, Any]:
    try:
        custom = json.loads(args.custom_json)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"--custom-json is not valid JSON: {e}") from e
    if not isinstance(custom, dict) or "types" not in custom or "message" not in custom:
        raise ConfigurationError('--custom-json must be an object with "types" and "message"')

    domain = {
        "name": args.domain_name or "Custom",
        "version": args.domain_version,
        "chainId": args.chain_id,
        "verifyingContract": args.verifying_contract or ZERO_ADDRESS,
    }
    primary_type = args.primary_type or custom.get("primaryType")
    result = service.sign(
        domain,
        custom["types"],
        custom["message"],
        primary_type=primary_type,
        deadline=args.deadline,
        deadline_duration=args.deadline_duration,
    )
    output = result.to_output()
    if args.breakdown:
        output["breakdown"] = service.breakdown(
            domain, custom["types"], result.final_value_tree, primary_type=result.primary_type
        ).model_dump(mode="json")
    return output


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logger(args.log_level)
    try:
        service = _build_service(args)
        output = _sign_permit(service, args) if args.permit else _sign_custom(service, args)
    except EIP712Error as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
