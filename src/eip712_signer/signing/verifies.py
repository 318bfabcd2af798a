"""
EIP-712 Signature Recovery Helpers

Off-chain recovery of the signer address from EIP-712 signatures.  Two
independent paths are offered:

recover_digest_signer
    Recover directly from a precomputed 32-byte digest (``eth_keys``).

recover_typed_data_signer
    Rebuild the full typed-data structure, let ``eth_account`` encode it
    with its own EIP-712 implementation, and recover from that.  Agreement
    between this path and our own digest is what proves the encoder right.

All cryptographic operations are performed in-process; no RPC calls are made.
"""

from typing import Any, Mapping, Optional, Union

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError as KeyValidationError
from eth_utils import keccak
from eth_utils.exceptions import ValidationError as EthValidationError

from ..encoding.structured import DomainLike, TypesLike, to_typed_data_dict
from ..engine.exceptions import EIP712Error, SigningError
from ..schemas.typed_data import ECDSASignature

SignatureLike = Union[bytes, bytearray, str, ECDSASignature]


def signature_bytes(signature: SignatureLike) -> bytes:
    """Normalize a signature to 65 raw bytes (``r || s || v``)."""
    if isinstance(signature, ECDSASignature):
        return signature.to_bytes()
    if isinstance(signature, str):
        text = signature[2:] if signature[:2].lower() == "0x" else signature
        try:
            signature = bytes.fromhex(text)
        except ValueError:
            raise SigningError("Signature is not valid hex") from None
    signature = bytes(signature)
    if len(signature) != 65:
        raise SigningError(f"Expected 65-byte signature, got {len(signature)} bytes")
    return signature


def recover_digest_signer(digest: bytes, signature: SignatureLike) -> str:
    """
    Recover the checksum address that signed ``digest``.

    Raises:
        SigningError: Malformed signature or unrecoverable public key.
    """
    raw = signature_bytes(signature)
    v = raw[64] - 27 if raw[64] >= 27 else raw[64]
    try:
        sig = keys.Signature(vrs=(v, int.from_bytes(raw[:32], "big"), int.from_bytes(raw[32:64], "big")))
        public_key = sig.recover_public_key_from_msg_hash(bytes(digest))
    except (BadSignature, KeyValidationError, ValueError) as e:
        raise SigningError(f"Cannot recover signer: {e}") from e
    return public_key.to_checksum_address()


def typed_data_digest(
    domain: DomainLike,
    types: TypesLike,
    message: Mapping[str, Any],
    primary_type: Optional[str] = None,
) -> bytes:
    """
    Digest of ``(domain, types, message)`` as computed by ``eth_account``.

    Raises:
        SigningError: ``eth_account`` rejected the typed data.
    """
    full_message = to_typed_data_dict(domain, types, message, primary_type)
    try:
        signable = encode_typed_data(full_message=full_message)
    except (ValueError, TypeError, EthValidationError) as e:
        raise SigningError(f"eth_account rejected typed data: {e}") from e
    return keccak(b"\x19" + signable.version + signable.header + signable.body)


def recover_typed_data_signer(
    domain: DomainLike,
    types: TypesLike,
    message: Mapping[str, Any],
    signature: SignatureLike,
    primary_type: Optional[str] = None,
) -> str:
    """
    Recover the signer of a typed-data message via ``eth_account``.

    Raises:
        EncodingMismatch / TypeDefinitionError: The message does not fit
            its types.
        SigningError: Malformed signature, or ``eth_account`` rejected the
            typed data.
    """
    full_message = to_typed_data_dict(domain, types, message, primary_type)
    raw = signature_bytes(signature)
    try:
        signable = encode_typed_data(full_message=full_message)
        return Account.recover_message(signable, signature=raw)
    except (BadSignature, KeyValidationError, EthValidationError, ValueError, TypeError) as e:
        raise SigningError(f"Typed-data recovery failed: {e}") from e


def verify_typed_data(
    domain: DomainLike,
    types: TypesLike,
    message: Mapping[str, Any],
    signature: SignatureLike,
    expected_signer: str,
    primary_type: Optional[str] = None,
) -> bool:
    """
    ``True`` if ``signature`` over the typed data recovers to
    ``expected_signer`` (case-insensitive), ``False`` otherwise.
    """
    try:
        recovered = recover_typed_data_signer(domain, types, message, signature, primary_type)
    except EIP712Error:
        return False
    return recovered.lower() == expected_signer.lower()
