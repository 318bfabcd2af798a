"""
Opaque private key handle.

The handle is the only object in the package that touches key material.
It exposes the derived address and a digest-signing operation, and nothing
else: no accessor for the key, a redacted ``repr`` and no pickling, so the
key cannot leak through logging or serialization paths by accident.
"""

from typing import Union

from eth_account import Account
from eth_keys.exceptions import ValidationError as KeyValidationError

from ..engine.exceptions import InvalidPrivateKey


class PrivateKeyHandle:
    """
    Exclusively-owned secp256k1 signing key.

    Args:
        private_key: 32-byte key as 0x-prefixed hex, bare hex, or raw bytes.

    Raises:
        InvalidPrivateKey: Empty or malformed key material.  The message
            never contains the key.
    """

    __slots__ = ("_account",)

    def __init__(self, private_key: Union[str, bytes]):
        if not private_key:
            raise InvalidPrivateKey("Private key is empty")
        try:
            account = Account.from_key(private_key)
        except (ValueError, TypeError, KeyValidationError):
            raise InvalidPrivateKey(
                "Private key is malformed: expected a 32-byte secp256k1 key as hex"
            ) from None
        self._account = account

    @property
    def address(self) -> str:
        """Checksum address derived from the key."""
        return self._account.address

    def sign_digest(self, digest: bytes) -> bytes:
        """
        Sign a raw 32-byte digest (RFC 6979 deterministic nonce).

        Returns:
            65-byte ``r || s || v`` signature with ``v`` in ``{27, 28}``.
        """
        if len(digest) != 32:
            raise ValueError(f"digest must be 32 bytes, got {len(digest)}")
        signed = self._account.unsafe_sign_hash(digest)
        return bytes(signed.signature)

    def __repr__(self) -> str:
        return f"PrivateKeyHandle(address={self.address})"

    __str__ = __repr__

    def __reduce__(self):
        raise TypeError("PrivateKeyHandle cannot be serialized")

    def __reduce_ex__(self, protocol):
        raise TypeError("PrivateKeyHandle cannot be serialized")
