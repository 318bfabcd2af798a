"""
Typed-Data Schema Models

Pydantic models exchanged between the signing core and its callers.

Input classes:
    - EIP712Domain: The four-field signing domain (name, version, chainId,
      verifyingContract).  Frozen and hashable so it can key the domain
      separator cache.

Result classes:
    - ECDSASignature: Recoverable secp256k1 signature (v, r, s) with the packed
      65-byte ``r || s || v`` form.
    - SigningResult: Everything one ``sign`` call produced, already
      self-verified.
    - FieldSlot / DigestBreakdown: Per-field view of a digest computation,
      for diagnosing encoding mismatches against other implementations.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import ConfigDict, Field, SerializationInfo, field_serializer, field_validator

from ..utils import freeze, thaw, to_hex, to_jsonable
from .bases import CanonicalModel

_UINT256_MAX = 2 ** 256 - 1


class EIP712Domain(CanonicalModel):
    """
    EIP-712 domain separator input.
    Used to prevent signature replay across applications and chains.

    Field names follow Python conventions; the EIP-712 names (``chainId``,
    ``verifyingContract``) are accepted as aliases and used by ``to_dict()``.

    Attributes:
        name: Human-readable signing domain name (e.g. ``"USD Coin"``).
        version: Current major version of the signing domain.
        chain_id: EIP-155 chain id; zero is accepted.
        verifying_contract: Address of the contract that will verify the
            signature.  An empty value (``""`` or ``"0x"``) encodes as the
            zero address.

    Example::

        domain = EIP712Domain(
            name="USD Coin",
            version="2",
            chainId=1,
            verifyingContract="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
        )
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., description="Signing domain name")
    version: str = Field(..., description="Signing domain version")
    chain_id: int = Field(..., alias="chainId", ge=0, le=_UINT256_MAX, description="EIP-155 chain id")
    verifying_contract: str = Field(..., alias="verifyingContract", description="Verifying contract address")


class ECDSASignature(CanonicalModel):
    """
    Recoverable secp256k1 signature (v, r, s).

    Attributes:
        v: ECDSA recovery ID (27 or 28).
        r: r component, 0x-prefixed 64-char hex string.
        s: s component, 0x-prefixed 64-char hex string.

    Example::

        sig = ECDSASignature.from_bytes(signature_bytes)
        sig.to_packed_hex()   # '0x' + r + s + v
    """

    model_config = ConfigDict(frozen=True)

    v: int = Field(..., ge=27, le=28, description="ECDSA recovery ID (27 or 28)")
    r: str = Field(..., description="Signature r component (32 bytes, 0x-prefixed hex)")
    s: str = Field(..., description="Signature s component (32 bytes, 0x-prefixed hex)")

    @classmethod
    def from_bytes(cls, signature: Union[bytes, bytearray]) -> "ECDSASignature":
        """
        Split a 65-byte ``r || s || v`` signature.  A recovery byte of 0/1 is
        normalized to 27/28.
        """
        signature = bytes(signature)
        if len(signature) != 65:
            raise ValueError(f"Expected 65-byte signature, got {len(signature)} bytes")
        v = signature[64]
        if v in (0, 1):
            v += 27
        return cls(v=v, r=to_hex(signature[:32]), s=to_hex(signature[32:64]))

    def validate_format(self) -> bool:
        """
        Validate v/r/s components.

        Returns:
            True when all components pass.

        Raises:
            ValueError: Descriptive message on the first failed check.
        """
        if self.v not in (27, 28):
            raise ValueError(f"Invalid recovery ID: {self.v}. Must be 27 or 28")

        for name, val in [("r", self.r), ("s", self.s)]:
            hex_str = val.replace("0x", "").replace("0X", "")
            if len(hex_str) != 64:
                raise ValueError(f"Invalid {name}: expected 64 hex chars, got {len(hex_str)}")
            try:
                int(hex_str, 16)
            except ValueError:
                raise ValueError(f"Invalid {name}: not valid hexadecimal")

        return True

    def to_bytes(self) -> bytes:
        self.validate_format()
        r = self.r.replace("0x", "").replace("0X", "")
        s = self.s.replace("0x", "").replace("0X", "")
        return bytes.fromhex(r) + bytes.fromhex(s) + bytes([self.v])

    def to_packed_hex(self) -> str:
        """
        Encode v/r/s into a packed 65-byte hex string (``r || s || v``).

        Returns:
            0x-prefixed 132-character hex string.

        Raises:
            ValueError: If components do not pass ``validate_format()``.
        """
        return to_hex(self.to_bytes())


class SigningResult(CanonicalModel):
    """
    Result of a single, self-verified signing call.

    Attributes:
        signature: ECDSA signature over ``digest``.
        digest: 0x-prefixed hex of the 32-byte EIP-712 digest that was signed.
        signer_address: Checksum address of the signing key.
        recovered_address: Address recovered from ``signature``; always equal
            to ``signer_address``.
        primary_type: Root struct type of the signed message.
        final_value_tree: The message actually signed, after field-order
            reconciliation and deadline injection.  Read-only: nested
            mappings are proxies and arrays are tuples.  ``model_dump()``
            returns plain dicts and lists.
        deadline: Deadline contained in ``final_value_tree``, if the type
            declares one.
        dropped_fields: Paths of undeclared message keys removed before signing.
        created_at: UTC time the result was produced.
    """

    model_config = ConfigDict(frozen=True)

    signature: ECDSASignature
    digest: str
    signer_address: str
    recovered_address: str
    primary_type: str
    final_value_tree: Mapping[str, Any]
    deadline: Optional[int] = None
    dropped_fields: Tuple[str, ...] = ()
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("final_value_tree")
    @classmethod
    def freeze_value_tree(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return freeze(value)

    @field_serializer("final_value_tree")
    def serialize_value_tree(self, value: Mapping[str, Any], info: SerializationInfo) -> Any:
        return to_jsonable(value) if info.mode_is_json() else thaw(value)

    @property
    def signature_hex(self) -> str:
        return self.signature.to_packed_hex()

    def to_output(self) -> Dict[str, Any]:
        """
        JSON-ready summary in the shape the command line prints.
        """
        return {
            "signature": self.signature_hex,
            "deadline": self.deadline,
            "signer": self.signer_address,
            "recoveredAddress": self.recovered_address,
            "messageWithDeadline": to_jsonable(self.final_value_tree),
            "digest": self.digest,
            "timestamp": self.created_at.isoformat(),
        }


class FieldSlot(CanonicalModel):
    """
    One encoded field: its name, declared type and 32-byte slot.

    ``encoding`` says how the slot was produced: ``"abi"`` (atomic value
    packed in place), ``"keccak"`` (hash of a string or bytes value),
    ``"struct"`` (nested hashStruct) or ``"array"`` (hash of element slots).
    """

    name: str
    type: str
    encoding: str
    slot: str


class DigestBreakdown(CanonicalModel):
    """
    Intermediate values of a digest computation.

    Comparing a breakdown field by field against another implementation's
    intermediate hashes pinpoints which part of the encoding diverges:
    the type string (field order, dependency order), a single field slot
    (dynamic hashing vs. raw packing), or the domain separator.
    """

    primary_type: str
    type_string: str
    type_hash: str
    domain_type_hash: str
    domain_separator: str
    slots: List[FieldSlot]
    struct_hash: str
    digest: str
