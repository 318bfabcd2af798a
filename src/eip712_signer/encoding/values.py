"""
EIP-712 Value Encoding

Packs a value tree against its parsed type into the 32-byte slots used by
``hashStruct``:

* atomic types (``address``, ``bool``, ``uintN``, ``intN``, ``bytesN``) are
  ABI-encoded in place: integers right-aligned big-endian, fixed bytes
  left-aligned;
* dynamic types (``string``, ``bytes``) contribute ``keccak256(value)``;
* nested structs contribute their own ``hashStruct``;
* arrays contribute ``keccak256`` of their concatenated element slots.

``hashStruct(T, v) = keccak256(typeHash(T) || slot_1 || ... || slot_n)``

Shape errors are reported as ``EncodingMismatch`` carrying the dotted field
path (``Mail.to.wallet``, ``Order.items[2].token``).
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from eth_abi import encode
from eth_abi.exceptions import EncodingError
from eth_utils import is_checksum_address, is_hex_address, keccak, to_checksum_address

from ..engine.exceptions import EncodingMismatch
from .types import FieldKind, FieldType, TypeRegistry


# ---------------------------------------------------------------------------
# Scalar coercion
# ---------------------------------------------------------------------------

def coerce_integer(field_type: FieldType, value: Any, path: str) -> int:
    """
    Accept ``int``, decimal strings and 0x-hex strings; reject ``bool``.

    Range is checked against the declared bit width.
    """
    if isinstance(value, bool):
        raise EncodingMismatch(path, f"expected {field_type.canonical}, got bool")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            if text.lower().startswith(("0x", "-0x")):
                number = int(text, 16)
            else:
                number = int(text, 10)
        except ValueError:
            raise EncodingMismatch(path, f"expected {field_type.canonical}, got non-numeric string {value!r}") from None
    else:
        raise EncodingMismatch(path, f"expected {field_type.canonical}, got {type(value).__name__}")

    bits = field_type.size
    if field_type.kind is FieldKind.UINT:
        low, high = 0, 2 ** bits - 1
    else:
        low, high = -(2 ** (bits - 1)), 2 ** (bits - 1) - 1
    if not low <= number <= high:
        raise EncodingMismatch(path, f"value {number} out of range for {field_type.canonical}")
    return number


def coerce_bool(value: Any, path: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise EncodingMismatch(path, f"expected bool, got {value!r}")


def coerce_address(value: Any, path: str) -> str:
    """Return the EIP-55 checksum form of a 20-byte address."""
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 20:
            raise EncodingMismatch(path, f"expected 20-byte address, got {len(value)} bytes")
        return to_checksum_address("0x" + bytes(value).hex())
    if not isinstance(value, str):
        raise EncodingMismatch(path, f"expected address, got {type(value).__name__}")
    if value[:2].lower() != "0x" or not is_hex_address(value):
        raise EncodingMismatch(path, f"invalid address {value!r}, expected 0x and 40 hex characters")
    body = value[2:]
    # all-lowercase and all-uppercase carry no checksum
    if body != body.lower() and body != body.upper() and not is_checksum_address(value):
        raise EncodingMismatch(path, f"invalid address {value!r}, EIP-55 checksum mismatch")
    return to_checksum_address(value)


def coerce_bytes(value: Any, path: str) -> bytes:
    """Accept raw bytes or a 0x-prefixed, even-length hex string."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str) and value[:2].lower() == "0x":
        try:
            return bytes.fromhex(value[2:])
        except ValueError:
            raise EncodingMismatch(path, f"invalid hex string {value!r}") from None
    raise EncodingMismatch(path, f"expected bytes or 0x-prefixed hex, got {value!r}")


def coerce_fixed_bytes(field_type: FieldType, value: Any, path: str) -> bytes:
    """Right-pad to exactly N bytes; longer values are rejected."""
    raw = coerce_bytes(value, path)
    if len(raw) > field_type.size:
        raise EncodingMismatch(path, f"{len(raw)} bytes do not fit in {field_type.canonical}")
    return raw.ljust(field_type.size, b"\x00")


def coerce_string(value: Any, path: str) -> str:
    if not isinstance(value, str):
        raise EncodingMismatch(path, f"expected string, got {type(value).__name__}")
    return value


def _as_sequence(field_type: FieldType, value: Any, path: str) -> Sequence[Any]:
    if isinstance(value, (str, bytes, bytearray, Mapping)) or not isinstance(value, Sequence):
        raise EncodingMismatch(path, f"expected array {field_type.canonical}, got {type(value).__name__}")
    if field_type.length is not None and len(value) != field_type.length:
        raise EncodingMismatch(
            path, f"expected {field_type.length} elements for {field_type.canonical}, got {len(value)}"
        )
    return value


def coerce_atomic(field_type: FieldType, value: Any, path: str) -> Any:
    """Coerce an atomic value into the Python type ``eth_abi`` expects."""
    if not field_type.is_atomic:
        raise TypeError(f"{field_type.canonical} is not an atomic type")
    kind = field_type.kind
    if kind is FieldKind.ADDRESS:
        return coerce_address(value, path)
    if kind is FieldKind.BOOL:
        return coerce_bool(value, path)
    if kind in (FieldKind.UINT, FieldKind.INT):
        return coerce_integer(field_type, value, path)
    return coerce_fixed_bytes(field_type, value, path)


# ---------------------------------------------------------------------------
# Struct encoder
# ---------------------------------------------------------------------------

class ValueEncoder:
    """
    Encodes value trees against a ``TypeRegistry``.

    Stateless apart from the registry, which is read-only; one instance can
    serve any number of concurrent encodes.
    """

    def __init__(self, registry: TypeRegistry):
        self.registry = registry

    def hash_struct(self, type_name: str, value: Any, path: Optional[str] = None) -> bytes:
        return keccak(self.encode_data(type_name, value, path))

    def encode_data(self, type_name: str, value: Any, path: Optional[str] = None) -> bytes:
        """``typeHash(T) || slot_1 || ... || slot_n``"""
        slots = self.field_slots(type_name, value, path)
        return self.registry.type_hash(type_name) + b"".join(slot for _, slot in slots)

    def field_slots(self, type_name: str, value: Any, path: Optional[str] = None) -> List[Tuple[str, bytes]]:
        """
        Encode every declared field of ``type_name`` in declared order.

        Keys of ``value`` that the type does not declare are ignored.

        Returns:
            ``[(field_name, 32-byte slot), ...]``

        Raises:
            EncodingMismatch: ``value`` is not a mapping, a declared field
                is missing, or a field value does not fit its type.
        """
        path = path or type_name
        if not isinstance(value, Mapping):
            raise EncodingMismatch(path, f"expected mapping for struct {type_name}, got {type(value).__name__}")

        slots = []
        for field in self.registry.fields(type_name):
            field_path = f"{path}.{field.name}"
            if field.name not in value:
                raise EncodingMismatch(field_path, "missing field")
            slots.append((field.name, self.encode_value(field.type, value[field.name], field_path)))
        return slots

    def encode_value(self, field_type: FieldType, value: Any, path: str) -> bytes:
        """Encode one value into its 32-byte slot."""
        if value is None:
            raise EncodingMismatch(path, f"missing value for {field_type.canonical}")

        kind = field_type.kind
        if kind is FieldKind.STRUCT:
            return self.hash_struct(field_type.struct, value, path)
        if kind is FieldKind.ARRAY:
            items = _as_sequence(field_type, value, path)
            return keccak(b"".join(
                self.encode_value(field_type.item, item, f"{path}[{index}]")
                for index, item in enumerate(items)
            ))
        if kind is FieldKind.STRING:
            return keccak(text=coerce_string(value, path))
        if kind is FieldKind.BYTES:
            return keccak(coerce_bytes(value, path))

        abi_value = coerce_atomic(field_type, value, path)
        try:
            return encode([field_type.canonical], [abi_value])
        except EncodingError as e:
            raise EncodingMismatch(path, str(e)) from e

    def normalize(self, type_name: str, value: Any, path: Optional[str] = None) -> Dict[str, Any]:
        """
        Return a copy of ``value`` restricted to declared fields, in declared
        order, with every scalar coerced to its native Python form
        (checksum addresses, ``int``, ``bool``, exact-length ``bytes``).

        The result is what independent EIP-712 implementations such as
        ``eth_account.messages.encode_typed_data`` accept without further
        interpretation.
        """
        path = path or type_name
        if not isinstance(value, Mapping):
            raise EncodingMismatch(path, f"expected mapping for struct {type_name}, got {type(value).__name__}")
        normalized = {}
        for field in self.registry.fields(type_name):
            field_path = f"{path}.{field.name}"
            if field.name not in value:
                raise EncodingMismatch(field_path, "missing field")
            normalized[field.name] = self._normalize_value(field.type, value[field.name], field_path)
        return normalized

    def _normalize_value(self, field_type: FieldType, value: Any, path: str) -> Any:
        if value is None:
            raise EncodingMismatch(path, f"missing value for {field_type.canonical}")
        kind = field_type.kind
        if kind is FieldKind.STRUCT:
            return self.normalize(field_type.struct, value, path)
        if kind is FieldKind.ARRAY:
            items = _as_sequence(field_type, value, path)
            return [
                self._normalize_value(field_type.item, item, f"{path}[{index}]")
                for index, item in enumerate(items)
            ]
        if kind is FieldKind.STRING:
            return coerce_string(value, path)
        if kind is FieldKind.BYTES:
            return coerce_bytes(value, path)
        return coerce_atomic(field_type, value, path)
