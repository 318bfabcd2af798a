"""
Value Encoding Test Suite

Tests for 32-byte slot packing and struct hashing:
- Atomic encodings (address, bool, integers, fixed bytes)
- Dynamic hashing (string, bytes) and arrays
- Struct hashes against the EIP-712 reference example
- Field paths in encoding errors

Usage:
    pytest tests/test_values.py -v
"""

import pytest
from eth_utils import keccak

from test_mocks import (
    BASKET_TYPES,
    MAIL_CONTENTS_SLOT,
    MAIL_RECIPIENT_ADDRESS,
    MAIL_STRUCT_HASH,
    MAIL_TYPES,
    MOCK_BAD_CHECKSUM_ADDRESS,
    MOCK_DAI_MAINNET,
    MOCK_USDC_MAINNET,
    create_basket_message,
    create_mail_message,
    create_order_message,
    create_order_types,
)

from eip712_signer.encoding.types import TypeRegistry, parse_field_type
from eip712_signer.encoding.values import ValueEncoder, coerce_atomic
from eip712_signer.engine.exceptions import EncodingMismatch
from eip712_signer.utils import to_hex


def encode(type_str, value):
    return ValueEncoder(TypeRegistry({})).encode_value(parse_field_type(type_str, set()), value, "T.x")


def word(number: int) -> bytes:
    return number.to_bytes(32, "big")


class TestAtomicEncoding:
    """Atomic values are ABI-encoded in place."""

    def test_uint_forms(self):
        assert encode("uint256", 1) == word(1)
        assert encode("uint256", "1000") == word(1000)
        assert encode("uint256", "0x10") == word(16)
        assert encode("uint8", 255) == word(255)

    def test_negative_int_is_twos_complement(self):
        assert encode("int8", -1) == b"\xff" * 32
        assert encode("int256", "-0x1") == b"\xff" * 32

    @pytest.mark.parametrize("type_str, value", [
        ("uint8", 256),
        ("uint256", -1),
        ("int8", 128),
        ("int8", -129),
        ("uint256", 2 ** 256),
    ])
    def test_integer_out_of_range(self, type_str, value):
        with pytest.raises(EncodingMismatch, match="out of range"):
            encode(type_str, value)

    def test_bool_is_not_an_integer(self):
        with pytest.raises(EncodingMismatch, match="got bool"):
            encode("uint256", True)

    def test_non_numeric_string(self):
        with pytest.raises(EncodingMismatch, match="non-numeric"):
            encode("uint256", "ten")

    def test_bool_encoding(self):
        assert encode("bool", True) == word(1)
        assert encode("bool", False) == word(0)
        assert encode("bool", 1) == word(1)
        with pytest.raises(EncodingMismatch):
            encode("bool", "true")

    def test_address_left_padded(self):
        slot = encode("address", MOCK_USDC_MAINNET)
        assert slot == b"\x00" * 12 + bytes.fromhex(MOCK_USDC_MAINNET[2:])

    def test_lowercase_address_accepted(self):
        assert encode("address", MOCK_USDC_MAINNET.lower()) == encode("address", MOCK_USDC_MAINNET)

    def test_raw_address_bytes_accepted(self):
        raw = bytes.fromhex(MOCK_DAI_MAINNET[2:])
        assert encode("address", raw) == encode("address", MOCK_DAI_MAINNET)

    def test_bad_checksum_rejected(self):
        with pytest.raises(EncodingMismatch, match="checksum"):
            encode("address", MOCK_BAD_CHECKSUM_ADDRESS)

    def test_bad_checksum_in_struct_field_rejected(self):
        encoder = ValueEncoder(TypeRegistry({"Pay": [{"name": "to", "type": "address"}]}))
        with pytest.raises(EncodingMismatch, match="checksum") as exc_info:
            encoder.hash_struct("Pay", {"to": MOCK_BAD_CHECKSUM_ADDRESS})
        assert exc_info.value.path == "Pay.to"

    def test_uppercase_address_accepted(self):
        assert encode("address", "0x" + MOCK_USDC_MAINNET[2:].upper()) == encode("address", MOCK_USDC_MAINNET)

    def test_unprefixed_address_rejected(self):
        with pytest.raises(EncodingMismatch, match="0x and 40 hex"):
            encode("address", MOCK_USDC_MAINNET[2:])

    def test_short_address_rejected(self):
        with pytest.raises(EncodingMismatch):
            encode("address", "0x1234")

    def test_coerce_atomic_rejects_non_atomic_types(self):
        assert parse_field_type("bytes4", set()).is_atomic
        assert parse_field_type("string", set()).is_dynamic
        with pytest.raises(TypeError, match="not an atomic type"):
            coerce_atomic(parse_field_type("string", set()), "x", "T.x")

    def test_fixed_bytes_right_padded(self):
        assert encode("bytes4", "0x01020304") == bytes.fromhex("01020304") + b"\x00" * 28
        assert encode("bytes4", b"\x01") == b"\x01" + b"\x00" * 31
        assert encode("bytes32", "0x" + "ab" * 32) == b"\xab" * 32

    def test_fixed_bytes_too_long(self):
        with pytest.raises(EncodingMismatch, match="do not fit"):
            encode("bytes4", "0x0102030405")

    def test_invalid_hex(self):
        with pytest.raises(EncodingMismatch, match="invalid hex"):
            encode("bytes4", "0xzz")


class TestDynamicEncoding:
    """Dynamic values and arrays are hashed."""

    def test_string_is_hashed(self):
        assert encode("string", "Hello, Bob!") == keccak(text="Hello, Bob!")
        assert to_hex(encode("string", "Hello, Bob!")) == MAIL_CONTENTS_SLOT

    def test_bytes_is_hashed(self):
        assert encode("bytes", "0xdeadbeef") == keccak(bytes.fromhex("deadbeef"))
        assert encode("bytes", b"") == keccak(b"")

    def test_string_rejects_non_strings(self):
        with pytest.raises(EncodingMismatch, match="expected string"):
            encode("string", 5)

    def test_array_of_uints(self):
        assert encode("uint256[]", [1, 2]) == keccak(word(1) + word(2))
        assert encode("uint256[]", []) == keccak(b"")

    def test_fixed_length_array(self):
        assert encode("uint8[2]", [1, 2]) == keccak(word(1) + word(2))
        with pytest.raises(EncodingMismatch, match="expected 2 elements"):
            encode("uint8[2]", [1, 2, 3])

    def test_array_rejects_strings(self):
        with pytest.raises(EncodingMismatch, match="expected array"):
            encode("uint8[]", "12")

    def test_none_is_a_missing_value(self):
        with pytest.raises(EncodingMismatch, match="missing value"):
            encode("uint256", None)


class TestStructHash:
    """Struct hashing and error paths."""

    def test_mail_struct_hash(self):
        encoder = ValueEncoder(TypeRegistry(MAIL_TYPES))
        assert to_hex(encoder.hash_struct("Mail", create_mail_message())) == MAIL_STRUCT_HASH

    def test_nested_struct_slot_is_struct_hash(self):
        encoder = ValueEncoder(TypeRegistry(MAIL_TYPES))
        message = create_mail_message()
        slots = dict(encoder.field_slots("Mail", message))
        assert list(slots) == ["from", "to", "contents"]
        assert slots["to"] == encoder.hash_struct("Person", message["to"])

    def test_encode_data_layout(self):
        registry = TypeRegistry(MAIL_TYPES)
        data = ValueEncoder(registry).encode_data("Mail", create_mail_message())
        assert len(data) == 32 * 4
        assert data[:32] == registry.type_hash("Mail")

    def test_undeclared_keys_do_not_change_hash(self):
        encoder = ValueEncoder(TypeRegistry(MAIL_TYPES))
        message = create_mail_message()
        message["cc"] = "someone"
        assert to_hex(encoder.hash_struct("Mail", message)) == MAIL_STRUCT_HASH

    def test_key_order_does_not_change_hash(self):
        encoder = ValueEncoder(TypeRegistry(MAIL_TYPES))
        message = create_mail_message()
        shuffled = {"contents": message["contents"], "to": message["to"], "from": message["from"]}
        assert encoder.hash_struct("Mail", shuffled) == encoder.hash_struct("Mail", message)

    def test_missing_nested_field_path(self):
        message = create_mail_message()
        message["to"] = {"name": "Bob"}
        with pytest.raises(EncodingMismatch) as exc_info:
            ValueEncoder(TypeRegistry(MAIL_TYPES)).hash_struct("Mail", message)
        assert exc_info.value.path == "Mail.to.wallet"
        assert exc_info.value.reason == "missing field"

    def test_array_element_path(self):
        message = create_basket_message([
            {"token": MOCK_USDC_MAINNET, "amount": 1},
            {"token": MOCK_BAD_CHECKSUM_ADDRESS, "amount": 2},
        ])
        with pytest.raises(EncodingMismatch) as exc_info:
            ValueEncoder(TypeRegistry(BASKET_TYPES)).hash_struct("Basket", message)
        assert exc_info.value.path == "Basket.items[1].token"

    def test_struct_value_must_be_mapping(self):
        message = create_mail_message()
        message["to"] = MAIL_RECIPIENT_ADDRESS
        with pytest.raises(EncodingMismatch, match="expected mapping"):
            ValueEncoder(TypeRegistry(MAIL_TYPES)).hash_struct("Mail", message)

    def test_string_and_bytes32_pool_encode_differently(self):
        message = create_order_message()
        as_bytes32 = ValueEncoder(TypeRegistry(create_order_types("bytes32")))
        as_string = ValueEncoder(TypeRegistry(create_order_types("string")))

        bytes32_slots = dict(as_bytes32.field_slots("Order", message))
        string_slots = dict(as_string.field_slots("Order", message))
        assert bytes32_slots["pool"] == b"\xab" * 32
        assert string_slots["pool"] == keccak(text=message["pool"])
        assert as_bytes32.hash_struct("Order", message) != as_string.hash_struct("Order", message)
        assert len(bytes32_slots) == 12


class TestNormalize:
    """Native-value normalization."""

    def test_normalize_basket(self):
        normalized = ValueEncoder(TypeRegistry(BASKET_TYPES)).normalize("Basket", create_basket_message())
        assert list(normalized) == ["owner", "items", "tags"]
        assert normalized["tags"] == [bytes.fromhex("01020304"), bytes.fromhex("0a0b0000")]
        assert normalized["items"][0] == {"token": MOCK_USDC_MAINNET, "amount": 1000000}

    def test_normalize_checksums_and_integers(self):
        message = create_order_message(maker=MOCK_DAI_MAINNET.lower(), salt="0x10", extra="dropped")
        normalized = ValueEncoder(TypeRegistry(create_order_types())).normalize("Order", message)
        assert normalized["maker"] == MOCK_DAI_MAINNET
        assert normalized["salt"] == 16
        assert isinstance(normalized["takerAmount"], int)
        assert "extra" not in normalized
