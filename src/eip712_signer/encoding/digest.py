from eth_utils import keccak

EIP191_PREFIX = b"\x19\x01"


def build_digest(domain_separator: bytes, struct_hash: bytes) -> bytes:
    """
    ``keccak256(0x1901 || domainSeparator || hashStruct(message))``

    Raises:
        ValueError: If either input is not exactly 32 bytes.
    """
    if len(domain_separator) != 32:
        raise ValueError(f"domain_separator must be 32 bytes, got {len(domain_separator)}")
    if len(struct_hash) != 32:
        raise ValueError(f"struct_hash must be 32 bytes, got {len(struct_hash)}")
    return keccak(EIP191_PREFIX + bytes(domain_separator) + bytes(struct_hash))
