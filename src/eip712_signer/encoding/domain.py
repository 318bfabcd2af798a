"""
EIP-712 domain separator.

Only the four-field domain is supported, and all four fields are always
encoded::

    EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)

    domainSeparator = keccak256(
        typeHash || keccak256(name) || keccak256(version) || uint256(chainId) || address(verifyingContract)
    )
"""

import threading
from typing import Dict, Tuple

from eth_abi import encode
from eth_utils import keccak

from ..schemas.typed_data import EIP712Domain
from ..utils import logger, to_hex
from .values import coerce_address

DOMAIN_TYPE_STRING = "EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
DOMAIN_TYPE_HASH = keccak(text=DOMAIN_TYPE_STRING)
DOMAIN_FIELDS = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

#: Distinct (signer, domain) pairs kept by a ``DomainSeparatorCache``.
DEFAULT_CACHE_SIZE = 1024


def domain_contract_address(domain: EIP712Domain) -> str:
    """Checksum ``verifyingContract``; empty values map to the zero address."""
    if domain.verifying_contract in ("", "0x", "0X"):
        return ZERO_ADDRESS
    return coerce_address(domain.verifying_contract, "EIP712Domain.verifyingContract")


def compute_domain_separator(domain: EIP712Domain) -> bytes:
    separator = keccak(encode(
        ["bytes32", "bytes32", "bytes32", "uint256", "address"],
        [
            DOMAIN_TYPE_HASH,
            keccak(text=domain.name),
            keccak(text=domain.version),
            domain.chain_id,
            domain_contract_address(domain),
        ],
    ))
    logger.debug("Domain separator for %s v%s on chain %s: %s",
                 domain.name, domain.version, domain.chain_id, to_hex(separator))
    return separator


class DomainSeparatorCache:
    """
    Domain separators keyed by ``(signer_address, domain)``.

    Entries are written once under a lock and never modified, so readers
    only take the lock on a miss.  At most ``max_entries`` separators are
    kept; inserting past the bound evicts the oldest entry.
    """

    def __init__(self, max_entries: int = DEFAULT_CACHE_SIZE):
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self.max_entries = max_entries
        self._entries: Dict[Tuple[str, EIP712Domain], bytes] = {}
        self._lock = threading.Lock()

    def get(self, signer_address: str, domain: EIP712Domain) -> bytes:
        key = (signer_address, domain)
        separator = self._entries.get(key)
        if separator is not None:
            return separator
        with self._lock:
            separator = self._entries.get(key)
            if separator is None:
                separator = compute_domain_separator(domain)
                if len(self) >= self.max_entries:
                    del self._entries[next(iter(self._entries))]
                self._entries[key] = separator
        return separator

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
