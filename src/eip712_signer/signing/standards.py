from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from ..schemas.typed_data import EIP712Domain


# -----------------------------
# Permit Message (EIP-2612)
# -----------------------------

@dataclass
class PermitMessage:
    """
    Permit message as defined in EIP-2612.
    Represents token allowance authorization.

    ``value`` may be an ``int`` or a decimal string, since token amounts
    regularly exceed what JSON callers can carry as numbers.
    """
    owner: str
    spender: str
    value: Union[int, str]
    nonce: int
    deadline: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "spender": self.spender,
            "value": self.value,
            "nonce": self.nonce,
            "deadline": self.deadline,
        }


def permit_types() -> Dict[str, List[Dict[str, str]]]:
    return {
        "Permit": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"},
            {"name": "value", "type": "uint256"},
            {"name": "nonce", "type": "uint256"},
            {"name": "deadline", "type": "uint256"},
        ],
    }


# -----------------------------
# EIP-712 Typed Data Wrapper
# -----------------------------

@dataclass
class PermitTypedData:
    """
    EIP-2612 permit typed data: domain, fixed ``Permit`` type and message.
    """
    domain: EIP712Domain
    message: PermitMessage

    primary_type: str = "Permit"

    types: Dict[str, List[Dict[str, str]]] = field(default_factory=permit_types)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the typed data into a dict compatible with EIP-712 signing.
        """
        return {
            "types": self.types,
            "primaryType": self.primary_type,
            "domain": self.domain.to_dict(),
            "message": self.message.to_dict(),
        }
