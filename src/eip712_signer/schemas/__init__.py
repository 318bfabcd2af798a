from .bases import CanonicalModel
from .typed_data import EIP712Domain, ECDSASignature, SigningResult, FieldSlot, DigestBreakdown

__all__ = [
    "CanonicalModel",
    "EIP712Domain",
    "ECDSASignature",
    "SigningResult",
    "FieldSlot",
    "DigestBreakdown",
]
