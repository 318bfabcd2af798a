from .config import SignerSettings, load_settings
from .encoding import (
    ExtraFieldPolicy,
    FieldOrderReconciler,
    TypeRegistry,
    ValueEncoder,
    build_digest,
    compute_domain_separator,
    hash_typed_data,
)
from .engine.exceptions import (
    EIP712Error,
    MissingTypeDefinition,
    CyclicTypeGraph,
    EncodingMismatch,
    ConsistencyFailure,
    InvalidPrivateKey,
    ConfigurationError,
)
from .schemas import EIP712Domain, ECDSASignature, SigningResult, DigestBreakdown
from .signing import (
    PrivateKeyHandle,
    SigningService,
    recover_digest_signer,
    recover_typed_data_signer,
    verify_typed_data,
)

__all__ = [
    "SignerSettings",
    "load_settings",
    "ExtraFieldPolicy",
    "FieldOrderReconciler",
    "TypeRegistry",
    "ValueEncoder",
    "build_digest",
    "compute_domain_separator",
    "hash_typed_data",
    "EIP712Error",
    "MissingTypeDefinition",
    "CyclicTypeGraph",
    "EncodingMismatch",
    "ConsistencyFailure",
    "InvalidPrivateKey",
    "ConfigurationError",
    "EIP712Domain",
    "ECDSASignature",
    "SigningResult",
    "DigestBreakdown",
    "PrivateKeyHandle",
    "SigningService",
    "recover_digest_signer",
    "recover_typed_data_signer",
    "verify_typed_data",
]
