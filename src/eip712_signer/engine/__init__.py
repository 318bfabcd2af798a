from .exceptions import (
    EIP712Error,
    TypeDefinitionError,
    MissingTypeDefinition,
    CyclicTypeGraph,
    EncodingMismatch,
    SigningError,
    InvalidPrivateKey,
    ConsistencyFailure,
    ConfigurationError,
)

__all__ = [
    "EIP712Error",
    "TypeDefinitionError",
    "MissingTypeDefinition",
    "CyclicTypeGraph",
    "EncodingMismatch",
    "SigningError",
    "InvalidPrivateKey",
    "ConsistencyFailure",
    "ConfigurationError",
]
