"""
Exception and Error Definitions Module

Defines the exception hierarchy for typed-data encoding, signing and
self-verification. All exceptions inherit from EIP712Error for unified
exception handling.

Exception Hierarchy:
    EIP712Error (root)
    ├── TypeDefinitionError
    │   ├── MissingTypeDefinition
    │   └── CyclicTypeGraph
    ├── EncodingMismatch
    ├── SigningError
    │   ├── InvalidPrivateKey
    │   └── ConsistencyFailure
    └── ConfigurationError

None of these conditions are transient: every one of them is a deterministic
function of the input, so callers should report rather than retry.
"""

from typing import Optional, Sequence


class EIP712Error(Exception):
    """
    Root exception class for all project-specific exceptions.

    All custom exceptions inherit from this class to enable unified
    exception handling at the CLI boundary.
    """
    pass


class TypeDefinitionError(EIP712Error):
    """
    Base exception for malformed type graphs.

    Parent class for errors detected while parsing a type mapping, before
    any value is encoded.
    """
    pass


class MissingTypeDefinition(TypeDefinitionError):
    """
    Raised when a field references a type that is neither atomic, dynamic
    nor declared in the type mapping.

    Attributes:
        type_name: Name of the referencing struct (or the requested primary type)
        field_name: Field carrying the dangling reference, if any
        reference: The undefined type name
    """

    def __init__(self, reference: str, type_name: Optional[str] = None, field_name: Optional[str] = None):
        self.reference = reference
        self.type_name = type_name
        self.field_name = field_name
        if type_name is not None and field_name is not None:
            message = f"Type '{type_name}' field '{field_name}' references undefined type '{reference}'"
        else:
            message = f"Undefined type '{reference}'"
        super().__init__(message)


class CyclicTypeGraph(TypeDefinitionError):
    """
    Raised when struct types reference each other in a cycle.

    EIP-712 has no semantics for recursive types, so the whole type mapping
    is rejected.

    Attributes:
        cycle: Type names forming the cycle, first name repeated at the end
    """

    def __init__(self, cycle: Sequence[str]):
        self.cycle = list(cycle)
        super().__init__(f"Cyclic type reference: {' -> '.join(self.cycle)}")


class EncodingMismatch(EIP712Error):
    """
    Raised when a value does not match its declared type.

    This includes scenarios such as:
    - Missing declared field
    - Non-integer where uintN/intN expected, or integer out of range
    - Address failing length or EIP-55 checksum validation
    - bytesN value longer than N bytes
    - Undeclared field under the strict extra-field policy

    Attributes:
        path: Dotted field path, e.g. ``Mail.to.wallet`` or ``Order.items[2]``
        reason: Description of the mismatch
    """

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class SigningError(EIP712Error):
    """
    Base exception for key handling and signing failures.
    """
    pass


class InvalidPrivateKey(SigningError):
    """
    Raised when private key material is malformed.

    The message never includes the key material itself.
    """
    pass


class ConsistencyFailure(SigningError):
    """
    Raised when a freshly produced signature does not recover to the
    signing key's address.

    This signals a defect in the encoder or signer and is never returned
    as a result.

    Attributes:
        expected: Address derived from the held private key
        recovered: Address recovered from the signature
    """

    def __init__(self, expected: str, recovered: str, detail: str = ""):
        self.expected = expected
        self.recovered = recovered
        message = f"Signature self-verification failed: expected {expected}, recovered {recovered}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class ConfigurationError(EIP712Error):
    """
    Raised when configuration or call arguments are missing or invalid.

    This includes scenarios such as:
    - No private key available from arguments or environment
    - Ambiguous or unreachable primary type
    - Invalid deadline duration or extra-field policy
    """
    pass
