"""
Full typed-data encoding: domain + types + message → digest.

Pure functions shared by the signing service and the verifiers.  No
reconciliation happens here; callers pass a message whose undeclared keys
may be present but are never encoded.
"""

from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from ..engine.exceptions import ConfigurationError
from ..schemas.typed_data import DigestBreakdown, EIP712Domain, FieldSlot
from ..utils import to_hex
from .digest import build_digest
from .domain import DOMAIN_FIELDS, DOMAIN_TYPE_HASH, compute_domain_separator, domain_contract_address
from .types import DOMAIN_TYPE_NAME, FieldType, TypeRegistry
from .values import ValueEncoder

TypesLike = Union[TypeRegistry, Mapping[str, Sequence[Mapping[str, str]]]]
DomainLike = Union[EIP712Domain, Mapping[str, Any]]


def as_domain(domain: DomainLike) -> EIP712Domain:
    if isinstance(domain, EIP712Domain):
        return domain
    try:
        return EIP712Domain.model_validate(domain)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid EIP-712 domain: {e}") from e


def resolve_types(types: TypesLike, primary_type: Optional[str] = None) -> Tuple[TypeRegistry, str]:
    """
    Parse ``types`` (if needed) and settle the primary type.

    When ``primary_type`` is omitted it is derived as the single struct no
    other struct references.  Every declared struct must be reachable from
    the primary type.
    """
    registry = types if isinstance(types, TypeRegistry) else TypeRegistry(types)
    primary = primary_type or registry.primary_type()
    registry.validate_reachable(primary)
    return registry, primary


def hash_typed_data(
    domain: DomainLike,
    types: TypesLike,
    message: Mapping[str, Any],
    primary_type: Optional[str] = None,
    domain_separator: Optional[bytes] = None,
) -> bytes:
    """Digest of a typed-data message; ``domain_separator`` skips recomputation."""
    registry, primary = resolve_types(types, primary_type)
    struct_hash = ValueEncoder(registry).hash_struct(primary, message)
    separator = domain_separator or compute_domain_separator(as_domain(domain))
    return build_digest(separator, struct_hash)


def slot_encoding(field_type: FieldType) -> str:
    if field_type.is_atomic:
        return "abi"
    if field_type.is_dynamic:
        return "keccak"
    return field_type.kind.value


def breakdown_typed_data(
    domain: DomainLike,
    types: TypesLike,
    message: Mapping[str, Any],
    primary_type: Optional[str] = None,
) -> DigestBreakdown:
    registry, primary = resolve_types(types, primary_type)
    encoder = ValueEncoder(registry)
    slots = encoder.field_slots(primary, message)
    struct_hash = encoder.hash_struct(primary, message)
    separator = compute_domain_separator(as_domain(domain))
    field_types = {field.name: field.type for field in registry.fields(primary)}
    return DigestBreakdown(
        primary_type=primary,
        type_string=registry.encode_type(primary),
        type_hash=to_hex(registry.type_hash(primary)),
        domain_type_hash=to_hex(DOMAIN_TYPE_HASH),
        domain_separator=to_hex(separator),
        slots=[
            FieldSlot(
                name=name,
                type=field_types[name].canonical,
                encoding=slot_encoding(field_types[name]),
                slot=to_hex(slot),
            )
            for name, slot in slots
        ],
        struct_hash=to_hex(struct_hash),
        digest=to_hex(build_digest(separator, struct_hash)),
    )


def to_typed_data_dict(
    domain: DomainLike,
    types: TypesLike,
    message: Mapping[str, Any],
    primary_type: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build the ``{types, primaryType, domain, message}`` structure consumed
    by ``eth_account.messages.encode_typed_data`` and ``eth_signTypedData_v4``.

    The message is normalized (declared fields only, native Python values),
    and an empty ``verifyingContract`` is written out as the zero address.
    """
    registry, primary = resolve_types(types, primary_type)
    domain = as_domain(domain)
    return {
        "types": {DOMAIN_TYPE_NAME: [dict(field) for field in DOMAIN_FIELDS], **registry.to_dict()},
        "primaryType": primary,
        "domain": {
            "name": domain.name,
            "version": domain.version,
            "chainId": domain.chain_id,
            "verifyingContract": domain_contract_address(domain),
        },
        "message": ValueEncoder(registry).normalize(primary, message),
    }
