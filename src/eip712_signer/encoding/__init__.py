from .types import DOMAIN_TYPE_NAME, FieldKind, FieldType, TypedField, TypeRegistry, parse_field_type
from .values import ValueEncoder
from .reconcile import ExtraFieldPolicy, FieldOrderReconciler, Reconciliation
from .domain import (
    DOMAIN_TYPE_HASH,
    DOMAIN_TYPE_STRING,
    DomainSeparatorCache,
    compute_domain_separator,
)
from .digest import EIP191_PREFIX, build_digest
from .structured import (
    as_domain,
    breakdown_typed_data,
    hash_typed_data,
    resolve_types,
    to_typed_data_dict,
)

__all__ = [
    "DOMAIN_TYPE_NAME",
    "FieldKind",
    "FieldType",
    "TypedField",
    "TypeRegistry",
    "parse_field_type",
    "ValueEncoder",
    "ExtraFieldPolicy",
    "FieldOrderReconciler",
    "Reconciliation",
    "DOMAIN_TYPE_HASH",
    "DOMAIN_TYPE_STRING",
    "DomainSeparatorCache",
    "compute_domain_separator",
    "EIP191_PREFIX",
    "build_digest",
    "as_domain",
    "breakdown_typed_data",
    "hash_typed_data",
    "resolve_types",
    "to_typed_data_dict",
]
