"""
Field order reconciliation.

Message objects are often assembled by independent key insertion, so their
key order rarely matches the declared field order of the type.  The digest
only ever depends on the declared order; this module makes that explicit by
producing a new value tree whose keys follow the type, and by reporting what
it changed.

Undeclared keys are handled according to ``ExtraFieldPolicy``:

* ``DROP`` (default): removed from the tree and reported as informational.
* ``ERROR``: rejected with ``EncodingMismatch``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Tuple

from ..engine.exceptions import EncodingMismatch
from ..utils import logger
from .types import FieldKind, FieldType, TypeRegistry


class ExtraFieldPolicy(str, Enum):
    DROP = "drop"
    ERROR = "error"


@dataclass(frozen=True)
class Reconciliation:
    """
    Outcome of reconciling a message against its primary type.

    Attributes:
        primary_type: Type the message was reconciled against.
        type_order: Declared field order of the primary type.
        message_order: Key order of the message as supplied.
        value: New value tree in declared order.
        dropped_fields: Paths of undeclared keys that were removed.
        missing_fields: Paths of declared fields absent from the message.
        reordered_paths: Struct paths whose key order differed from the type.
    """

    primary_type: str
    type_order: Tuple[str, ...]
    message_order: Tuple[str, ...]
    value: Dict[str, Any]
    dropped_fields: Tuple[str, ...] = ()
    missing_fields: Tuple[str, ...] = ()
    reordered_paths: Tuple[str, ...] = ()

    @property
    def is_ordered(self) -> bool:
        return self.type_order == self.message_order

    @property
    def changed(self) -> bool:
        return bool(self.dropped_fields or self.reordered_paths)


@dataclass
class _Findings:
    dropped: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    reordered: List[str] = field(default_factory=list)


class FieldOrderReconciler:
    """Reorders value trees to the declared field order of their types."""

    def __init__(self, policy: ExtraFieldPolicy = ExtraFieldPolicy.DROP):
        self.policy = ExtraFieldPolicy(policy)

    def reconcile(self, registry: TypeRegistry, primary_type: str, message: Any) -> Reconciliation:
        """
        Build a declared-order copy of ``message``.

        Nested structs and arrays of structs are reconciled recursively.
        Missing fields are reported but not filled; the encoder rejects them
        later unless the caller injects them (e.g. ``deadline``).

        Raises:
            EncodingMismatch: ``message`` is not a mapping, or it carries
                undeclared fields under ``ExtraFieldPolicy.ERROR``.
        """
        if not isinstance(message, Mapping):
            raise EncodingMismatch(primary_type, f"expected mapping, got {type(message).__name__}")

        findings = _Findings()
        value = self._struct(registry, primary_type, message, primary_type, findings)
        result = Reconciliation(
            primary_type=primary_type,
            type_order=registry.field_names(primary_type),
            message_order=tuple(message.keys()),
            value=value,
            dropped_fields=tuple(findings.dropped),
            missing_fields=tuple(findings.missing),
            reordered_paths=tuple(findings.reordered),
        )

        if not result.is_ordered:
            logger.info(
                "Field order mismatch for %s: type order [%s], message order [%s]; using declared order",
                primary_type,
                ", ".join(map(str, result.type_order)),
                ", ".join(map(str, result.message_order)),
            )
        if result.dropped_fields:
            logger.info("Dropped undeclared fields: %s", ", ".join(result.dropped_fields))
        return result

    def _struct(
        self,
        registry: TypeRegistry,
        type_name: str,
        value: Mapping[str, Any],
        path: str,
        findings: _Findings,
    ) -> Dict[str, Any]:
        declared = registry.field_names(type_name)
        extras = [key for key in value if key not in declared]
        if extras:
            if self.policy is ExtraFieldPolicy.ERROR:
                raise EncodingMismatch(path, f"undeclared field(s) {', '.join(map(str, extras))}")
            findings.dropped.extend(f"{path}.{key}" for key in extras)

        supplied = [key for key in value if key in declared]
        if supplied != [name for name in declared if name in value]:
            findings.reordered.append(path)

        reordered = {}
        for typed_field in registry.fields(type_name):
            field_path = f"{path}.{typed_field.name}"
            if typed_field.name not in value:
                findings.missing.append(field_path)
                continue
            reordered[typed_field.name] = self._value(
                registry, typed_field.type, value[typed_field.name], field_path, findings
            )
        return reordered

    def _value(self, registry: TypeRegistry, field_type: FieldType, value: Any, path: str, findings: _Findings) -> Any:
        if field_type.kind is FieldKind.STRUCT and isinstance(value, Mapping):
            return self._struct(registry, field_type.struct, value, path, findings)
        if field_type.kind is FieldKind.ARRAY and isinstance(value, (list, tuple)):
            return [
                self._value(registry, field_type.item, item, f"{path}[{index}]", findings)
                for index, item in enumerate(value)
            ]
        # Shape errors are left for the encoder to report.
        return value
