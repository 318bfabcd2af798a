"""
EIP-712 Type Graph

Parses a type mapping (``{"Mail": [{"name": "from", "type": "Person"}, ...]}``)
into a closed set of field kinds, builds the struct dependency graph and
produces canonical type strings and type hashes.

Every field type is resolved exactly once, when the ``TypeRegistry`` is
built, so the value encoder dispatches on ``FieldKind`` instead of
re-inspecting type strings.  Dangling references and reference cycles are
rejected at construction time, before any value is encoded.

Canonical type string (EIP-712 ``encodeType``)::

    Mail(Person from,Person to,string contents)Person(string name,address wallet)

The primary type comes first, followed by every struct it references
(directly, through nested structs, or through arrays of structs) sorted
alphabetically by name.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Collection, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from eth_utils import keccak

from ..engine.exceptions import ConfigurationError, CyclicTypeGraph, MissingTypeDefinition

#: Key of the domain struct inside a full typed-data ``types`` mapping.  The
#: domain type is fixed (see ``encoding.domain``) and never encoded as a struct.
DOMAIN_TYPE_NAME = "EIP712Domain"

_ARRAY_RE = re.compile(r"^(.+)\[(\d*)\]$")
_INTEGER_RE = re.compile(r"^(u?)int(\d+)$")
_FIXED_BYTES_RE = re.compile(r"^bytes(\d+)$")


class FieldKind(Enum):
    """Closed set of EIP-712 field kinds."""

    ADDRESS = "address"
    BOOL = "bool"
    UINT = "uint"
    INT = "int"
    FIXED_BYTES = "fixed_bytes"
    STRING = "string"
    BYTES = "bytes"
    STRUCT = "struct"
    ARRAY = "array"


#: Kinds encoded in place as a single ABI word.
ATOMIC_KINDS = frozenset(
    {FieldKind.ADDRESS, FieldKind.BOOL, FieldKind.UINT, FieldKind.INT, FieldKind.FIXED_BYTES}
)

#: Kinds whose slot is the keccak-256 hash of the raw value.
DYNAMIC_KINDS = frozenset({FieldKind.STRING, FieldKind.BYTES})


@dataclass(frozen=True)
class FieldType:
    """
    A parsed field type.

    Attributes:
        kind: Variant tag.
        canonical: Type string exactly as it appears in the type mapping.
        size: Bit width for ``uintN``/``intN``, byte length for ``bytesN``.
        struct: Struct name for ``STRUCT`` fields.
        item: Element type for ``ARRAY`` fields.
        length: Fixed length for ``T[k]`` arrays, ``None`` for ``T[]``.
    """

    kind: FieldKind
    canonical: str
    size: int = 0
    struct: Optional[str] = None
    item: Optional["FieldType"] = None
    length: Optional[int] = None

    @property
    def is_atomic(self) -> bool:
        return self.kind in ATOMIC_KINDS

    @property
    def is_dynamic(self) -> bool:
        return self.kind in DYNAMIC_KINDS

    def struct_reference(self) -> Optional[str]:
        """Struct name this field depends on, looking through array layers."""
        field_type = self
        while field_type.kind is FieldKind.ARRAY:
            field_type = field_type.item
        return field_type.struct


@dataclass(frozen=True)
class TypedField:
    name: str
    type: FieldType


def parse_field_type(
    type_str: str,
    struct_names: Collection[str],
    *,
    owner: Optional[str] = None,
    field_name: Optional[str] = None,
) -> FieldType:
    """
    Resolve a type string into a ``FieldType``.

    Args:
        type_str: Type as written in the mapping, e.g. ``"uint256"``,
            ``"bytes1"``, ``"OfferItem[]"``, ``"address[3][]"``.
        struct_names: Names of the user-declared struct types.
        owner: Struct declaring the field (error reporting only).
        field_name: Field name (error reporting only).

    Raises:
        MissingTypeDefinition: ``type_str`` is neither a valid atomic or
            dynamic type nor a declared struct.
    """
    if not isinstance(type_str, str) or not type_str:
        raise MissingTypeDefinition(repr(type_str), owner, field_name)

    array_match = _ARRAY_RE.match(type_str)
    if array_match:
        item = parse_field_type(array_match.group(1), struct_names, owner=owner, field_name=field_name)
        length = int(array_match.group(2)) if array_match.group(2) else None
        return FieldType(FieldKind.ARRAY, type_str, item=item, length=length)

    if type_str == "address":
        return FieldType(FieldKind.ADDRESS, type_str, size=160)
    if type_str == "bool":
        return FieldType(FieldKind.BOOL, type_str, size=8)
    if type_str == "string":
        return FieldType(FieldKind.STRING, type_str)
    if type_str == "bytes":
        return FieldType(FieldKind.BYTES, type_str)

    integer_match = _INTEGER_RE.match(type_str)
    if integer_match:
        bits = int(integer_match.group(2))
        if bits % 8 == 0 and 8 <= bits <= 256:
            kind = FieldKind.UINT if integer_match.group(1) else FieldKind.INT
            return FieldType(kind, type_str, size=bits)

    bytes_match = _FIXED_BYTES_RE.match(type_str)
    if bytes_match:
        length = int(bytes_match.group(1))
        if 1 <= length <= 32:
            return FieldType(FieldKind.FIXED_BYTES, type_str, size=length)

    if type_str in struct_names:
        return FieldType(FieldKind.STRUCT, type_str, struct=type_str)

    raise MissingTypeDefinition(type_str, owner, field_name)


class TypeRegistry:
    """
    Parsed, validated set of EIP-712 struct types.

    Construction parses every field, builds the directed reference graph and
    checks it once for dangling references and cycles.  Instances are
    read-only afterwards and may be shared between threads.

    Example::

        registry = TypeRegistry({
            "Mail": [
                {"name": "from", "type": "Person"},
                {"name": "to", "type": "Person"},
                {"name": "contents", "type": "string"},
            ],
            "Person": [
                {"name": "name", "type": "string"},
                {"name": "wallet", "type": "address"},
            ],
        })
        registry.encode_type("Mail")
        # 'Mail(Person from,Person to,string contents)Person(string name,address wallet)'
    """

    def __init__(self, types: Mapping[str, Sequence[Mapping[str, str]]]):
        if not isinstance(types, Mapping):
            raise ConfigurationError(f"Type definitions must be a mapping, got {type(types).__name__}")

        self._raw: Dict[str, List[Dict[str, str]]] = {}
        for type_name, fields in types.items():
            if type_name == DOMAIN_TYPE_NAME:
                continue
            if isinstance(fields, (str, bytes)) or not isinstance(fields, Sequence):
                raise ConfigurationError(f"Type '{type_name}' must declare a list of fields")
            if not all(isinstance(field, Mapping) for field in fields):
                raise ConfigurationError(f"Type '{type_name}' fields must be {{name, type}} mappings")
            self._raw[type_name] = [dict(field) for field in fields]

        struct_names = set(self._raw)
        self._fields: Dict[str, Tuple[TypedField, ...]] = {}
        self._edges: Dict[str, Tuple[str, ...]] = {}
        for type_name, fields in self._raw.items():
            parsed: List[TypedField] = []
            references: List[str] = []
            for field in fields:
                try:
                    name, type_str = field["name"], field["type"]
                except KeyError:
                    raise ConfigurationError(
                        f"Type '{type_name}' has a field without 'name' and 'type': {field!r}"
                    ) from None
                if any(existing.name == name for existing in parsed):
                    raise ConfigurationError(f"Type '{type_name}' declares field '{name}' twice")
                field_type = parse_field_type(type_str, struct_names, owner=type_name, field_name=name)
                parsed.append(TypedField(name=name, type=field_type))
                reference = field_type.struct_reference()
                if reference is not None and reference not in references:
                    references.append(reference)
            self._fields[type_name] = tuple(parsed)
            self._edges[type_name] = tuple(references)

        self._check_acyclic()
        self._type_strings: Dict[str, str] = {}
        self._type_hashes: Dict[str, bytes] = {}

    # ------------------------------------------------------------------
    # Graph validation
    # ------------------------------------------------------------------

    def _check_acyclic(self) -> None:
        """Iterative three-colour DFS over the reference graph."""
        unvisited, in_progress, done = 0, 1, 2
        state = dict.fromkeys(self._edges, unvisited)

        for root in self._edges:
            if state[root] != unvisited:
                continue
            state[root] = in_progress
            path = [root]
            stack = [iter(self._edges[root])]
            while stack:
                child = next(stack[-1], None)
                if child is None:
                    state[path.pop()] = done
                    stack.pop()
                    continue
                if state[child] == in_progress:
                    raise CyclicTypeGraph(path[path.index(child):] + [child])
                if state[child] == unvisited:
                    state[child] = in_progress
                    path.append(child)
                    stack.append(iter(self._edges[child]))

    def _require(self, type_name: str) -> None:
        if type_name not in self._fields:
            raise MissingTypeDefinition(type_name)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def __contains__(self, type_name: Any) -> bool:
        return type_name in self._fields

    @property
    def struct_names(self) -> Tuple[str, ...]:
        return tuple(self._fields)

    def fields(self, type_name: str) -> Tuple[TypedField, ...]:
        self._require(type_name)
        return self._fields[type_name]

    def field_names(self, type_name: str) -> Tuple[str, ...]:
        return tuple(field.name for field in self.fields(type_name))

    def has_field(self, type_name: str, field_name: str) -> bool:
        return field_name in self.field_names(type_name)

    def dependencies(self, primary_type: str) -> Set[str]:
        """All struct types reachable from ``primary_type``, excluding itself."""
        self._require(primary_type)
        seen: Set[str] = set()
        pending = list(self._edges[primary_type])
        while pending:
            name = pending.pop()
            if name in seen:
                continue
            seen.add(name)
            pending.extend(self._edges[name])
        seen.discard(primary_type)
        return seen

    def primary_type(self) -> str:
        """
        Derive the primary type: the single struct no other struct references.

        Raises:
            ConfigurationError: If there is no candidate, or more than one.
        """
        referenced = {ref for refs in self._edges.values() for ref in refs}
        roots = [name for name in self._fields if name not in referenced]
        if len(roots) != 1:
            raise ConfigurationError(
                f"Cannot derive primary type: candidates {roots or 'none'}; pass primary_type explicitly"
            )
        return roots[0]

    def validate_reachable(self, primary_type: str) -> None:
        """
        Require every declared struct to be reachable from ``primary_type``.

        Raises:
            MissingTypeDefinition: ``primary_type`` is not declared.
            ConfigurationError: Some declared structs are never referenced.
        """
        reachable = self.dependencies(primary_type) | {primary_type}
        unused = [name for name in self._fields if name not in reachable]
        if unused:
            raise ConfigurationError(
                f"Types not reachable from primary type '{primary_type}': {', '.join(unused)}"
            )

    # ------------------------------------------------------------------
    # Canonical encoding
    # ------------------------------------------------------------------

    def struct_signature(self, type_name: str) -> str:
        """``Name(type1 name1,type2 name2,...)`` for a single struct."""
        members = ",".join(f"{field.type.canonical} {field.name}" for field in self.fields(type_name))
        return f"{type_name}({members})"

    def encode_type(self, primary_type: str) -> str:
        cached = self._type_strings.get(primary_type)
        if cached is None:
            ordered = [primary_type] + sorted(self.dependencies(primary_type))
            cached = "".join(self.struct_signature(name) for name in ordered)
            self._type_strings[primary_type] = cached
        return cached

    def type_hash(self, primary_type: str) -> bytes:
        cached = self._type_hashes.get(primary_type)
        if cached is None:
            cached = keccak(text=self.encode_type(primary_type))
            self._type_hashes[primary_type] = cached
        return cached

    def to_dict(self) -> Dict[str, List[Dict[str, str]]]:
        """Struct definitions (without ``EIP712Domain``) in declaration order."""
        return {
            name: [{"name": field.name, "type": field.type.canonical} for field in fields]
            for name, fields in self._fields.items()
        }
