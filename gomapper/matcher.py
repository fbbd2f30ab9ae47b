"""Match the fields of a destination struct against the fields of a source struct."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field, replace

from gomapper.gotypes import (
    GoType,
    Named,
    Pointer,
    Slice,
    Struct,
    assignable_to,
    convertible_to,
    identical,
)
from gomapper.loader import StructField, StructInfo

DEFAULT_TAG_KEY = "map"
SKIP_TAG = "-"


class MatchError(Exception):
    """Raised when matching fails, such as unmapped fields in strict mode."""


@dataclass
class FieldMapping:
    """A destination field together with how its value is taken from the source."""

    src_accessor: str
    dst_field: str
    needs_conv: bool = False
    conv_type: str = ""
    deref: bool = False
    dst_type_name: str = ""
    addr_of: bool = False
    is_slice_map: bool = False
    slice_src: str = ""
    slice_dst: str = ""
    slice_dst_full: str = ""
    is_struct_map: bool = False
    struct_src: str = ""
    struct_dst: str = ""
    slice_elem_deref: bool = False
    slice_elem_addr_of: bool = False
    slice_elem_conv: bool = False
    slice_elem_conv_type: str = ""


@dataclass
class UnmappedField:
    """A destination field for which no source was found."""

    name: str
    type: str


@dataclass
class NestedDstAssignment:
    """A source field written to a nested destination path named by a source tag."""

    dst_path: str
    src_accessor: str
    needs_conv: bool = False
    conv_type: str = ""


@dataclass
class MatchResult:
    mappings: list[FieldMapping] = field(default_factory=list)
    unmapped: list[UnmappedField] = field(default_factory=list)
    nested_dst_assignments: list[NestedDstAssignment] = field(default_factory=list)


@dataclass
class MatchConfig:
    tag_key: str = DEFAULT_TAG_KEY
    strict: bool = False
    verbose: bool = False
    case_insensitive: bool = False


@dataclass
class _SourceIndex:
    by_name: dict[str, StructField] = field(default_factory=dict)
    by_accessor: dict[str, StructField] = field(default_factory=dict)
    by_tag: dict[str, StructField] = field(default_factory=dict)


def _usable(fields: list[StructField], tag_key: str) -> Iterator[StructField]:
    for f in fields:
        if f.exported and not f.embedded and f.tag.get(tag_key) != SKIP_TAG:
            yield f


def _index_source(src: StructInfo, tag_key: str) -> _SourceIndex:
    index = _SourceIndex()
    for f in _usable(src.fields, tag_key):
        index.by_name[f.name] = f
        index.by_accessor[f.accessor] = f
        tag_value = f.tag.get(tag_key)
        if tag_value:
            index.by_tag[tag_value] = f
    return index


def local_type_name(go_type: GoType) -> str:
    """Return the unqualified spelling of a type, e.g. ``[]*Item`` or ``int64``."""
    if isinstance(go_type, Named):
        return go_type.name
    if isinstance(go_type, Pointer):
        return "*" + local_type_name(go_type.elem)
    if isinstance(go_type, Slice):
        return "[]" + local_type_name(go_type.elem)
    return str(go_type)


def _different_named_structs(a: GoType, b: GoType) -> bool:
    return (
        isinstance(a, Named)
        and isinstance(b, Named)
        and isinstance(a.underlying(), Struct)
        and isinstance(b.underlying(), Struct)
        and not identical(a, b)
    )


def _unwrap_pointer(t: GoType) -> tuple[GoType, bool]:
    if isinstance(t, Pointer):
        return t.elem, True
    return t, False


def _struct_mapping(m: FieldMapping, src: GoType, dst: GoType) -> FieldMapping | None:
    if not _different_named_structs(src, dst):
        return None
    return replace(
        m,
        is_struct_map=True,
        struct_src=local_type_name(src),
        struct_dst=local_type_name(dst),
    )


def _deref_mapping(m: FieldMapping, src: GoType, dst: GoType) -> FieldMapping | None:
    if not isinstance(src, Pointer):
        return None
    elem = src.elem
    base = replace(m, deref=True, dst_type_name=local_type_name(dst))
    if assignable_to(elem, dst):
        return base
    if _different_named_structs(elem, dst):
        return replace(
            base,
            is_struct_map=True,
            struct_src=local_type_name(elem),
            struct_dst=local_type_name(dst),
        )
    if convertible_to(elem, dst):
        return replace(base, needs_conv=True, conv_type=local_type_name(dst))
    return None


def _addr_of_mapping(m: FieldMapping, src: GoType, dst: GoType) -> FieldMapping | None:
    if not isinstance(dst, Pointer):
        return None
    elem = dst.elem
    if assignable_to(src, elem):
        return replace(m, addr_of=True)
    if _different_named_structs(src, elem):
        return replace(
            m,
            addr_of=True,
            is_struct_map=True,
            struct_src=local_type_name(src),
            struct_dst=local_type_name(elem),
        )
    if convertible_to(src, elem):
        return replace(m, addr_of=True, needs_conv=True, conv_type=local_type_name(elem))
    return None


def _slice_mapping(m: FieldMapping, src: GoType, dst: GoType) -> FieldMapping | None:
    if not (isinstance(src, Slice) and isinstance(dst, Slice)):
        return None
    src_elem, dst_elem = src.elem, dst.elem
    if identical(src_elem, dst_elem):
        return None

    src_base, src_is_ptr = _unwrap_pointer(src_elem)
    dst_base, dst_is_ptr = _unwrap_pointer(dst_elem)
    m = replace(
        m,
        is_slice_map=True,
        slice_dst_full=local_type_name(dst_elem),
        slice_elem_deref=src_is_ptr,
        slice_elem_addr_of=dst_is_ptr and (src_is_ptr or not src_is_ptr),
    )
    m.slice_elem_addr_of = dst_is_ptr
    if src_is_ptr and dst_is_ptr:
        m.slice_elem_deref = True
        m.slice_elem_addr_of = True
    elif src_is_ptr:
        m.slice_elem_addr_of = False
    elif dst_is_ptr:
        m.slice_elem_deref = False

    if _different_named_structs(src_base, dst_base):
        return replace(m, slice_src=local_type_name(src_base), slice_dst=local_type_name(dst_base))
    if identical(src_base, dst_base):
        return replace(m, slice_dst=local_type_name(dst_base))
    if convertible_to(src_base, dst_base):
        return replace(
            m,
            slice_elem_conv=True,
            slice_elem_conv_type=local_type_name(dst_base),
            slice_dst=local_type_name(dst_base),
        )
    return replace(m, slice_src=local_type_name(src_base), slice_dst=local_type_name(dst_base))


def _make_mapping(src: StructField, dst: StructField) -> FieldMapping | None:
    """Build a mapping for a source/destination pair, or None if the types are incompatible."""
    m = FieldMapping(src_accessor=src.accessor, dst_field=dst.name)
    if assignable_to(src.type, dst.type):
        return m
    mapped = _struct_mapping(m, src.type, dst.type)
    if mapped is not None:
        return mapped
    if convertible_to(src.type, dst.type):
        return replace(m, needs_conv=True, conv_type=local_type_name(dst.type))
    for attempt in (_deref_mapping, _addr_of_mapping, _slice_mapping):
        mapped = attempt(m, src.type, dst.type)
        if mapped is not None:
            return mapped
    return None


def _match_field(dst: StructField, index: _SourceIndex, config: MatchConfig) -> FieldMapping | None:
    tag_value = dst.tag.get(config.tag_key)
    if tag_value and tag_value != SKIP_TAG:
        source = index.by_accessor.get(tag_value) or index.by_name.get(tag_value)
        if source is not None:
            return _make_mapping(source, dst)
        # An unknown tag path is trusted as a raw accessor.
        return FieldMapping(src_accessor=tag_value, dst_field=dst.name)

    for candidate in (index.by_tag.get(dst.name), index.by_name.get(dst.name)):
        if candidate is not None:
            return _make_mapping(candidate, dst)

    if config.case_insensitive:
        wanted = dst.name.casefold()
        for name, candidate in index.by_name.items():
            if name.casefold() == wanted:
                return _make_mapping(candidate, dst)
    return None


def _resolve_nested_field_type(t: GoType, path: str) -> GoType | None:
    current = t
    for part in path.split("."):
        body = current.underlying()
        if isinstance(body, Pointer):
            body = body.elem.underlying()
        if not isinstance(body, Struct):
            return None
        found = next((f for f in body.fields if f.name == part), None)
        if found is None:
            return None
        current = found.type
    return current


def _find_dst_parent(dst: StructInfo, name: str) -> StructField | None:
    return next(
        (f for f in dst.fields if f.name == name and f.exported and not f.embedded),
        None,
    )


def _nested_dst_assignments(
    src: StructInfo,
    dst: StructInfo,
    index: _SourceIndex,
    mappings: list[FieldMapping],
    config: MatchConfig,
) -> list[NestedDstAssignment]:
    used = {m.src_accessor for m in mappings}
    assignments: list[NestedDstAssignment] = []
    for tag_value, source in index.by_tag.items():
        if "." not in tag_value or source.accessor in used:
            continue
        parent_name, child_path = tag_value.split(".", 1)
        parent = _find_dst_parent(dst, parent_name)
        if parent is None:
            continue
        assignment = NestedDstAssignment(dst_path=tag_value, src_accessor=source.accessor)
        child_type = _resolve_nested_field_type(parent.type, child_path)
        if (
            child_type is not None
            and not assignable_to(source.type, child_type)
            and convertible_to(source.type, child_type)
        ):
            assignment.needs_conv = True
            assignment.conv_type = local_type_name(child_type)
        assignments.append(assignment)
        if config.verbose:
            print(f"  {dst.name}.{tag_value} → {src.name}.{source.accessor} (nested dst tag)")
    return assignments


def match(src: StructInfo, dst: StructInfo, config: MatchConfig | None = None) -> MatchResult:
    """Match every destination field of ``dst`` to a source in ``src``."""
    config = replace(config) if config is not None else MatchConfig()
    if not config.tag_key:
        config.tag_key = DEFAULT_TAG_KEY

    index = _index_source(src, config.tag_key)

    mappings: list[FieldMapping] = []
    unmapped: list[UnmappedField] = []
    for dst_field in _usable(dst.fields, config.tag_key):
        mapping = _match_field(dst_field, index, config)
        if mapping is not None:
            if config.verbose:
                print(f"  {dst.name}.{dst_field.name} → {src.name}.{mapping.src_accessor}")
            mappings.append(mapping)
        else:
            if config.verbose:
                print(f"  {dst.name}.{dst_field.name} → (unmapped)")
            unmapped.append(UnmappedField(dst_field.name, local_type_name(dst_field.type)))

    assignments = _nested_dst_assignments(src, dst, index, mappings, config)
    if assignments:
        covered = {a.dst_path.split(".", 1)[0] for a in assignments}
        unmapped = [u for u in unmapped if u.name not in covered]

    if config.strict and unmapped:
        names = ", ".join(u.name for u in unmapped)
        raise MatchError(f"strict mode: unmapped destination fields: {names}")

    return MatchResult(mappings, unmapped, assignments)