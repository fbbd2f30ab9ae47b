"""Render Go source files containing struct mapping functions."""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from gomapper.matcher import FieldMapping, NestedDstAssignment, UnmappedField

HEADER = "// Code generated by gomapper; DO NOT EDIT."
MAPPER_IMPORT = "github.com/KARTIKrocks/mapper"

# Column alignment heuristics used by the Go formatter for key: value lists.
_SMALL_KEY_SIZE = 40
_KEY_RATIO = 2.5


class GenerateError(Exception):
    """Raised when code cannot be generated."""


class Mode(str, Enum):
    """What kind of output is generated."""

    REGISTER = "register"
    FUNC = "func"
    BOTH = "both"


@dataclass
class PairData:
    """Everything needed to render the mapping of one source/destination pair."""

    src_type: str
    dst_type: str
    mappings: list[FieldMapping] = field(default_factory=list)
    unmapped: list[UnmappedField] = field(default_factory=list)
    nested_dst_assignments: list[NestedDstAssignment] = field(default_factory=list)


@dataclass
class GenerationData:
    """Everything needed to render one generated file."""

    pkg_name: str
    pairs: list[PairData] = field(default_factory=list)
    nil_safe: bool = False


def _indent(depth: int, text: str) -> str:
    return "\t" * depth + text


def _function_name(src: str, dst: str) -> str:
    return f"Map{src}To{dst}"


class _Flavor:
    """How nested struct and slice element mappings are spelled."""

    registry = False

    def struct_call(self, m: FieldMapping, arg: str) -> str:
        return f"{_function_name(m.struct_src, m.struct_dst)}({arg})"

    def slice_call(self, m: FieldMapping, arg: str) -> str:
        return f"{_function_name(m.slice_src, m.slice_dst)}({arg})"

    def emits_slice_loop(self, m: FieldMapping) -> bool:
        return m.is_slice_map

    def value(self, m: FieldMapping, nil_safe: bool) -> str:
        local = f"_{m.dst_field}"
        accessor = f"src.{m.src_accessor}"
        if m.is_struct_map and m.is_slice_map:
            return local
        if m.is_struct_map and m.addr_of:
            return "&" + local
        if m.is_struct_map and m.deref:
            return local if nil_safe else self.struct_call(m, "*" + accessor)
        if m.is_struct_map:
            return self.struct_call(m, accessor)
        if m.is_slice_map:
            return local
        return _scalar_value(m, nil_safe)


class _RegistryFlavor(_Flavor):
    registry = True

    def struct_call(self, m: FieldMapping, arg: str) -> str:
        return f"mapper.Map[{m.struct_dst}]({arg})"

    def slice_call(self, m: FieldMapping, arg: str) -> str:
        return f"mapper.Map[{m.slice_dst}]({arg})"

    def emits_slice_loop(self, m: FieldMapping) -> bool:
        return m.is_slice_map and (
            m.slice_elem_deref or m.slice_elem_addr_of or m.slice_elem_conv or not m.slice_src
        )

    def value(self, m: FieldMapping, nil_safe: bool) -> str:
        local = f"_{m.dst_field}"
        accessor = f"src.{m.src_accessor}"
        if m.is_slice_map and m.slice_src and not m.slice_elem_deref and not m.slice_elem_addr_of:
            return f"mapper.MapSlice[{m.slice_src}, {m.slice_dst}]({accessor})"
        if m.is_slice_map:
            return local
        if m.is_struct_map and m.addr_of:
            return "&" + local
        if m.is_struct_map and m.deref:
            return local if nil_safe else self.struct_call(m, "*" + accessor)
        if m.is_struct_map:
            return self.struct_call(m, accessor)
        return _scalar_value(m, nil_safe)


def _scalar_value(m: FieldMapping, nil_safe: bool) -> str:
    accessor = f"src.{m.src_accessor}"
    if m.deref and nil_safe:
        return f"_{m.dst_field}"
    if m.needs_conv and m.deref:
        return f"{m.conv_type}(*{accessor})"
    if m.needs_conv:
        return f"{m.conv_type}({accessor})"
    if m.deref:
        return "*" + accessor
    if m.addr_of:
        return "&" + accessor
    return accessor


def _slice_loop_body(
    m: FieldMapping, nil_safe: bool, call: Callable[[FieldMapping, str], str]
) -> list[tuple[int, str]]:
    """Return the statements of a slice loop body with their relative depth."""
    target = f"_{m.dst_field}[_i]"
    if m.slice_src:
        arg = "*_v" if m.slice_elem_deref else "_v"
        if m.slice_elem_addr_of:
            statements = [f"_mapped := {call(m, arg)}", f"{target} = &_mapped"]
        else:
            statements = [f"{target} = {call(m, arg)}"]
        guarded = m.slice_elem_deref
    elif m.slice_elem_conv:
        arg = "*_v" if m.slice_elem_deref else "_v"
        statements = [f"{target} = {m.slice_elem_conv_type}({arg})"]
        guarded = m.slice_elem_deref
    elif m.slice_elem_deref:
        statements = [f"{target} = *_v"]
        guarded = True
    elif m.slice_elem_addr_of:
        statements = [f"{target} = &_v"]
        guarded = False
    else:
        statements = [f"{target} = _v"]
        guarded = False

    if guarded and nil_safe:
        return [(0, "if _v != nil {"), *((1, s) for s in statements), (0, "}")]
    return [(0, s) for s in statements]


def _key_value_lines(entries: Iterable[tuple[str, str]], depth: int) -> list[str]:
    """Lay out ``key: value,`` lines with the formatter's column alignment."""
    lines: list[str] = []
    section: list[tuple[str, str]] = []

    def flush() -> None:
        if not section:
            return
        width = max(len(key) for key, _ in section) + 2
        lines.extend(_indent(depth, f"{key}:".ljust(width) + f"{value},") for key, value in section)
        section.clear()

    lnsum = 0.0
    count = 0
    prev_size = 0
    for key, value in entries:
        size = len(key)
        break_section = True
        if prev_size > 0 and size > 0:
            if count == 0 or (prev_size <= _SMALL_KEY_SIZE and size <= _SMALL_KEY_SIZE):
                break_section = False
            else:
                ratio = size / math.exp(lnsum / count)
                break_section = _KEY_RATIO * ratio <= 1 or _KEY_RATIO <= ratio
        if break_section:
            flush()
        section.append((key, value))
        prev_size = size
        if size > 0:
            lnsum += math.log(size)
            count += 1
    flush()
    return lines


def _body(pair: PairData, nil_safe: bool, flavor: _Flavor, depth: int) -> list[str]:
    """Render the statements of one mapping function body."""
    lines: list[str] = []

    for m in pair.mappings:
        if not flavor.emits_slice_loop(m):
            continue
        element = m.slice_dst_full or m.slice_dst
        accessor = f"src.{m.src_accessor}"
        lines.append(_indent(depth, f"_{m.dst_field} := make([]{element}, len({accessor}))"))
        lines.append(_indent(depth, f"for _i, _v := range {accessor} {{"))
        lines.extend(
            _indent(depth + 1 + rel, text)
            for rel, text in _slice_loop_body(m, nil_safe, flavor.slice_call)
        )
        lines.append(_indent(depth, "}"))

    if nil_safe:
        for m in pair.mappings:
            if not m.deref:
                continue
            accessor = f"src.{m.src_accessor}"
            if m.is_struct_map:
                value = flavor.struct_call(m, "*" + accessor)
            elif m.needs_conv:
                value = f"{m.conv_type}(*{accessor})"
            else:
                value = "*" + accessor
            lines += [
                _indent(depth, f"var _{m.dst_field} {m.dst_type_name}"),
                _indent(depth, f"if {accessor} != nil {{"),
                _indent(depth + 1, f"_{m.dst_field} = {value}"),
                _indent(depth, "}"),
            ]

    for m in pair.mappings:
        if m.is_struct_map and m.addr_of and not m.is_slice_map:
            call = flavor.struct_call(m, f"src.{m.src_accessor}")
            lines.append(_indent(depth, f"_{m.dst_field} := {call}"))

    nested = pair.nested_dst_assignments
    opener = "_result :=" if nested else "return"
    lines.append(_indent(depth, f"{opener} {pair.dst_type}{{"))
    lines.extend(
        _key_value_lines(((m.dst_field, flavor.value(m, nil_safe)) for m in pair.mappings), depth + 1)
    )
    lines.extend(
        _indent(depth + 1, f"// TODO: unmapped field {u.name} ({u.type})") for u in pair.unmapped
    )
    lines.append(_indent(depth, "}"))

    if nested:
        for a in nested:
            source = f"src.{a.src_accessor}"
            value = f"{a.conv_type}({source})" if a.needs_conv else source
            lines.append(_indent(depth, f"_result.{a.dst_path} = {value}"))
        lines.append(_indent(depth, "return _result"))
    return lines


def _named_functions(data: GenerationData) -> list[str]:
    lines: list[str] = []
    flavor = _Flavor()
    for pair in data.pairs:
        name = _function_name(pair.src_type, pair.dst_type)
        lines.append("")
        lines.append(f"func {name}(src {pair.src_type}) {pair.dst_type} {{")
        lines.extend(_body(pair, data.nil_safe, flavor, 1))
        lines.append("}")
    return lines


def _render_func(data: GenerationData) -> list[str]:
    return [HEADER, "", f"package {data.pkg_name}", *_named_functions(data)]


def _render_register(data: GenerationData) -> list[str]:
    lines = [HEADER, "", f"package {data.pkg_name}", "", f'import "{MAPPER_IMPORT}"', ""]
    lines.append("func init() {")
    flavor = _RegistryFlavor()
    for position, pair in enumerate(data.pairs):
        if position:
            lines.append("")
        lines.append(f"\tmapper.Register(func(src {pair.src_type}) {pair.dst_type} {{")
        lines.extend(_body(pair, data.nil_safe, flavor, 2))
        lines.append("\t})")
    lines.append("}")
    return lines


def _render_both(data: GenerationData) -> list[str]:
    lines = [HEADER, "", f"package {data.pkg_name}", "", f'import "{MAPPER_IMPORT}"']
    lines.extend(_named_functions(data))
    lines += ["", "func init() {"]
    lines.extend(
        f"\tmapper.Register({_function_name(pair.src_type, pair.dst_type)})" for pair in data.pairs
    )
    lines.append("}")
    return lines


_RENDERERS: dict[Mode, Callable[[GenerationData], list[str]]] = {
    Mode.REGISTER: _render_register,
    Mode.FUNC: _render_func,
    Mode.BOTH: _render_both,
}


def generate(data: GenerationData, mode: Mode | str) -> str:
    """Produce formatted Go source for ``data`` in the given mode."""
    try:
        chosen = Mode(mode)
    except ValueError:
        raise GenerateError(f"unknown mode {str(mode)!r}") from None
    return "\n".join(_RENDERERS[chosen](data)) + "\n"


def write_file(data: GenerationData, mode: Mode | str, path: str | Path) -> None:
    """Generate code and write it to ``path``."""
    source = generate(data, mode)
    Path(path).write_text(source, encoding="utf-8")