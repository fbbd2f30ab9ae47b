"""A small model of Go types with Go's identity, assignability and conversion rules."""

from __future__ import annotations

from dataclasses import dataclass, field

INTEGER_KINDS = frozenset(
    {
        "int", "int8", "int16", "int32", "int64",
        "uint", "uint8", "uint16", "uint32", "uint64", "uintptr",
    }
)
FLOAT_KINDS = frozenset({"float32", "float64"})
COMPLEX_KINDS = frozenset({"complex64", "complex128"})
BASIC_KINDS = INTEGER_KINDS | FLOAT_KINDS | COMPLEX_KINDS | {"string", "bool"}
BASIC_ALIASES = {"byte": "uint8", "rune": "int32"}


class GoType:
    """Base class of every Go type."""

    def underlying(self) -> GoType:
        """Return the underlying type; only named types differ from themselves."""
        return self


@dataclass(frozen=True)
class Basic(GoType):
    """A predeclared type such as ``int`` or ``string``, or an opaque type."""

    name: str

    def __str__(self) -> str:
        return self.name


INVALID = Basic("invalid type")


@dataclass(eq=False)
class Named(GoType):
    """A defined type; two named types are identical only if they are the same object."""

    name: str
    pkg_path: str = ""
    definition: GoType | None = field(default=None, repr=False)

    def underlying(self) -> GoType:
        seen: set[int] = set()
        current: GoType = self
        while isinstance(current, Named):
            if id(current) in seen or current.definition is None:
                return INVALID
            seen.add(id(current))
            current = current.definition
        return current.underlying()

    def __str__(self) -> str:
        return f"{self.pkg_path}.{self.name}" if self.pkg_path else self.name


@dataclass(frozen=True)
class Pointer(GoType):
    elem: GoType

    def __str__(self) -> str:
        return f"*{self.elem}"


@dataclass(frozen=True)
class Slice(GoType):
    elem: GoType

    def __str__(self) -> str:
        return f"[]{self.elem}"


@dataclass(frozen=True)
class Array(GoType):
    length: int | None
    elem: GoType

    def __str__(self) -> str:
        size = "..." if self.length is None else str(self.length)
        return f"[{size}]{self.elem}"


@dataclass(frozen=True)
class MapType(GoType):
    key: GoType
    value: GoType

    def __str__(self) -> str:
        return f"map[{self.key}]{self.value}"


class StructTag(str):
    """A struct tag string in the conventional ``key:"value"`` form."""

    def get(self, key: str) -> str:
        """Return the value associated with ``key``, or an empty string."""
        tag = str(self)
        while tag:
            tag = tag.lstrip(" ")
            if not tag:
                break
            i = 0
            while i < len(tag) and tag[i] > " " and tag[i] not in ':"' and tag[i] != "\x7f":
                i += 1
            if i == 0 or i + 1 >= len(tag) or tag[i] != ":" or tag[i + 1] != '"':
                break
            name = tag[:i]
            tag = tag[i + 1:]
            i = 1
            while i < len(tag) and tag[i] != '"':
                if tag[i] == "\\":
                    i += 1
                i += 1
            if i >= len(tag):
                break
            quoted = tag[1:i]
            tag = tag[i + 1:]
            if name == key:
                try:
                    return unquote(quoted)
                except ValueError:
                    break
        return ""


_SIMPLE_ESCAPES = {
    "a": "\a", "b": "\b", "f": "\f", "n": "\n", "r": "\r",
    "t": "\t", "v": "\v", "\\": "\\", '"': '"', "'": "'",
}


def unquote(body: str) -> str:
    """Decode the escape sequences of a Go interpreted string body."""
    out: list[str] = []
    i = 0
    while i < len(body):
        c = body[i]
        if c != "\\":
            out.append(c)
            i += 1
            continue
        if i + 1 >= len(body):
            raise ValueError("trailing backslash")
        e = body[i + 1]
        if e in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[e])
            i += 2
        elif e in "xuU":
            width = {"x": 2, "u": 4, "U": 8}[e]
            digits = body[i + 2:i + 2 + width]
            if len(digits) != width:
                raise ValueError("short escape")
            out.append(chr(int(digits, 16)))
            i += 2 + width
        elif e in "01234567":
            digits = body[i + 1:i + 4]
            if len(digits) != 3:
                raise ValueError("short octal escape")
            out.append(chr(int(digits, 8)))
            i += 4
        else:
            raise ValueError(f"unknown escape \\{e}")
    return "".join(out)


@dataclass(frozen=True)
class Field:
    """A field of a struct type."""

    name: str
    type: GoType
    tag: StructTag = StructTag("")
    embedded: bool = False

    @property
    def exported(self) -> bool:
        return bool(self.name) and self.name[0].isupper()


@dataclass(frozen=True)
class Struct(GoType):
    fields: tuple[Field, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))

    def __str__(self) -> str:
        parts = []
        for f in self.fields:
            text = str(f.type) if f.embedded else f"{f.name} {f.type}"
            if f.tag:
                text += f' "{f.tag}"'
            parts.append(text)
        return "struct{" + "; ".join(parts) + "}"


def _canonical(name: str) -> str:
    return BASIC_ALIASES.get(name, name)


def _identical(a: GoType, b: GoType, tags: bool) -> bool:
    if a is b:
        return True
    if isinstance(a, Named) or isinstance(b, Named) or type(a) is not type(b):
        return False
    if isinstance(a, Basic):
        return _canonical(a.name) == _canonical(b.name)
    if isinstance(a, (Pointer, Slice)):
        return _identical(a.elem, b.elem, tags)
    if isinstance(a, Array):
        return a.length == b.length and _identical(a.elem, b.elem, tags)
    if isinstance(a, MapType):
        return _identical(a.key, b.key, tags) and _identical(a.value, b.value, tags)
    if isinstance(a, Struct):
        return len(a.fields) == len(b.fields) and all(
            fa.name == fb.name
            and fa.embedded == fb.embedded
            and (not tags or fa.tag == fb.tag)
            and _identical(fa.type, fb.type, tags)
            for fa, fb in zip(a.fields, b.fields)
        )
    return a == b


def identical(a: GoType, b: GoType) -> bool:
    """Report whether two types are identical."""
    return _identical(a, b, True)


def _is_named(t: GoType) -> bool:
    return isinstance(t, (Named, Basic))


def _kind(t: GoType) -> str | None:
    return _canonical(t.name) if isinstance(t, Basic) else None


def assignable_to(value: GoType, target: GoType) -> bool:
    """Report whether a value of type ``value`` is assignable to ``target``."""
    if identical(value, target):
        return True
    target_u = target.underlying()
    if _kind(target_u) == "any":
        return True
    value_u = value.underlying()
    if value_u is INVALID or target_u is INVALID:
        return False
    return _identical(value_u, target_u, True) and not (_is_named(value) and _is_named(target))


def _is_byte_or_rune_slice(t: GoType) -> bool:
    return isinstance(t, Slice) and _kind(t.elem.underlying()) in ("uint8", "int32")


def convertible_to(value: GoType, target: GoType) -> bool:
    """Report whether a value of type ``value`` can be converted to ``target``."""
    if assignable_to(value, target):
        return True
    value_u, target_u = value.underlying(), target.underlying()
    if value_u is INVALID or target_u is INVALID:
        return False
    if _identical(value_u, target_u, False):
        return True
    if (
        isinstance(value, Pointer)
        and isinstance(target, Pointer)
        and _identical(value.elem.underlying(), target.elem.underlying(), False)
    ):
        return True
    vk, tk = _kind(value_u), _kind(target_u)
    numeric = INTEGER_KINDS | FLOAT_KINDS
    if vk in numeric and tk in numeric:
        return True
    if vk in COMPLEX_KINDS and tk in COMPLEX_KINDS:
        return True
    if tk == "string" and (vk in INTEGER_KINDS or _is_byte_or_rune_slice(value_u)):
        return True
    if vk == "string" and _is_byte_or_rune_slice(target_u):
        return True
    if isinstance(value_u, Slice):
        if isinstance(target_u, Array):
            return identical(value_u.elem, target_u.elem)
        if isinstance(target_u, Pointer):
            arr = target_u.elem.underlying()
            return isinstance(arr, Array) and identical(value_u.elem, arr.elem)
    return False