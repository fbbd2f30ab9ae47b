"""Parse the Go files of a directory and resolve its struct types."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import NamedTuple

from gomapper.gotypes import (
    BASIC_ALIASES,
    BASIC_KINDS,
    Array,
    Basic,
    Field,
    GoType,
    MapType,
    Named,
    Pointer,
    Slice,
    Struct,
    StructTag,
    unquote,
)


class LoaderError(Exception):
    """Raised when a package cannot be loaded or a type cannot be resolved."""


@dataclass
class StructField:
    """A field of a struct, with promoted fields carrying their full accessor path."""

    name: str
    accessor: str
    type: GoType
    tag: StructTag = StructTag("")
    exported: bool = False
    embedded: bool = False


@dataclass
class StructInfo:
    name: str
    pkg_path: str
    fields: list[StructField] = field(default_factory=list)


@dataclass
class Package:
    name: str
    pkg_path: str
    types: dict[str, GoType] = field(default_factory=dict)


_ERROR = Named("error", "", Basic("interface{ Error() string }"))


class _Token(NamedTuple):
    kind: str
    value: str
    line: int


def _ends_statement(tok: _Token) -> bool:
    return tok.kind in ("ident", "number", "string", "char") or (
        tok.kind == "op" and tok.value in (")", "]", "}")
    )


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    i, n, line = 0, len(text), 1

    def newline() -> None:
        if tokens and _ends_statement(tokens[-1]):
            tokens.append(_Token("op", ";", line))

    while i < n:
        c = text[i]
        if c == "\n":
            newline()
            line += 1
            i += 1
        elif c in " \t\r\ufeff":
            i += 1
        elif text.startswith("//", i):
            j = text.find("\n", i)
            i = n if j < 0 else j
        elif text.startswith("/*", i):
            j = text.find("*/", i + 2)
            if j < 0:
                raise LoaderError(f"line {line}: comment not terminated")
            body = text[i + 2:j]
            if "\n" in body:
                newline()
                line += body.count("\n")
            i = j + 2
        elif c.isalpha() or c == "_":
            j = i
            while j < n and (text[j].isalnum() or text[j] == "_"):
                j += 1
            tokens.append(_Token("ident", text[i:j], line))
            i = j
        elif c.isdigit() or (c == "." and i + 1 < n and text[i + 1].isdigit()):
            j = i
            while j < n and (text[j].isalnum() or text[j] in "._"):
                j += 1
            tokens.append(_Token("number", text[i:j], line))
            i = j
        elif c in "\"'":
            j = i + 1
            while j < n and text[j] != c:
                if text[j] == "\n":
                    raise LoaderError(f"line {line}: literal not terminated")
                j += 2 if text[j] == "\\" else 1
            if j >= n:
                raise LoaderError(f"line {line}: literal not terminated")
            body = text[i + 1:j]
            if c == '"':
                try:
                    tokens.append(_Token("string", unquote(body), line))
                except ValueError as exc:
                    raise LoaderError(f"line {line}: {exc}") from exc
            else:
                tokens.append(_Token("char", body, line))
            i = j + 1
        elif c == "`":
            j = text.find("`", i + 1)
            if j < 0:
                raise LoaderError(f"line {line}: raw string not terminated")
            body = text[i + 1:j]
            tokens.append(_Token("string", body.replace("\r", ""), line))
            line += body.count("\n")
            i = j + 1
        elif text.startswith("...", i):
            tokens.append(_Token("op", "...", line))
            i += 3
        elif text.startswith("<-", i):
            tokens.append(_Token("op", "<-", line))
            i += 2
        else:
            tokens.append(_Token("op", c, line))
            i += 1
    newline()
    return tokens


class _TypeSpec(NamedTuple):
    name: str
    alias: bool
    expr: tuple


_OPENERS, _CLOSERS = "([{", ")]}"


class _Parser:
    def __init__(self, tokens: list[_Token]) -> None:
        self._tokens = tokens
        self._pos = 0

    def _peek(self, ahead: int = 0) -> _Token:
        index = self._pos + ahead
        if index < len(self._tokens):
            return self._tokens[index]
        return _Token("eof", "", self._tokens[-1].line if self._tokens else 0)

    def _next(self) -> _Token:
        tok = self._peek()
        if tok.kind == "eof":
            raise LoaderError("unexpected end of file")
        self._pos += 1
        return tok

    def _is_op(self, value: str, ahead: int = 0) -> bool:
        tok = self._peek(ahead)
        return tok.kind == "op" and tok.value == value

    def _accept(self, value: str) -> bool:
        if self._is_op(value):
            self._pos += 1
            return True
        return False

    def _expect(self, value: str) -> None:
        tok = self._next()
        if tok.kind != "op" or tok.value != value:
            raise LoaderError(f"line {tok.line}: expected {value!r}, found {tok.value!r}")

    def _ident(self) -> str:
        tok = self._next()
        if tok.kind != "ident":
            raise LoaderError(f"line {tok.line}: expected identifier, found {tok.value!r}")
        return tok.value

    def _skip_balanced(self) -> None:
        """Skip tokens up to the closer matching an already consumed opener."""
        depth = 1
        while depth:
            tok = self._next()
            if tok.kind == "op" and tok.value in _OPENERS:
                depth += 1
            elif tok.kind == "op" and tok.value in _CLOSERS:
                depth -= 1

    def parse_file(self) -> tuple[str, list[_TypeSpec]]:
        if self._ident() != "package":
            raise LoaderError("expected package clause")
        name = self._ident()
        specs: list[_TypeSpec] = []
        while self._peek().kind != "eof":
            tok = self._next()
            if tok.kind == "op" and tok.value == ";":
                continue
            if tok.kind == "ident" and tok.value == "type":
                if self._accept("("):
                    while not self._accept(")"):
                        if not self._accept(";"):
                            specs.append(self._type_spec())
                else:
                    specs.append(self._type_spec())
            else:
                self._skip_decl(tok)
        return name, specs

    def _skip_decl(self, first: _Token) -> None:
        depth = 1 if first.kind == "op" and first.value in _OPENERS else 0
        while self._peek().kind != "eof":
            tok = self._next()
            if tok.kind != "op":
                continue
            if tok.value in _OPENERS:
                depth += 1
            elif tok.value in _CLOSERS:
                depth -= 1
            elif tok.value == ";" and depth <= 0:
                return

    def _type_spec(self) -> _TypeSpec:
        name = self._ident()
        if (
            self._is_op("[")
            and self._peek(1).kind == "ident"
            and not self._is_op("]", 2)
        ):
            self._next()
            self._skip_balanced()
        alias = self._accept("=")
        expr = self._type()
        if not (self._accept(";") or self._is_op(")") or self._peek().kind == "eof"):
            tok = self._peek()
            raise LoaderError(f"line {tok.line}: unexpected {tok.value!r} after type")
        return _TypeSpec(name, alias, expr)

    def _starts_type(self) -> bool:
        tok = self._peek()
        return tok.kind == "ident" or (tok.kind == "op" and tok.value in ("*", "[", "(", "<-"))

    def _type(self) -> tuple:
        tok = self._next()
        v = tok.value
        if tok.kind == "ident":
            if v == "struct":
                return self._struct()
            if v == "map":
                self._expect("[")
                key = self._type()
                self._expect("]")
                return ("map", key, self._type())
            if v == "interface":
                self._expect("{")
                self._skip_balanced()
                return ("opaque", "interface{}")
            if v == "func":
                self._expect("(")
                self._skip_balanced()
                if self._accept("("):
                    self._skip_balanced()
                elif self._starts_type():
                    self._type()
                return ("opaque", "func()")
            if v == "chan":
                self._accept("<-")
                return ("opaque", f"chan {self._type_text(self._type())}")
            if self._accept("."):
                return ("qual", v, self._ident())
            if self._accept("["):
                self._skip_balanced()
            return ("ident", v)
        if tok.kind == "op":
            if v == "*":
                return ("ptr", self._type())
            if v == "[":
                if self._accept("]"):
                    return ("slice", self._type())
                parts: list[str] = []
                while not self._accept("]"):
                    parts.append(self._next().value)
                return ("array", "".join(parts), self._type())
            if v == "(":
                inner = self._type()
                self._expect(")")
                return inner
            if v == "<-":
                if self._ident() != "chan":
                    raise LoaderError(f"line {tok.line}: expected chan")
                return ("opaque", f"<-chan {self._type_text(self._type())}")
        raise LoaderError(f"line {tok.line}: unexpected {v!r} in type")

    @staticmethod
    def _type_text(expr: tuple) -> str:
        return expr[-1] if isinstance(expr[-1], str) else expr[0]

    def _tag(self) -> str:
        if self._peek().kind == "string":
            return self._next().value
        return ""

    def _struct(self) -> tuple:
        self._expect("{")
        fields: list[tuple] = []
        while not self._accept("}"):
            if self._accept(";"):
                continue
            tok = self._peek()
            nxt = self._peek(1)
            embedded = self._is_op("*") or (
                tok.kind == "ident"
                and (
                    nxt.kind == "string"
                    or (nxt.kind == "op" and nxt.value in (";", "}", "."))
                )
            )
            if embedded:
                expr = self._type()
                fields.append((None, expr, self._tag(), True))
            else:
                names = [self._ident()]
                while self._accept(","):
                    names.append(self._ident())
                expr = self._type()
                tag = self._tag()
                fields.extend((name, expr, tag, False) for name in names)
            if not (self._is_op(";") or self._is_op("}")):
                bad = self._peek()
                raise LoaderError(f"line {bad.line}: unexpected {bad.value!r} in struct")
        return ("struct", fields)


class _Builder:
    def __init__(self, pkg_path: str, specs: list[_TypeSpec]) -> None:
        self._named: dict[str, Named] = {}
        self._aliases: dict[str, tuple] = {}
        self._resolved_aliases: dict[str, GoType] = {}
        self._resolving: set[str] = set()
        self._external: dict[tuple[str, str], Named] = {}
        for spec in specs:
            if spec.name in self._named or spec.name in self._aliases:
                raise LoaderError(f"{spec.name} redeclared in this block")
            if spec.alias:
                self._aliases[spec.name] = spec.expr
            else:
                self._named[spec.name] = Named(spec.name, pkg_path)
        for spec in specs:
            if not spec.alias:
                self._named[spec.name].definition = self._build(spec.expr)

    def types(self) -> dict[str, GoType]:
        result: dict[str, GoType] = dict(self._named)
        result.update((name, self._alias(name)) for name in self._aliases)
        return result

    def _alias(self, name: str) -> GoType:
        if name in self._resolved_aliases:
            return self._resolved_aliases[name]
        if name in self._resolving:
            raise LoaderError(f"invalid recursive type alias {name}")
        self._resolving.add(name)
        resolved = self._build(self._aliases[name])
        self._resolving.discard(name)
        self._resolved_aliases[name] = resolved
        return resolved

    def _ident(self, name: str) -> GoType:
        if name in self._named:
            return self._named[name]
        if name in self._aliases:
            return self._alias(name)
        if name in BASIC_ALIASES:
            return Basic(BASIC_ALIASES[name])
        if name in BASIC_KINDS or name == "any":
            return Basic(name)
        if name == "error":
            return _ERROR
        raise LoaderError(f"undefined: {name}")

    def _build(self, expr: tuple) -> GoType:
        kind = expr[0]
        if kind == "ident":
            return self._ident(expr[1])
        if kind == "qual":
            key = (expr[1], expr[2])
            if key not in self._external:
                self._external[key] = Named(expr[2], expr[1])
            return self._external[key]
        if kind == "ptr":
            return Pointer(self._build(expr[1]))
        if kind == "slice":
            return Slice(self._build(expr[1]))
        if kind == "array":
            try:
                length: int | None = int(expr[1].replace("_", ""), 0)
            except ValueError:
                length = None
            return Array(length, self._build(expr[2]))
        if kind == "map":
            return MapType(self._build(expr[1]), self._build(expr[2]))
        if kind == "struct":
            return Struct(
                [
                    Field(
                        name if name is not None else _embedded_name(sub),
                        self._build(sub),
                        StructTag(tag),
                        embedded,
                    )
                    for name, sub, tag, embedded in expr[1]
                ]
            )
        return Basic(expr[1])


def _embedded_name(expr: tuple) -> str:
    if expr[0] == "ptr":
        expr = expr[1]
    if expr[0] in ("ident", "qual"):
        return expr[-1]
    raise LoaderError("invalid embedded field type")


def _build_ignored(text: str) -> bool:
    for raw in text.splitlines():
        line = raw.strip()
        if line.startswith("package"):
            return False
        if line.startswith("//go:build") or line.startswith("// +build"):
            words = line.replace("!", " ! ").replace("(", " ").replace(")", " ").split()
            if "ignore" in words and "!" not in words:
                return True
    return False


def parse_package(sources: Iterable[str], pkg_path: str) -> Package:
    """Parse the texts of the Go files of one package and resolve its type declarations."""
    name: str | None = None
    specs: list[_TypeSpec] = []
    for text in sources:
        if _build_ignored(text):
            continue
        file_name, file_specs = _Parser(_tokenize(text)).parse_file()
        if name is None:
            name = file_name
        elif file_name != name:
            raise LoaderError(f"found packages {name} and {file_name}")
        specs.extend(file_specs)
    if name is None:
        raise LoaderError("no Go files to parse")
    return Package(name, pkg_path, _Builder(pkg_path, specs).types())


def _module_path(directory: Path) -> str:
    for parent in (directory, *directory.parents):
        go_mod = parent / "go.mod"
        if go_mod.is_file():
            for line in go_mod.read_text(encoding="utf-8").splitlines():
                words = line.split()
                if len(words) >= 2 and words[0] == "module":
                    module = words[1].strip('"')
                    rel = directory.relative_to(parent).as_posix()
                    return module if rel == "." else f"{module}/{rel}"
    return "command-line-arguments"


def load(directory: str | Path) -> Package:
    """Load the Go package in ``directory``, skipping test files and ignored files."""
    path = Path(directory).resolve()
    if not path.is_dir():
        raise LoaderError(f"loading package: directory {directory} does not exist")
    texts = [
        f.read_text(encoding="utf-8")
        for f in sorted(path.glob("*.go"))
        if not f.name.endswith("_test.go")
    ]
    texts = [text for text in texts if not _build_ignored(text)]
    if not texts:
        raise LoaderError(f"no Go files found in {directory}")
    return parse_package(texts, _module_path(path))


def _flatten(struct: Struct, prefix: str, seen: frozenset[int]) -> Iterator[StructField]:
    for f in struct.fields:
        accessor = prefix + f.name
        if f.embedded:
            inner = f.type.underlying()
            if isinstance(inner, Pointer):
                inner = inner.elem.underlying()
            if isinstance(inner, Struct) and id(inner) not in seen:
                yield from _flatten(inner, accessor + ".", seen | {id(inner)})
        yield StructField(f.name, accessor, f.type, f.tag, f.exported, f.embedded)


def lookup_struct(package: Package, name: str) -> StructInfo:
    """Find the named struct type ``name`` and list its fields, promoted ones included."""
    found = package.types.get(name)
    if found is None:
        raise LoaderError(f'type "{name}" not found in package {package.pkg_path}')
    if not isinstance(found, Named):
        raise LoaderError(f'"{name}" is not a named type')
    body = found.underlying()
    if not isinstance(body, Struct):
        raise LoaderError(f'"{name}" is not a struct type')
    return StructInfo(name, package.pkg_path, list(_flatten(body, "", frozenset({id(body)}))))