# gomapper

`gomapper` generates type-safe mapping functions between Go structs. It reads
the Go source files of a package, resolves the struct types you name, matches
their fields and writes a Go file of plain mapping functions: no reflection
and no runtime dependencies in the generated code.

## Install

From a checkout of this repository:

```
pip install .
```

This installs the `gomapper` command.

## Usage

Run it in the directory of the Go package that holds your types:

```
gomapper -src User -dst UserDTO
```

This writes `mapper_gen.go` with a `MapUserToUserDTO` function:

```go
func MapUserToUserDTO(src User) UserDTO {
	return UserDTO{
		ID:   src.ID,
		Name: src.Name,
		Age:  int64(src.Age),
	}
}
```

Because it works on the current directory, it can also be run from a
`go:generate` directive:

```go
//go:generate gomapper -src User -dst UserDTO
```

Several pairs at once, in both directions:

```
gomapper -pairs User:UserDTO,Order:OrderDTO -bidirectional
```

On an error (an unknown type, a bad pair, an invalid mode, unmapped fields
under `-strict`) the command prints a message to standard error and exits
with status 1. Called with neither `-pairs` nor both `-src` and `-dst`, it
prints a usage message.

## Flags

Each flag may be written with one dash or two (`-src` or `--src`).

| Flag | Meaning |
|------|---------|
| `-src` | source type name |
| `-dst` | destination type name |
| `-pairs` | comma-separated `Src:Dst` pairs (instead of `-src`/`-dst`) |
| `-output` | output file name (default `mapper_gen.go`) |
| `-mode` | `func` (default), `register` or `both` |
| `-bidirectional` | generate both S→D and D→S mappings |
| `-tag` | struct tag key for field renaming (default `map`) |
| `-strict` | fail if any destination field is unmapped |
| `-ci` | case-insensitive field name matching |
| `-nil-safe` | generate nil checks for pointer dereferences |
| `-v`, `--verbose` | print field matching decisions and the file written |

## Modes

- `func` writes pure `MapSrcToDst` functions with no imports.
- `register` writes `mapper.Register` calls in an `init` function for the
  `github.com/KARTIKrocks/mapper` runtime registry; nested structs and slices
  use `mapper.Map` and `mapper.MapSlice`.
- `both` writes the named functions and registers them in `init`.

## Field matching

Fields are matched in this order:

1. Fields tagged `map:"-"` are skipped.
2. A destination `map:"SourcePath"` tag, with dot notation for nested access.
   A path that names no source field is used as written.
3. A source `map:"DstName"` tag. A dotted tag such as `map:"Address.Street"`
   assigns into a nested destination field after the struct literal.
4. Exact name with an assignable type: direct assignment.
5. Exact name with a convertible type: type conversion.
6. Case-insensitive name match, with `-ci`.
7. Pointers: `*T` → `T` (dereference), `T` → `*T` (address of),
   `*T` → `U` (dereference and convert).
8. Different named struct types: a call to `MapAToB`.
9. Slices `[]T` → `[]U`: an inline loop that maps, converts, dereferences or
   takes the address of each element.
10. Anything else is left as a `// TODO: unmapped field` comment, or is an
    error with `-strict`.

Unexported fields are skipped; fields promoted from embedded structs are
included, with their full accessor path (for example `src.Base.ID`).

## Nil-safe mode

With `-nil-safe`, dereferences are guarded:

```go
var _Name string
if src.Name != nil {
	_Name = *src.Name
}
```

Pointer elements in slice loops are guarded the same way.

## Library use

The pieces are usable from Python too:

```python
from gomapper.loader import load, lookup_struct
from gomapper.matcher import MatchConfig, match
from gomapper.generator import GenerationData, Mode, PairData, generate

package = load(".")
src = lookup_struct(package, "User")
dst = lookup_struct(package, "UserDTO")
result = match(src, dst, MatchConfig())
pair = PairData(
    src_type="User",
    dst_type="UserDTO",
    mappings=result.mappings,
    unmapped=result.unmapped,
    nested_dst_assignments=result.nested_dst_assignments,
)
print(generate(GenerationData(pkg_name=package.name, pairs=[pair]), Mode.FUNC))
```

- `gomapper.gotypes` models Go types (`Basic`, `Named`, `Pointer`, `Slice`,
  `Array`, `MapType`, `Struct`) with `identical`, `assignable_to` and
  `convertible_to`, plus `StructTag.get` for reading tags.
- `gomapper.loader` has `load(directory)`, `parse_package(sources, pkg_path)`
  for Go source given as strings, and `lookup_struct`; failures raise
  `LoaderError`.
- `gomapper.matcher` has `match` and `local_type_name`; strict-mode failures
  raise `MatchError`.
- `gomapper.generator` has `generate` (returns the source as a string) and
  `write_file`; an unknown mode raises `GenerateError`.
- `gomapper.cli` has `parse_type_pairs`, `expand_bidirectional`, `match_all`
  and `main`.

## What it does not do

- It does not use the Go toolchain. The loader reads the package's `.go`
  files with its own parser, which resolves type declarations only: it does
  not type-check the package, and types from other packages are treated as
  opaque named types. Test files and files marked `//go:build ignore` are
  skipped; other build constraints are not evaluated.
- It does not compile or run `gofmt` on the generated file; the output is laid
  out in gofmt style by the generator itself.

## Development

```
pip install -e ".[test]"
pytest
```