import pytest

from gomapper.gotypes import Basic, Named, Pointer, Slice
from gomapper.loader import LoaderError, load, lookup_struct, parse_package

BASIC_TYPES = """package basic

type User struct {
	ID    int
	Name  string
	Email string
	Age   int
}

type UserDTO struct {
	ID   int
	Name string
	Age  int64
}

type Address struct {
	Street string
	City   string
}

type Person struct {
	Name    string
	Address Address
}

type PersonFlat struct {
	Name   string
	Street string `map:"Address.Street"`
	City   string `map:"Address.City"`
}

// MyString is a non-struct named type (used by loader tests).
type MyString string

type TaggedSource struct {
	FullName string `map:"Name"`
	Score    int
}

type TaggedDest struct {
	Name  string
	Score int
}
"""

EMBEDDED_TYPES = """package embedded

type Base struct {
	ID        int
	CreatedAt string
}

type User struct {
	Base
	Name  string
	Email string
}

type UserDTO struct {
	ID   int
	Name string
}
"""


def make_package(root, name, types_src):
    directory = root / name
    directory.mkdir()
    (directory / "go.mod").write_text(f"module example.com/{name}\n\ngo 1.25.1\n")
    (directory / "types.go").write_text(types_src)
    return directory


@pytest.fixture
def basic_pkg(tmp_path):
    return load(make_package(tmp_path, "basic", BASIC_TYPES))


@pytest.fixture
def embedded_pkg(tmp_path):
    return load(make_package(tmp_path, "embedded", EMBEDDED_TYPES))


def test_load_valid_package(basic_pkg):
    assert basic_pkg.name == "basic"
    assert basic_pkg.pkg_path == "example.com/basic"


def test_load_non_existent_directory(tmp_path):
    with pytest.raises(LoaderError):
        load(tmp_path / "gomapper-nonexistent-dir-test")


def test_load_empty_directory(tmp_path):
    with pytest.raises(LoaderError):
        load(tmp_path)


def test_load_skips_test_and_ignored_files(tmp_path):
    directory = make_package(tmp_path, "basic", BASIC_TYPES)
    (directory / "x_test.go").write_text("package basic_test\n\ntype Foo struct{}\n")
    (directory / "expected_gen.go").write_text(
        "//go:build ignore\n\npackage basic\n\ntype User struct{}\n"
    )
    pkg = load(directory)
    assert "Foo" not in pkg.types
    assert len(lookup_struct(pkg, "User").fields) == 4


def test_lookup_struct_found(basic_pkg):
    assert lookup_struct(basic_pkg, "User").name == "User"


def test_lookup_struct_not_found(basic_pkg):
    with pytest.raises(LoaderError):
        lookup_struct(basic_pkg, "DoesNotExist")


def test_lookup_struct_not_a_struct(basic_pkg):
    with pytest.raises(LoaderError):
        lookup_struct(basic_pkg, "MyString")


def test_lookup_struct_basic_fields(basic_pkg):
    info = lookup_struct(basic_pkg, "User")
    want = [("ID", "ID"), ("Name", "Name"), ("Email", "Email"), ("Age", "Age")]
    assert [(f.name, f.accessor) for f in info.fields] == want
    assert all(f.exported and not f.embedded for f in info.fields)


def test_lookup_struct_type_conversion(basic_pkg):
    info = lookup_struct(basic_pkg, "UserDTO")
    age = next(f for f in info.fields if f.name == "Age")
    assert str(age.type) == "int64"


def test_lookup_struct_struct_tags(basic_pkg):
    info = lookup_struct(basic_pkg, "PersonFlat")
    street = next(f for f in info.fields if f.name == "Street")
    assert street.tag.get("map") == "Address.Street"


def test_lookup_struct_embedded_promoted_fields(embedded_pkg):
    info = lookup_struct(embedded_pkg, "User")
    want = [
        ("ID", "Base.ID", False),
        ("CreatedAt", "Base.CreatedAt", False),
        ("Base", "Base", True),
        ("Name", "Name", False),
        ("Email", "Email", False),
    ]
    assert [(f.name, f.accessor, f.embedded) for f in info.fields] == want
    assert all(f.exported for f in info.fields)


def test_lookup_struct_promoted_field_accessor_path(embedded_pkg):
    info = lookup_struct(embedded_pkg, "User")
    id_field = next(f for f in info.fields if f.name == "ID" and not f.embedded)
    assert id_field.accessor == "Base.ID"


def test_lookup_struct_nested_struct_field_not_flattened(basic_pkg):
    info = lookup_struct(basic_pkg, "Person")
    assert [f.name for f in info.fields] == ["Name", "Address"]
    address = info.fields[1].type
    assert address is basic_pkg.types["Address"]


def test_parse_package_field_types():
    src = """package p

type (
	Item struct{ ID int }
	Holder struct {
		a, B  *string
		Items []Item `json:"items"`
		Raw   byte
	}
)

func helper() { _ = struct{}{} }
"""
    pkg = parse_package([src], "example.com/p")
    fields = lookup_struct(pkg, "Holder").fields
    assert [f.name for f in fields] == ["a", "B", "Items", "Raw"]
    assert fields[0].exported is False
    assert fields[1].type == Pointer(Basic("string"))
    assert fields[2].type == Slice(pkg.types["Item"])
    assert fields[2].tag.get("json") == "items"
    assert fields[3].type == Basic("uint8")


def test_parse_package_embedded_pointer():
    src = "package p\n\ntype Base struct{ ID int }\n\ntype User struct {\n\t*Base\n\tName string\n}\n"
    info = lookup_struct(parse_package([src], "p"), "User")
    assert [f.accessor for f in info.fields] == ["Base.ID", "Base", "Name"]


def test_parse_package_mismatched_names():
    with pytest.raises(LoaderError):
        parse_package(["package a\n", "package b\n"], "x")


def test_parse_package_undefined_type():
    with pytest.raises(LoaderError):
        parse_package(["package a\n\ntype T struct{ X Missing }\n"], "x")


def test_parse_package_alias_resolves_to_named():
    src = "package a\n\ntype T struct{ X int }\n\ntype U = T\n"
    pkg = parse_package([src], "x")
    assert pkg.types["U"] is pkg.types["T"]
    assert isinstance(pkg.types["T"], Named)
    assert lookup_struct(pkg, "U").fields[0].name == "X"