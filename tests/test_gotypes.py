import pytest

from gomapper.gotypes import (
    Array,
    Basic,
    Field,
    MapType,
    Named,
    Pointer,
    Slice,
    Struct,
    StructTag,
    assignable_to,
    convertible_to,
    identical,
)

INT = Basic("int")
INT64 = Basic("int64")
STRING = Basic("string")
BOOL = Basic("bool")


def named_struct(name, *fields):
    return Named(name, "example.com/pkg", Struct(fields))


def test_struct_tag_get():
    tag = StructTag('json:"name" map:"Address.Street"')
    assert tag.get("map") == "Address.Street"
    assert tag.get("json") == "name"
    assert tag.get("xml") == ""


def test_struct_tag_dash_and_empty():
    assert StructTag('map:"-"').get("map") == "-"
    assert StructTag("").get("map") == ""


def test_struct_tag_escaped_value():
    assert StructTag(r'map:"a\"b"').get("map") == 'a"b'


def test_type_strings():
    assert str(Pointer(STRING)) == "*string"
    assert str(Slice(INT)) == "[]int"
    assert str(MapType(STRING, INT)) == "map[string]int"
    assert str(Named("Address", "example.com/pkg")) == "example.com/pkg.Address"


def test_named_underlying():
    body = Struct([Field("Street", STRING)])
    addr = Named("Address", "p", body)
    assert addr.underlying() == body
    assert INT.underlying() is INT


def test_named_chain_underlying():
    base = Named("A", "p", INT)
    derived = Named("B", "p", base)
    assert derived.underlying() == INT


def test_identical():
    assert identical(INT, Basic("int"))
    assert not identical(INT, INT64)
    assert identical(Slice(Pointer(INT)), Slice(Pointer(INT)))
    assert identical(Basic("byte"), Basic("uint8"))
    a = named_struct("Address")
    b = named_struct("Address")
    assert identical(a, a)
    assert not identical(a, b)
    assert not identical(Array(3, INT), Array(4, INT))


def test_assignable():
    assert assignable_to(INT, INT)
    assert not assignable_to(INT, INT64)
    assert not assignable_to(named_struct("A"), named_struct("B"))
    assert assignable_to(Struct(), named_struct("A"))
    assert assignable_to(INT, Basic("any"))


def test_convertible():
    assert convertible_to(INT, INT64)
    assert not convertible_to(BOOL, STRING)
    assert convertible_to(INT, STRING)
    assert convertible_to(STRING, Slice(Basic("byte")))
    assert convertible_to(named_struct("A", Field("X", INT)), named_struct("B", Field("X", INT)))
    assert not convertible_to(named_struct("A", Field("X", INT)), named_struct("B", Field("Y", INT)))


def test_convertible_ignores_tags():
    a = Struct([Field("X", INT, StructTag('map:"a"'))])
    b = Struct([Field("X", INT)])
    assert not identical(a, b)
    assert convertible_to(a, b)


def test_field_exported():
    assert Field("Name", STRING).exported
    assert not Field("name", STRING).exported


@pytest.mark.parametrize("t", [INT, Pointer(STRING), Slice(INT), MapType(STRING, BOOL)])
def test_every_type_assignable_to_itself(t):
    assert assignable_to(t, t)
    assert convertible_to(t, t)