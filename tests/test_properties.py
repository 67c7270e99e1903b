"""Tests for the property bag."""

import pytest

from tmx_scene.color import Color
from tmx_scene.errors import PropertyTypeError
from tmx_scene.properties import (
    Property, find_property, routed_properties, split_routed_name, typed_value,
)


class TestTypedValue:
    """Conversion by declared type tag."""

    @pytest.mark.parametrize("prop, expected", [
        (Property("n", "int", "42"), 42),
        (Property("n", "int", "-7"), -7),
        (Property("f", "float", "2.5"), 2.5),
        (Property("b", "bool", "true"), True),
        (Property("b", "bool", "False"), False),
        (Property("b", "bool", "1"), True),
        (Property("c", "color", "#80ff0000"), Color(255, 0, 0, 128)),
        (Property("s", "string", "hello"), "hello"),
        (Property("s"), ""),
        (Property("f", "file", "../music.ogg"), "../music.ogg"),
    ])
    def test_conversion(self, prop: Property, expected) -> None:
        assert typed_value(prop) == expected

    def test_int_is_an_int(self) -> None:
        assert isinstance(typed_value(Property("n", "int", "3")), int)

    def test_bad_int_names_property_and_owner(self) -> None:
        with pytest.raises(PropertyTypeError) as excinfo:
            typed_value(Property("health", "int", "N/A"), owner="object 1 'door'")

        error = excinfo.value
        assert error.property_name == "health"
        assert error.owner == "object 1 'door'"
        assert "health" in str(error)
        assert "door" in str(error)

    @pytest.mark.parametrize("prop", [
        Property("f", "float", "fast"),
        Property("b", "bool", "yes"),
        Property("c", "color", "red"),
    ])
    def test_bad_values(self, prop: Property) -> None:
        with pytest.raises(PropertyTypeError):
            typed_value(prop)

    @pytest.mark.parametrize("prop", [
        Property("n", "int", "1_000"),
        Property("n", "int", "0x10"),
        Property("n", "int", "2.0"),
        Property("f", "float", "nan"),
        Property("f", "float", "inf"),
        Property("f", "float", "1_0.5"),
    ])
    def test_non_decimal_number_forms_rejected(self, prop: Property) -> None:
        with pytest.raises(PropertyTypeError):
            typed_value(prop)

    @pytest.mark.parametrize("prop, expected", [
        (Property("n", "int", "+3"), 3),
        (Property("f", "float", " -0.25 "), -0.25),
        (Property("f", "float", "1e-05"), 1e-05),
        (Property("f", "float", ".5"), 0.5),
        (Property("f", "float", "7"), 7.0),
    ])
    def test_plain_number_forms(self, prop: Property, expected) -> None:
        assert typed_value(prop) == expected


class TestRoutingNames:
    """Target.member names."""

    def test_two_segments(self) -> None:
        assert split_routed_name("SpriteRenderer.sortingOrder") == ("SpriteRenderer", "sortingOrder")

    @pytest.mark.parametrize("name", ["solid", "a.b.c", ".member", "Target."])
    def test_not_routable(self, name: str) -> None:
        assert split_routed_name(name) is None

    def test_routed_properties_keeps_order(self) -> None:
        props = [Property("B.x"), Property("plain"), Property("A.y")]
        assert [p.name for p in routed_properties(props)] == ["B.x", "A.y"]


class TestFindProperty:
    def test_first_match(self) -> None:
        props = (Property("a", value="1"), Property("a", value="2"))
        assert find_property(props, "a").value == "1"
        assert find_property(props, "b") is None
