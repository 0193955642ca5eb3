"""Tests for the runtime containers, errors and enum support."""

import math
from enum import Enum
from typing import Literal, Optional

import pytest

from codablegen.runtime import (
    MISSING,
    Codable,
    CodableEnum,
    CodedAt,
    CodingKey,
    DataCorruptedError,
    Decoder,
    Encoder,
    InvalidValueError,
    KeyNotFoundError,
    TypeMismatchError,
    ValueNotFoundError,
    decode,
    dumps,
    encode,
    loads,
    match_tag,
)


class Keys(CodingKey):
    name = "name"
    continue_ = "continue"


class Color(Enum):
    RED = "red"
    BLUE = "blue"


class TestDecodeValue:
    """Tests for decoding JSON-like values by type."""

    def test_primitives(self) -> None:
        assert decode(int, 3) == 3
        assert decode(float, 3) == 3.0
        assert decode(str, "x") == "x"
        assert decode(bool, True) is True

    def test_bool_is_not_int(self) -> None:
        with pytest.raises(TypeMismatchError) as exc_info:
            decode(int, True)

        assert exc_info.value.debug_description == "Expected to decode int but found bool instead."

    def test_collections(self) -> None:
        assert decode(list[int], [1, 2]) == [1, 2]
        assert decode(set[str], ["a", "a"]) == {"a"}
        assert decode(tuple[int, str], [1, "a"]) == (1, "a")
        assert decode(dict[str, float], {"a": 1}) == {"a": 1.0}

    def test_optional(self) -> None:
        assert decode(Optional[int], None) is None
        assert decode(int | None, 4) == 4

    def test_null_for_required(self) -> None:
        with pytest.raises(ValueNotFoundError):
            decode(int, None)

    def test_literal_and_enum(self) -> None:
        assert decode(Literal["a", "b"], "b") == "b"
        assert decode(Color, "red") is Color.RED
        with pytest.raises(DataCorruptedError):
            decode(Color, "green")

    def test_error_path(self) -> None:
        """Test that nested failures report where they happened."""
        with pytest.raises(TypeMismatchError) as exc_info:
            decode(dict[str, list[int]], {"values": [1, "two"]})

        assert exc_info.value.coding_path == ["values", 1]
        assert str(exc_info.value).endswith("(at values.1)")

    def test_loads_invalid_json(self) -> None:
        with pytest.raises(DataCorruptedError) as exc_info:
            loads(int, "{")

        assert "not valid JSON" in str(exc_info.value)


class TestDecodingContainers:
    """Tests for decoders and keyed containers."""

    def test_container_type_errors(self) -> None:
        with pytest.raises(ValueNotFoundError):
            Decoder(None).container()
        with pytest.raises(TypeMismatchError) as exc_info:
            Decoder([1]).container()

        assert exc_info.value.debug_description == (
            "Expected to decode dictionary but found array instead."
        )

    def test_missing_key(self) -> None:
        container = Decoder({"a": {}}).container().nested_container(CodingKey, "a")

        with pytest.raises(KeyNotFoundError) as exc_info:
            container.decode(int, "b")

        assert exc_info.value.key == "b"
        assert exc_info.value.coding_path == ["a"]

    def test_if_present(self) -> None:
        container = Decoder({"a": None, "b": 1}).container()

        assert container.decode_if_present(int, "a") is None
        assert container.decode_if_present(int, "missing") is None
        assert container.decode_if_present(int, "b") == 1
        assert container.nested_container_if_present(CodingKey, "a") is None

    def test_all_keys_filtered(self) -> None:
        """Test that containers only report keys their namespace knows."""
        container = Decoder({"name": 1, "continue": 2, "other": 3}).container(Keys)
        assert container.all_keys == ["name", "continue"]
        assert Keys.__keys__ == ("name", "continue")

    def test_select_key(self) -> None:
        container = Decoder({"title": "x"}).container()

        assert container.select_key("name", "title") == "title"
        assert container.select_key("name", "label") == "name"

    def test_select_key_ambiguous(self) -> None:
        container = Decoder({"name": "a", "title": "b"}).container()

        with pytest.raises(TypeMismatchError) as exc_info:
            container.select_key("name", "title")

        assert exc_info.value.debug_description == "Invalid number of keys found, expected one."

    def test_snapshot(self) -> None:
        decoder = Decoder({"a": 1}, ("root",))
        copy = decoder.snapshot()
        assert copy is not decoder
        assert copy.value == decoder.value
        assert copy.coding_path == ("root",)


class TestEncoding:
    """Tests for encoders and keyed containers."""

    def test_nested_containers_build_in_place(self) -> None:
        encoder = Encoder()
        container = encoder.container(Keys)
        container.nested_container(CodingKey, "info").encode("Ann", "name")
        container.nested_container(CodingKey, "info").encode(3, "age")
        container.encode_if_present(None, "missing")

        assert encoder.value == {"info": {"name": "Ann", "age": 3}}

    def test_super_encoder(self) -> None:
        encoder = Encoder()
        container = encoder.container()
        container.super_encoder("empty")
        container.super_encoder("value").encode([1, 2])

        assert encoder.value == {"empty": {}, "value": [1, 2]}

    def test_encode_values(self) -> None:
        assert encode({"a": (1, Color.BLUE)}) == {"a": [1, "blue"]}
        assert dumps([1, None]) == "[1, null]"

    def test_non_finite_float(self) -> None:
        with pytest.raises(InvalidValueError):
            encode(math.inf)

    def test_unsupported_value(self) -> None:
        with pytest.raises(InvalidValueError) as exc_info:
            encode(object())

        assert "Unable to encode value of type object." in str(exc_info.value)


class Shape(CodableEnum):
    pass


class TestEnums:
    """Tests for enum support."""

    def test_codable_enum(self) -> None:
        circle = Shape("circle", radius=1.0)

        assert circle == Shape("circle", radius=1.0)
        assert circle != Shape("circle", radius=2.0)
        assert repr(circle) == "Shape.circle(radius=1.0)"
        assert circle.values == {"radius": 1.0}

    def test_match_tag(self) -> None:
        assert match_tag("a", "b", "a")
        assert match_tag(3, range(2, 5))
        assert not match_tag(5, range(2, 5))
        assert not match_tag(True, 1)
        assert not match_tag(1, True)
        assert match_tag(True, True)

    def test_missing(self) -> None:
        assert not MISSING
        assert repr(MISSING) == "MISSING"


class TestMarkers:
    """Tests for the inert attribute markers."""

    def test_bare_decorator(self) -> None:
        class Plain:
            pass

        assert Codable(Plain) is Plain

    def test_called_decorator(self) -> None:
        class Plain:
            pass

        marker = CodedAt("a", "b")
        assert marker(Plain) is Plain
        assert marker.args == ("a", "b")
        assert repr(marker) == "CodedAt('a', 'b')"
