"""Tests for key strategies and the coding keys map."""

import pytest

from codablegen.core.keys import CodingKeysMap, KeyStrategy, identifier_for


class TestKeyStrategy:
    """Tests for member name case conversion."""

    @pytest.mark.parametrize(
        ("strategy", "name", "expected"),
        [
            (KeyStrategy.SNAKE_CASE, "firstName", "first_name"),
            (KeyStrategy.CAMEL_CASE, "first_name", "firstName"),
            (KeyStrategy.PASCAL_CASE, "first_name", "FirstName"),
            (KeyStrategy.CAMEL_SNAKE_CASE, "first_name", "first_Name"),
            (KeyStrategy.SCREAMING_SNAKE_CASE, "firstName", "FIRST_NAME"),
            (KeyStrategy.KEBAB_CASE, "firstName", "first-name"),
            (KeyStrategy.SCREAMING_KEBAB_CASE, "first_name", "FIRST-NAME"),
            (KeyStrategy.TRAIN_CASE, "first_name", "First-Name"),
        ],
    )
    def test_transform(self, strategy: KeyStrategy, name: str, expected: str) -> None:
        """Test conversion into each case style."""
        assert strategy.transform(name) == expected

    def test_transform_single_word(self) -> None:
        """Test that single words only change capitalization."""
        assert KeyStrategy.SNAKE_CASE.transform("name") == "name"
        assert KeyStrategy.PASCAL_CASE.transform("name") == "Name"

    def test_lookup_by_value_or_name(self) -> None:
        """Test that strategies resolve from either spelling."""
        assert KeyStrategy.lookup("snake_case") is KeyStrategy.SNAKE_CASE
        assert KeyStrategy.lookup("SNAKE_CASE") is KeyStrategy.SNAKE_CASE

    def test_lookup_unknown(self) -> None:
        """Test that unknown strategies raise ValueError."""
        with pytest.raises(ValueError) as exc_info:
            KeyStrategy.lookup("lowercase")

        assert "lowercase" in str(exc_info.value)


class TestIdentifierFor:
    """Tests for escaping key strings into identifiers."""

    def test_plain_key(self) -> None:
        assert identifier_for("name") == "name"

    def test_keyword_escaped(self) -> None:
        """Test that reserved words get a trailing underscore."""
        assert identifier_for("continue") == "continue_"
        assert identifier_for("class") == "class_"

    def test_leading_digit(self) -> None:
        assert identifier_for("1st") == "key_1st"

    def test_non_identifier_characters(self) -> None:
        assert identifier_for("first-name") == "first_name"
        assert identifier_for("a.b c") == "a_b_c"

    def test_dunder_prefix(self) -> None:
        """Test that keys can't become dunder names."""
        assert identifier_for("__init__") == "key___init__"

    def test_empty_key(self) -> None:
        assert identifier_for("") == "key_"


class TestCodingKeysMap:
    """Tests for key registration and aliasing."""

    def test_add_is_idempotent(self) -> None:
        """Test that one key string maps to one identifier."""
        keys = CodingKeysMap()
        assert keys.add("name") == "name"
        assert keys.add("name") == "name"
        assert len(keys) == 1

    def test_collisions_get_suffixes(self) -> None:
        """Test that distinct keys with the same escape stay distinct."""
        keys = CodingKeysMap()
        assert keys.add("first-name") == "first_name"
        assert keys.add("first_name") == "first_name_1"
        assert keys.add("first name") == "first_name_2"

    def test_reference(self) -> None:
        keys = CodingKeysMap("DecodingKeys")
        keys.add("continue")
        assert keys.reference("continue") == "DecodingKeys.continue_"

    def test_items_in_registration_order(self) -> None:
        keys = CodingKeysMap()
        for key in ("b", "a", "1st"):
            keys.add(key)

        assert keys.items() == [("b", "b"), ("a", "a"), ("key_1st", "1st")]
        assert list(keys) == ["b", "a", "1st"]
        assert "a" in keys
