"""Coding key strategies and the key-to-identifier map."""

from __future__ import annotations

import keyword
import re
from collections.abc import Iterator
from enum import Enum

_WORD_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_PART_SEPARATOR = re.compile(r"[\W_]")
_NON_IDENTIFIER = re.compile(r"\W")


class KeyStrategy(Enum):
    """Case styles a member name can be converted to when used as a key."""

    CAMEL_CASE = "camelCase"
    PASCAL_CASE = "PascalCase"
    SNAKE_CASE = "snake_case"
    CAMEL_SNAKE_CASE = "camel_Snake_Case"
    SCREAMING_SNAKE_CASE = "SCREAMING_SNAKE_CASE"
    KEBAB_CASE = "kebab-case"
    SCREAMING_KEBAB_CASE = "SCREAMING-KEBAB-CASE"
    TRAIN_CASE = "Train-Case"

    @classmethod
    def lookup(cls, text: str) -> KeyStrategy:
        """Find a strategy by its value (`snake_case`) or member name."""
        for strategy in cls:
            if text in (strategy.value, strategy.name):
                return strategy
        raise ValueError(f"Unknown key strategy '{text}'")

    @property
    def separator(self) -> str:
        if self in (KeyStrategy.CAMEL_CASE, KeyStrategy.PASCAL_CASE):
            return ""
        if self in (
            KeyStrategy.SNAKE_CASE,
            KeyStrategy.CAMEL_SNAKE_CASE,
            KeyStrategy.SCREAMING_SNAKE_CASE,
        ):
            return "_"
        return "-"

    def transform(self, key: str) -> str:
        """Convert a member name to this strategy's case style."""
        if not key:
            return key
        parts = _PART_SEPARATOR.split(_WORD_BOUNDARY.sub(r"\1@\2", key).lower())
        return self.separator.join(self._capitalize(parts))

    def _capitalize(self, parts: list[str]) -> list[str]:
        if self in (KeyStrategy.SCREAMING_SNAKE_CASE, KeyStrategy.SCREAMING_KEBAB_CASE):
            return [part.upper() for part in parts]
        if self in (KeyStrategy.SNAKE_CASE, KeyStrategy.KEBAB_CASE):
            return parts
        if self in (KeyStrategy.PASCAL_CASE, KeyStrategy.TRAIN_CASE):
            return [_upper_first(part) for part in parts]
        # camelCase and camel_Snake_Case keep the first word lowercase
        return [parts[0]] + [_upper_first(part) for part in parts[1:]]


def _upper_first(text: str) -> str:
    return text[:1].upper() + text[1:]


def identifier_for(key: str) -> str:
    """Identifier used in generated code for a literal key string.

    Non-identifier characters become underscores, keys starting with a digit
    or a double underscore get a `key_` prefix, and Python keywords are
    escaped with a trailing underscore.
    """
    name = _NON_IDENTIFIER.sub("_", key)
    if not name or name[0].isdigit() or name.startswith("__"):
        name = f"key_{name}"
    if keyword.iskeyword(name):
        name = f"{name}_"
    return name


class CodingKeysMap:
    """Ordered map from literal key strings to unique emitted identifiers.

    One entry exists per distinct key string. Two different keys that
    sanitize to the same identifier are disambiguated with numeric suffixes.
    """

    __slots__ = ("type_name", "_aliases", "_taken")

    def __init__(self, type_name: str = "CodingKeys") -> None:
        self.type_name = type_name
        self._aliases: dict[str, str] = {}
        self._taken: set[str] = set()

    def add(self, key: str) -> str:
        """Register `key` (if new) and return its identifier."""
        alias = self._aliases.get(key)
        if alias is not None:
            return alias
        base = identifier_for(key)
        alias = base
        suffix = 1
        while alias in self._taken:
            alias = f"{base}_{suffix}"
            suffix += 1
        self._aliases[key] = alias
        self._taken.add(alias)
        return alias

    def alias(self, key: str) -> str:
        return self._aliases[key]

    def reference(self, key: str) -> str:
        """Expression referencing `key` through the emitted keys class."""
        return f"{self.type_name}.{self._aliases[key]}"

    def items(self) -> list[tuple[str, str]]:
        """(identifier, key string) pairs in registration order."""
        return [(alias, key) for key, alias in self._aliases.items()]

    def __contains__(self, key: object) -> bool:
        return key in self._aliases

    def __iter__(self) -> Iterator[str]:
        return iter(self._aliases)

    def __len__(self) -> int:
        return len(self._aliases)

    def __repr__(self) -> str:
        return f"CodingKeysMap({self.type_name}, keys={len(self)})"
