"""Errors raised by generated code while decoding or encoding."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from codablegen.core.exceptions import CodableGenError


def _describe_path(coding_path: Sequence[Any]) -> str:
    return ".".join(str(key) for key in coding_path) or "<root>"


class CodingError(CodableGenError):
    """Base exception for runtime coding errors.

    Carries the coding path to the failing value and a human readable
    debug description.
    """

    def __init__(self, coding_path: Sequence[Any], debug_description: str) -> None:
        super().__init__(debug_description)
        self.coding_path = list(coding_path)
        self.debug_description = debug_description

    def __str__(self) -> str:
        return f"{self.debug_description} (at {_describe_path(self.coding_path)})"


class DecodingError(CodingError):
    """Input could not be decoded."""


class TypeMismatchError(DecodingError):
    """Value found doesn't have the expected type."""

    def __init__(self, expected: Any, coding_path: Sequence[Any], debug_description: str) -> None:
        super().__init__(coding_path, debug_description)
        self.expected = expected


class ValueNotFoundError(DecodingError):
    """A null value was found where a value was expected."""

    def __init__(self, expected: Any, coding_path: Sequence[Any], debug_description: str) -> None:
        super().__init__(coding_path, debug_description)
        self.expected = expected


class KeyNotFoundError(DecodingError):
    """A required key is absent."""

    def __init__(self, key: str, coding_path: Sequence[Any], debug_description: str) -> None:
        super().__init__(coding_path, debug_description)
        self.key = key


class DataCorruptedError(DecodingError):
    """Value has the right shape but isn't valid."""


class EncodingError(CodingError):
    """Value could not be encoded."""


class InvalidValueError(EncodingError):
    def __init__(self, value: Any, coding_path: Sequence[Any], debug_description: str) -> None:
        super().__init__(coding_path, debug_description)
        self.value = value
