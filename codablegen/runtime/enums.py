"""Base class for enums with associated values, and tag matching."""

from __future__ import annotations

from typing import Any


class _Missing:
    """Sentinel for initializer parameters the caller did not supply."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


class CodableEnum:
    """A case name plus its associated values.

    Subclasses declare cases as method stubs; the generator replaces each
    stub with a classmethod constructing the case:

        class Command(CodableEnum):
            def load(key: str, /, retries: int = 3): ...

        Command.load("config", retries=5)
    """

    __slots__ = ("case", "values")

    def __init__(self, case: str, /, **values: Any) -> None:
        self.case = case
        self.values = values

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CodableEnum) or type(other) is not type(self):
            return NotImplemented
        return self.case == other.case and self.values == other.values

    def __hash__(self) -> int:
        return hash((type(self).__qualname__, self.case))

    def __repr__(self) -> str:
        arguments = ", ".join(f"{name}={value!r}" for name, value in self.values.items())
        return f"{type(self).__qualname__}.{self.case}({arguments})"


def match_tag(tag: Any, *candidates: Any) -> bool:
    """Whether a decoded discriminator matches any of a case's values.

    `range` candidates match integers inside them. `True` and `1` are kept
    distinct, unlike with plain equality.
    """
    for candidate in candidates:
        if isinstance(candidate, range):
            if isinstance(tag, int) and not isinstance(tag, bool) and tag in candidate:
                return True
        elif isinstance(candidate, bool) or isinstance(tag, bool):
            if candidate is tag:
                return True
        elif candidate == tag:
            return True
    return False
