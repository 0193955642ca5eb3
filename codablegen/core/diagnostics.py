"""Structured diagnostics collected while analyzing a declaration."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum, Flag
from typing import Any

from codablegen.core.models import SourceLocation


class Severity(Enum):
    """Diagnostic severity. Only errors block emission."""

    ERROR = "error"
    WARNING = "warning"


class Scope(Flag):
    """Generated artifacts a diagnostic applies to."""

    DECODE = 1
    ENCODE = 2
    ALL = DECODE | ENCODE


@dataclass(frozen=True)
class FixIt:
    """A suggested fix: replace the text at `location` with `replacement`."""

    message: str
    location: SourceLocation | None
    replacement: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "location": _location_dict(self.location),
            "replacement": self.replacement,
        }


@dataclass(frozen=True)
class Diagnostic:
    """An error or warning reported against the user's declaration.

    `message_id` is stable across releases so tooling can filter by it.
    """

    severity: Severity
    message_id: str
    message: str
    location: SourceLocation | None = None
    fixits: tuple[FixIt, ...] = ()
    scope: Scope = Scope.ALL

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity.value,
            "id": self.message_id,
            "message": self.message,
            "location": _location_dict(self.location),
            "fixits": [fixit.to_dict() for fixit in self.fixits],
        }

    def __str__(self) -> str:
        prefix = f"{self.location}: " if self.location else ""
        return f"{prefix}{self.severity.value}: {self.message} [{self.message_id}]"


def _location_dict(location: SourceLocation | None) -> dict[str, Any] | None:
    if location is None:
        return None
    return {
        "file": location.file,
        "line": location.line,
        "column": location.column,
        "end_line": location.end_line,
        "end_column": location.end_column,
    }


def misuse(
    attribute: str,
    message: str,
    location: SourceLocation | None,
    severity: Severity = Severity.ERROR,
    scope: Scope = Scope.ALL,
    message_id: str | None = None,
) -> Diagnostic:
    """Create a misuse diagnostic offering to remove the attribute."""
    return Diagnostic(
        severity=severity,
        message_id=message_id or f"{attribute.lower()}-misuse",
        message=message,
        location=location,
        fixits=(FixIt(f"Remove @{attribute} attribute", location),),
        scope=scope,
    )


class DiagnosticCollector:
    """Append-only diagnostics sink for one declaration.

    Every pipeline stage appends to the same collector; the emitter consults
    it to decide which artifacts are blocked.
    """

    __slots__ = ("_items", "_strict")

    def __init__(self, strict: bool = False) -> None:
        self._items: list[Diagnostic] = []
        self._strict = strict

    def add(self, diagnostic: Diagnostic) -> Diagnostic:
        self._items.append(diagnostic)
        return diagnostic

    def extend(self, diagnostics: Iterable[Diagnostic]) -> None:
        self._items.extend(diagnostics)

    def blocks(self, scope: Scope) -> bool:
        """Whether any collected diagnostic suppresses the given artifact."""
        return any(
            (item.is_error or self._strict) and item.scope & scope for item in self._items
        )

    @property
    def errors(self) -> list[Diagnostic]:
        return [item for item in self._items if item.is_error]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [item for item in self._items if not item.is_error]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"DiagnosticCollector(errors={len(self.errors)}, warnings={len(self.warnings)})"
