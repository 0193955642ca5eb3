"""Input models: the declarations handed to the generator by a parser."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class DeclKind(Enum):
    """Kinds of declarations an attribute can be attached to."""

    STRUCT = "struct"
    CLASS = "class"
    ENUM = "enum"
    ENUM_CASE = "enum-case"
    VARIABLE = "variable"

    @property
    def is_type(self) -> bool:
        return self in (DeclKind.STRUCT, DeclKind.CLASS, DeclKind.ENUM)


@dataclass(frozen=True)
class SourceLocation:
    """Position of a node in the parsed source."""

    line: int
    column: int
    end_line: int | None = None
    end_column: int | None = None
    file: str | None = None

    def __str__(self) -> str:
        position = f"{self.line}:{self.column}"
        return f"{self.file}:{position}" if self.file else position


@dataclass(frozen=True)
class RawArgument:
    """One attribute argument as written in the source.

    `expression` is the argument's source text. When the argument is a plain
    literal, `value` holds the evaluated literal and `is_literal` is set.
    """

    expression: str
    label: str | None = None
    value: Any = None
    is_literal: bool = False


@dataclass(frozen=True)
class AttributeNode:
    """An attribute occurrence before it is parsed into a typed attribute."""

    name: str
    arguments: tuple[RawArgument, ...] = ()
    location: SourceLocation | None = None

    @property
    def positional(self) -> tuple[RawArgument, ...]:
        return tuple(arg for arg in self.arguments if arg.label is None)

    def keyword(self, label: str) -> RawArgument | None:
        for arg in self.arguments:
            if arg.label == label:
                return arg
        return None


@dataclass(frozen=True)
class MemberDecl:
    """A property of a struct or class.

    Computed members are read-only properties: they have a value without
    storage, so they are only ever encoded.
    """

    name: str
    type_expr: str
    attributes: tuple[AttributeNode, ...] = ()
    mutable: bool = True
    static: bool = False
    optional: bool = False
    initializer: str | None = None
    grouped: bool = False
    group_index: int = 0
    computed: bool = False
    location: SourceLocation | None = None

    @property
    def initialized(self) -> bool:
        return self.computed or self.initializer is not None


@dataclass(frozen=True)
class AssociatedDecl:
    """A value carried by an enum case.

    Unlabeled values are positional and code directly at the case's content
    coder instead of under a key.
    """

    name: str
    type_expr: str
    labeled: bool = True
    keyword_only: bool = False
    optional: bool = False
    default: str | None = None
    attributes: tuple[AttributeNode, ...] = ()
    location: SourceLocation | None = None


@dataclass(frozen=True)
class CaseDecl:
    """An enum case, with associated values or a raw value."""

    name: str
    values: tuple[AssociatedDecl, ...] = ()
    attributes: tuple[AttributeNode, ...] = ()
    raw_value: str | None = None
    location: SourceLocation | None = None


@dataclass(frozen=True)
class Declaration:
    """One annotated type. Constructed once by the parser, never mutated."""

    kind: DeclKind
    name: str
    qualified_name: str
    attributes: tuple[AttributeNode, ...] = ()
    members: tuple[MemberDecl, ...] = ()
    cases: tuple[CaseDecl, ...] = ()
    generic_params: tuple[str, ...] = ()
    bases: tuple[str, ...] = ()
    raw_type: str | None = None
    location: SourceLocation | None = None

    @property
    def is_raw_representable(self) -> bool:
        return self.kind is DeclKind.ENUM and self.raw_type is not None
