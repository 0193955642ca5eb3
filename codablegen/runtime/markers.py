"""Declarative attribute markers.

Markers only annotate source for the generator: as decorators they return
the decorated object unchanged, and inside `Annotated[...]` they are inert
metadata. Using them keeps annotated modules importable and lets type
checkers see the attribute names.
"""

from __future__ import annotations

import inspect
from typing import Any

from codablegen.core.keys import KeyStrategy


class Marker:
    """Base of all attribute markers."""

    # markers that may decorate without parentheses
    bare = False

    def __new__(cls, *args: Any, **kwargs: Any) -> Any:
        if cls.bare and len(args) == 1 and not kwargs and _is_declaration(args[0]):
            return args[0]
        return super().__new__(cls)

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self.args = args
        self.kwargs = kwargs

    def __call__(self, target: Any) -> Any:
        return target

    def __repr__(self) -> str:
        arguments = [repr(arg) for arg in self.args]
        arguments += [f"{name}={value!r}" for name, value in self.kwargs.items()]
        return f"{type(self).__name__}({', '.join(arguments)})"


def _is_declaration(target: Any) -> bool:
    if inspect.isclass(target):
        return True
    # case stubs are functions declared inside a class body
    return (
        inspect.isfunction(target)
        and "." in target.__qualname__
        and target.__name__ != "<lambda>"
    )


class Codable(Marker):
    """Generate decode and encode implementations."""

    bare = True


class Decodable(Marker):
    """Generate only the decode implementation."""

    bare = True


class Encodable(Marker):
    """Generate only the encode implementation."""

    bare = True


class MemberInit(Marker):
    bare = True


class Inherits(Marker):
    """Call the superclass's coding implementation first."""

    bare = True


class CodingKeys(Marker):
    """Key case strategy for members and associated values."""


class IgnoreCodingInitialized(Marker):
    bare = True


class UnTagged(Marker):
    bare = True


class CodedAt(Marker):
    """Exact coding path; bare on a read-only property it codes at the root."""

    bare = True


class DecodedAt(Marker):
    pass


class EncodedAt(Marker):
    pass


class CodedIn(Marker):
    """Container path of a member's key; bare it opts a property into encoding."""

    bare = True


class ContentAt(Marker):
    pass


class CodedAs(Marker):
    pass


class CodedBy(Marker):
    pass


class Default(Marker):
    pass


class GroupedDefault(Marker):
    pass


class IgnoreCoding(Marker):
    bare = True


class IgnoreDecoding(Marker):
    bare = True


class IgnoreEncoding(Marker):
    bare = True


class Grouped(Marker):
    """Declares several members sharing one type: `a, b = Grouped(int)`.

    Only meaningful in source given to the generator, which rewrites the
    statement into one annotated member per name.
    """


def value_coder(*types: Any) -> Marker:
    """Common strategy: lenient primitive coding, plus any extra `types`."""
    return Marker(*types)


__all__ = [
    "Codable",
    "Decodable",
    "Encodable",
    "MemberInit",
    "Inherits",
    "CodingKeys",
    "IgnoreCodingInitialized",
    "UnTagged",
    "CodedAt",
    "DecodedAt",
    "EncodedAt",
    "CodedIn",
    "ContentAt",
    "CodedAs",
    "CodedBy",
    "Default",
    "GroupedDefault",
    "IgnoreCoding",
    "IgnoreDecoding",
    "IgnoreEncoding",
    "Grouped",
    "KeyStrategy",
    "value_coder",
]
