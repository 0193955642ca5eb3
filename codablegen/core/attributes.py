"""Attribute model: typed attributes and their placement rules.

Every recognized attribute is a variant of `Attribute`. Parsing turns an
`AttributeNode` (name plus raw argument expressions) into its variant, and
each variant declares the rules it must satisfy for a given `Target`:
which declaration kinds it may decorate, whether it may repeat, and which
other attributes it conflicts with or requires. Validation is pure; it only
returns diagnostics.
"""

from __future__ import annotations

import ast
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Protocol

from codablegen.core.diagnostics import Diagnostic, Scope, Severity, misuse
from codablegen.core.exceptions import AttributeParseError
from codablegen.core.keys import KeyStrategy
from codablegen.core.models import AttributeNode, DeclKind, RawArgument, SourceLocation


class AttributeKind(Enum):
    """Recognized attribute names."""

    CODABLE = "Codable"
    DECODABLE = "Decodable"
    ENCODABLE = "Encodable"
    MEMBER_INIT = "MemberInit"
    INHERITS = "Inherits"
    CODING_KEYS = "CodingKeys"
    IGNORE_CODING_INITIALIZED = "IgnoreCodingInitialized"
    UNTAGGED = "UnTagged"
    CODED_AT = "CodedAt"
    DECODED_AT = "DecodedAt"
    ENCODED_AT = "EncodedAt"
    CODED_IN = "CodedIn"
    CONTENT_AT = "ContentAt"
    CODED_AS = "CodedAs"
    CODED_BY = "CodedBy"
    DEFAULT = "Default"
    GROUPED_DEFAULT = "GroupedDefault"
    IGNORE_CODING = "IgnoreCoding"
    IGNORE_DECODING = "IgnoreDecoding"
    IGNORE_ENCODING = "IgnoreEncoding"


K = AttributeKind
CODING_MODES = (K.CODABLE, K.DECODABLE, K.ENCODABLE)
TYPE_KINDS = (DeclKind.STRUCT, DeclKind.CLASS, DeclKind.ENUM)


@dataclass(frozen=True)
class Target:
    """The declaration an attribute is attached to, as seen by its rules."""

    kind: DeclKind
    attributes: tuple[Attribute, ...] = ()
    name: str = ""
    grouped: bool = False
    static: bool = False
    initialized: bool = False
    optional: bool = False
    mutable: bool = True
    computed: bool = False

    def count(self, kind: AttributeKind) -> int:
        return sum(1 for attr in self.attributes if attr.kind is kind)

    def has(self, *kinds: AttributeKind) -> bool:
        return any(attr.kind in kinds for attr in self.attributes)


# Rules


class Rule(Protocol):
    """A single placement constraint."""

    def check(self, attr: Attribute, target: Target) -> Diagnostic | None: ...


def _kind_names(kinds: Sequence[DeclKind]) -> str:
    return " or ".join(kind.value for kind in kinds)


@dataclass(frozen=True)
class Expect:
    kinds: tuple[DeclKind, ...]

    def check(self, attr: Attribute, target: Target) -> Diagnostic | None:
        if target.kind in self.kinds:
            return None
        return attr.misuse(f"@{attr.name} only applicable to {_kind_names(self.kinds)} declarations")


@dataclass(frozen=True)
class CantDuplicate:
    def check(self, attr: Attribute, target: Target) -> Diagnostic | None:
        if target.count(attr.kind) <= 1:
            return None
        return attr.misuse(f"@{attr.name} can only be applied once per declaration")


@dataclass(frozen=True)
class ShouldNotDuplicate:
    def check(self, attr: Attribute, target: Target) -> Diagnostic | None:
        if target.count(attr.kind) <= 1:
            return None
        return attr.misuse(
            f"@{attr.name} should only be applied once per declaration",
            severity=Severity.WARNING,
        )


@dataclass(frozen=True)
class CantCombine:
    other: AttributeKind

    def check(self, attr: Attribute, target: Target) -> Diagnostic | None:
        if not target.has(self.other):
            return None
        return attr.misuse(f"@{attr.name} can't be used in combination with @{self.other.value}")


@dataclass(frozen=True)
class ShouldNotCombine:
    other: AttributeKind

    def check(self, attr: Attribute, target: Target) -> Diagnostic | None:
        if not target.has(self.other):
            return None
        return attr.misuse(
            f"@{attr.name} needn't be used in combination with @{self.other.value}",
            severity=Severity.WARNING,
        )


@dataclass(frozen=True)
class MustCombine:
    """Requires any one of `others`; the first names the requirement."""

    others: tuple[AttributeKind, ...]

    def check(self, attr: Attribute, target: Target) -> Diagnostic | None:
        if target.has(*self.others):
            return None
        return attr.misuse(f"@{attr.name} must be used in combination with @{self.others[0].value}")


@dataclass(frozen=True)
class NotGrouped:
    def check(self, attr: Attribute, target: Target) -> Diagnostic | None:
        if not target.grouped:
            return None
        return attr.misuse(f"@{attr.name} can't be used with grouped variables declaration")


@dataclass(frozen=True)
class GroupedOnly:
    def check(self, attr: Attribute, target: Target) -> Diagnostic | None:
        if target.grouped:
            return None
        return attr.misuse(f"@{attr.name} can only be used with grouped variables declaration")


@dataclass(frozen=True)
class NotStatic:
    def check(self, attr: Attribute, target: Target) -> Diagnostic | None:
        if not target.static:
            return None
        return attr.misuse(f"@{attr.name} can't be used with static variables declarations")


@dataclass(frozen=True)
class AttachedToInitialized:
    """Ignoring a member needs a value to leave behind; `None` will do."""

    def check(self, attr: Attribute, target: Target) -> Diagnostic | None:
        if target.initialized or target.optional:
            return None
        return attr.misuse(
            f"@{attr.name} can't be used with uninitialized non-optional variable {target.name}"
        )


@dataclass(frozen=True)
class UsedWithoutArgs:
    """Bare on a read-only property the attribute is what opts it into coding."""

    def check(self, attr: Attribute, target: Target) -> Diagnostic | None:
        if attr.node.arguments or target.computed:
            return None
        return attr.misuse(
            f"Unnecessary use of @{attr.name} without argument(s)",
            severity=Severity.WARNING,
            message_id=f"{attr.name.lower()}-unused",
        )


@dataclass(frozen=True)
class LiteralStrings:
    def check(self, attr: Attribute, target: Target) -> Diagnostic | None:
        if all(arg.is_literal and isinstance(arg.value, str) for arg in attr.node.arguments):
            return None
        return attr.misuse(f"@{attr.name} only accepts string keys on variable declarations")


# Attribute variants


@dataclass(frozen=True)
class Attribute:
    """Base variant. Subclasses parse their own arguments."""

    node: AttributeNode

    kind: ClassVar[AttributeKind]
    scope: ClassVar[Scope] = Scope.ALL

    @property
    def name(self) -> str:
        return self.kind.value

    @property
    def location(self) -> SourceLocation | None:
        return self.node.location

    @classmethod
    def parse(cls, node: AttributeNode) -> Attribute:
        if node.arguments:
            raise AttributeParseError(node.name, "takes no arguments")
        return cls(node)

    def rules(self, target: Target) -> list[Rule]:
        return []

    def misuse(
        self,
        message: str,
        severity: Severity = Severity.ERROR,
        message_id: str | None = None,
    ) -> Diagnostic:
        return misuse(self.name, message, self.location, severity, self.scope, message_id)


def _literal_strings(node: AttributeNode) -> tuple[str, ...]:
    if any(arg.label is not None for arg in node.arguments):
        raise AttributeParseError(node.name, "keyword arguments are not supported")
    keys = []
    for arg in node.arguments:
        if not (arg.is_literal and isinstance(arg.value, str)):
            raise AttributeParseError(node.name, f"expected string key, got {arg.expression}")
        keys.append(arg.value)
    return tuple(keys)


def _is_type_expression(node: ast.expr) -> bool:
    """Names, dotted names, subscripts and `|` unions of those, or `None`."""
    if isinstance(node, ast.Name):
        return True
    if isinstance(node, ast.Constant):
        return node.value is None
    if isinstance(node, ast.Attribute):
        return _is_type_expression(node.value)
    if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
        return _is_type_expression(node.left) and _is_type_expression(node.right)
    if isinstance(node, ast.Subscript):
        inner = node.slice
        elements = inner.elts if isinstance(inner, ast.Tuple) else [inner]
        return _is_type_expression(node.value) and all(
            _is_type_expression(element) or isinstance(element, ast.Constant)
            for element in elements
        )
    return False


def _single(node: AttributeNode) -> RawArgument:
    if len(node.arguments) != 1 or node.arguments[0].label is not None:
        raise AttributeParseError(node.name, "expected exactly one positional argument")
    return node.arguments[0]


@dataclass(frozen=True)
class CodingModeAttribute(Attribute):
    """`@Codable`, `@Decodable` and `@Encodable`.

    `common_strategies=[value_coder(Decimal, ...)]` enables lenient value
    coding for primitive members; extra types listed are added to the set.
    """

    common_strategies: tuple[str, ...] = ()
    value_coder_types: tuple[str, ...] | None = None

    @classmethod
    def parse(cls, node: AttributeNode) -> Attribute:
        if node.positional:
            raise AttributeParseError(node.name, "takes no positional arguments")
        extra = node.keyword("common_strategies")
        if extra is None:
            if node.arguments:
                raise AttributeParseError(node.name, "unknown keyword argument")
            return cls(node)
        try:
            tree = ast.parse(extra.expression, mode="eval").body
        except SyntaxError as e:
            raise AttributeParseError(node.name, str(e)) from e
        if not isinstance(tree, (ast.List, ast.Tuple)):
            raise AttributeParseError(node.name, "common_strategies must be a list")
        strategies = []
        value_coder_types: tuple[str, ...] | None = None
        for item in tree.elts:
            strategies.append(ast.unparse(item))
            func = item.func if isinstance(item, ast.Call) else item
            if ast.unparse(func).rsplit(".", 1)[-1] != "value_coder":
                raise AttributeParseError(node.name, f"unknown strategy {ast.unparse(item)}")
            args = item.args if isinstance(item, ast.Call) else []
            value_coder_types = tuple(ast.unparse(arg) for arg in args)
        return cls(node, tuple(strategies), value_coder_types)

    def rules(self, target: Target) -> list[Rule]:
        rules: list[Rule] = [Expect(TYPE_KINDS), CantDuplicate()]
        rules += [CantCombine(other) for other in CODING_MODES if other is not self.kind]
        return rules


@dataclass(frozen=True)
class Codable(CodingModeAttribute):
    kind = K.CODABLE


@dataclass(frozen=True)
class Decodable(CodingModeAttribute):
    kind = K.DECODABLE


@dataclass(frozen=True)
class Encodable(CodingModeAttribute):
    kind = K.ENCODABLE


@dataclass(frozen=True)
class MemberInit(Attribute):
    kind = K.MEMBER_INIT

    def rules(self, target: Target) -> list[Rule]:
        return [Expect((DeclKind.STRUCT,)), CantDuplicate()]


@dataclass(frozen=True)
class Inherits(Attribute):
    """Call into the superclass's decode and/or encode implementation."""

    kind = K.INHERITS
    decodable: bool = True
    encodable: bool = True

    @classmethod
    def parse(cls, node: AttributeNode) -> Attribute:
        flags = {"decodable": True, "encodable": True}
        for arg in node.arguments:
            if arg.label not in flags:
                raise AttributeParseError(node.name, "expected decodable= or encodable=")
            if not (arg.is_literal and isinstance(arg.value, bool)):
                raise AttributeParseError(node.name, f"expected bool, got {arg.expression}")
            flags[arg.label] = arg.value
        return cls(node, **flags)

    def rules(self, target: Target) -> list[Rule]:
        return [Expect((DeclKind.CLASS,)), MustCombine(CODING_MODES), ShouldNotDuplicate()]


@dataclass(frozen=True)
class CodingKeys(Attribute):
    kind = K.CODING_KEYS
    strategy: KeyStrategy = KeyStrategy.CAMEL_CASE

    @classmethod
    def parse(cls, node: AttributeNode) -> Attribute:
        arg = _single(node)
        # KeyStrategy.SNAKE_CASE and "snake_case" are both accepted
        text = arg.value if arg.is_literal else arg.expression.rsplit(".", 1)[-1]
        if not isinstance(text, str):
            raise AttributeParseError(node.name, f"expected key strategy, got {arg.expression}")
        try:
            return cls(node, KeyStrategy.lookup(text))
        except ValueError as e:
            raise AttributeParseError(node.name, str(e)) from e

    def rules(self, target: Target) -> list[Rule]:
        if target.kind.is_type:
            return [CantDuplicate(), MustCombine(CODING_MODES)]
        return [Expect((*TYPE_KINDS, DeclKind.ENUM_CASE)), CantDuplicate()]


@dataclass(frozen=True)
class IgnoreCodingInitialized(Attribute):
    kind = K.IGNORE_CODING_INITIALIZED

    def rules(self, target: Target) -> list[Rule]:
        if target.kind.is_type:
            return [ShouldNotDuplicate(), MustCombine(CODING_MODES)]
        return [Expect((*TYPE_KINDS, DeclKind.ENUM_CASE)), ShouldNotDuplicate()]


@dataclass(frozen=True)
class UnTagged(Attribute):
    kind = K.UNTAGGED

    def rules(self, target: Target) -> list[Rule]:
        return [
            Expect((DeclKind.ENUM,)),
            CantDuplicate(),
            MustCombine(CODING_MODES),
            CantCombine(K.CODED_AT),
        ]


@dataclass(frozen=True)
class _PathAttribute(Attribute):
    path: tuple[str, ...] = ()

    @classmethod
    def parse(cls, node: AttributeNode) -> Attribute:
        return cls(node, _literal_strings(node))


@dataclass(frozen=True)
class CodedAt(_PathAttribute):
    """Exact coding path of a member, or the tag path of an enum."""

    kind = K.CODED_AT

    def rules(self, target: Target) -> list[Rule]:
        if target.kind is DeclKind.ENUM:
            return [
                CantDuplicate(),
                MustCombine(CODING_MODES),
                CantCombine(K.UNTAGGED),
                CantCombine(K.DECODED_AT),
                CantCombine(K.ENCODED_AT),
            ]
        return [
            Expect((DeclKind.VARIABLE, DeclKind.ENUM)),
            CantDuplicate(),
            NotGrouped(),
            NotStatic(),
            CantCombine(K.DECODED_AT),
            CantCombine(K.ENCODED_AT),
            CantCombine(K.CODED_IN),
            CantCombine(K.IGNORE_CODING),
        ]


@dataclass(frozen=True)
class _DirectionalPath(_PathAttribute):
    counterpart: ClassVar[AttributeKind]

    def rules(self, target: Target) -> list[Rule]:
        if target.kind is DeclKind.ENUM:
            return [
                CantDuplicate(),
                MustCombine(CODING_MODES),
                CantCombine(K.UNTAGGED),
                CantCombine(K.CODED_AT),
                MustCombine((self.counterpart,)),
            ]
        return [
            Expect((DeclKind.VARIABLE, DeclKind.ENUM)),
            CantDuplicate(),
            NotGrouped(),
            NotStatic(),
            CantCombine(K.CODED_IN),
            CantCombine(K.CODED_AT),
            CantCombine(K.IGNORE_CODING),
        ]


@dataclass(frozen=True)
class DecodedAt(_DirectionalPath):
    kind = K.DECODED_AT
    scope = Scope.DECODE
    counterpart = K.ENCODED_AT


@dataclass(frozen=True)
class EncodedAt(_DirectionalPath):
    kind = K.ENCODED_AT
    scope = Scope.ENCODE
    counterpart = K.DECODED_AT


@dataclass(frozen=True)
class CodedIn(_PathAttribute):
    """Container path a member's own key is nested in."""

    kind = K.CODED_IN

    def rules(self, target: Target) -> list[Rule]:
        return [
            Expect((DeclKind.VARIABLE,)),
            CantDuplicate(),
            NotStatic(),
            CantCombine(K.CODED_AT),
            CantCombine(K.IGNORE_CODING),
            UsedWithoutArgs(),
        ]


@dataclass(frozen=True)
class ContentAt(_PathAttribute):
    """Path of an adjacently tagged enum's case content."""

    kind = K.CONTENT_AT

    def rules(self, target: Target) -> list[Rule]:
        return [
            Expect((DeclKind.ENUM,)),
            CantDuplicate(),
            MustCombine(CODING_MODES),
            MustCombine((K.CODED_AT, K.DECODED_AT, K.ENCODED_AT)),
        ]


@dataclass(frozen=True)
class CodedAs(Attribute):
    """Alternate identifiers.

    On an enum the single argument is the tag type; on a case the arguments
    are its tag values (literals or ranges); on a variable they are
    decode-only alternate keys.
    """

    kind = K.CODED_AS
    values: tuple[RawArgument, ...] = ()

    @classmethod
    def parse(cls, node: AttributeNode) -> Attribute:
        if any(arg.label is not None for arg in node.arguments):
            raise AttributeParseError(node.name, "keyword arguments are not supported")
        return cls(node, node.arguments)

    @property
    def type_expr(self) -> str | None:
        if len(self.values) != 1 or self.values[0].is_literal:
            return None
        expression = self.values[0].expression
        try:
            node = ast.parse(expression, mode="eval").body
        except SyntaxError:
            return None
        return expression if _is_type_expression(node) else None

    @property
    def literals(self) -> tuple[object, ...]:
        return tuple(arg.value for arg in self.values if arg.is_literal)

    def rules(self, target: Target) -> list[Rule]:
        if target.kind.is_type:
            return [
                Expect((DeclKind.ENUM,)),
                CantDuplicate(),
                MustCombine(CODING_MODES),
                MustCombine((K.CODED_AT, K.DECODED_AT, K.ENCODED_AT)),
            ]
        rules: list[Rule] = [Expect((DeclKind.ENUM_CASE, DeclKind.VARIABLE)), CantDuplicate()]
        if target.kind is DeclKind.VARIABLE:
            rules += [NotGrouped(), NotStatic(), CantCombine(K.IGNORE_CODING), LiteralStrings()]
        return rules


@dataclass(frozen=True)
class CodedBy(Attribute):
    """Helper coder used instead of the default value codec."""

    kind = K.CODED_BY
    expression: str = ""

    @classmethod
    def parse(cls, node: AttributeNode) -> Attribute:
        return cls(node, _single(node).expression)

    def rules(self, target: Target) -> list[Rule]:
        if target.kind is DeclKind.ENUM:
            return [
                CantDuplicate(),
                MustCombine(CODING_MODES),
                MustCombine((K.CODED_AT, K.DECODED_AT, K.ENCODED_AT)),
                CantCombine(K.CODED_AS),
            ]
        return [
            Expect((DeclKind.VARIABLE, DeclKind.ENUM)),
            CantDuplicate(),
            NotStatic(),
            CantCombine(K.IGNORE_CODING),
        ]


@dataclass(frozen=True)
class Default(Attribute):
    """Value used when decoding a member fails or its key is missing."""

    kind = K.DEFAULT
    expression: str = ""

    @classmethod
    def parse(cls, node: AttributeNode) -> Attribute:
        return cls(node, _single(node).expression)

    def rules(self, target: Target) -> list[Rule]:
        return [
            Expect((DeclKind.VARIABLE,)),
            CantDuplicate(),
            NotStatic(),
            CantCombine(K.IGNORE_CODING),
        ]


@dataclass(frozen=True)
class GroupedDefault(Attribute):
    """One default per member of a grouped declaration, in order."""

    kind = K.GROUPED_DEFAULT
    expressions: tuple[str, ...] = field(default=())

    @classmethod
    def parse(cls, node: AttributeNode) -> Attribute:
        if not node.arguments or any(arg.label is not None for arg in node.arguments):
            raise AttributeParseError(node.name, "expected one positional default per member")
        return cls(node, tuple(arg.expression for arg in node.arguments))

    def rules(self, target: Target) -> list[Rule]:
        return [
            Expect((DeclKind.VARIABLE,)),
            GroupedOnly(),
            CantDuplicate(),
            NotStatic(),
            CantCombine(K.IGNORE_CODING),
        ]


@dataclass(frozen=True)
class IgnoreCoding(Attribute):
    kind = K.IGNORE_CODING

    def rules(self, target: Target) -> list[Rule]:
        rules: list[Rule] = [
            Expect((DeclKind.VARIABLE, DeclKind.ENUM_CASE)),
            ShouldNotDuplicate(),
            CantCombine(K.CODED_IN),
            CantCombine(K.CODED_AT),
            CantCombine(K.CODED_AS),
            CantCombine(K.CODED_BY),
            CantCombine(K.CONTENT_AT),
        ]
        if target.kind is DeclKind.VARIABLE:
            rules.append(AttachedToInitialized())
        return rules


@dataclass(frozen=True)
class IgnoreDecoding(Attribute):
    kind = K.IGNORE_DECODING
    scope = Scope.DECODE

    def rules(self, target: Target) -> list[Rule]:
        rules: list[Rule] = [ShouldNotDuplicate(), ShouldNotCombine(K.IGNORE_CODING)]
        if target.kind.is_type:
            rules.append(MustCombine(CODING_MODES))
        else:
            rules.append(Expect((*TYPE_KINDS, DeclKind.ENUM_CASE, DeclKind.VARIABLE)))
        if target.kind is DeclKind.VARIABLE:
            rules.append(AttachedToInitialized())
        return rules


@dataclass(frozen=True)
class IgnoreEncoding(Attribute):
    """Skip encoding, always or when `condition(value)` is true."""

    kind = K.IGNORE_ENCODING
    scope = Scope.ENCODE
    condition: str | None = None

    @classmethod
    def parse(cls, node: AttributeNode) -> Attribute:
        if not node.arguments:
            return cls(node)
        return cls(node, _single(node).expression)

    def rules(self, target: Target) -> list[Rule]:
        rules: list[Rule] = [ShouldNotDuplicate(), ShouldNotCombine(K.IGNORE_CODING)]
        if target.kind.is_type:
            rules.append(MustCombine(CODING_MODES))
        else:
            rules.append(Expect((*TYPE_KINDS, DeclKind.ENUM_CASE, DeclKind.VARIABLE)))
        return rules


VARIANTS: dict[str, type[Attribute]] = {
    variant.kind.value: variant
    for variant in (
        Codable,
        Decodable,
        Encodable,
        MemberInit,
        Inherits,
        CodingKeys,
        IgnoreCodingInitialized,
        UnTagged,
        CodedAt,
        DecodedAt,
        EncodedAt,
        CodedIn,
        ContentAt,
        CodedAs,
        CodedBy,
        Default,
        GroupedDefault,
        IgnoreCoding,
        IgnoreDecoding,
        IgnoreEncoding,
    )
}


def is_recognized(name: str) -> bool:
    return name in VARIANTS


def parse_attribute(node: AttributeNode) -> Attribute | None:
    """Parse a raw attribute; returns None for names this model doesn't own.

    Raises:
        AttributeParseError: If the arguments don't fit the attribute.
    """
    variant = VARIANTS.get(node.name)
    if variant is None:
        return None
    return variant.parse(node)


def validate(attr: Attribute, target: Target) -> list[Diagnostic]:
    """Check one attribute against all of its rules for `target`."""
    diagnostics = []
    for rule in attr.rules(target):
        diagnostic = rule.check(attr, target)
        if diagnostic is not None:
            diagnostics.append(diagnostic)
    return diagnostics


def parse_all(
    nodes: Sequence[AttributeNode],
) -> tuple[list[Attribute], list[Diagnostic]]:
    """Parse every recognized node, turning parse failures into misuse."""
    parsed: list[Attribute] = []
    diagnostics: list[Diagnostic] = []
    for node in nodes:
        try:
            attr = parse_attribute(node)
        except AttributeParseError as e:
            diagnostics.append(misuse(e.attribute, str(e), node.location))
            continue
        if attr is not None:
            parsed.append(attr)
    return parsed, diagnostics


def resolve(target: Target) -> tuple[list[Attribute], list[Diagnostic]]:
    """Validate every attribute of `target`.

    Returns the attributes that passed (those with error diagnostics are
    dropped so their effect is skipped) and all diagnostics found.
    """
    kept: list[Attribute] = []
    diagnostics: list[Diagnostic] = []
    for attr in target.attributes:
        found = validate(attr, target)
        diagnostics.extend(found)
        if not any(diagnostic.is_error for diagnostic in found):
            kept.append(attr)
    return kept, diagnostics


def first(attributes: Sequence[Attribute], kind: AttributeKind) -> Attribute | None:
    for attr in attributes:
        if attr.kind is kind:
            return attr
    return None
