"""Declaration analyzer: normalizes a declaration into a per-member model.

Each member is reduced to a small set of orthogonal fields (paths per
direction, default, helper coder, ignore flags, encode condition). The
emitter generates statements from those fields alone, so attribute
combinations compose instead of being special-cased.
"""

from __future__ import annotations

import ast
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from codablegen.core import attributes as attrs
from codablegen.core.attributes import AttributeKind as K
from codablegen.core.diagnostics import Diagnostic, DiagnosticCollector, Scope, Severity
from codablegen.core.keys import CodingKeysMap, KeyStrategy
from codablegen.core.models import Declaration, DeclKind, MemberDecl, SourceLocation
from codablegen.core.paths import CodingPath, DecodingFallback, find_structural_conflicts

logger = logging.getLogger(__name__)

PRIMITIVE_TYPES = ("bool", "int", "float", "str")


class CodingMode(Enum):
    """Which coding artifacts a type requests."""

    BOTH = "both"
    DECODE_ONLY = "decode_only"
    ENCODE_ONLY = "encode_only"

    @property
    def decodes(self) -> bool:
        return self is not CodingMode.ENCODE_ONLY

    @property
    def encodes(self) -> bool:
        return self is not CodingMode.DECODE_ONLY


_MODES = {
    K.CODABLE: CodingMode.BOTH,
    K.DECODABLE: CodingMode.DECODE_ONLY,
    K.ENCODABLE: CodingMode.ENCODE_ONLY,
}


@dataclass(frozen=True)
class HelperCoderRef:
    """An externally supplied coder replacing the default value codec.

    `whole_coder` is set when the member has an empty path, so the coder
    works on the decoder/encoder itself rather than on a keyed container.
    """

    expression: str
    whole_coder: bool = False


@dataclass(frozen=True)
class MemberModel:
    """A normalized member: stored property or associated value.

    A `None` path means the member is not coded in that direction.
    """

    name: str
    type_expr: str
    value_type: str
    index: int
    optional: bool = False
    decode_path: CodingPath | None = None
    encode_path: CodingPath | None = None
    alternate_keys: tuple[str, ...] = ()
    default: str | None = None
    decode_coder: HelperCoderRef | None = None
    encode_coder: HelperCoderRef | None = None
    fallback: DecodingFallback = DecodingFallback.THROW
    encode_condition: str | None = None
    initializer: str | None = None
    in_init: bool = True
    labeled: bool = True
    location: SourceLocation | None = None

    @property
    def decodes(self) -> bool:
        return self.decode_path is not None

    @property
    def encodes(self) -> bool:
        return self.encode_path is not None

    @property
    def ignored_value(self) -> str:
        """Expression assigned when the member is not decoded."""
        if self.initializer is not None:
            return self.initializer
        return "None"

    @property
    def alternate_paths(self) -> tuple[CodingPath, ...]:
        if not self.decode_path:
            return ()
        return tuple(self.decode_path[:-1] + (key,) for key in self.alternate_keys)


@dataclass
class TypeModel:
    """Everything downstream stages need to know about one declaration."""

    declaration: Declaration
    mode: CodingMode | None
    attributes: list[attrs.Attribute]
    diagnostics: DiagnosticCollector
    members: list[MemberModel] = field(default_factory=list)
    strategy: KeyStrategy | None = None
    keys: CodingKeysMap = field(default_factory=CodingKeysMap)
    inherits_decode: bool = False
    inherits_encode: bool = False
    member_init: bool = False
    ignore_initialized: bool = False
    value_coder_types: tuple[str, ...] | None = None

    @property
    def name(self) -> str:
        return self.declaration.name

    @property
    def decodes(self) -> bool:
        return (
            self.mode is not None
            and self.mode.decodes
            and attrs.first(self.attributes, K.IGNORE_DECODING) is None
        )

    @property
    def encodes(self) -> bool:
        return (
            self.mode is not None
            and self.mode.encodes
            and attrs.first(self.attributes, K.IGNORE_ENCODING) is None
        )

    def attribute(self, kind: K) -> attrs.Attribute | None:
        return attrs.first(self.attributes, kind)


def unwrap_optional(type_expr: str) -> str:
    """`Optional[X]`, `X | None` and `Union[X, None]` all become `X`."""
    try:
        node = ast.parse(type_expr, mode="eval").body
    except SyntaxError:
        return type_expr
    arms = _union_arms(node)
    if arms is None:
        return type_expr
    kept = [arm for arm in arms if not _is_none(arm)]
    if len(kept) == len(arms) or not kept:
        return type_expr
    if len(kept) == 1:
        return ast.unparse(kept[0])
    return " | ".join(ast.unparse(arm) for arm in kept)


def _union_arms(node: ast.expr) -> list[ast.expr] | None:
    if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
        left = _union_arms(node.left) or [node.left]
        right = _union_arms(node.right) or [node.right]
        return left + right
    if isinstance(node, ast.Subscript):
        name = ast.unparse(node.value).rsplit(".", 1)[-1]
        if name == "Optional":
            return [node.slice, ast.Constant(None)]
        if name == "Union":
            inner = node.slice
            return list(inner.elts) if isinstance(inner, ast.Tuple) else [inner]
    return None


def _is_none(node: ast.expr) -> bool:
    if isinstance(node, ast.Constant) and node.value is None:
        return True
    return isinstance(node, ast.Name) and node.id == "NoneType"


def member_target(
    kind: DeclKind,
    attributes: Sequence[attrs.Attribute],
    member: MemberDecl,
) -> attrs.Target:
    return attrs.Target(
        kind=kind,
        attributes=tuple(attributes),
        name=member.name,
        grouped=member.grouped,
        static=member.static,
        initialized=member.initialized,
        optional=member.optional,
        mutable=member.mutable,
        computed=member.computed,
    )


@dataclass
class MemberContext:
    """Type- or case-level settings that shape member normalization."""

    strategy: KeyStrategy | None = None
    value_coder_types: tuple[str, ...] | None = None
    ignore_initialized: bool = False
    force_throw: bool = False


def normalize_member(
    member: MemberDecl,
    index: int,
    kept: Sequence[attrs.Attribute],
    context: MemberContext,
    labeled: bool = True,
) -> MemberModel | None:
    """Reduce a validated member to its orthogonal coding fields.

    Static members are never coded and return None.
    """
    if member.static:
        return None

    def get(kind: K) -> attrs.Attribute | None:
        return attrs.first(kept, kind)

    key = context.strategy.transform(member.name) if context.strategy else member.name
    coded_at = get(K.CODED_AT)
    coded_in = get(K.CODED_IN)
    if isinstance(coded_at, attrs.CodedAt):
        path: CodingPath = coded_at.path
    elif isinstance(coded_in, attrs.CodedIn):
        path = coded_in.path + (key,)
    else:
        path = (key,) if labeled else ()
    decoded_at = get(K.DECODED_AT)
    encoded_at = get(K.ENCODED_AT)
    decode_path: CodingPath | None = (
        decoded_at.path if isinstance(decoded_at, attrs.DecodedAt) else path
    )
    encode_path: CodingPath | None = (
        encoded_at.path if isinstance(encoded_at, attrs.EncodedAt) else path
    )

    alternates: tuple[str, ...] = ()
    coded_as = get(K.CODED_AS)
    if isinstance(coded_as, attrs.CodedAs) and decode_path:
        alternates = tuple(v for v in coded_as.literals if isinstance(v, str))

    value_type = unwrap_optional(member.type_expr) if member.optional else member.type_expr
    coded_by = get(K.CODED_BY)
    coder_expr: str | None = None
    if isinstance(coded_by, attrs.CodedBy):
        coder_expr = coded_by.expression
    elif context.value_coder_types is not None and value_type in (
        *PRIMITIVE_TYPES,
        *context.value_coder_types,
    ):
        coder_expr = f"ValueCoder({value_type})"

    default: str | None = None
    explicit_default = get(K.DEFAULT)
    grouped_default = get(K.GROUPED_DEFAULT)
    if isinstance(explicit_default, attrs.Default):
        default = explicit_default.expression
    elif isinstance(grouped_default, attrs.GroupedDefault):
        if member.group_index < len(grouped_default.expressions):
            default = grouped_default.expressions[member.group_index]
    elif member.initialized and member.mutable:
        default = member.initializer

    ignore_encoding = get(K.IGNORE_ENCODING)
    condition = ignore_encoding.condition if isinstance(ignore_encoding, attrs.IgnoreEncoding) else None
    ignore_decode = get(K.IGNORE_CODING) is not None or get(K.IGNORE_DECODING) is not None
    ignore_encode = get(K.IGNORE_CODING) is not None or (
        ignore_encoding is not None and condition is None
    )
    explicit = (K.CODED_IN, K.CODED_AT, K.DECODED_AT, K.ENCODED_AT, K.CODED_BY, K.DEFAULT)
    if context.ignore_initialized and member.initialized and not any(get(k) for k in explicit):
        ignore_decode = ignore_encode = True
    # initialized constants and computed properties are encoded, never decoded
    constant = member.initialized and not member.mutable
    if ignore_decode or constant:
        decode_path = None
    if ignore_encode:
        encode_path = None

    if context.force_throw:
        fallback = DecodingFallback.THROW
    elif default is not None:
        fallback = DecodingFallback.IF_ERROR
    elif member.optional:
        fallback = DecodingFallback.IF_MISSING
    else:
        fallback = DecodingFallback.THROW

    def coder(direction_path: CodingPath | None) -> HelperCoderRef | None:
        if coder_expr is None or direction_path is None:
            return None
        return HelperCoderRef(coder_expr, whole_coder=not direction_path)

    return MemberModel(
        name=member.name,
        type_expr=member.type_expr,
        value_type=value_type,
        index=index,
        optional=member.optional,
        decode_path=decode_path,
        encode_path=encode_path,
        alternate_keys=alternates,
        default=default,
        decode_coder=coder(decode_path),
        encode_coder=coder(encode_path),
        fallback=fallback,
        encode_condition=condition,
        initializer=member.initializer,
        in_init=not constant,
        labeled=labeled,
        location=member.location,
    )


def resolve_member(
    member: MemberDecl,
    kind: DeclKind,
    diagnostics: DiagnosticCollector,
) -> list[attrs.Attribute]:
    """Parse and validate a member's attributes; returns the usable ones."""
    parsed, found = attrs.parse_all(member.attributes)
    diagnostics.extend(found)
    kept, found = attrs.resolve(member_target(kind, parsed, member))
    diagnostics.extend(found)
    return kept


def register_keys(keys: CodingKeysMap, members: Sequence[MemberModel]) -> None:
    """Add every path segment in member order: decode, alternates, encode."""
    for member in members:
        for segment in member.decode_path or ():
            keys.add(segment)
        for alternate in member.alternate_keys:
            keys.add(alternate)
        for segment in member.encode_path or ():
            keys.add(segment)


def path_conflicts(
    members: Sequence[MemberModel],
) -> list[Diagnostic]:
    """Report members whose value position is another member's container."""
    diagnostics = []
    for scope, direction in ((Scope.DECODE, "decode"), (Scope.ENCODE, "encode")):
        paths = []
        for position, member in enumerate(members):
            path = member.decode_path if scope is Scope.DECODE else member.encode_path
            if path is not None:
                paths.append((position, path))
        for conflict in find_structural_conflicts(paths):
            scalar = members[conflict.scalar]
            nested = members[conflict.nested]
            diagnostics.append(
                Diagnostic(
                    severity=Severity.ERROR,
                    message_id="coding-path-conflict",
                    message=(
                        f"'{nested.name}' {direction}s nested under "
                        f"'{'.'.join(conflict.path)}', which '{scalar.name}' "
                        "uses as a value"
                    ),
                    location=nested.location,
                    scope=scope,
                )
            )
    return diagnostics


def analyze(declaration: Declaration, strict: bool = False) -> TypeModel:
    """Analyze one declaration.

    Never raises for user mistakes: misuse is collected into the model's
    diagnostics and the offending attribute's effect is skipped.
    """
    diagnostics = DiagnosticCollector(strict=strict)
    parsed, found = attrs.parse_all(declaration.attributes)
    diagnostics.extend(found)
    kept, found = attrs.resolve(
        attrs.Target(kind=declaration.kind, attributes=tuple(parsed), name=declaration.name)
    )
    diagnostics.extend(found)

    mode = None
    value_coder_types = None
    for attr in kept:
        if attr.kind in _MODES and mode is None:
            mode = _MODES[attr.kind]
            if isinstance(attr, attrs.CodingModeAttribute):
                value_coder_types = attr.value_coder_types

    coding_keys = attrs.first(kept, K.CODING_KEYS)
    inherits = attrs.first(kept, K.INHERITS)
    model = TypeModel(
        declaration=declaration,
        mode=mode,
        attributes=kept,
        diagnostics=diagnostics,
        strategy=coding_keys.strategy if isinstance(coding_keys, attrs.CodingKeys) else None,
        inherits_decode=isinstance(inherits, attrs.Inherits) and inherits.decodable,
        inherits_encode=isinstance(inherits, attrs.Inherits) and inherits.encodable,
        member_init=attrs.first(kept, K.MEMBER_INIT) is not None,
        ignore_initialized=attrs.first(kept, K.IGNORE_CODING_INITIALIZED) is not None,
        value_coder_types=value_coder_types,
    )
    logger.debug(f"Analyzing {declaration.qualified_name} ({declaration.kind.value}, mode={mode})")

    if declaration.kind is DeclKind.ENUM:
        return model

    context = MemberContext(
        strategy=model.strategy,
        value_coder_types=value_coder_types,
        ignore_initialized=model.ignore_initialized,
    )
    for index, member in enumerate(declaration.members):
        usable = resolve_member(member, DeclKind.VARIABLE, diagnostics)
        normalized = normalize_member(member, index, usable, context)
        if normalized is not None:
            model.members.append(normalized)

    diagnostics.extend(path_conflicts(model.members))
    register_keys(model.keys, model.members)
    logger.debug(f"{declaration.name}: {len(model.members)} members, {len(diagnostics)} diagnostics")
    return model
