"""Case synthesizer: picks and emits the coding strategy of an enum.

Exactly one strategy applies per enum, selected by the attributes on the
declaration:

- raw-value enums (``enum.Enum`` subclasses) decode their raw scalar and
  fall back to case identifiers
- ``@UnTagged`` tries every case in order
- ``@CodedAt``/``@DecodedAt``/``@EncodedAt`` read a discriminator, with the
  content inline (internally tagged) or under ``@ContentAt`` (adjacently)
- otherwise the single key present selects the case (externally tagged)
"""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass, field
from enum import Enum

from codablegen.core import attributes as attrs
from codablegen.core import syntax
from codablegen.core.analyzer import (
    HelperCoderRef,
    MemberContext,
    MemberModel,
    TypeModel,
    normalize_member,
    path_conflicts,
    register_keys,
    resolve_member,
    unwrap_optional,
)
from codablegen.core.attributes import AttributeKind as K
from codablegen.core.emitter import (
    GENERATED_NAMES,
    CodingSite,
    ContainerLayout,
    decode_member,
    decode_members,
    encode_members,
    keys_alias,
)
from codablegen.core.keys import CodingKeysMap
from codablegen.core.models import AssociatedDecl, CaseDecl, DeclKind, MemberDecl
from codablegen.core.paths import CodingPath, DecodingFallback

logger = logging.getLogger(__name__)

RESERVED_LOCALS = frozenset(
    {
        "cls",
        "self",
        "decoder",
        "encoder",
        "container",
        "content_decoder",
        "content_encoder",
        "content_container",
        "case_key",
        "tag",
        "raw",
        "identifier",
        "CodingKeys",
        "DecodingKeys",
        *GENERATED_NAMES,
    }
)


class CaseStrategyKind(Enum):
    EXTERNALLY_TAGGED = "externally_tagged"
    INTERNALLY_TAGGED = "internally_tagged"
    ADJACENTLY_TAGGED = "adjacently_tagged"
    UNTAGGED = "untagged"
    RAW_VALUE = "raw_value"


@dataclass(frozen=True)
class TagSpec:
    """Discriminator location, type and coder for tagged strategies."""

    decode_path: CodingPath
    encode_path: CodingPath
    type_expr: str | None = None
    coder: HelperCoderRef | None = None
    content_path: CodingPath | None = None

    @property
    def optional(self) -> bool:
        return self.type_expr is not None and unwrap_optional(self.type_expr) != self.type_expr


@dataclass
class CaseModel:
    """One enum case with its normalized associated values."""

    declaration: CaseDecl
    values: list[MemberModel] = field(default_factory=list)
    tag_values: tuple[str, ...] = ()
    identifiers: tuple[str, ...] = ()
    decodes: bool = True
    encodes: bool = True
    encode_condition: str | None = None
    encode_value: str | None = None

    @property
    def name(self) -> str:
        return self.declaration.name

    @property
    def encode_tag(self) -> str:
        """Discriminator written on encode: the first literal tag value."""
        return self.encode_value or repr(self.name)


@dataclass
class CaseStrategy:
    kind: CaseStrategyKind
    cases: list[CaseModel]
    tag: TagSpec | None = None
    fallback_case: CaseModel | None = None
    decoding_keys: CodingKeysMap | None = None

    @property
    def decodable_cases(self) -> list[CaseModel]:
        return [case for case in self.cases if case.decodes]

    @property
    def encodable_cases(self) -> list[CaseModel]:
        return [case for case in self.cases if case.encodes]


def select_kind(model: TypeModel) -> CaseStrategyKind:
    if model.declaration.is_raw_representable:
        return CaseStrategyKind.RAW_VALUE
    if model.attribute(K.UNTAGGED):
        return CaseStrategyKind.UNTAGGED
    if model.attribute(K.CODED_AT) or model.attribute(K.DECODED_AT) or model.attribute(K.ENCODED_AT):
        if model.attribute(K.CONTENT_AT):
            return CaseStrategyKind.ADJACENTLY_TAGGED
        return CaseStrategyKind.INTERNALLY_TAGGED
    return CaseStrategyKind.EXTERNALLY_TAGGED


def _tag_spec(model: TypeModel) -> TagSpec:
    coded_at = model.attribute(K.CODED_AT)
    decoded_at = model.attribute(K.DECODED_AT)
    encoded_at = model.attribute(K.ENCODED_AT)
    path: CodingPath = coded_at.path if isinstance(coded_at, attrs.CodedAt) else ()
    decode_path = decoded_at.path if isinstance(decoded_at, attrs.DecodedAt) else path
    encode_path = encoded_at.path if isinstance(encoded_at, attrs.EncodedAt) else path
    coded_as = model.attribute(K.CODED_AS)
    coded_by = model.attribute(K.CODED_BY)
    content_at = model.attribute(K.CONTENT_AT)
    return TagSpec(
        decode_path=decode_path,
        encode_path=encode_path,
        type_expr=coded_as.type_expr if isinstance(coded_as, attrs.CodedAs) else None,
        coder=(
            HelperCoderRef(coded_by.expression, whole_coder=not decode_path)
            if isinstance(coded_by, attrs.CodedBy)
            else None
        ),
        content_path=content_at.path if isinstance(content_at, attrs.ContentAt) else None,
    )


def _associated_member(value: AssociatedDecl) -> MemberDecl:
    return MemberDecl(
        name=value.name,
        type_expr=value.type_expr,
        attributes=value.attributes,
        optional=value.optional,
        initializer=value.default,
        location=value.location,
    )


def _case_model(
    model: TypeModel,
    case: CaseDecl,
    kind: CaseStrategyKind,
) -> CaseModel:
    diagnostics = model.diagnostics
    parsed, found = attrs.parse_all(case.attributes)
    diagnostics.extend(found)
    kept, found = attrs.resolve(
        attrs.Target(kind=DeclKind.ENUM_CASE, attributes=tuple(parsed), name=case.name)
    )
    diagnostics.extend(found)

    coding_keys = attrs.first(kept, K.CODING_KEYS)
    context = MemberContext(
        strategy=coding_keys.strategy if isinstance(coding_keys, attrs.CodingKeys) else model.strategy,
        value_coder_types=model.value_coder_types,
        ignore_initialized=model.ignore_initialized
        or attrs.first(kept, K.IGNORE_CODING_INITIALIZED) is not None,
        force_throw=kind is CaseStrategyKind.UNTAGGED,
    )
    values = []
    for index, value in enumerate(case.values):
        member = _associated_member(value)
        usable = resolve_member(member, DeclKind.VARIABLE, diagnostics)
        normalized = normalize_member(member, index, usable, context, labeled=value.labeled)
        if normalized is not None:
            values.append(normalized)
    diagnostics.extend(path_conflicts(values))

    coded_as = attrs.first(kept, K.CODED_AS)
    literals: tuple[object, ...] = ()
    tag_values: tuple[str, ...] = (repr(case.name),)
    if isinstance(coded_as, attrs.CodedAs) and coded_as.values:
        literals = coded_as.literals
        tag_values = tuple(arg.expression for arg in coded_as.values)
    strings = tuple(value for value in literals if isinstance(value, str))
    if kind is CaseStrategyKind.RAW_VALUE:
        identifiers = (case.name, *strings)
    else:
        identifiers = strings or (case.name,)

    ignore_encoding = attrs.first(kept, K.IGNORE_ENCODING)
    condition = (
        ignore_encoding.condition if isinstance(ignore_encoding, attrs.IgnoreEncoding) else None
    )
    ignored = attrs.first(kept, K.IGNORE_CODING) is not None
    return CaseModel(
        declaration=case,
        values=values,
        tag_values=tag_values,
        identifiers=identifiers,
        decodes=not ignored and attrs.first(kept, K.IGNORE_DECODING) is None,
        encodes=not ignored and (ignore_encoding is None or condition is not None),
        encode_condition=condition,
        encode_value=repr(literals[0]) if literals else None,
    )


def synthesize(model: TypeModel) -> CaseStrategy:
    """Build the case strategy of an enum and register its keys."""
    kind = select_kind(model)
    strategy = CaseStrategy(kind=kind, cases=[])
    if kind in (CaseStrategyKind.INTERNALLY_TAGGED, CaseStrategyKind.ADJACENTLY_TAGGED):
        strategy.tag = _tag_spec(model)
        for segment in (
            *strategy.tag.decode_path,
            *strategy.tag.encode_path,
            *(strategy.tag.content_path or ()),
        ):
            model.keys.add(segment)
    if kind is CaseStrategyKind.EXTERNALLY_TAGGED:
        strategy.decoding_keys = CodingKeysMap("DecodingKeys")

    for case in model.declaration.cases:
        case_model = _case_model(model, case, kind)
        strategy.cases.append(case_model)
        if kind is CaseStrategyKind.EXTERNALLY_TAGGED:
            if case_model.decodes:
                for identifier in case_model.identifiers:
                    strategy.decoding_keys.add(identifier)  # type: ignore[union-attr]
            if case_model.encodes:
                model.keys.add(case_model.identifiers[0])
        register_keys(model.keys, case_model.values)

    if kind is CaseStrategyKind.UNTAGGED:
        strategy.fallback_case = next(
            (case for case in strategy.decodable_cases if not case.values), None
        )
    logger.debug(f"{model.name}: {kind.value} with {len(strategy.cases)} cases")
    return strategy


# Emission


def local_name(name: str) -> str:
    """Local variable holding an associated value inside generated code."""
    if name in RESERVED_LOCALS or name.endswith("_container"):
        return f"{name}_"
    return name


def _local_target(member: MemberModel) -> str:
    return local_name(member.name)


def _arguments(case: CaseModel) -> str:
    parts = []
    for value in case.values:
        local = local_name(value.name)
        parts.append(f"{value.name}={local}" if value.labeled else local)
    return ", ".join(parts)


def _case_return(case: CaseModel) -> ast.stmt:
    return syntax.stmt(f"return cls.{case.name}({_arguments(case)})")


def _raise(message: str, coder: str = "decoder") -> ast.stmt:
    return syntax.stmt(f"raise TypeMismatchError(cls, {coder}.coding_path, {message!r})")


def _decode_site(model: TypeModel) -> CodingSite:
    return CodingSite("content_decoder", "content_container", model.keys, _local_target)


def _encode_site(model: TypeModel) -> CodingSite:
    return CodingSite("content_encoder", "content_container", model.keys, _local_target)


def _bindings(case: CaseModel) -> list[ast.stmt]:
    return [
        syntax.stmt(f"{local_name(value.name)} = self.values[{value.name!r}]")
        for value in case.values
    ]


def _guarded(case: CaseModel, statements: list[ast.stmt]) -> list[ast.stmt]:
    if not case.encode_condition:
        return statements
    return [syntax.if_(f"not ({case.encode_condition})({_arguments(case)})", statements)]


def _encode_arms(arms: list[tuple[str, list[ast.stmt]]]) -> list[ast.stmt]:
    return syntax.if_chain(arms) if arms else [ast.Pass()]


def _external_decode(model: TypeModel, strategy: CaseStrategy) -> list[ast.stmt]:
    keys = strategy.decoding_keys
    assert keys is not None
    body = keys_alias(model, model.keys) + keys_alias(model, keys)
    body += [
        syntax.stmt(f"container = decoder.container({keys.type_name})"),
        syntax.if_(
            "len(container.all_keys) != 1",
            [_raise("Invalid number of keys found, expected one.")],
        ),
        syntax.stmt("case_key = container.all_keys[0]"),
        syntax.stmt("content_decoder = container.super_decoder(case_key)"),
    ]
    site = _decode_site(model)
    for case in strategy.decodable_cases:
        references = [keys.reference(identifier) for identifier in case.identifiers]
        if len(references) == 1:
            test = f"case_key == {references[0]}"
        else:
            test = f"case_key in ({', '.join(references)})"
        arm = decode_members(site, case.values) + [_case_return(case)]
        body.append(syntax.if_(test, arm))
    body.append(_raise("Couldn't match any cases."))
    return body


def _external_encode(model: TypeModel, strategy: CaseStrategy) -> list[ast.stmt]:
    body = keys_alias(model, model.keys)
    body.append(syntax.stmt(f"container = encoder.container({model.keys.type_name})"))
    site = _encode_site(model)
    arms = []
    for case in strategy.encodable_cases:
        key = model.keys.reference(case.identifiers[0])
        content = [syntax.stmt(f"content_encoder = container.super_encoder({key})")]
        content += encode_members(site, case.values)
        arms.append((f"self.case == {case.name!r}", _bindings(case) + _guarded(case, content)))
    return body + _encode_arms(arms)


def _tag_members(tag: TagSpec, decode: bool) -> list[MemberModel]:
    """Discriminator and content pseudo-members sharing one container layout."""
    typed = (tag.type_expr is not None and not tag.optional) or tag.coder is not None
    value_type = unwrap_optional(tag.type_expr) if tag.type_expr else "object"
    members = [
        MemberModel(
            name="tag",
            type_expr=tag.type_expr or "object",
            value_type=value_type,
            index=0,
            optional=tag.optional,
            decode_path=tag.decode_path if decode else None,
            encode_path=None if decode else tag.encode_path,
            decode_coder=tag.coder,
            encode_coder=tag.coder,
            fallback=DecodingFallback.THROW if typed else DecodingFallback.IF_MISSING,
        )
    ]
    if tag.content_path is not None:
        members.append(
            MemberModel(
                name="content",
                type_expr="object",
                value_type="object",
                index=1,
                decode_path=tag.content_path if decode else None,
                encode_path=None if decode else tag.content_path,
            )
        )
    return members


def _tagged_decode(model: TypeModel, strategy: CaseStrategy) -> list[ast.stmt]:
    tag = strategy.tag
    assert tag is not None
    site = CodingSite("decoder", "container", model.keys, lambda member: member.name)
    members = _tag_members(tag, decode=True)
    layout = ContainerLayout(
        site, [member.decode_path for member in members], [member.fallback for member in members]
    )
    body = keys_alias(model, model.keys)
    body += layout.decode_declarations()
    body += decode_member(site, layout, members[0])
    if tag.content_path:
        container, _ = layout.locate(tag.content_path[:-1])
        key = model.keys.reference(tag.content_path[-1])
        body.append(syntax.stmt(f"content_decoder = {container}.super_decoder({key})"))
    else:
        body.append(syntax.stmt("content_decoder = decoder"))

    case_site = _decode_site(model)
    for case in strategy.decodable_cases:
        arm = decode_members(case_site, case.values) + [_case_return(case)]
        body.append(syntax.if_(f"match_tag(tag, {', '.join(case.tag_values)})", arm))
    body.append(_raise("Couldn't match any cases."))
    return body


def _tagged_encode(model: TypeModel, strategy: CaseStrategy) -> list[ast.stmt]:
    tag = strategy.tag
    assert tag is not None
    site = CodingSite("encoder", "container", model.keys, lambda member: member.name)
    members = _tag_members(tag, decode=False)
    layout = ContainerLayout(site, [member.encode_path for member in members])
    body = keys_alias(model, model.keys)
    body += layout.encode_declarations(force_root=True)

    case_site = _encode_site(model)
    arms = []
    for case in strategy.encodable_cases:
        statements = []
        if tag.encode_path:
            container, _ = layout.locate(tag.encode_path[:-1])
            key = model.keys.reference(tag.encode_path[-1])
            if tag.coder:
                method = "encode_if_present_to" if tag.optional else "encode_to"
                line = f"{tag.coder.expression}.{method}({container}, {case.encode_tag}, {key})"
            else:
                method = "encode_if_present" if tag.optional else "encode"
                line = f"{container}.{method}({case.encode_tag}, {key})"
            statements.append(syntax.stmt(line))
        if case.values:
            if tag.content_path:
                container, _ = layout.locate(tag.content_path[:-1])
                key = model.keys.reference(tag.content_path[-1])
                statements.append(
                    syntax.stmt(f"content_encoder = {container}.super_encoder({key})")
                )
            else:
                statements.append(syntax.stmt("content_encoder = encoder"))
            statements += encode_members(case_site, case.values)
        arms.append((f"self.case == {case.name!r}", _bindings(case) + _guarded(case, statements)))
    return body + _encode_arms(arms)


def _untagged_decode(model: TypeModel, strategy: CaseStrategy) -> list[ast.stmt]:
    body = keys_alias(model, model.keys)
    site = _decode_site(model)
    for case in strategy.decodable_cases:
        if not case.values:
            continue
        attempt = [syntax.stmt("content_decoder = decoder.snapshot()")]
        attempt += decode_members(site, case.values)
        body.append(
            syntax.try_(
                attempt,
                "DecodingError",
                [ast.Pass()],
                orelse=[_case_return(case)],
            )
        )
    if strategy.fallback_case is not None:
        body.append(_case_return(strategy.fallback_case))
    else:
        body.append(_raise("Couldn't decode any case."))
    return body


def _untagged_encode(model: TypeModel, strategy: CaseStrategy) -> list[ast.stmt]:
    body = keys_alias(model, model.keys)
    site = _encode_site(model)
    arms = []
    for case in strategy.encodable_cases:
        if case.values:
            statements = [syntax.stmt("content_encoder = encoder")]
            statements += encode_members(site, case.values)
        else:
            statements = [syntax.stmt("encoder.container(CodingKey)")]
        arms.append((f"self.case == {case.name!r}", _bindings(case) + _guarded(case, statements)))
    return body + _encode_arms(arms)


def _raw_decode(model: TypeModel, strategy: CaseStrategy) -> list[ast.stmt]:
    raw_type = model.declaration.raw_type or "object"
    cases = strategy.decodable_cases
    raw_matches = [
        syntax.if_(f"raw == cls.{case.name}.value", [syntax.stmt(f"return cls.{case.name}")])
        for case in cases
    ]
    identifier_matches = [
        syntax.if_(
            f"match_tag(identifier, {', '.join(repr(i) for i in case.identifiers)})",
            [syntax.stmt(f"return cls.{case.name}")],
        )
        for case in cases
    ]
    return [
        syntax.try_(
            [syntax.stmt(f"raw = decoder.snapshot().decode({raw_type})")],
            "DecodingError",
            [ast.Pass()],
            orelse=raw_matches,
        ),
        syntax.try_(
            [syntax.stmt("identifier = decoder.snapshot().decode(str)")],
            "DecodingError",
            [ast.Pass()],
            orelse=identifier_matches,
        ),
        _raise("Couldn't match any cases."),
    ]


def _raw_encode(model: TypeModel, strategy: CaseStrategy) -> list[ast.stmt]:
    body: list[ast.stmt] = []
    skipped = [case for case in strategy.cases if not case.encodes]
    if skipped:
        qualified = model.declaration.qualified_name
        members = ", ".join(f"{qualified}.{case.name}" for case in skipped)
        body.append(syntax.if_(f"self in ({members},)", [syntax.stmt("return")]))
    body.append(syntax.stmt("encoder.encode(self.value)"))
    return body


_DECODERS = {
    CaseStrategyKind.EXTERNALLY_TAGGED: _external_decode,
    CaseStrategyKind.INTERNALLY_TAGGED: _tagged_decode,
    CaseStrategyKind.ADJACENTLY_TAGGED: _tagged_decode,
    CaseStrategyKind.UNTAGGED: _untagged_decode,
    CaseStrategyKind.RAW_VALUE: _raw_decode,
}

_ENCODERS = {
    CaseStrategyKind.EXTERNALLY_TAGGED: _external_encode,
    CaseStrategyKind.INTERNALLY_TAGGED: _tagged_encode,
    CaseStrategyKind.ADJACENTLY_TAGGED: _tagged_encode,
    CaseStrategyKind.UNTAGGED: _untagged_encode,
    CaseStrategyKind.RAW_VALUE: _raw_encode,
}


def enum_decode(model: TypeModel, strategy: CaseStrategy) -> list[ast.FunctionDef]:
    """`from_decoder` dispatching on the strategy."""
    if not strategy.decodable_cases:
        body = [_raise("No decodable case present.")]
    else:
        body = _DECODERS[strategy.kind](model, strategy)
    return [syntax.function("from_decoder", "cls, decoder", body, decorators=["classmethod"])]


def enum_encode(model: TypeModel, strategy: CaseStrategy) -> list[ast.FunctionDef]:
    body = _ENCODERS[strategy.kind](model, strategy)
    return [syntax.function("encode_to", "self, encoder", body)]


def case_constructor(model: TypeModel, case: CaseDecl) -> ast.FunctionDef:
    """Classmethod building the case, replacing its stub."""
    positional = []
    regular = []
    keyword = []
    for value in case.values:
        text = f"{value.name}: {value.type_expr}"
        if value.default is not None:
            text += f" = {value.default}"
        if not value.labeled:
            positional.append(text)
        elif value.keyword_only:
            keyword.append(text)
        else:
            regular.append(text)
    names = {value.name for value in case.values}
    owner = "cls"
    while owner in names:
        owner += "_"
    params = [owner, *positional]
    if positional:
        params.append("/")
    params += regular
    if keyword:
        params += ["*", *keyword]
    arguments = ", ".join([repr(case.name), *(f"{v.name}={v.name}" for v in case.values)])
    return syntax.function(
        case.name,
        ", ".join(params),
        [syntax.stmt(f"return {owner}({arguments})")],
        decorators=["classmethod"],
        returns=model.declaration.name,
    )
