"""Code emitter: renders the resolved model into `ast` statement trees.

The artifacts are the keys class, the decode initializer
(`from_decoder` / `init_from_decoder`), the encode method (`encode_to`) and
the memberwise initializer with its overloads. Member statements are a pure
function of a `MemberModel`, so every feature combination is handled by
composition.
"""

from __future__ import annotations

import ast
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from codablegen.core import syntax
from codablegen.core.analyzer import MemberModel, TypeModel
from codablegen.core.keys import CodingKeysMap, identifier_for
from codablegen.core.paths import CodingPath, DecodingFallback, PathNode, PathTrie

# Runtime names generated code may reference without the user importing them.
GENERATED_NAMES = (
    "CodingKey",
    "DecodingError",
    "TypeMismatchError",
    "match_tag",
    "MISSING",
    "ValueCoder",
)


@dataclass
class CodingSite:
    """Where a group of members is coded.

    `coder` is the decoder/encoder variable, `root` the root container
    variable and `target` maps a member to the expression holding its value.
    """

    coder: str
    root: str
    keys: CodingKeysMap
    target: Callable[[MemberModel], str]
    container_keys: str | None = None

    @property
    def keys_name(self) -> str:
        return self.keys.type_name if len(self.keys) else "CodingKey"

    @property
    def root_keys(self) -> str:
        return self.container_keys or self.keys_name

    def key(self, segment: str) -> str:
        return self.keys.reference(segment)


def self_target(member: MemberModel) -> str:
    return f"self.{member.name}"


class ContainerLayout:
    """Container variables for one direction of one coding site.

    Built from the members' full paths; container names derive from the
    prefix chain, so the same prefix always maps to the same variable.
    """

    __slots__ = ("site", "trie", "_fallbacks", "_names", "_nullable", "_taken")

    def __init__(
        self,
        site: CodingSite,
        paths: Sequence[CodingPath | None],
        fallbacks: Sequence[DecodingFallback] = (),
    ) -> None:
        self.site = site
        self.trie = PathTrie()
        self._fallbacks = list(fallbacks) or [DecodingFallback.THROW] * len(paths)
        self._names: dict[int, str] = {PathTrie.ROOT: site.root}
        self._nullable: dict[int, bool] = {}
        self._taken = {site.root}
        for position, path in enumerate(paths):
            if path is not None:
                self.trie.insert(path, position)

    def _fallback(self, node: PathNode) -> DecodingFallback:
        return self.trie.fallback(node.index, self._fallbacks.__getitem__)

    def _name(self, node: PathNode) -> str:
        existing = self._names.get(node.index)
        if existing is not None:
            return existing
        parent = self._name(self.trie.node(node.parent))  # type: ignore[arg-type]
        base = f"{identifier_for(node.key).rstrip('_')}_{parent}"  # type: ignore[arg-type]
        name = base
        suffix = 1
        while name in self._taken:
            name = f"{base}_{suffix}"
            suffix += 1
        self._taken.add(name)
        self._names[node.index] = name
        return name

    def locate(self, prefix: CodingPath) -> tuple[str, bool]:
        """Variable and nullability of the container addressed by `prefix`."""
        index = self.trie.container_for(prefix)
        node = self.trie.node(index)
        return self._name(node), self._nullable.get(index, False)

    def decode_declarations(self) -> list[ast.stmt]:
        if not self.trie.has_keyed:
            return []
        statements: list[ast.stmt] = []
        for node in self.trie.containers():
            fallback = self._fallback(node)
            name = self._name(node)
            if node.is_root:
                fetch = syntax.stmt(f"{name} = {self.site.coder}.container({self.site.root_keys})")
                if fallback is DecodingFallback.IF_ERROR:
                    statements.append(
                        syntax.try_([fetch], "DecodingError", [syntax.stmt(f"{name} = None")])
                    )
                    self._nullable[node.index] = True
                else:
                    statements.append(fetch)
                continue

            parent = self.trie.node(node.parent)  # type: ignore[arg-type]
            parent_name = self._name(parent)
            parent_nullable = self._nullable.get(parent.index, False)
            key = self.site.key(node.key)  # type: ignore[arg-type]
            keys = self.site.keys_name
            if fallback is DecodingFallback.THROW:
                fetched = [syntax.stmt(f"{name} = {parent_name}.nested_container({keys}, {key})")]
            else:
                fetch = syntax.stmt(
                    f"{name} = {parent_name}.nested_container_if_present({keys}, {key})"
                )
                if fallback is DecodingFallback.IF_ERROR:
                    fetched = [
                        syntax.try_([fetch], "DecodingError", [syntax.stmt(f"{name} = None")])
                    ]
                else:
                    fetched = [fetch]
            if parent_nullable:
                fetched = [
                    syntax.if_(
                        f"{parent_name} is not None",
                        fetched,
                        [syntax.stmt(f"{name} = None")],
                    )
                ]
            statements.extend(fetched)
            self._nullable[node.index] = parent_nullable or fallback is not DecodingFallback.THROW
        return statements

    def encode_declarations(self, force_root: bool = False) -> list[ast.stmt]:
        if not (self.trie.has_keyed or force_root):
            return []
        statements: list[ast.stmt] = []
        for node in self.trie.containers():
            name = self._name(node)
            if node.is_root:
                statements.append(
                    syntax.stmt(f"{name} = {self.site.coder}.container({self.site.root_keys})")
                )
                continue
            parent_name = self._name(self.trie.node(node.parent))  # type: ignore[arg-type]
            key = self.site.key(node.key)  # type: ignore[arg-type]
            statements.append(
                syntax.stmt(
                    f"{name} = {parent_name}.nested_container({self.site.keys_name}, {key})"
                )
            )
        return statements


def decode_layout(site: CodingSite, members: Sequence[MemberModel]) -> ContainerLayout:
    return ContainerLayout(
        site,
        [member.decode_path for member in members],
        [member.fallback for member in members],
    )


def encode_layout(site: CodingSite, members: Sequence[MemberModel]) -> ContainerLayout:
    return ContainerLayout(site, [member.encode_path for member in members])


def decode_member(site: CodingSite, layout: ContainerLayout, member: MemberModel) -> list[ast.stmt]:
    """Statements assigning one member's decoded value to its target."""
    target = site.target(member)
    if member.decode_path is None:
        if not member.in_init:
            return []
        return [syntax.stmt(f"{target} = {member.ignored_value}")]

    coder = member.decode_coder.expression if member.decode_coder else None
    value_type = member.value_type
    container = None
    nullable = False
    if not member.decode_path:
        if coder:
            fetch = f"{coder}.decode({site.coder})"
            fetch_if_present = f"{coder}.decode_if_present({site.coder})"
        else:
            fetch = f"{site.coder}.decode({value_type})"
            fetch_if_present = f"{site.coder}.decode_if_present({value_type})"
    else:
        container, nullable = layout.locate(member.decode_path[:-1])
        key = site.key(member.decode_path[-1])
        if member.alternate_keys:
            alternates = ", ".join(site.key(k) for k in member.alternate_keys)
            key = f"{container}.select_key({key}, {alternates})"
        if coder:
            fetch = f"{coder}.decode_from({container}, {key})"
            fetch_if_present = f"{coder}.decode_if_present_from({container}, {key})"
        else:
            fetch = f"{container}.decode({value_type}, {key})"
            fetch_if_present = f"{container}.decode_if_present({value_type}, {key})"

    missing = "None"
    if member.fallback is DecodingFallback.THROW:
        body: list[ast.stmt] = [syntax.stmt(f"{target} = {fetch}")]
    elif member.fallback is DecodingFallback.IF_MISSING:
        body = [syntax.stmt(f"{target} = {fetch_if_present}")]
    else:
        missing = member.default or "None"
        body = [
            syntax.try_(
                [
                    syntax.stmt(f"{target} = {fetch_if_present}"),
                    syntax.if_(f"{target} is None", [syntax.stmt(f"{target} = {missing}")]),
                ],
                "DecodingError",
                [syntax.stmt(f"{target} = {missing}")],
            )
        ]
    if nullable:
        body = [
            syntax.if_(f"{container} is not None", body, [syntax.stmt(f"{target} = {missing}")])
        ]
    return body


def encode_member(site: CodingSite, layout: ContainerLayout, member: MemberModel) -> list[ast.stmt]:
    """Statements writing one member's value, guarded by its condition."""
    if member.encode_path is None:
        return []
    value = site.target(member)
    coder = member.encode_coder.expression if member.encode_coder else None
    optional = member.optional
    if not member.encode_path:
        method = "encode_if_present" if optional else "encode"
        if coder:
            line = f"{coder}.{method}({value}, {site.coder})"
        else:
            line = f"{site.coder}.{method}({value})"
    else:
        container, _ = layout.locate(member.encode_path[:-1])
        key = site.key(member.encode_path[-1])
        if coder:
            method = "encode_if_present_to" if optional else "encode_to"
            line = f"{coder}.{method}({container}, {value}, {key})"
        else:
            method = "encode_if_present" if optional else "encode"
            line = f"{container}.{method}({value}, {key})"
    statement = syntax.stmt(line)
    if member.encode_condition:
        return [syntax.if_(f"not ({member.encode_condition})({value})", [statement])]
    return [statement]


def decode_members(site: CodingSite, members: Sequence[MemberModel]) -> list[ast.stmt]:
    """Containers top-down, then members in declaration order."""
    layout = decode_layout(site, members)
    statements = layout.decode_declarations()
    for member in members:
        statements.extend(decode_member(site, layout, member))
    return statements


def encode_members(
    site: CodingSite,
    members: Sequence[MemberModel],
    force_root: bool = False,
) -> list[ast.stmt]:
    layout = encode_layout(site, members)
    statements = layout.encode_declarations(force_root=force_root)
    for member in members:
        statements.extend(encode_member(site, layout, member))
    return statements


def keys_class(keys: CodingKeysMap) -> ast.ClassDef:
    """`class CodingKeys(CodingKey)` mapping identifiers to key strings."""
    body = [syntax.stmt(f"{alias} = {key!r}") for alias, key in keys.items()]
    return syntax.class_def(keys.type_name, ["CodingKey"], body)


def keys_alias(model: TypeModel, keys: CodingKeysMap) -> list[ast.stmt]:
    if not len(keys):
        return []
    qualified = model.declaration.qualified_name
    return [syntax.stmt(f"{keys.type_name} = {qualified}.{keys.type_name}")]


def from_decoder() -> ast.FunctionDef:
    return syntax.function(
        "from_decoder",
        "cls, decoder",
        syntax.parse_stmts(
            "self = cls.__new__(cls)\nself.init_from_decoder(decoder)\nreturn self"
        ),
        decorators=["classmethod"],
    )


def struct_decode(model: TypeModel) -> list[ast.FunctionDef]:
    """`from_decoder` plus `init_from_decoder` for a struct or class."""
    site = CodingSite("decoder", "container", model.keys, self_target)
    body: list[ast.stmt] = []
    if model.inherits_decode:
        body.append(syntax.stmt("super().init_from_decoder(decoder)"))
    body.extend(keys_alias(model, model.keys))
    body.extend(decode_members(site, model.members))
    return [from_decoder(), syntax.function("init_from_decoder", "self, decoder", body)]


def struct_encode(model: TypeModel) -> list[ast.FunctionDef]:
    site = CodingSite("encoder", "container", model.keys, self_target)
    body: list[ast.stmt] = []
    if model.inherits_encode:
        body.append(syntax.stmt("super().encode_to(encoder)"))
    body.extend(keys_alias(model, model.keys))
    encodable = [member for member in model.members if member.encodes]
    unkeyed = any(member.encode_path == () for member in encodable)
    body.extend(encode_members(site, model.members, force_root=not unkeyed))
    return [syntax.function("encode_to", "self, encoder", body)]


@dataclass(frozen=True)
class InitParameter:
    """One memberwise initializer parameter.

    `dimension` parameters have a default the caller may omit; each one
    doubles the number of overloads.
    """

    name: str
    annotation: str
    default: str | None = None
    optional: bool = False

    @property
    def dimension(self) -> bool:
        return self.default is not None


def init_parameters(model: TypeModel) -> list[InitParameter]:
    return [
        InitParameter(member.name, member.type_expr, member.default, member.optional)
        for member in model.members
        if member.in_init
    ]


def _signature(parameters: Sequence[InitParameter], supplied: set[str] | None) -> str:
    """Parameter source for one signature; `supplied=None` is the implementation."""
    parts = ["self"]
    keyword_only = False
    first_defaulted = next(
        (i for i, p in enumerate(parameters) if p.dimension or p.optional), len(parameters)
    )
    for position, parameter in enumerate(parameters):
        if parameter.dimension and supplied is not None and parameter.name not in supplied:
            continue
        if position >= first_defaulted and not keyword_only:
            parts.append("*")
            keyword_only = True
        text = f"{parameter.name}: {parameter.annotation}"
        if parameter.dimension and supplied is None:
            text += " = MISSING"
        elif not parameter.dimension and parameter.optional:
            text += " = None"
        parts.append(text)
    return ", ".join(parts)


def overload_subsets(parameters: Sequence[InitParameter]) -> list[list[str]]:
    """Every subset of dimension parameters, fewest supplied first.

    Subsets of equal size keep declaration order, so `a`, `b` and `c` give
    `[], [a], [b], [c], [a, b], [a, c], [b, c], [a, b, c]`.
    """
    subsets: list[list[str]] = [[]]
    for parameter in parameters:
        if parameter.dimension:
            subsets += [subset + [parameter.name] for subset in subsets]
    subsets.sort(key=len)
    return subsets


def memberwise_init(model: TypeModel) -> list[ast.FunctionDef]:
    """`__init__` and, when any member has a default, one overload per subset."""
    parameters = init_parameters(model)
    body = []
    for parameter in parameters:
        if parameter.dimension:
            body.append(
                syntax.stmt(
                    f"self.{parameter.name} = {parameter.name} "
                    f"if {parameter.name} is not MISSING else {parameter.default}"
                )
            )
        else:
            body.append(syntax.stmt(f"self.{parameter.name} = {parameter.name}"))

    if not any(parameter.dimension for parameter in parameters):
        return [syntax.function("__init__", _signature(parameters, supplied=None), body)]

    overloads = [
        syntax.function(
            "__init__",
            _signature(parameters, supplied=set(subset)),
            [ast.Expr(ast.Constant(...))],
            decorators=["overload"],
        )
        for subset in overload_subsets(parameters)
    ]
    implementation = syntax.function("__init__", _signature(parameters, supplied=None), body)
    return [*overloads, implementation]
