"""Render expanded modules.

Generated members are spliced into the class bodies of a fresh copy of the
parsed module: grouped declarations become one annotated member per name,
case stubs are replaced by their constructors, and the support names the
generated code uses are imported from the runtime module.
"""

from __future__ import annotations

import ast
import copy
import logging
from dataclasses import dataclass, field
from typing import Any

from codablegen.core.diagnostics import Diagnostic, Severity
from codablegen.core.emitter import GENERATED_NAMES
from codablegen.core.generator import GeneratedType, Generator, GeneratorOptions
from codablegen.languages.models import ParseResult
from codablegen.languages.python import PythonParser, split_grouped

logger = logging.getLogger(__name__)


@dataclass
class Expansion:
    """Rendered module text and the generated types behind it."""

    source: str
    types: list[GeneratedType] = field(default_factory=list)

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return [d for generated in self.types for d in generated.diagnostics]

    @property
    def has_errors(self) -> bool:
        return any(d.severity is Severity.ERROR for d in self.diagnostics)


def expand(
    result: ParseResult,
    options: GeneratorOptions | None = None,
    type_name: str | None = None,
) -> Expansion:
    """Generate and splice every declaration, or only `type_name`.

    Raises:
        DeclarationNotFoundError: If `type_name` names no declaration.
    """
    options = options or GeneratorOptions()
    generator = Generator(options)
    # the input tree is left untouched
    working = PythonParser().parse_source(result.source, result.file)
    if type_name is None:
        declarations = working.declarations
    else:
        declarations = [working.find(type_name)]

    expansion = Expansion(source="")
    used: set[str] = set()
    overloads = False
    for declaration in declarations:
        generated = generator.generate(declaration)
        expansion.types.append(generated)
        splice(working.nodes[declaration.qualified_name], generated)
        used |= referenced_names(generated)
        overloads = overloads or any(
            _decorated_with(function, "overload") for function in generated.initializers
        )

    add_imports(working.tree, options.runtime_module, sorted(used), overloads)
    ast.fix_missing_locations(working.tree)
    expansion.source = ast.unparse(working.tree) + "\n"
    logger.debug(f"Rendered {len(expansion.types)} declarations")
    return expansion


def splice(node: ast.ClassDef, generated: GeneratedType) -> None:
    """Rewrite a class body in place with its generated members."""
    constructors = {function.name: function for function in generated.case_constructors}
    body: list[ast.stmt] = []
    for statement in node.body:
        grouped = split_grouped(statement)
        if grouped is not None:
            body.extend(_ungroup(statement, *grouped))
        elif isinstance(statement, ast.FunctionDef) and statement.name in constructors:
            body.append(ast.copy_location(constructors.pop(statement.name), statement))
        else:
            body.append(statement)
    body.extend(generated.members)
    node.body = body


def _ungroup(statement: ast.stmt, names: list[str], call: ast.Call) -> list[ast.stmt]:
    annotation = call.args[0]
    initializers = {kw.arg: kw.value for kw in call.keywords if kw.arg is not None}
    members: list[ast.stmt] = []
    for name in names:
        value = initializers.get(name)
        member = ast.AnnAssign(
            target=ast.Name(id=name, ctx=ast.Store()),
            annotation=copy.deepcopy(annotation),
            value=copy.deepcopy(value) if value is not None else None,
            simple=1,
        )
        members.append(ast.copy_location(member, statement))
    return members


def _decorated_with(function: ast.FunctionDef, name: str) -> bool:
    return any(isinstance(d, ast.Name) and d.id == name for d in function.decorator_list)


def referenced_names(generated: GeneratedType) -> set[str]:
    """Runtime support names the generated members refer to."""
    names = set()
    for root in [*generated.members, *generated.case_constructors]:
        for node in ast.walk(root):
            if isinstance(node, ast.Name) and node.id in GENERATED_NAMES:
                names.add(node.id)
    return names


def _is_docstring(statement: ast.stmt) -> bool:
    return (
        isinstance(statement, ast.Expr)
        and isinstance(statement.value, ast.Constant)
        and isinstance(statement.value.value, str)
    )


def _is_future(statement: ast.stmt) -> bool:
    return isinstance(statement, ast.ImportFrom) and statement.module == "__future__"


def add_imports(
    tree: ast.Module,
    runtime_module: str,
    names: list[str],
    overloads: bool = False,
) -> None:
    """Insert the imports generated code needs after any `__future__` imports.

    `from __future__ import annotations` is added when missing, so case
    constructors can name their own class as return type.
    """
    body = tree.body
    start = 1 if body and _is_docstring(body[0]) else 0
    position = start
    while position < len(body) and _is_future(body[position]):
        position += 1
    has_annotations = any(
        alias.name == "annotations"
        for statement in body[start:position]
        for alias in statement.names  # type: ignore[attr-defined]
    )
    if not has_annotations:
        body.insert(start, ast.ImportFrom("__future__", [ast.alias("annotations")], 0))
        position += 1

    imports: list[ast.stmt] = []
    if overloads:
        imports.append(ast.ImportFrom("typing", [ast.alias("overload")], 0))
    if names:
        imports.append(ast.ImportFrom(runtime_module, [ast.alias(name) for name in names], 0))
    body[position:position] = imports


def describe(generated: GeneratedType) -> dict[str, Any]:
    """JSON-ready summary of the analyzed model of one declaration."""
    model = generated.model
    result: dict[str, Any] = {
        "name": model.declaration.qualified_name,
        "kind": model.declaration.kind.value,
        "mode": model.mode.value if model.mode else None,
        "key_strategy": model.strategy.value if model.strategy else None,
        "coding_keys": dict(model.keys.items()),
        "members": [
            {
                "name": member.name,
                "type": member.type_expr,
                "decode_path": list(member.decode_path) if member.decode_path is not None else None,
                "encode_path": list(member.encode_path) if member.encode_path is not None else None,
                "alternate_keys": list(member.alternate_keys),
                "fallback": member.fallback.value,
                "default": member.default,
                "coder": member.decode_coder.expression if member.decode_coder else None,
            }
            for member in model.members
        ],
        "diagnostics": [d.to_dict() for d in generated.diagnostics],
    }
    strategy = generated.strategy
    if strategy is not None:
        result["strategy"] = strategy.kind.value
        result["cases"] = [
            {
                "name": case.name,
                "tags": list(case.tag_values),
                "decodes": case.decodes,
                "encodes": case.encodes,
                "values": [value.name for value in case.values],
            }
            for case in strategy.cases
        ]
    return result
