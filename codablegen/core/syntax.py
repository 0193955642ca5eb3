"""Small builders for the `ast` statement trees the emitter produces."""

from __future__ import annotations

import ast
from collections.abc import Iterable, Sequence


def parse_stmts(source: str) -> list[ast.stmt]:
    return ast.parse(source).body


def stmt(source: str) -> ast.stmt:
    """Parse exactly one statement."""
    body = parse_stmts(source)
    if len(body) != 1:
        raise ValueError(f"Expected one statement, got {len(body)}: {source!r}")
    return body[0]


def expr(source: str) -> ast.expr:
    return ast.parse(source, mode="eval").body


def _body(statements: Iterable[ast.stmt]) -> list[ast.stmt]:
    body = list(statements)
    return body or [ast.Pass()]


def if_(test: str, body: Iterable[ast.stmt], orelse: Iterable[ast.stmt] = ()) -> ast.If:
    return ast.If(test=expr(test), body=_body(body), orelse=list(orelse))


def if_chain(arms: Sequence[tuple[str, list[ast.stmt]]]) -> list[ast.stmt]:
    """`if`/`elif` chain over (test, body) arms."""
    chain: list[ast.stmt] = []
    for test, body in reversed(arms):
        chain = [if_(test, body, chain)]
    return chain


def try_(
    body: Iterable[ast.stmt],
    exception: str,
    handler: Iterable[ast.stmt],
    orelse: Iterable[ast.stmt] = (),
) -> ast.Try:
    return ast.Try(
        body=_body(body),
        handlers=[ast.ExceptHandler(type=expr(exception), name=None, body=_body(handler))],
        orelse=list(orelse),
        finalbody=[],
    )


def function(
    name: str,
    params: str,
    body: Iterable[ast.stmt],
    decorators: Sequence[str] = (),
    returns: str | None = None,
) -> ast.FunctionDef:
    """Function definition from a parameter list written as source text."""
    signature = f"def {name}({params})"
    if returns:
        signature += f" -> {returns}"
    node = stmt(f"{signature}:\n    pass")
    assert isinstance(node, ast.FunctionDef)
    node.body = _body(body)
    node.decorator_list = [expr(decorator) for decorator in decorators]
    return node


def class_def(name: str, bases: Sequence[str], body: Iterable[ast.stmt]) -> ast.ClassDef:
    node = stmt(f"class {name}({', '.join(bases)}):\n    pass")
    assert isinstance(node, ast.ClassDef)
    node.body = _body(body)
    return node


def finalize(node: ast.AST) -> ast.AST:
    return ast.fix_missing_locations(node)


def render(nodes: Iterable[ast.AST]) -> str:
    """Source text of generated nodes, for inspection and tests."""
    return "\n".join(ast.unparse(finalize(node)) for node in nodes)
