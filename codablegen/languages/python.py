"""Python AST parser for extracting annotated declarations."""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass, field
from pathlib import Path

from codablegen.core import attributes as attrs
from codablegen.core.analyzer import unwrap_optional
from codablegen.core.exceptions import ParseError
from codablegen.core.models import (
    AssociatedDecl,
    AttributeNode,
    CaseDecl,
    Declaration,
    DeclKind,
    MemberDecl,
    RawArgument,
    SourceLocation,
)
from codablegen.languages.models import ParseResult

logger = logging.getLogger(__name__)

# enum bases with the raw type they imply
_RAW_ENUM_BASES = {"Enum": None, "IntEnum": "int", "StrEnum": "str"}
_RAW_MIXINS = ("str", "int", "float")
_NON_INHERITING = ("object", "Generic", "Protocol")
_NOT_CASES = ("staticmethod", "classmethod", "property")


class PythonParser:
    """Parser for Python source files using the ast module."""

    def supports(self, file: Path) -> bool:
        """Check if this parser supports the given file."""
        return file.suffix == ".py"

    def parse(self, file: Path) -> ParseResult:
        """Parse a Python file and extract its annotated declarations."""
        try:
            source = file.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"Cannot read {file}: {e}") from e
        return self.parse_source(source, file)

    def parse_source(self, source: str, file: Path | None = None) -> ParseResult:
        """Parse Python source text; `file` is only used for locations."""
        filename = str(file) if file is not None else "<source>"
        try:
            tree = ast.parse(source, filename=filename)
        except SyntaxError as e:
            raise ParseError(f"Syntax error in {filename}: {e}") from e

        visitor = _PythonVisitor(str(file) if file is not None else None)
        visitor.visit(tree)
        logger.debug(f"Parsed {filename}: {len(visitor.declarations)} declarations")

        return ParseResult(
            file=file,
            source=source,
            tree=tree,
            declarations=visitor.declarations,
            nodes=visitor.nodes,
        )


def name_of(node: ast.expr) -> str | None:
    """Last segment of a possibly dotted, called or subscripted name."""
    if isinstance(node, ast.Call):
        node = node.func
    if isinstance(node, ast.Subscript):
        node = node.value
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return None


def split_grouped(node: ast.stmt) -> tuple[list[str], ast.Call] | None:
    """Names and call of a `a, b = Grouped(T, ...)` statement, else None."""
    if not isinstance(node, ast.Assign) or len(node.targets) != 1:
        return None
    call = node.value
    if not isinstance(call, ast.Call) or name_of(call.func) != "Grouped" or not call.args:
        return None
    target = node.targets[0]
    if isinstance(target, ast.Name):
        return [target.id], call
    if isinstance(target, (ast.Tuple, ast.List)) and all(
        isinstance(element, ast.Name) for element in target.elts
    ):
        return [element.id for element in target.elts], call  # type: ignore[attr-defined]
    return None


def _location(node: ast.expr | ast.stmt | ast.arg, file: str | None) -> SourceLocation:
    end_column = node.end_col_offset + 1 if node.end_col_offset is not None else None
    return SourceLocation(
        line=node.lineno,
        column=node.col_offset + 1,
        end_line=node.end_lineno,
        end_column=end_column,
        file=file,
    )


def _argument(node: ast.expr, label: str | None = None) -> RawArgument:
    expression = ast.unparse(node)
    try:
        value = ast.literal_eval(node)
    except (ValueError, TypeError):
        return RawArgument(expression=expression, label=label)
    return RawArgument(expression=expression, label=label, value=value, is_literal=True)


def _is_optional(type_expr: str) -> bool:
    return unwrap_optional(type_expr) != type_expr


def _is_property(node: ast.FunctionDef) -> bool:
    return any(isinstance(d, ast.Name) and d.id == "property" for d in node.decorator_list)


@dataclass
class _Annotation:
    """An annotation with its typing wrappers peeled off."""

    type_expr: str = "object"
    metadata: list[ast.expr] = field(default_factory=list)
    final: bool = False
    class_var: bool = False


def _unwrap(annotation: ast.expr | None) -> _Annotation:
    result = _Annotation()
    node = annotation
    while node is not None:
        if isinstance(node, ast.Constant) and isinstance(node.value, str):
            try:
                node = ast.parse(node.value, mode="eval").body
            except SyntaxError:
                result.type_expr = node.value
                break
            continue
        wrapper = name_of(node) if isinstance(node, (ast.Name, ast.Attribute, ast.Subscript)) else None
        if wrapper in ("Final", "ClassVar"):
            result.final = result.final or wrapper == "Final"
            result.class_var = result.class_var or wrapper == "ClassVar"
            node = node.slice if isinstance(node, ast.Subscript) else None
            continue
        if (
            wrapper == "Annotated"
            and isinstance(node, ast.Subscript)
            and isinstance(node.slice, ast.Tuple)
            and node.slice.elts
        ):
            node, *metadata = node.slice.elts
            result.metadata.extend(metadata)
            continue
        result.type_expr = ast.unparse(node)
        break
    return result


class _PythonVisitor(ast.NodeVisitor):
    """AST visitor that collects annotated class declarations."""

    def __init__(self, file: str | None) -> None:
        self.file = file
        self.declarations: list[Declaration] = []
        self.nodes: dict[str, ast.ClassDef] = {}
        self._scope_stack: list[str] = []

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        """Handle class definitions, including nested ones."""
        qualified_name = ".".join([*self._scope_stack, node.name])
        declaration = self._declaration(node, qualified_name)
        if declaration is not None:
            self.declarations.append(declaration)
            self.nodes[qualified_name] = node

        self._scope_stack.append(node.name)
        self.generic_visit(node)
        self._scope_stack.pop()

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        """Classes local to functions can't be referenced by qualified name."""

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:
        """Same as visit_FunctionDef."""

    def _attributes(self, nodes: list[ast.expr]) -> tuple[AttributeNode, ...]:
        found = []
        for node in nodes:
            if isinstance(node, ast.Subscript):
                continue
            name = name_of(node)
            if name is None or not attrs.is_recognized(name):
                continue
            arguments: list[RawArgument] = []
            if isinstance(node, ast.Call):
                arguments += [_argument(arg) for arg in node.args]
                arguments += [
                    _argument(keyword.value, keyword.arg)
                    for keyword in node.keywords
                    if keyword.arg is not None
                ]
            found.append(AttributeNode(name, tuple(arguments), _location(node, self.file)))
        return tuple(found)

    def _declaration(self, node: ast.ClassDef, qualified_name: str) -> Declaration | None:
        base_names = [name_of(base) for base in node.bases]
        attributes = self._attributes(node.decorator_list)
        members: tuple[MemberDecl, ...] = ()
        cases: tuple[CaseDecl, ...] = ()
        raw_type = None

        if "CodableEnum" in base_names:
            kind = DeclKind.ENUM
            cases = tuple(self._stub_cases(node))
        elif any(name in _RAW_ENUM_BASES for name in base_names):
            if not attributes:
                return None
            kind = DeclKind.ENUM
            cases = tuple(self._raw_cases(node))
            raw_type = _raw_type(base_names, cases)
        else:
            if not attributes:
                return None
            inherits = any(name not in _NON_INHERITING for name in base_names)
            kind = DeclKind.CLASS if inherits else DeclKind.STRUCT
            members = tuple(self._members(node))

        return Declaration(
            kind=kind,
            name=node.name,
            qualified_name=qualified_name,
            attributes=attributes,
            members=members,
            cases=cases,
            generic_params=_generic_params(node),
            bases=tuple(ast.unparse(base) for base in node.bases),
            raw_type=raw_type,
            location=_location(node, self.file),
        )

    def _members(self, node: ast.ClassDef) -> list[MemberDecl]:
        members = []
        for statement in node.body:
            if isinstance(statement, ast.AnnAssign) and isinstance(statement.target, ast.Name):
                annotation = _unwrap(statement.annotation)
                members.append(
                    MemberDecl(
                        name=statement.target.id,
                        type_expr=annotation.type_expr,
                        attributes=self._attributes(annotation.metadata),
                        mutable=not annotation.final,
                        static=annotation.class_var,
                        optional=_is_optional(annotation.type_expr),
                        initializer=ast.unparse(statement.value) if statement.value else None,
                        location=_location(statement, self.file),
                    )
                )
                continue
            if isinstance(statement, ast.FunctionDef) and _is_property(statement):
                computed = self._computed(statement)
                if computed is not None:
                    members.append(computed)
                continue
            grouped = split_grouped(statement)
            if grouped is not None:
                members.extend(self._grouped(statement, *grouped))
        return members

    def _computed(self, statement: ast.FunctionDef) -> MemberDecl | None:
        """A read-only property, coded only when it carries an attribute."""
        annotation = _unwrap(statement.returns)
        attributes = self._attributes(statement.decorator_list)
        attributes += self._attributes(annotation.metadata)
        if not attributes:
            return None
        return MemberDecl(
            name=statement.name,
            type_expr=annotation.type_expr,
            attributes=attributes,
            mutable=False,
            optional=_is_optional(annotation.type_expr),
            computed=True,
            location=_location(statement, self.file),
        )

    def _grouped(self, statement: ast.stmt, names: list[str], call: ast.Call) -> list[MemberDecl]:
        type_node, *metadata = call.args
        annotation = _unwrap(type_node)
        attributes = self._attributes(annotation.metadata + metadata)
        initializers = {
            keyword.arg: ast.unparse(keyword.value)
            for keyword in call.keywords
            if keyword.arg is not None
        }
        return [
            MemberDecl(
                name=name,
                type_expr=annotation.type_expr,
                attributes=attributes,
                mutable=not annotation.final,
                static=annotation.class_var,
                optional=_is_optional(annotation.type_expr),
                initializer=initializers.get(name),
                grouped=True,
                group_index=index,
                location=_location(statement, self.file),
            )
            for index, name in enumerate(names)
        ]

    def _stub_cases(self, node: ast.ClassDef) -> list[CaseDecl]:
        cases = []
        for statement in node.body:
            if not isinstance(statement, ast.FunctionDef) or statement.name.startswith("_"):
                continue
            if any(name_of(d) in _NOT_CASES for d in statement.decorator_list):
                continue
            cases.append(
                CaseDecl(
                    name=statement.name,
                    values=tuple(self._associated_values(statement.args)),
                    attributes=self._attributes(statement.decorator_list),
                    location=_location(statement, self.file),
                )
            )
        return cases

    def _associated_values(self, args: ast.arguments) -> list[AssociatedDecl]:
        positional = [*args.posonlyargs, *args.args]
        defaults: list[ast.expr | None] = [None] * (len(positional) - len(args.defaults))
        defaults += args.defaults
        values = [
            self._associated(arg, default, labeled=index >= len(args.posonlyargs))
            for index, (arg, default) in enumerate(zip(positional, defaults))
        ]
        values += [
            self._associated(arg, default, labeled=True, keyword_only=True)
            for arg, default in zip(args.kwonlyargs, args.kw_defaults)
        ]
        return values

    def _associated(
        self,
        arg: ast.arg,
        default: ast.expr | None,
        labeled: bool,
        keyword_only: bool = False,
    ) -> AssociatedDecl:
        annotation = _unwrap(arg.annotation)
        return AssociatedDecl(
            name=arg.arg,
            type_expr=annotation.type_expr,
            labeled=labeled,
            keyword_only=keyword_only,
            optional=_is_optional(annotation.type_expr),
            default=ast.unparse(default) if default is not None else None,
            attributes=self._attributes(annotation.metadata),
            location=_location(arg, self.file),
        )

    def _raw_cases(self, node: ast.ClassDef) -> list[CaseDecl]:
        cases = []
        for statement in node.body:
            metadata: list[ast.expr] = []
            if (
                isinstance(statement, ast.Assign)
                and len(statement.targets) == 1
                and isinstance(statement.targets[0], ast.Name)
            ):
                name = statement.targets[0].id
                value = statement.value
            elif (
                isinstance(statement, ast.AnnAssign)
                and isinstance(statement.target, ast.Name)
                and statement.value is not None
            ):
                name = statement.target.id
                value = statement.value
                metadata = _unwrap(statement.annotation).metadata
            else:
                continue
            if name.startswith("_"):
                continue
            cases.append(
                CaseDecl(
                    name=name,
                    attributes=self._attributes(metadata),
                    raw_value=ast.unparse(value),
                    location=_location(statement, self.file),
                )
            )
        return cases


def _raw_type(base_names: list[str | None], cases: tuple[CaseDecl, ...]) -> str:
    for name in base_names:
        if name in _RAW_MIXINS:
            return name  # type: ignore[return-value]
        implied = _RAW_ENUM_BASES.get(name) if name else None
        if implied:
            return implied
    for case in cases:
        try:
            value = ast.literal_eval(case.raw_value or "")
        except (ValueError, TypeError, SyntaxError):
            continue
        if type(value) in (str, int, float):
            return type(value).__name__
        break
    return "object"


def _generic_params(node: ast.ClassDef) -> tuple[str, ...]:
    params = [param.name for param in getattr(node, "type_params", [])]
    for base in node.bases:
        if isinstance(base, ast.Subscript) and name_of(base) in ("Generic", "Protocol"):
            elements = base.slice.elts if isinstance(base.slice, ast.Tuple) else [base.slice]
            for element in elements:
                text = ast.unparse(element)
                if text not in params:
                    params.append(text)
    return tuple(params)
