"""Data models for language parser results."""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
from pathlib import Path

from codablegen.core.exceptions import DeclarationNotFoundError
from codablegen.core.models import Declaration


@dataclass
class ParseResult:
    """Result of parsing a file.

    `nodes` maps each declaration's qualified name to its class node in
    `tree`, which is where rendering splices the generated members.
    """

    file: Path | None
    source: str
    tree: ast.Module
    declarations: list[Declaration] = field(default_factory=list)
    nodes: dict[str, ast.ClassDef] = field(default_factory=dict)

    def find(self, name: str) -> Declaration:
        """Look up a declaration by qualified or simple name."""
        for declaration in self.declarations:
            if declaration.qualified_name == name:
                return declaration
        for declaration in self.declarations:
            if declaration.name == name:
                return declaration
        raise DeclarationNotFoundError(f"Declaration not found: {name}")
