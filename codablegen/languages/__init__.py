"""
Language parsers: Extract annotated declarations from source code.

This module provides the parsing layer that converts source files into
the `Declaration` input models consumed by the generator.

Components:
    - LanguageParser: Protocol defining the parser interface
    - parser_for: Picks the registered parser that supports a file
    - PythonParser: AST-based parser for Python files
    - ParseResult: Container for the module tree and its declarations

The Python parser reads:
    - Type attributes: class decorators such as @Codable
    - Member attributes: typing.Annotated metadata
    - Mutability and staticness: Final and ClassVar
    - Grouped members: `a, b = Grouped(int, ...)`
    - Enum cases: CodableEnum method stubs and enum.Enum members

Adding a new language:
    1. Create a new parser class implementing LanguageParser protocol
    2. Implement parse() to return ParseResult
    3. Implement supports() to check file extensions
    4. Register an instance in PARSERS
"""

from pathlib import Path

from codablegen.core.exceptions import ParseError
from codablegen.languages.base import LanguageParser
from codablegen.languages.models import ParseResult
from codablegen.languages.python import PythonParser

PARSERS: list[LanguageParser] = [PythonParser()]


def parser_for(file: Path) -> LanguageParser:
    """Return the first registered parser that supports `file`."""
    for parser in PARSERS:
        if parser.supports(file):
            return parser
    raise ParseError(f"Unsupported source file: {file}")


__all__ = [
    "PARSERS",
    "LanguageParser",
    "ParseResult",
    "PythonParser",
    "parser_for",
]
