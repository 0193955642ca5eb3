"""MCP server implementation for CodableGen."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from codablegen.core.generator import Generator, GeneratorOptions
from codablegen.languages import ParseResult, PythonParser, parser_for
from codablegen.render import describe, expand

server = Server("codablegen")

_SOURCE_PROPERTIES: dict[str, Any] = {
    "source": {
        "type": "string",
        "description": "Python source text containing annotated classes",
    },
    "path": {
        "type": "string",
        "description": "Path to a Python file (used when source is not given)",
    },
}


def _parse(arguments: dict[str, Any]) -> ParseResult:
    """Parse the `source` or `path` argument of a tool call."""
    source = arguments.get("source")
    if source is not None:
        return PythonParser().parse_source(source)
    path = arguments.get("path")
    if path is None:
        raise ValueError("Either 'source' or 'path' is required")
    file = Path(path)
    if not file.is_file():
        raise FileNotFoundError(f"File not found: {file}")
    return parser_for(file).parse(file)


@server.list_tools()  # type: ignore[no-untyped-call, untyped-decorator]
async def list_tools() -> list[Tool]:
    """List available tools."""
    return [
        Tool(
            name="codablegen_expand",
            description=(
                "Expand annotated Python classes into their generated coding "
                "implementations. Returns the rendered module and diagnostics."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    **_SOURCE_PROPERTIES,
                    "type": {
                        "type": "string",
                        "description": "Only expand this declaration (optional)",
                    },
                    "runtime_module": {
                        "type": "string",
                        "description": "Module generated code imports from",
                        "default": "codablegen.runtime",
                    },
                },
            },
        ),
        Tool(
            name="codablegen_check",
            description=(
                "Check annotated classes for attribute misuse and conflicting "
                "coding paths. Returns diagnostics with fix-its."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    **_SOURCE_PROPERTIES,
                    "strict": {
                        "type": "boolean",
                        "description": "Treat warnings as errors (default: false)",
                        "default": False,
                    },
                },
            },
        ),
        Tool(
            name="codablegen_inspect",
            description=(
                "Show how each annotated class is coded: member paths, defaults, "
                "helper coders and, for enums, the case strategy."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    **_SOURCE_PROPERTIES,
                    "type": {
                        "type": "string",
                        "description": "Only inspect this declaration (optional)",
                    },
                },
            },
        ),
    ]


@server.call_tool()  # type: ignore[untyped-decorator]
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool calls."""
    try:
        if name == "codablegen_expand":
            result = _handle_expand(
                arguments,
                arguments.get("type"),
                arguments.get("runtime_module", "codablegen.runtime"),
            )
        elif name == "codablegen_check":
            result = _handle_check(arguments, arguments.get("strict", False))
        elif name == "codablegen_inspect":
            result = _handle_inspect(arguments, arguments.get("type"))
        else:
            result = {"error": f"Unknown tool: {name}"}

        return [TextContent(type="text", text=json.dumps(result, indent=2))]

    except Exception as e:
        return [TextContent(type="text", text=json.dumps({"error": str(e)}))]


def _handle_expand(
    arguments: dict[str, Any], type_name: str | None, runtime_module: str
) -> dict[str, Any]:
    """Handle codablegen_expand tool."""
    expansion = expand(
        _parse(arguments), GeneratorOptions(runtime_module=runtime_module), type_name
    )
    return {
        "source": expansion.source,
        "declarations": [generated.declaration.qualified_name for generated in expansion.types],
        "diagnostics": [d.to_dict() for d in expansion.diagnostics],
    }


def _handle_check(arguments: dict[str, Any], strict: bool) -> dict[str, Any]:
    """Handle codablegen_check tool."""
    result = _parse(arguments)
    generator = Generator(GeneratorOptions(strict=strict))
    diagnostics = [
        d for declaration in result.declarations for d in generator.generate(declaration).diagnostics
    ]
    return {
        "declarations": len(result.declarations),
        "errors": sum(1 for d in diagnostics if d.severity.value == "error"),
        "warnings": sum(1 for d in diagnostics if d.severity.value == "warning"),
        "diagnostics": [d.to_dict() for d in diagnostics],
    }


def _handle_inspect(arguments: dict[str, Any], type_name: str | None) -> dict[str, Any]:
    """Handle codablegen_inspect tool."""
    result = _parse(arguments)
    declarations = [result.find(type_name)] if type_name else result.declarations
    generator = Generator()
    return {"declarations": [describe(generator.generate(d)) for d in declarations]}


async def serve() -> None:
    """Run the MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
