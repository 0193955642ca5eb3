"""
MCP server for CodableGen.

Exposes the generator to LLMs via the Model Context Protocol.

Tools:
    - codablegen_expand: Expand annotated source into generated code
    - codablegen_check: Report attribute misuse and path conflicts
    - codablegen_inspect: Show normalized member models and coding paths

Usage:
    Install: pip install codablegen
    Run: mcp-server-codablegen
"""

import asyncio

from codablegen.mcp.server import serve as _serve


def serve() -> None:
    """Entry point for the MCP server."""
    asyncio.run(_serve())


__all__ = ["serve"]
