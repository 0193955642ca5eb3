"""CLI entry point for CodableGen."""

import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from codablegen.core.diagnostics import Diagnostic, Severity
from codablegen.core.exceptions import CodableGenError
from codablegen.core.generator import Generator, GeneratorOptions
from codablegen.languages import ParseResult, parser_for
from codablegen.render import describe, expand

app = typer.Typer(
    name="codablegen",
    help="Generate JSON coding implementations for annotated Python classes.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

_SEVERITY_STYLES = {Severity.ERROR: "red", Severity.WARNING: "yellow"}


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    """Generate JSON coding implementations for annotated Python classes."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)


def load(file: Path) -> ParseResult:
    """Parse a source file, exiting with status 1 on failure."""
    if not file.is_file():
        err_console.print(f"[red]File not found:[/red] {file}")
        raise typer.Exit(code=1)
    try:
        return parser_for(file).parse(file)
    except CodableGenError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e


def format_diagnostic(diagnostic: Diagnostic) -> str:
    """Format a diagnostic as a rich markup line."""
    style = _SEVERITY_STYLES[diagnostic.severity]
    location = f"[dim]{diagnostic.location}[/] " if diagnostic.location else ""
    return (
        f"{location}[{style}]{diagnostic.severity.value}[/]: {diagnostic.message} "
        f"[dim]\\[{diagnostic.message_id}][/]"
    )


def failed(diagnostics: list[Diagnostic], strict: bool) -> bool:
    if strict:
        return bool(diagnostics)
    return any(d.severity is Severity.ERROR for d in diagnostics)


@app.command(name="expand")
def expand_command(
    file: Annotated[Path, typer.Argument(help="Python source file to expand")],
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write the expanded module here")
    ] = None,
    type_name: Annotated[
        str | None, typer.Option("--type", "-t", help="Only expand this declaration")
    ] = None,
    runtime_module: Annotated[
        str, typer.Option("--runtime-module", help="Module generated code imports from")
    ] = "codablegen.runtime",
    strict: Annotated[bool, typer.Option("--strict", help="Treat warnings as errors")] = False,
) -> None:
    """Expand a module, printing or writing the generated source."""
    result = load(file)
    options = GeneratorOptions(runtime_module=runtime_module, strict=strict)
    try:
        expansion = expand(result, options, type_name)
    except CodableGenError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e

    for diagnostic in expansion.diagnostics:
        err_console.print(format_diagnostic(diagnostic), highlight=False)

    if output is None:
        print(expansion.source, end="")
    else:
        output.write_text(expansion.source, encoding="utf-8")
        err_console.print(f"[green]Wrote[/green] {output}")

    if failed(expansion.diagnostics, strict):
        raise typer.Exit(code=1)


@app.command()
def check(
    file: Annotated[Path, typer.Argument(help="Python source file to check")],
    output_json: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
    strict: Annotated[bool, typer.Option("--strict", help="Treat warnings as errors")] = False,
) -> None:
    """Report attribute misuse and coding path conflicts."""
    result = load(file)
    generator = Generator(GeneratorOptions(strict=strict))
    diagnostics = [
        diagnostic
        for declaration in result.declarations
        for diagnostic in generator.generate(declaration).diagnostics
    ]

    if output_json:
        print(json.dumps([d.to_dict() for d in diagnostics]))
    elif not diagnostics:
        console.print(f"[green]No problems found[/green] in {len(result.declarations)} declarations")
    else:
        for diagnostic in diagnostics:
            console.print(format_diagnostic(diagnostic), highlight=False)
        errors = sum(1 for d in diagnostics if d.severity is Severity.ERROR)
        console.print(f"\n[dim]Errors: {errors} | Warnings: {len(diagnostics) - errors}[/]")

    if failed(diagnostics, strict):
        raise typer.Exit(code=1)


@app.command()
def inspect(
    file: Annotated[Path, typer.Argument(help="Python source file to inspect")],
    type_name: Annotated[
        str | None, typer.Option("--type", "-t", help="Only show this declaration")
    ] = None,
    output_json: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show the normalized member model and coding paths of each declaration."""
    result = load(file)
    generator = Generator()
    try:
        declarations = [result.find(type_name)] if type_name else result.declarations
    except CodableGenError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e

    summaries = [describe(generator.generate(declaration)) for declaration in declarations]
    if output_json:
        print(json.dumps(summaries))
        return

    if not summaries:
        console.print(f"No annotated declarations in [cyan]{file}[/cyan]")
        return
    for summary in summaries:
        console.print(
            f"[bold cyan]{summary['name']}[/] ({summary['kind']}, mode: {summary['mode']})"
        )
        if summary["members"]:
            table = Table(show_header=True, header_style="bold")
            table.add_column("Member")
            table.add_column("Type")
            table.add_column("Decode path")
            table.add_column("Encode path")
            table.add_column("Fallback")
            table.add_column("Default")
            for member in summary["members"]:
                table.add_row(
                    member["name"],
                    member["type"],
                    _path(member["decode_path"]),
                    _path(member["encode_path"]),
                    member["fallback"],
                    member["default"] or "",
                )
            console.print(table)
        if "cases" in summary:
            console.print(f"  Strategy: {summary['strategy']}")
            for case in summary["cases"]:
                values = ", ".join(case["values"])
                tags = ", ".join(case["tags"])
                console.print(f"  [cyan]{case['name']}[/]({values}) [dim]tags: {tags}[/]")
        console.print()


def _path(path: list[str] | None) -> str:
    if path is None:
        return "[dim]ignored[/]"
    return ".".join(path) or "[dim]<inline>[/]"


if __name__ == "__main__":
    app()
