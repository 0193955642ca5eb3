"""Tests for the command line interface."""

import json
import tempfile
from pathlib import Path

import pytest
from typer.testing import CliRunner

from codablegen.cli import app

runner = CliRunner()

MODELS = '''"""Models."""
from typing import Annotated

from codablegen.runtime import Codable, CodedAt


@Codable
class Point:
    x: int
    y: Annotated[int, CodedAt("coords", "y")]
'''

BROKEN = """
@Codable
@MemberInit
class Broken(CodableEnum):
    def stop(): ...
"""


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as td:
        yield Path(td)


@pytest.fixture
def models_file(temp_dir: Path) -> Path:
    path = temp_dir / "models.py"
    path.write_text(MODELS)
    return path


@pytest.fixture
def broken_file(temp_dir: Path) -> Path:
    path = temp_dir / "broken.py"
    path.write_text(BROKEN)
    return path


class TestCheck:
    """Tests for the check command."""

    def test_clean(self, models_file: Path) -> None:
        result = runner.invoke(app, ["check", str(models_file)])

        assert result.exit_code == 0
        assert "No problems found" in result.stdout

    def test_json(self, broken_file: Path) -> None:
        result = runner.invoke(app, ["check", str(broken_file), "--json"])
        diagnostics = json.loads(result.stdout)

        assert result.exit_code == 1
        assert diagnostics[0]["severity"] == "error"
        assert diagnostics[0]["id"] == "memberinit-misuse"
        assert diagnostics[0]["location"]["line"] == 3

    def test_missing_file(self, temp_dir: Path) -> None:
        result = runner.invoke(app, ["check", str(temp_dir / "nope.py")])

        assert result.exit_code == 1
        assert "File not found" in result.output

    def test_unsupported_file(self, temp_dir: Path) -> None:
        path = temp_dir / "models.swift"
        path.write_text("struct Point {}\n")

        result = runner.invoke(app, ["check", str(path)])

        assert result.exit_code == 1
        assert "Unsupported source file" in result.output


class TestExpand:
    """Tests for the expand command."""

    def test_stdout(self, models_file: Path) -> None:
        result = runner.invoke(app, ["expand", str(models_file)])

        assert result.exit_code == 0
        assert result.stdout.startswith('"""Models."""\nfrom __future__ import annotations\n')
        assert "def init_from_decoder(self, decoder):" in result.stdout

    def test_output_file(self, models_file: Path, temp_dir: Path) -> None:
        output = temp_dir / "expanded.py"
        result = runner.invoke(
            app, ["expand", str(models_file), "-o", str(output), "--runtime-module", "rt"]
        )

        assert result.exit_code == 0
        assert "from rt import CodingKey" in output.read_text()

    def test_unknown_type(self, models_file: Path) -> None:
        result = runner.invoke(app, ["expand", str(models_file), "--type", "Line"])

        assert result.exit_code == 1
        assert "Declaration not found: Line" in result.output

    def test_errors_fail(self, broken_file: Path) -> None:
        result = runner.invoke(app, ["expand", str(broken_file)])
        assert result.exit_code == 1


class TestInspect:
    """Tests for the inspect command."""

    def test_json(self, models_file: Path) -> None:
        result = runner.invoke(app, ["inspect", str(models_file), "--json"])
        summaries = json.loads(result.stdout)

        assert result.exit_code == 0
        assert summaries[0]["name"] == "Point"
        assert [m["decode_path"] for m in summaries[0]["members"]] == [["x"], ["coords", "y"]]

    def test_table(self, models_file: Path) -> None:
        result = runner.invoke(app, ["inspect", str(models_file)])

        assert result.exit_code == 0
        assert "Point" in result.stdout
        assert "coords.y" in result.stdout
