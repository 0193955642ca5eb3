"""Tests for diagnostics and the per-declaration collector."""

from codablegen.core.diagnostics import (
    Diagnostic,
    DiagnosticCollector,
    Scope,
    Severity,
    misuse,
)
from codablegen.core.models import SourceLocation


def _error(scope: Scope = Scope.ALL) -> Diagnostic:
    return Diagnostic(Severity.ERROR, "test-error", "broken", scope=scope)


def _warning(scope: Scope = Scope.ALL) -> Diagnostic:
    return Diagnostic(Severity.WARNING, "test-warning", "suspicious", scope=scope)


class TestMisuse:
    """Tests for misuse diagnostics."""

    def test_message_id_and_fixit(self) -> None:
        """Test that misuse carries a stable id and a removal fix-it."""
        location = SourceLocation(3, 5, file="models.py")
        diagnostic = misuse("CodedIn", "@CodedIn can't be used here", location)

        assert diagnostic.message_id == "codedin-misuse"
        assert diagnostic.is_error
        assert len(diagnostic.fixits) == 1
        assert diagnostic.fixits[0].message == "Remove @CodedIn attribute"
        assert diagnostic.fixits[0].location == location
        assert diagnostic.fixits[0].replacement == ""

    def test_custom_id_and_severity(self) -> None:
        diagnostic = misuse(
            "CodedIn", "unused", None, severity=Severity.WARNING, message_id="codedin-unused"
        )
        assert diagnostic.message_id == "codedin-unused"
        assert not diagnostic.is_error

    def test_str_includes_location(self) -> None:
        diagnostic = misuse("Default", "bad default", SourceLocation(7, 2, file="a.py"))
        assert str(diagnostic) == "a.py:7:2: error: bad default [default-misuse]"

    def test_to_dict(self) -> None:
        """Test the JSON-ready form used by the CLI and MCP tools."""
        diagnostic = misuse("Default", "bad default", SourceLocation(7, 2, 7, 12))
        result = diagnostic.to_dict()

        assert result["severity"] == "error"
        assert result["id"] == "default-misuse"
        assert result["location"]["line"] == 7
        assert result["location"]["end_column"] == 12
        assert result["fixits"][0]["message"] == "Remove @Default attribute"


class TestDiagnosticCollector:
    """Tests for emission blocking."""

    def test_empty_collector_blocks_nothing(self) -> None:
        collector = DiagnosticCollector()
        assert not collector.blocks(Scope.DECODE)
        assert not collector.blocks(Scope.ENCODE)
        assert len(collector) == 0

    def test_error_blocks_its_scope_only(self) -> None:
        """Test that a decode-only error leaves encoding alone."""
        collector = DiagnosticCollector()
        collector.add(_error(Scope.DECODE))

        assert collector.blocks(Scope.DECODE)
        assert not collector.blocks(Scope.ENCODE)

    def test_error_for_all_blocks_both(self) -> None:
        collector = DiagnosticCollector()
        collector.add(_error())

        assert collector.blocks(Scope.DECODE)
        assert collector.blocks(Scope.ENCODE)

    def test_warnings_do_not_block(self) -> None:
        collector = DiagnosticCollector()
        collector.extend([_warning(), _warning(Scope.DECODE)])

        assert not collector.blocks(Scope.DECODE)
        assert len(collector.warnings) == 2
        assert collector.errors == []

    def test_strict_warnings_block(self) -> None:
        """Test that strict mode treats warnings like errors."""
        collector = DiagnosticCollector(strict=True)
        collector.add(_warning(Scope.ENCODE))

        assert collector.blocks(Scope.ENCODE)
        assert not collector.blocks(Scope.DECODE)

    def test_iteration_keeps_order(self) -> None:
        collector = DiagnosticCollector()
        first = collector.add(_warning())
        second = collector.add(_error())

        assert list(collector) == [first, second]
