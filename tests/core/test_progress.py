"""Tests for core/progress.py module.

Covers:
- status() function
- spinner() context manager
- pluralize() function
- suppress_console_logs() / ConsoleSuppressingFilter
"""

from __future__ import annotations

import logging
import sys
from io import StringIO

import pytest

from scaffoldplane.core.progress import (
    _STYLES,
    ConsoleSuppressingFilter,
    _is_tty,
    get_console,
    is_console_suppressed,
    pluralize,
    spinner,
    status,
    suppress_console_logs,
)


class TestIsTty:
    """Tests for _is_tty function."""

    def test_false_for_stringio(self) -> None:
        """Returns False for non-TTY stderr."""
        original = sys.stderr
        try:
            sys.stderr = StringIO()
            assert _is_tty() is False
        finally:
            sys.stderr = original


class TestStatus:
    """Tests for status function."""

    @pytest.mark.parametrize("style", sorted(_STYLES))
    def test_known_styles(self, style: str, capsys: pytest.CaptureFixture[str]) -> None:
        """Every style prints the message to stderr."""
        status("Pulled model", style=style)
        assert "Pulled model" in capsys.readouterr().err

    def test_indent(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Indent pads the line."""
        status("nested", style="none", indent=4)
        assert "    nested" in capsys.readouterr().err


class TestPluralize:
    """Tests for pluralize function."""

    @pytest.mark.parametrize(
        ("count", "expected"),
        [(0, "0 files"), (1, "1 file"), (2, "2 files")],
    )
    def test_counts(self, count: int, expected: str) -> None:
        """Singular only for exactly one."""
        assert pluralize(count, "file") == expected

    def test_irregular(self) -> None:
        """Explicit plural form is used."""
        assert pluralize(3, "entry", "entries") == "3 entries"


class TestSpinner:
    """Tests for spinner context manager."""

    def test_non_tty_prints_message(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Without a TTY the message is printed once."""
        with spinner("Generating plan"):
            pass
        assert "Generating plan..." in capsys.readouterr().err


class TestConsoleSuppression:
    """Tests for console log suppression."""

    def test_flag_scoped_to_context(self) -> None:
        """Suppression is active only inside the context."""
        assert is_console_suppressed() is False
        with suppress_console_logs():
            assert is_console_suppressed() is True
        assert is_console_suppressed() is False

    def test_filter_blocks_while_suppressed(self) -> None:
        """ConsoleSuppressingFilter drops records during suppression."""
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        log_filter = ConsoleSuppressingFilter()

        assert log_filter.filter(record) is True
        with suppress_console_logs():
            assert log_filter.filter(record) is False

    def test_shared_console(self) -> None:
        """get_console returns the same instance each time."""
        assert get_console() is get_console()
