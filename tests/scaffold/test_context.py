"""Tests for scaffold/context.py module."""

from __future__ import annotations

from pathlib import Path

from scaffoldplane.scaffold.context import (
    collect_file_context,
    file_context_collector,
    truncate_utf8,
)


class TestTruncateUtf8:
    """Tests for truncate_utf8."""

    def test_short_text_unchanged(self) -> None:
        """Text within the limit is returned as-is."""
        assert truncate_utf8("abc", 10) == "abc"

    def test_never_splits_a_character(self) -> None:
        """Cutting inside a multi-byte character drops the partial character."""
        assert truncate_utf8("aé", 2) == "a"

    def test_zero_budget(self) -> None:
        """A zero budget yields empty text."""
        assert truncate_utf8("abc", 0) == ""


class TestCollectFileContext:
    """Tests for collect_file_context."""

    def test_formats_blocks(self, tmp_path: Path) -> None:
        """Each file is labeled with its relative path."""
        (tmp_path / "a.py").write_text("A = 1\n")
        (tmp_path / "b.py").write_text("B = 2\n")

        result = collect_file_context(tmp_path, ["a.py", "b.py"], 10_000)

        assert result == "File a.py:\n\nA = 1\n\n\nFile b.py:\n\nB = 2\n"

    def test_respects_budget(self, tmp_path: Path) -> None:
        """Output never exceeds max_bytes."""
        (tmp_path / "big.txt").write_text("x" * 1000)
        result = collect_file_context(tmp_path, ["big.txt"], 100)
        assert len(result.encode("utf-8")) <= 100

    def test_skips_unsafe_and_missing(self, tmp_path: Path) -> None:
        """Traversal and missing paths are skipped."""
        (tmp_path / "ok.txt").write_text("ok")
        result = collect_file_context(tmp_path, ["../etc/passwd", "missing.txt", "ok.txt"], 1000)
        assert result == "File ok.txt:\n\nok"

    def test_collector_binds_paths(self, tmp_path: Path) -> None:
        """file_context_collector defers reading until called."""
        collect = file_context_collector(tmp_path, ["late.txt"])
        (tmp_path / "late.txt").write_text("here")
        assert collect(1000) == "File late.txt:\n\nhere"
