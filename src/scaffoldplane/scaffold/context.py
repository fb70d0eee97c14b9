"""Workspace context for scaffold prompts.

The engine takes any ``Callable[[int], str]`` that returns at most the given
number of UTF-8 bytes. This module provides the file-based one the CLI uses.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import structlog

from scaffoldplane.core.errors import PathRejectedError
from scaffoldplane.scaffold.paths import resolve_in_workspace, sanitize_relative_path

log = structlog.get_logger(__name__)

ContextCollector = Callable[[int], str]


def truncate_utf8(text: str, max_bytes: int) -> str:
    """Cut text to at most max_bytes UTF-8 bytes without splitting a character."""
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    return encoded[: max(0, max_bytes)].decode("utf-8", errors="ignore")


def collect_file_context(workspace_root: Path, paths: Sequence[str], max_bytes: int) -> str:
    """Concatenate workspace files as prompt context, bounded by max_bytes.

    Paths outside the workspace, missing files, and directories are skipped.
    """
    blocks: list[str] = []
    used = 0
    for raw in paths:
        try:
            rel = sanitize_relative_path(raw)
            full_path = resolve_in_workspace(workspace_root, rel)
        except PathRejectedError as e:
            log.warning("context_path_skipped", path=raw, reason=e.message)
            continue
        if not full_path.is_file():
            log.warning("context_path_skipped", path=raw, reason="not a file")
            continue

        content = full_path.read_text(encoding="utf-8", errors="replace")
        block = f"File {rel}:\n\n{content}"
        blocks.append(block)
        used += len(block.encode("utf-8")) + 2
        if used > max_bytes:
            break

    return truncate_utf8("\n\n".join(blocks), max_bytes)


def file_context_collector(workspace_root: Path, paths: Sequence[str]) -> ContextCollector:
    """Bind workspace files into a collector for ScaffoldEngine."""

    def collect(max_bytes: int) -> str:
        return collect_file_context(workspace_root, paths, max_bytes)

    return collect
