"""Path sanitization for model-proposed file paths.

A planned path is accepted only if it is relative, has no parent-directory
segment, and resolves (following symlinks) inside the workspace root.
"""

from __future__ import annotations

import posixpath
import re
from pathlib import Path

from scaffoldplane.core.errors import PathRejectedError

_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:")

# Writing here could plant hooks that git executes later
_PROTECTED_TOP_LEVEL = frozenset({".git"})


def _encodes_as_utf8(text: str) -> bool:
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def printable(text: str) -> str:
    """Escape lone surrogates so model-supplied text can be logged and shown."""
    return text.encode("utf-8", "backslashreplace").decode("utf-8")


def sanitize_relative_path(path: str) -> str:
    """Normalize a planned path or reject it.

    Backslashes become forward slashes and redundant ``.``/``//`` parts are
    collapsed; anything else about the path is returned unchanged.

    Raises:
        PathRejectedError: empty, absolute, drive-qualified, traversing,
            directory-like, NUL-containing, not encodable as UTF-8, or inside
            a protected directory.
    """
    if not path or not path.strip():
        raise PathRejectedError.unsafe(path, "empty path")
    if "\x00" in path:
        raise PathRejectedError.unsafe(path, "contains NUL byte")
    if not _encodes_as_utf8(path):
        raise PathRejectedError.unsafe(printable(path), "not valid UTF-8")

    unified = path.replace("\\", "/")
    if unified.startswith("/") or _DRIVE_PREFIX.match(unified):
        raise PathRejectedError.unsafe(path, "absolute path")
    if ".." in unified.split("/"):
        raise PathRejectedError.unsafe(path, "parent directory traversal")
    if unified.endswith("/"):
        raise PathRejectedError.unsafe(path, "names a directory, not a file")

    normalized = posixpath.normpath(unified).lstrip("/")
    if normalized in ("", "."):
        raise PathRejectedError.unsafe(path, "empty path")

    top = normalized.split("/", 1)[0]
    if top.lower() in _PROTECTED_TOP_LEVEL:
        raise PathRejectedError.unsafe(path, f"writes into {top}/ are not allowed")

    return normalized


def resolve_in_workspace(workspace_root: Path, relative_path: str) -> Path:
    """Resolve a sanitized path against the workspace root.

    Args:
        workspace_root: Workspace root directory
        relative_path: Output of sanitize_relative_path

    Returns:
        Absolute destination path

    Raises:
        PathRejectedError: the destination escapes the root (e.g. via a symlink)
    """
    resolved_root = workspace_root.resolve()
    full_path = (resolved_root / relative_path).resolve()

    if not full_path.is_relative_to(resolved_root) or full_path == resolved_root:
        raise PathRejectedError.unsafe(relative_path, "resolves outside the workspace root")

    return full_path
