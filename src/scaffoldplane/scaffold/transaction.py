"""Atomic multi-file apply with rollback.

Every write is first staged as a temp file beside its destination, then all
staged files are moved into place with os.replace. A failure at any point
restores overwritten files, removes created files and the directories made
for them, and raises ApplyFailure. Nothing partial is left behind.
If the rollback itself cannot undo a write, InternalError names the paths
left in an unknown state.

Assumes a single writer in the workspace while a commit runs.
"""

from __future__ import annotations

import hashlib
import os
import stat
import tempfile
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

import structlog

from scaffoldplane.core.errors import ApplyFailure, InternalError, PathRejectedError
from scaffoldplane.scaffold.paths import resolve_in_workspace

log = structlog.get_logger(__name__)

_NEW_FILE_MODE = 0o644


@dataclass(frozen=True)
class FileWrite:
    """A single full-content write."""

    path: str  # sanitized, relative to the workspace root
    content: str
    action: Literal["create", "overwrite"]


@dataclass
class FileDelta:
    """Delta for a single file."""

    path: str
    action: Literal["created", "updated"]
    old_hash: str | None = None
    new_hash: str | None = None
    insertions: int = 0
    deletions: int = 0


@dataclass
class TransactionDelta:
    """Structured delta from a transaction."""

    transaction_id: str
    files_changed: int
    insertions: int
    deletions: int
    files: list[FileDelta] = field(default_factory=list)


@dataclass
class TransactionResult:
    """Result of ApplyTransaction.commit."""

    applied: bool
    dry_run: bool
    delta: TransactionDelta


@dataclass
class _Staged:
    write: FileWrite
    target: Path
    temp: Path | None = None
    backup: bytes | None = None
    committed: bool = False


class ApplyTransaction:
    """All-or-nothing application of a set of file writes."""

    def __init__(self, workspace_root: Path, writes: Sequence[FileWrite]) -> None:
        self._root = workspace_root.resolve()
        self._writes = list(writes)
        self.transaction_id = str(uuid.uuid4())[:8]

    @property
    def writes(self) -> list[FileWrite]:
        return list(self._writes)

    def commit(self, *, dry_run: bool = False) -> TransactionResult:
        """Apply every write, or none.

        Args:
            dry_run: Compute the delta only, touch nothing

        Returns:
            TransactionResult with per-file deltas

        Raises:
            ApplyFailure: a destination changed since review, or any
                filesystem operation failed (after rollback)
            InternalError: the rollback could not undo every write
        """
        staged: list[_Staged] = []
        file_deltas: list[FileDelta] = []

        # Validate all writes first
        for write in self._writes:
            try:
                target = resolve_in_workspace(self._root, write.path)
            except PathRejectedError as e:
                raise ApplyFailure.write_failed(write.path, e.message, self.transaction_id) from e
            if write.action == "create" and target.exists():
                raise ApplyFailure.write_failed(
                    write.path, "file was created since review", self.transaction_id
                )
            if write.action == "overwrite" and not target.is_file():
                raise ApplyFailure.write_failed(
                    write.path, "file was removed since review", self.transaction_id
                )
            staged.append(_Staged(write=write, target=target))

        for item in staged:
            file_deltas.append(_compute_delta(item))

        delta = TransactionDelta(
            transaction_id=self.transaction_id,
            files_changed=len(file_deltas),
            insertions=sum(d.insertions for d in file_deltas),
            deletions=sum(d.deletions for d in file_deltas),
            files=file_deltas,
        )
        if dry_run:
            return TransactionResult(applied=False, dry_run=True, delta=delta)

        created_dirs: list[Path] = []
        current = ""
        try:
            for item in staged:
                current = item.write.path
                created_dirs.extend(_make_parents(item.target.parent))
                if item.write.action == "overwrite":
                    item.backup = item.target.read_bytes()
                item.temp = _stage(item.target, item.write.content)

            for item in staged:
                current = item.write.path
                os.replace(item.temp, item.target)  # type: ignore[arg-type]
                item.committed = True
        except OSError as e:
            log.error(
                "scaffold_apply_failed",
                transaction_id=self.transaction_id,
                path=current,
                error=str(e),
            )
            unrestored = self._rollback(staged, created_dirs)
            if unrestored:
                raise InternalError.unexpected(
                    f"rollback incomplete after failure at {current}: {e}",
                    transaction_id=self.transaction_id,
                    paths=unrestored,
                ) from e
            raise ApplyFailure.write_failed(current, str(e), self.transaction_id) from e

        log.info(
            "scaffold_transaction_committed",
            transaction_id=self.transaction_id,
            files=len(staged),
        )
        return TransactionResult(applied=True, dry_run=False, delta=delta)

    def _rollback(self, staged: list[_Staged], created_dirs: list[Path]) -> list[str]:
        """Undo staged and committed writes. Returns committed paths that could not be undone."""
        unrestored: list[str] = []
        for item in reversed(staged):
            try:
                if item.committed:
                    if item.backup is None:
                        item.target.unlink(missing_ok=True)
                    else:
                        _restore(item.target, item.backup)
                elif item.temp is not None:
                    item.temp.unlink(missing_ok=True)
            except OSError as e:
                log.error(
                    "scaffold_rollback_failed",
                    transaction_id=self.transaction_id,
                    path=item.write.path,
                    error=str(e),
                )
                if item.committed:
                    unrestored.append(item.write.path)
        for directory in reversed(created_dirs):
            try:
                directory.rmdir()
            except OSError as e:
                log.warning("scaffold_rollback_dir_kept", path=str(directory), error=str(e))
        return unrestored


def _make_parents(directory: Path) -> list[Path]:
    """mkdir -p that reports which directories it created, outermost first."""
    missing: list[Path] = []
    current = directory
    while not current.exists():
        missing.append(current)
        current = current.parent
    created: list[Path] = []
    for path in reversed(missing):
        path.mkdir()
        created.append(path)
    return created


def _stage(target: Path, content: str) -> Path:
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        mode = stat.S_IMODE(target.stat().st_mode) if target.exists() else _NEW_FILE_MODE
        os.chmod(tmp, mode)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise
    return tmp


def _restore(target: Path, backup: bytes) -> None:
    mode = stat.S_IMODE(target.stat().st_mode) if target.exists() else _NEW_FILE_MODE
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".bak", dir=target.parent)
    with os.fdopen(fd, "wb") as f:
        f.write(backup)
    os.chmod(tmp_name, mode)
    os.replace(tmp_name, target)


def _compute_delta(item: _Staged) -> FileDelta:
    content = item.write.content
    if item.write.action == "create":
        return FileDelta(
            path=item.write.path,
            action="created",
            new_hash=_hash_content(content),
            insertions=content.count("\n") + 1,
        )

    old_content = item.target.read_text(encoding="utf-8", errors="replace")
    old_lines = old_content.splitlines()
    new_lines = content.splitlines()
    return FileDelta(
        path=item.write.path,
        action="updated",
        old_hash=_hash_content(old_content),
        new_hash=_hash_content(content),
        insertions=max(0, len(new_lines) - len(old_lines)),
        deletions=max(0, len(old_lines) - len(new_lines)),
    )


def _hash_content(content: str) -> str:
    """Hash content for delta tracking."""
    return hashlib.sha256(content.encode()).hexdigest()[:12]
