"""Plan validation: per-file path sanitization, then whole-plan quotas.

An unsafe path drops only its own entry. A quota violation rejects the
whole plan: an oversized plan must not be partially applied.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import structlog

from scaffoldplane.core.errors import PathRejectedError, QuotaExceeded
from scaffoldplane.scaffold.paths import printable, resolve_in_workspace, sanitize_relative_path
from scaffoldplane.scaffold.plan import ParsedPlan, RejectedPath

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SanitizedFile:
    """A planned file whose path is proven to stay inside the workspace."""

    path: str  # normalized, relative to the workspace root
    content: str
    destination: Path

    @property
    def size_bytes(self) -> int:
        return len(self.content.encode("utf-8"))


@dataclass
class ValidatedPlan:
    """Surviving files plus everything that was dropped."""

    files: list[SanitizedFile] = field(default_factory=list)
    rejected: list[RejectedPath] = field(default_factory=list)
    instructions: str | None = None

    @property
    def total_bytes(self) -> int:
        return sum(f.size_bytes for f in self.files)

    @property
    def is_empty(self) -> bool:
        return not self.files


def validate_plan(
    parsed: ParsedPlan,
    workspace_root: Path,
    *,
    max_files: int,
    max_total_bytes: int,
) -> ValidatedPlan:
    """Sanitize every planned path and enforce quotas on the survivors.

    Args:
        parsed: Output of parse_plan
        workspace_root: Directory all writes must stay inside
        max_files: Maximum surviving files
        max_total_bytes: Maximum summed UTF-8 size of surviving contents

    Returns:
        ValidatedPlan (possibly empty, which callers treat as a no-op)

    Raises:
        QuotaExceeded: too many files or too many bytes
    """
    result = ValidatedPlan(rejected=list(parsed.rejected), instructions=parsed.plan.instructions)
    seen: set[str] = set()

    for planned in parsed.plan.files:
        label = printable(planned.path)
        try:
            rel = sanitize_relative_path(planned.path)
            destination = resolve_in_workspace(workspace_root, rel)
        except PathRejectedError as e:
            reason = str(e.details.get("reason", e.message))
            result.rejected.append(RejectedPath(path=label, reason=reason))
            log.warning("scaffold_path_rejected", path=label, reason=reason)
            continue

        if rel in seen:
            result.rejected.append(RejectedPath(path=label, reason="duplicate path"))
            log.warning("scaffold_path_rejected", path=label, reason="duplicate path")
            continue
        if destination.is_dir():
            reason = "destination is a directory"
            result.rejected.append(RejectedPath(path=label, reason=reason))
            log.warning("scaffold_path_rejected", path=label, reason=reason)
            continue

        seen.add(rel)
        result.files.append(SanitizedFile(path=rel, content=planned.content, destination=destination))

    if result.is_empty:
        return result

    if len(result.files) > max_files:
        raise QuotaExceeded.too_many_files(len(result.files), max_files)
    total = result.total_bytes
    if total > max_total_bytes:
        raise QuotaExceeded.too_many_bytes(total, max_total_bytes)

    log.debug(
        "scaffold_plan_validated",
        files=len(result.files),
        total_bytes=total,
        rejected=len(result.rejected),
    )
    return result
