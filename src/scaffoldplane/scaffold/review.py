"""Review step: create-vs-overwrite classification, diffs, and decisions."""

from __future__ import annotations

import difflib
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Protocol

from scaffoldplane.scaffold.validation import SanitizedFile

if TYPE_CHECKING:
    from scaffoldplane.scaffold.engine import ScaffoldProposal

ReviewAction = Literal["create", "overwrite"]


@dataclass(frozen=True)
class ReviewItem:
    """One file as presented for review."""

    file: SanitizedFile
    action: ReviewAction
    existing_content: str | None
    diff: str

    @property
    def path(self) -> str:
        return self.file.path

    @property
    def is_conflict(self) -> bool:
        return self.action == "overwrite"

    @property
    def unchanged(self) -> bool:
        return self.existing_content == self.file.content

    def summary_line(self) -> str:
        return f"- {self.path} ({self.file.size_bytes} bytes)"


def render_diff(path: str, old: str | None, new: str) -> str:
    """Unified diff between existing content (None = new file) and planned content."""
    old_lines = (old or "").splitlines(keepends=True)
    new_lines = new.splitlines(keepends=True)
    return "".join(
        difflib.unified_diff(
            old_lines,
            new_lines,
            fromfile=f"a/{path}" if old is not None else "/dev/null",
            tofile=f"b/{path}",
        )
    )


def build_review(files: list[SanitizedFile]) -> list[ReviewItem]:
    """Classify each file by whether its destination exists, and diff it."""
    items: list[ReviewItem] = []
    for f in files:
        if f.destination.is_file():
            existing = f.destination.read_text(encoding="utf-8", errors="replace")
            action: ReviewAction = "overwrite"
        else:
            existing = None
            action = "create"
        items.append(
            ReviewItem(
                file=f,
                action=action,
                existing_content=existing,
                diff=render_diff(f.path, existing, f.content),
            )
        )
    return items


class ReviewDecider(Protocol):
    """Supplies the decisions a human would make during review.

    Both hooks are awaited, so a caller can cancel while one is pending.
    """

    async def confirm(self, proposal: ScaffoldProposal) -> bool:
        """Apply the proposal at all?"""
        ...

    async def overwrite(self, item: ReviewItem) -> bool:
        """Overwrite this existing file? False skips it."""
        ...


class AutoApproveDecider:
    """Approves the plan; overwrites conflicts only if told to."""

    def __init__(self, *, overwrite: bool = False) -> None:
        self._overwrite = overwrite

    async def confirm(self, proposal: ScaffoldProposal) -> bool:  # noqa: ARG002
        return True

    async def overwrite(self, item: ReviewItem) -> bool:  # noqa: ARG002
        return self._overwrite


class DeclineDecider:
    """Declines everything."""

    async def confirm(self, proposal: ScaffoldProposal) -> bool:  # noqa: ARG002
        return False

    async def overwrite(self, item: ReviewItem) -> bool:  # noqa: ARG002
        return False
