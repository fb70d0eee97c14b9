"""File plan schema and extraction from generator output.

The plan is untrusted: it comes from model output. Only entries that match
the schema exactly survive; everything else is dropped and reported.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from scaffoldplane.core.errors import PlanParseError
from scaffoldplane.scaffold.paths import printable

log = structlog.get_logger(__name__)


class PlannedFile(BaseModel):
    """One ``{path, content}`` entry of a plan."""

    model_config = ConfigDict(frozen=True, strict=True, extra="ignore")

    path: str = Field(min_length=1)
    content: str = ""

    @field_validator("content", mode="before")
    @classmethod
    def missing_content_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("path", "content")
    @classmethod
    def encodes_as_utf8(cls, v: str) -> str:
        try:
            v.encode("utf-8")
        except UnicodeEncodeError:
            raise ValueError("not valid UTF-8") from None
        return v


class FilePlan(BaseModel):
    """Files to create or update, in plan order."""

    model_config = ConfigDict(frozen=True)

    files: tuple[PlannedFile, ...] = ()
    instructions: str | None = None


@dataclass(frozen=True)
class RejectedPath:
    """A planned entry that was dropped, and why."""

    path: str
    reason: str


@dataclass
class ParsedPlan:
    """A plan extracted from generator output plus the entries it dropped."""

    plan: FilePlan
    raw_text: str
    rejected: list[RejectedPath] = field(default_factory=list)


def extract_json(text: str) -> Any | None:
    """Find a JSON object in free text.

    Tries the whole text first, then the span from the first ``{`` to the
    last ``}`` (plans wrapped in prose). Returns None when neither parses.
    """
    try:
        value = json.loads(text)
    except ValueError:
        value = None
    if isinstance(value, dict):
        return value

    first = text.find("{")
    last = text.rfind("}")
    if first >= 0 and last > first:
        try:
            return json.loads(text[first : last + 1])
        except ValueError:
            return None
    return value


def _entry_label(entry: Any, index: int) -> str:
    if isinstance(entry, dict) and isinstance(entry.get("path"), str) and entry["path"]:
        return printable(entry["path"])
    return f"files[{index}]"


def parse_plan(text: str) -> ParsedPlan:
    """Extract and schema-check a file plan.

    Raises:
        PlanParseError: no JSON object, or no array-typed ``files`` field
    """
    data = extract_json(text)
    if not isinstance(data, dict):
        raise PlanParseError.no_json(text)

    raw_files = data.get("files")
    if not isinstance(raw_files, list):
        raise PlanParseError.missing_files(text)

    files: list[PlannedFile] = []
    rejected: list[RejectedPath] = []
    for index, entry in enumerate(raw_files):
        try:
            files.append(PlannedFile.model_validate(entry))
        except ValidationError as e:
            err = e.errors()[0]
            where = ".".join(str(loc) for loc in err["loc"]) or "entry"
            reason = f"malformed entry ({where}: {err['msg']})"
            rejected.append(RejectedPath(path=_entry_label(entry, index), reason=reason))
            log.warning("scaffold_entry_malformed", index=index, reason=reason)

    instructions = data.get("instructions")
    if not isinstance(instructions, str) or not instructions:
        instructions = None
    plan = FilePlan(
        files=tuple(files),
        instructions=printable(instructions) if instructions else None,
    )
    return ParsedPlan(plan=plan, raw_text=text, rejected=rejected)
