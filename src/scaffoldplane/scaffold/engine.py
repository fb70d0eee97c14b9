"""Scaffold engine - free-text request to a reviewed, atomically applied file set.

State machine::

    Requested -> Generated -> Parsed -> Validated -> Reviewing -> Applied
                                 |          |            |
                                 +----------+------------+--> Aborted

Model output is never treated as ready-to-execute filesystem operations:
every path goes through the sanitizer, quotas bound the whole plan, and the
only disk writes happen in one ApplyTransaction at the very end.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

import structlog

from scaffoldplane.config.constants import DEFAULT_MODEL
from scaffoldplane.config.models import ScaffoldConfig, ScaffoldPlaneConfig
from scaffoldplane.core.errors import (
    ApplyFailure,
    PlanParseError,
    QuotaExceeded,
    ScaffoldPlaneError,
    TransportError,
)
from scaffoldplane.core.logging import set_request_id
from scaffoldplane.generation.client import GenerationClient
from scaffoldplane.generation.models import GenerationRequest
from scaffoldplane.scaffold.context import ContextCollector
from scaffoldplane.scaffold.plan import RejectedPath, parse_plan
from scaffoldplane.scaffold.review import ReviewDecider, ReviewItem, build_review
from scaffoldplane.scaffold.transaction import ApplyTransaction, FileWrite, TransactionResult
from scaffoldplane.scaffold.validation import ValidatedPlan, validate_plan

log = structlog.get_logger(__name__)

SYSTEM_PROMPT = """You are a code generation assistant. Generate project files as JSON only.
Rules:
- Output strictly valid JSON with keys: files (array of {path, content}), optional instructions.
- Use forward slashes in paths. No absolute paths and no parent directory traversal.
- Keep total size minimal and relevant to the request.
Example output:
{
  "files": [ { "path": "README.md", "content": "..." } ],
  "instructions": "..."
}"""

NOTICE_NO_FILES = "No files to create."
NOTICE_NOTHING_SELECTED = "All files were skipped; nothing to apply."
NOTICE_DECLINED = "Scaffold declined."
NOTICE_APPLIED = "Scaffold applied."
NOTICE_DRY_RUN = "Dry run: nothing was written."


class ScaffoldState(StrEnum):
    REQUESTED = "requested"
    GENERATED = "generated"
    PARSED = "parsed"
    VALIDATED = "validated"
    REVIEWING = "reviewing"
    APPLIED = "applied"
    ABORTED = "aborted"


def build_scaffold_prompt(request: str, context: str) -> str:
    """User half of the scaffold prompt (the system half is SYSTEM_PROMPT)."""
    return (
        f"Request:\n{request}\n\n"
        f"Workspace context (may be truncated):\n{context}\n\n"
        "Respond with JSON only."
    )


@dataclass
class ScaffoldProposal:
    """A validated plan ready for review."""

    request: str
    raw_text: str
    plan: ValidatedPlan
    items: list[ReviewItem] = field(default_factory=list)
    state: ScaffoldState = ScaffoldState.REVIEWING

    @property
    def instructions(self) -> str | None:
        return self.plan.instructions

    @property
    def rejected(self) -> list[RejectedPath]:
        return self.plan.rejected

    @property
    def conflicts(self) -> list[ReviewItem]:
        return [i for i in self.items if i.is_conflict]

    def summary(self) -> str:
        lines = [f"Scaffold will create/update {len(self.items)} file(s):"]
        lines.extend(item.summary_line() for item in self.items)
        return "\n".join(lines)


@dataclass
class ScaffoldOutcome:
    """Terminal result of one scaffold run."""

    state: ScaffoldState
    notice: str | None = None
    rejected: list[RejectedPath] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    result: TransactionResult | None = None
    error: ScaffoldPlaneError | None = None
    proposal: ScaffoldProposal | None = None

    @property
    def ok(self) -> bool:
        return self.state == ScaffoldState.APPLIED

    @property
    def written(self) -> list[str]:
        if self.result is None or not self.result.applied:
            return []
        return [d.path for d in self.result.delta.files]


class ScaffoldEngine:
    """Turns a feature request into a reviewed, atomically applied file set."""

    def __init__(
        self,
        client: GenerationClient,
        workspace_root: Path,
        *,
        config: ScaffoldConfig | None = None,
        model: str = DEFAULT_MODEL,
        collect_context: ContextCollector | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            client: Generation client used for the plan request
            workspace_root: Directory every write must stay inside
            config: Quotas and overwrite policy
            model: Model asked for the plan
            collect_context: Returns workspace context of at most N bytes
        """
        self._client = client
        self._root = workspace_root.resolve()
        self._config = config or ScaffoldConfig()
        self._model = model
        self._collect_context = collect_context

    @classmethod
    def from_config(
        cls,
        client: GenerationClient,
        workspace_root: Path,
        config: ScaffoldPlaneConfig,
        *,
        collect_context: ContextCollector | None = None,
    ) -> ScaffoldEngine:
        return cls(
            client,
            workspace_root,
            config=config.scaffold,
            model=config.generation.effective_model(),
            collect_context=collect_context,
        )

    @property
    def workspace_root(self) -> Path:
        return self._root

    @property
    def config(self) -> ScaffoldConfig:
        return self._config

    async def propose(self, request: str, *, timeout: float | None = None) -> ScaffoldProposal:
        """Generate, parse, validate, and prepare a plan for review.

        Raises:
            TransportError / ProtocolError: the generation failed
            PlanParseError: no usable plan in the model output
            QuotaExceeded: the plan is too large to apply at all
        """
        state = ScaffoldState.REQUESTED
        context = ""
        if self._collect_context is not None:
            context = self._collect_context(self._config.max_context_bytes)
        log.debug("scaffold_state", state=state, context_bytes=len(context.encode("utf-8")))

        generation = GenerationRequest(
            model=self._model,
            prompt=build_scaffold_prompt(request, context),
            system=SYSTEM_PROMPT,
            streaming=True,
            options=self._client.default_options,
        )
        result = await self._client.generate(generation, timeout=timeout)
        state = ScaffoldState.GENERATED
        log.debug("scaffold_state", state=state, chars=len(result.text), cached=result.cached)

        parsed = parse_plan(result.text)
        state = ScaffoldState.PARSED
        log.debug("scaffold_state", state=state, planned=len(parsed.plan.files))

        validated = validate_plan(
            parsed,
            self._root,
            max_files=self._config.max_files,
            max_total_bytes=self._config.max_total_bytes,
        )
        state = ScaffoldState.VALIDATED
        log.debug("scaffold_state", state=state, files=len(validated.files))

        if validated.is_empty:
            return ScaffoldProposal(
                request=request, raw_text=result.text, plan=validated, state=state
            )

        return ScaffoldProposal(
            request=request,
            raw_text=result.text,
            plan=validated,
            items=build_review(validated.files),
            state=ScaffoldState.REVIEWING,
        )

    async def apply(
        self,
        proposal: ScaffoldProposal,
        decider: ReviewDecider,
        *,
        timeout: float | None = None,
        dry_run: bool = False,
    ) -> ScaffoldOutcome:
        """Collect review decisions, then commit one transaction.

        Cancellation or timeout while a decision is pending writes nothing.
        """
        outcome = ScaffoldOutcome(
            state=ScaffoldState.ABORTED, rejected=list(proposal.rejected), proposal=proposal
        )
        if not proposal.items:
            outcome.state = ScaffoldState.APPLIED
            outcome.notice = NOTICE_NO_FILES
            log.info("scaffold_noop", rejected=len(proposal.rejected))
            return outcome

        writes: list[FileWrite] = []
        async with self._review_deadline(timeout):
            if not await decider.confirm(proposal):
                outcome.notice = NOTICE_DECLINED
                log.info("scaffold_declined")
                return outcome

            for item in proposal.items:
                if item.is_conflict and not self._config.allow_overwrite:
                    if not await decider.overwrite(item):
                        outcome.skipped.append(item.path)
                        continue
                writes.append(FileWrite(path=item.path, content=item.file.content, action=item.action))

        if not writes:
            outcome.state = ScaffoldState.APPLIED
            outcome.notice = NOTICE_NOTHING_SELECTED
            return outcome

        transaction = ApplyTransaction(self._root, writes)
        try:
            outcome.result = transaction.commit(dry_run=dry_run)
        except ApplyFailure as e:
            outcome.error = e
            outcome.notice = e.message
            return outcome

        outcome.state = ScaffoldState.APPLIED
        outcome.notice = NOTICE_DRY_RUN if dry_run else NOTICE_APPLIED
        log.info(
            "scaffold_applied",
            files=len(writes),
            skipped=len(outcome.skipped),
            rejected=len(outcome.rejected),
            dry_run=dry_run,
        )
        return outcome

    async def run(
        self,
        request: str,
        decider: ReviewDecider,
        *,
        timeout: float | None = None,
        dry_run: bool = False,
    ) -> ScaffoldOutcome:
        """propose + apply. Plan and quota failures become an aborted outcome."""
        set_request_id()
        log.info("scaffold_requested", model=self._model, workspace=str(self._root))
        try:
            proposal = await self.propose(request, timeout=timeout)
        except (PlanParseError, QuotaExceeded) as e:
            log.warning("scaffold_aborted", error=e.error_name, message=e.message)
            return ScaffoldOutcome(state=ScaffoldState.ABORTED, notice=e.message, error=e)
        return await self.apply(proposal, decider, timeout=timeout, dry_run=dry_run)

    @asynccontextmanager
    async def _review_deadline(self, timeout: float | None) -> AsyncIterator[None]:
        if timeout is None:
            yield
            return
        try:
            async with asyncio.timeout(timeout):
                yield
        except TimeoutError as e:
            raise TransportError.timeout("scaffold review", timeout) from e
