"""spl scaffold command - generate, review, and apply a file plan."""

from __future__ import annotations

from pathlib import Path

import click
import questionary
from rich.syntax import Syntax

from scaffoldplane.cli.utils import (
    cli_errors,
    get_config,
    get_workspace,
    make_client,
    run_async,
)
from scaffoldplane.core.progress import get_console, pluralize, spinner, status
from scaffoldplane.scaffold.context import file_context_collector
from scaffoldplane.scaffold.engine import ScaffoldEngine, ScaffoldOutcome, ScaffoldProposal
from scaffoldplane.scaffold.plan import RejectedPath
from scaffoldplane.scaffold.review import AutoApproveDecider, ReviewDecider, ReviewItem

_STYLE = questionary.Style(
    [
        ("question", "bold"),
        ("highlighted", "fg:cyan bold"),
        ("selected", "fg:cyan"),
    ]
)


class PromptDecider:
    """Asks on the terminal: once for the plan, then once per existing file."""

    async def confirm(self, proposal: ScaffoldProposal) -> bool:
        console = get_console()
        for item in proposal.items:
            if item.diff:
                console.print(Syntax(item.diff, "diff", theme="ansi_dark", background_color="default"))
        answer = await questionary.select(
            "Apply this scaffold?",
            choices=[
                questionary.Choice("No, discard it", value=False),
                questionary.Choice("Yes, write the files", value=True),
            ],
            style=_STYLE,
        ).ask_async()
        return bool(answer)

    async def overwrite(self, item: ReviewItem) -> bool:
        if item.unchanged:
            return False
        answer = await questionary.confirm(
            f"{item.path} already exists. Overwrite it?",
            default=False,
            style=_STYLE,
        ).ask_async()
        return bool(answer)


def _print_rejected(rejected: list[RejectedPath]) -> None:
    if not rejected:
        return
    status(f"Skipped {pluralize(len(rejected), 'unsafe path')}:", style="warning")
    for r in rejected:
        status(f"{r.path}: {r.reason}", indent=4)


def _print_outcome(outcome: ScaffoldOutcome) -> None:
    console = get_console()
    for path in outcome.written:
        console.print(f"  [green]+[/green] {path}", highlight=False)
    for path in outcome.skipped:
        console.print(f"  [yellow]-[/yellow] {path} (kept existing)", highlight=False)

    if outcome.error is not None:
        raise click.ClickException(outcome.notice or outcome.error.message)

    if outcome.notice:
        status(outcome.notice, style="success" if outcome.ok else "warning")

    proposal = outcome.proposal
    if outcome.ok and outcome.written and proposal is not None and proposal.instructions:
        console.print()
        console.print("[bold]Instructions[/bold]")
        console.print(proposal.instructions, highlight=False, markup=False)


async def _scaffold(
    ctx: click.Context,
    request: str,
    context_paths: tuple[str, ...],
    decider: ReviewDecider,
    *,
    allow_overwrite: bool,
    dry_run: bool,
    timeout: float | None,
) -> ScaffoldOutcome:
    config = get_config(ctx)
    if allow_overwrite:
        config = config.model_copy(
            update={"scaffold": config.scaffold.model_copy(update={"allow_overwrite": True})}
        )
    workspace: Path = get_workspace(ctx)

    async with make_client(ctx) as client:
        engine = ScaffoldEngine.from_config(
            client,
            workspace,
            config,
            collect_context=file_context_collector(workspace, context_paths) if context_paths else None,
        )
        with spinner(f"Generating scaffold plan with {config.generation.effective_model()}"):
            proposal = await engine.propose(request, timeout=timeout)

        _print_rejected(proposal.rejected)
        if proposal.items:
            get_console().print(proposal.summary(), highlight=False, markup=False)
        return await engine.apply(proposal, decider, dry_run=dry_run)


@click.command()
@click.argument("request")
@click.option(
    "--context",
    "-c",
    "context_paths",
    multiple=True,
    help="Workspace file to include as context (repeatable)",
)
@click.option("--yes", "-y", is_flag=True, help="Apply without asking")
@click.option("--dry-run", is_flag=True, help="Validate and show the plan without writing")
@click.option(
    "--allow-overwrite",
    is_flag=True,
    help="Overwrite existing files without asking",
)
@click.option("--timeout", type=float, default=None, help="Give up generating after this many seconds")
@click.pass_context
def scaffold_command(
    ctx: click.Context,
    request: str,
    context_paths: tuple[str, ...],
    yes: bool,
    dry_run: bool,
    allow_overwrite: bool,
    timeout: float | None,
) -> None:
    """Ask the model for files implementing REQUEST and write them safely.

    Every proposed path is checked against the workspace root, the plan is
    size-limited, and all files are written together or not at all.

    Examples:

        spl scaffold "Add a README describing the project"

        spl scaffold "Add tests for the parser" -c src/parser.py --yes
    """
    decider: ReviewDecider = AutoApproveDecider(overwrite=allow_overwrite) if yes else PromptDecider()
    with cli_errors():
        outcome = run_async(
            _scaffold(
                ctx,
                request,
                context_paths,
                decider,
                allow_overwrite=allow_overwrite,
                dry_run=dry_run,
                timeout=timeout,
            )
        )
    _print_outcome(outcome)
