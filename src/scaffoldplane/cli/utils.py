"""CLI utilities."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import click

from scaffoldplane.config.constants import WORKSPACE_STATE_DIR
from scaffoldplane.config.models import ScaffoldPlaneConfig
from scaffoldplane.core.errors import ScaffoldPlaneError
from scaffoldplane.generation.client import GenerationClient


def find_workspace_root(start_path: Path | None = None) -> Path:
    """Find the workspace root from the given path.

    Walks up the directory tree looking for a .scaffoldplane or .git
    directory. Falls back to the start path itself when neither is found.
    """
    if start_path is None:
        start_path = Path.cwd()

    start = start_path.resolve()
    current = start
    while True:
        if (current / WORKSPACE_STATE_DIR).is_dir() or (current / ".git").exists():
            return current
        if current == current.parent:
            return start
        current = current.parent


def get_config(ctx: click.Context) -> ScaffoldPlaneConfig:
    config: ScaffoldPlaneConfig = ctx.obj["config"]
    return config


def get_workspace(ctx: click.Context) -> Path:
    workspace: Path = ctx.obj["workspace"]
    return workspace


def make_client(ctx: click.Context) -> GenerationClient:
    """Build the generation client for this invocation.

    ``ctx.obj["transport"]`` overrides the HTTP transport (used by tests).
    """
    return GenerationClient.from_config(
        get_config(ctx).generation,
        transport=ctx.obj.get("transport"),
    )


@contextmanager
def cli_errors() -> Iterator[None]:
    """Render domain errors as click errors instead of tracebacks."""
    try:
        yield
    except ScaffoldPlaneError as e:
        raise click.ClickException(e.message) from e


def run_async[T](coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine to completion; Ctrl-C aborts cleanly."""
    try:
        return asyncio.run(coro)
    except KeyboardInterrupt:
        raise click.Abort() from None
