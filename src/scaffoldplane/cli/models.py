"""spl models command - list installed models."""

import json
from dataclasses import asdict

import click
from rich.console import Console
from rich.table import Table

from scaffoldplane.cli.utils import cli_errors, make_client, run_async
from scaffoldplane.generation.models import ModelInfo


async def _list(ctx: click.Context) -> list[ModelInfo]:
    async with make_client(ctx) as client:
        return await client.list_model_info()


def _format_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.1f} {unit}" if unit != "B" else f"{size} B"
        value /= 1024
    return f"{size} B"


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def models_command(ctx: click.Context, as_json: bool) -> None:
    """List models installed on the model server."""
    with cli_errors():
        models = run_async(_list(ctx))

    if as_json:
        click.echo(json.dumps([asdict(m) for m in models]))
        return

    if not models:
        click.echo("No models installed. Run 'spl pull <name>' to download one.")
        return

    table = Table(show_header=True, box=None, padding=(0, 2), pad_edge=False)
    table.add_column("NAME")
    table.add_column("SIZE", justify="right")
    table.add_column("MODIFIED")
    for m in models:
        table.add_row(m.name, _format_size(m.size), m.modified_at)
    Console().print(table)
