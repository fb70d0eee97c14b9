"""spl pull command - download a model."""

import click

from scaffoldplane.cli.utils import cli_errors, make_client, run_async
from scaffoldplane.config.constants import PULL_SUCCESS_STATUS
from scaffoldplane.core.progress import status


async def _pull(ctx: click.Context, name: str) -> str:
    seen: list[str] = []

    def on_progress(line: str) -> None:
        # The server repeats a status for every downloaded chunk
        if not seen or seen[-1] != line:
            status(line)
        seen.append(line)

    async with make_client(ctx) as client:
        return await client.pull_model(name, on_progress=on_progress)


@click.command()
@click.argument("name")
@click.pass_context
def pull_command(ctx: click.Context, name: str) -> None:
    """Download model NAME to the model server."""
    with cli_errors():
        final = run_async(_pull(ctx, name))

    if final == PULL_SUCCESS_STATUS:
        status(f"Pulled {name}", style="success")
    else:
        raise click.ClickException(f"Pull of {name} ended without success (last status: {final or 'none'})")
