"""spl generate command - stream one generation to stdout."""

import click

from scaffoldplane.cli.utils import cli_errors, get_config, make_client, run_async
from scaffoldplane.generation.models import GenerationRequest


async def _generate(ctx: click.Context, request: GenerationRequest, timeout: float | None) -> None:
    async with make_client(ctx) as client:
        await client.generate(
            request,
            on_token=lambda token: click.echo(token, nl=False),
            timeout=timeout,
        )
    click.echo()


@click.command()
@click.argument("prompt")
@click.option("--model", "-m", default=None, help="Model to use (default: configured model)")
@click.option("--system", default=None, help="System preamble prepended to the prompt")
@click.option("--no-stream", is_flag=True, help="Wait for the full response")
@click.option("--timeout", type=float, default=None, help="Give up after this many seconds")
@click.pass_context
def generate_command(
    ctx: click.Context,
    prompt: str,
    model: str | None,
    system: str | None,
    no_stream: bool,
    timeout: float | None,
) -> None:
    """Generate text for PROMPT and print it as it arrives."""
    generation = get_config(ctx).generation
    request = GenerationRequest(
        model=model or generation.effective_model(),
        prompt=prompt,
        streaming=not no_stream,
        system=system,
    )
    with cli_errors():
        run_async(_generate(ctx, request, timeout))
