"""spl chat command - one chat turn."""

import click

from scaffoldplane.cli.utils import cli_errors, get_config, make_client, run_async
from scaffoldplane.generation.models import ChatMessage


async def _chat(
    ctx: click.Context, model: str, messages: list[ChatMessage], timeout: float | None
) -> None:
    async with make_client(ctx) as client:
        await client.chat(
            model,
            messages,
            on_token=lambda token: click.echo(token, nl=False),
            timeout=timeout,
        )
    click.echo()


@click.command()
@click.argument("message")
@click.option("--model", "-m", default=None, help="Model to use (default: configured model)")
@click.option("--system", default=None, help="System message sent before MESSAGE")
@click.option("--timeout", type=float, default=None, help="Give up after this many seconds")
@click.pass_context
def chat_command(
    ctx: click.Context,
    message: str,
    model: str | None,
    system: str | None,
    timeout: float | None,
) -> None:
    """Send MESSAGE as a single chat turn and print the reply."""
    messages: list[ChatMessage] = []
    if system:
        messages.append(ChatMessage(role="system", content=system))
    messages.append(ChatMessage(role="user", content=message))

    chosen = model or get_config(ctx).generation.effective_model()
    with cli_errors():
        run_async(_chat(ctx, chosen, messages, timeout))
