"""ScaffoldPlane CLI - spl command."""

from pathlib import Path

import click

from scaffoldplane import __version__
from scaffoldplane.cli.chat import chat_command
from scaffoldplane.cli.generate import generate_command
from scaffoldplane.cli.models import models_command
from scaffoldplane.cli.pull import pull_command
from scaffoldplane.cli.scaffold import scaffold_command
from scaffoldplane.cli.utils import find_workspace_root
from scaffoldplane.config.loader import load_config
from scaffoldplane.core.errors import ConfigError
from scaffoldplane.core.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="spl")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "--workspace",
    "-w",
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Workspace root (default: nearest directory with .scaffoldplane/ or .git)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, workspace: Path | None) -> None:
    """ScaffoldPlane - local model client and safe file scaffolding."""
    ctx.ensure_object(dict)
    root = workspace.resolve() if workspace is not None else find_workspace_root()
    try:
        config = load_config(root)
    except ConfigError as e:
        raise click.ClickException(e.message) from e

    logging_config = config.logging
    if verbose:
        logging_config = logging_config.model_copy(update={"level": "DEBUG"})
    configure_logging(config=logging_config)

    ctx.obj["verbose"] = verbose
    ctx.obj["workspace"] = root
    ctx.obj["config"] = config


cli.add_command(generate_command, name="generate")
cli.add_command(chat_command, name="chat")
cli.add_command(models_command, name="models")
cli.add_command(pull_command, name="pull")
cli.add_command(scaffold_command, name="scaffold")


if __name__ == "__main__":
    cli()
