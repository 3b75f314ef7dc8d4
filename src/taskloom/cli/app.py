"""
Main Typer application for the taskloom CLI.

This module defines the root CLI application and registers all command groups.
"""

from typing import Annotated

import typer

from taskloom import __version__
from taskloom.cli.commands import generate, keys, models
from taskloom.cli.output import print_info, setup_logging
from taskloom.config import ConfigurationError, load_config

# Create the main Typer app
app = typer.Typer(
    name="taskloom",
    help="Role-based AI generation with provider fallback and usage telemetry.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        print_info(f"taskloom version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Show AI layer logs (attempts, fallbacks, telemetry).",
        ),
    ] = False,
) -> None:
    """
    [bold blue]taskloom[/bold blue] - unified AI invocation layer

    Resolves the main, research and fallback roles to configured models,
    retries transient failures and falls back across roles.
    """
    setup_logging("debug" if verbose else _configured_log_level())


def _configured_log_level() -> str:
    try:
        return load_config().general.log_level
    except ConfigurationError:
        return "warning"


# Register command groups
app.command("generate")(generate.generate)
app.add_typer(models.app, name="models")
app.add_typer(keys.app, name="keys")


if __name__ == "__main__":
    app()
