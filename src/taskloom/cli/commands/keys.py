"""
taskloom keys - Manage stored provider API keys.

Usage:
    taskloom keys set anthropic
    taskloom keys list
    taskloom keys delete anthropic
"""

from typing import Annotated

import typer

from taskloom.cli.output import print_error, print_info, print_success, print_table
from taskloom.providers.keys import PROVIDER_ENV_VARS
from taskloom.secrets import SecretsError, SecretsManager

app = typer.Typer(
    name="keys",
    help="Manage stored provider API keys.",
    no_args_is_help=True,
)


def _check_provider(provider: str) -> str:
    name = provider.lower()
    if name not in PROVIDER_ENV_VARS:
        print_error(
            f"Unknown provider '{provider}'. Known: {', '.join(sorted(PROVIDER_ENV_VARS))}"
        )
        raise typer.Exit(1)
    return name


@app.command("set")
def set_key(
    provider: Annotated[str, typer.Argument(help="Provider name, e.g. anthropic.")],
    value: Annotated[
        str,
        typer.Option("--value", prompt=True, hide_input=True, help="The API key."),
    ],
) -> None:
    """Store an API key (encrypted)."""
    name = _check_provider(provider)
    SecretsManager().set(name, value)
    print_success(f"Stored key for {name}")


@app.command("list")
def list_keys() -> None:
    """List providers with a stored key."""
    names = SecretsManager().list()
    if not names:
        print_info("No stored keys")
        return
    print_table(
        ["Provider", "Environment variable"],
        [[name, PROVIDER_ENV_VARS.get(name, "-")] for name in names],
        title="Stored Keys",
    )


@app.command("delete")
def delete_key(
    provider: Annotated[str, typer.Argument(help="Provider name.")],
) -> None:
    """Delete a stored API key."""
    name = _check_provider(provider)
    try:
        deleted = SecretsManager().delete(name)
    except (OSError, SecretsError) as e:
        print_error(str(e))
        raise typer.Exit(1)

    if deleted:
        print_success(f"Deleted key for {name}")
    else:
        print_info(f"No stored key for {name}")
