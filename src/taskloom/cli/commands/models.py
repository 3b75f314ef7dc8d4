"""
taskloom models - Show role model configuration.

Usage:
    taskloom models
    taskloom models --project-root ./my-project
    taskloom models available --role research
"""

from pathlib import Path
from typing import Annotated

import typer

from taskloom.cli.output import print_error, print_table
from taskloom.config import ConfigManager, ConfigurationError
from taskloom.config.models import get_models_for_role
from taskloom.providers import CostTable, Role
from taskloom.storage.paths import find_project_root

app = typer.Typer(
    name="models",
    help="Show role model configuration.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def show_models(
    ctx: typer.Context,
    project_root: Annotated[
        Path | None,
        typer.Option("--project-root", help="Project directory (defaults to discovery from cwd)."),
    ] = None,
) -> None:
    """Show which provider and model serves each role."""
    if ctx.invoked_subcommand is not None:
        return

    root = project_root or find_project_root()
    manager = ConfigManager()

    try:
        cost_table = CostTable(manager.model_map)
        rows = []
        for role in Role:
            provider = manager.get_provider(role, root)
            model_id = manager.get_model_id(role, root)
            params = manager.get_parameters_for_role(role, root)

            if provider and model_id:
                cost = cost_table.lookup(provider, model_id)
                key_status = (
                    "[green]set[/green]"
                    if manager.is_api_key_set(provider, None, root)
                    else "[red]missing[/red]"
                )
                pricing = (
                    f"{cost.input_cost_per_1m:g} / {cost.output_cost_per_1m:g} {cost.currency}"
                )
            else:
                key_status = "-"
                pricing = "-"

            rows.append(
                [
                    role.value,
                    provider or "[dim]unset[/dim]",
                    model_id or "[dim]unset[/dim]",
                    params["max_tokens"],
                    params["temperature"],
                    key_status,
                    pricing,
                ]
            )
    except ConfigurationError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_table(
        ["Role", "Provider", "Model", "Max tokens", "Temperature", "API key", "Cost / 1M (in/out)"],
        rows,
        title="Role Models",
    )


@app.command()
def available(
    role: Annotated[
        str | None,
        typer.Option("--role", "-r", help="Only models allowed for this role."),
    ] = None,
) -> None:
    """List models in the catalog."""
    manager = ConfigManager()
    try:
        model_map = manager.model_map
    except ConfigurationError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if role:
        entries = get_models_for_role(model_map, role)
    else:
        entries = [(provider, model) for provider, models in model_map.items() for model in models]

    rows = []
    for provider, model in entries:
        cost = model.cost_per_1m_tokens
        rows.append(
            [
                provider,
                model.id,
                ", ".join(model.allowed_roles),
                model.max_tokens or "-",
                f"{cost.input:g} / {cost.output:g} {cost.currency}" if cost else "-",
            ]
        )

    print_table(
        ["Provider", "Model", "Roles", "Max tokens", "Cost / 1M (in/out)"],
        rows,
        title="Available Models",
    )
