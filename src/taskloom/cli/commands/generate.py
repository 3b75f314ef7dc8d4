"""
taskloom generate - Run a prompt through the AI layer.

Usage:
    taskloom generate "Your prompt here"
    taskloom generate "Prompt" --role research
    taskloom generate "Prompt" --system "You are terse." --stream
    taskloom generate "Prompt" --json
"""

import asyncio
import json
from pathlib import Path
from typing import Annotated

import typer

from taskloom.cli.output import console, print_error, print_usage_summary
from taskloom.config import ConfigurationError
from taskloom.providers import AIServiceError, AllRolesFailedError, get_ai_service
from taskloom.providers.orchestrator import format_attempt_summary
from taskloom.secrets import SecretsError


def generate(
    prompt: Annotated[
        str | None,
        typer.Argument(help="The prompt to send."),
    ] = None,
    role: Annotated[
        str,
        typer.Option("--role", "-r", help="Starting role: main, research or fallback."),
    ] = "main",
    system: Annotated[
        str | None,
        typer.Option("--system", "-s", help="System prompt."),
    ] = None,
    stream: Annotated[
        bool,
        typer.Option("--stream", help="Stream the reply as it is generated."),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output result and telemetry as JSON."),
    ] = False,
    project_root: Annotated[
        Path | None,
        typer.Option("--project-root", help="Project directory (defaults to discovery from cwd)."),
    ] = None,
) -> None:
    """Generate text for a prompt using the configured role models."""
    if not prompt:
        print_error("Prompt is required")
        raise typer.Exit(1)

    try:
        asyncio.run(_generate(prompt, role, system, stream, json_output, project_root))
    except AllRolesFailedError as e:
        print_error(str(e))
        console.print(f"[dim]{format_attempt_summary(e.attempts)}[/dim]")
        raise typer.Exit(1)
    except (AIServiceError, ConfigurationError, SecretsError) as e:
        print_error(str(e))
        raise typer.Exit(1)


async def _generate(
    prompt: str,
    role: str,
    system: str | None,
    stream: bool,
    json_output: bool,
    project_root: Path | None,
) -> None:
    service = get_ai_service()
    params = dict(
        role=role,
        prompt=prompt,
        system_prompt=system,
        project_root=project_root,
        command_name="generate",
        output_type="cli",
    )

    if stream:
        result = await service.stream_text_service(**params)
        async for chunk in result.main_result.stream:
            console.print(chunk, end="", markup=False, highlight=False)
        console.print()
        return

    result = await service.generate_text_service(**params)
    telemetry = result.telemetry_data

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "result": result.main_result,
                    "telemetry": telemetry.to_dict() if telemetry else None,
                },
                indent=2,
            )
        )
        return

    console.print(result.main_result, markup=False, highlight=False)
    if telemetry is not None:
        console.print()
        print_usage_summary(telemetry)
