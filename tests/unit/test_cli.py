"""
Tests for CLI commands.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

from typer.testing import CliRunner

from taskloom import __version__
from taskloom.cli.app import app
from taskloom.config import ConfigurationError
from taskloom.providers import (
    AllRolesFailedError,
    ProviderResponse,
    ServiceResult,
    TelemetryRecord,
    clear_ai_service,
)
from taskloom.providers.orchestrator import FallbackAttempt
from taskloom.providers.models import Role
from taskloom.secrets import DecryptionError, SecretsManager


def _record() -> TelemetryRecord:
    return TelemetryRecord(
        timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc),
        user_id="anonymous",
        command_name="generate",
        model_used="claude-main",
        provider_name="anthropic",
        input_tokens=10,
        output_tokens=5,
        total_tokens=15,
        total_cost=0.000105,
        currency="USD",
    )


def _mock_service(**methods) -> MagicMock:
    service = MagicMock()
    for name, value in methods.items():
        setattr(service, name, value)
    return service


async def _stream(*parts):
    for part in parts:
        yield part


# =============================================================================
# App Tests
# =============================================================================


def test_version(cli_runner: CliRunner) -> None:
    """Test --version flag."""
    result = cli_runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_help(cli_runner: CliRunner) -> None:
    """Test --help flag."""
    result = cli_runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "generate" in result.output
    assert "models" in result.output
    assert "keys" in result.output


# =============================================================================
# Generate Command Tests
# =============================================================================


class TestGenerateCommand:
    """Tests for taskloom generate."""

    def test_no_prompt(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["generate"])
        assert result.exit_code == 1
        assert "Prompt is required" in result.output

    def test_generate_text(self, cli_runner: CliRunner, temp_dir: Path) -> None:
        generate = AsyncMock(return_value=ServiceResult("Hi from the model", _record()))
        service = _mock_service(generate_text_service=generate)

        with patch("taskloom.cli.commands.generate.get_ai_service", return_value=service):
            result = cli_runner.invoke(
                app,
                [
                    "generate",
                    "Hello",
                    "--role",
                    "research",
                    "--system",
                    "Be terse.",
                    "--project-root",
                    str(temp_dir),
                ],
            )

        assert result.exit_code == 0
        assert "Hi from the model" in result.output
        assert "AI Usage Summary" in result.output

        kwargs = generate.await_args.kwargs
        assert kwargs["prompt"] == "Hello"
        assert kwargs["role"] == "research"
        assert kwargs["system_prompt"] == "Be terse."
        assert kwargs["project_root"] == temp_dir
        assert kwargs["command_name"] == "generate"

    def test_json_output(self, cli_runner: CliRunner) -> None:
        service = _mock_service(
            generate_text_service=AsyncMock(return_value=ServiceResult("Hi", _record()))
        )

        with patch("taskloom.cli.commands.generate.get_ai_service", return_value=service):
            result = cli_runner.invoke(app, ["generate", "Hello", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["result"] == "Hi"
        assert data["telemetry"]["model_used"] == "claude-main"
        assert data["telemetry"]["timestamp"] == "2025-01-01T00:00:00+00:00"

    def test_json_output_without_telemetry(self, cli_runner: CliRunner) -> None:
        service = _mock_service(
            generate_text_service=AsyncMock(return_value=ServiceResult("Hi", None))
        )

        with patch("taskloom.cli.commands.generate.get_ai_service", return_value=service):
            result = cli_runner.invoke(app, ["generate", "Hello", "--json"])

        assert json.loads(result.output) == {"result": "Hi", "telemetry": None}

    def test_stream(self, cli_runner: CliRunner) -> None:
        response = ProviderResponse(stream=_stream("Hello ", "world"))
        service = _mock_service(
            stream_text_service=AsyncMock(return_value=ServiceResult(response, None))
        )

        with patch("taskloom.cli.commands.generate.get_ai_service", return_value=service):
            result = cli_runner.invoke(app, ["generate", "Hello", "--stream"])

        assert result.exit_code == 0
        assert "Hello world" in result.output
        service.generate_text_service.assert_not_called()

    def test_all_roles_failed(self, cli_runner: CliRunner) -> None:
        attempts = [FallbackAttempt(Role.MAIN, "anthropic", "claude-main", "API key not set")]
        service = _mock_service(
            generate_text_service=AsyncMock(
                side_effect=AllRolesFailedError("AI service call failed", attempts)
            )
        )

        with patch("taskloom.cli.commands.generate.get_ai_service", return_value=service):
            result = cli_runner.invoke(app, ["generate", "Hello"])

        assert result.exit_code == 1
        assert "AI service call failed" in result.output
        assert "API key not set" in result.output

    def test_options_before_prompt(self, cli_runner: CliRunner) -> None:
        generate = AsyncMock(return_value=ServiceResult("Hi", None))
        service = _mock_service(generate_text_service=generate)

        with patch("taskloom.cli.commands.generate.get_ai_service", return_value=service):
            result = cli_runner.invoke(app, ["generate", "-r", "fallback", "Hello", "--json"])

        assert result.exit_code == 0
        assert json.loads(result.output)["result"] == "Hi"
        assert generate.await_args.kwargs["role"] == "fallback"

    def test_invalid_config(
        self, cli_runner: CliRunner, taskloom_home: Path, temp_dir: Path, clean_env
    ) -> None:
        (taskloom_home / "config.yaml").write_text("models: [unclosed")

        clear_ai_service()
        result = cli_runner.invoke(
            app, ["generate", "Hello", "--project-root", str(temp_dir)]
        )
        clear_ai_service()

        assert result.exit_code == 1
        assert "Invalid YAML" in result.output
        assert not isinstance(result.exception, ConfigurationError)

    def test_unreadable_stored_key(self, cli_runner: CliRunner) -> None:
        service = _mock_service(
            generate_text_service=AsyncMock(
                side_effect=DecryptionError("Failed to decrypt secret 'openai'")
            )
        )

        with patch("taskloom.cli.commands.generate.get_ai_service", return_value=service):
            result = cli_runner.invoke(app, ["generate", "Hello"])

        assert result.exit_code == 1
        assert "Failed to decrypt secret 'openai'" in result.output


# =============================================================================
# Models Command Tests
# =============================================================================


class TestModelsCommand:
    """Tests for taskloom models."""

    def test_role_table(
        self, cli_runner: CliRunner, taskloom_home: Path, project_dir: Path, clean_env, monkeypatch
    ) -> None:
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")

        with patch("taskloom.cli.commands.models.print_table") as print_table:
            result = cli_runner.invoke(app, ["models", "--project-root", str(project_dir)])

        assert result.exit_code == 0
        rows = print_table.call_args.args[1]
        by_role = {row[0]: row for row in rows}

        assert by_role["main"][1:4] == ["anthropic", "claude-3-7-sonnet-20250219", 64000]
        assert "set" in by_role["main"][5]
        assert "missing" in by_role["research"][5]
        assert by_role["research"][6] == "3 / 15 USD"

    def test_available_for_role(self, cli_runner: CliRunner, taskloom_home: Path) -> None:
        with patch("taskloom.cli.commands.models.print_table") as print_table:
            result = cli_runner.invoke(app, ["models", "available", "--role", "research"])

        assert result.exit_code == 0
        rows = print_table.call_args.args[1]
        assert ("perplexity", "sonar-pro") in [(row[0], row[1]) for row in rows]
        assert all("research" in row[2] for row in rows)


# =============================================================================
# Keys Command Tests
# =============================================================================


class TestKeysCommand:
    """Tests for taskloom keys."""

    def test_set_prompts_for_value(self, cli_runner: CliRunner, taskloom_home: Path) -> None:
        result = cli_runner.invoke(app, ["keys", "set", "OpenAI"], input="sk-secret\n")

        assert result.exit_code == 0
        assert SecretsManager(taskloom_home / "secrets").get("openai") == "sk-secret"

    def test_set_unknown_provider(self, cli_runner: CliRunner, taskloom_home: Path) -> None:
        result = cli_runner.invoke(app, ["keys", "set", "acme", "--value", "x"])
        assert result.exit_code == 1
        assert "Unknown provider" in result.output

    def test_list(self, cli_runner: CliRunner, taskloom_home: Path) -> None:
        SecretsManager(taskloom_home / "secrets").set("anthropic", "sk-ant")

        with patch("taskloom.cli.commands.keys.print_table") as print_table:
            result = cli_runner.invoke(app, ["keys", "list"])

        assert result.exit_code == 0
        assert print_table.call_args.args[1] == [["anthropic", "ANTHROPIC_API_KEY"]]

    def test_list_empty(self, cli_runner: CliRunner, taskloom_home: Path) -> None:
        result = cli_runner.invoke(app, ["keys", "list"])
        assert result.exit_code == 0
        assert "No stored keys" in result.output

    def test_delete(self, cli_runner: CliRunner, taskloom_home: Path) -> None:
        secrets = SecretsManager(taskloom_home / "secrets")
        secrets.set("anthropic", "sk-ant")

        result = cli_runner.invoke(app, ["keys", "delete", "anthropic"])
        assert result.exit_code == 0
        assert not secrets.exists("anthropic")

        result = cli_runner.invoke(app, ["keys", "delete", "anthropic"])
        assert result.exit_code == 0
        assert "No stored key" in result.output
