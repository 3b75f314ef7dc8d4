"""CLI command groups for taskloom."""

from taskloom.cli.commands import generate, keys, models

__all__ = ["generate", "keys", "models"]
