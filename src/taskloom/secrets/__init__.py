"""
Taskloom Secrets Management.

Encrypted storage for provider API keys.
"""

from taskloom.secrets.manager import (
    DecryptionError,
    SecretsError,
    SecretsManager,
)

__all__ = [
    "DecryptionError",
    "SecretsError",
    "SecretsManager",
]
