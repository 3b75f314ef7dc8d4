"""
Encrypted key store for Taskloom.

Provider API keys can be kept in ``~/.taskloom/secrets/`` instead of the
environment. Each key is a Fernet-encrypted file named after its provider;
the master key lives next to them with owner-only permissions.
"""

import logging
from pathlib import Path

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

MASTER_KEY_FILE = "master.key"
SECRET_SUFFIX = ".enc"


class SecretsError(Exception):
    """Base exception for secrets-related errors."""

    pass


class DecryptionError(SecretsError):
    """Failed to decrypt a stored secret."""

    pass


class SecretsManager:
    """Stores and retrieves encrypted provider keys."""

    def __init__(self, secrets_dir: Path | None = None):
        """
        Args:
            secrets_dir: Directory for secret files. Defaults to ~/.taskloom/secrets/
        """
        if secrets_dir is None:
            from taskloom.storage.paths import get_secrets_dir

            secrets_dir = get_secrets_dir()

        self.secrets_dir = Path(secrets_dir)
        self._fernet: Fernet | None = None

    def _secret_path(self, name: str) -> Path:
        return self.secrets_dir / f"{name.lower()}{SECRET_SUFFIX}"

    def _ensure_dir(self) -> None:
        self.secrets_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        try:
            self.secrets_dir.chmod(0o700)
        except OSError:
            logger.warning(f"Could not restrict permissions on {self.secrets_dir}")

    def _get_fernet(self) -> Fernet:
        if self._fernet is None:
            key_path = self.secrets_dir / MASTER_KEY_FILE
            if key_path.exists():
                key = key_path.read_bytes()
            else:
                self._ensure_dir()
                key = Fernet.generate_key()
                key_path.write_bytes(key)
                try:
                    key_path.chmod(0o600)
                except OSError:
                    logger.warning("Could not restrict permissions on master key file")
                logger.info("Generated new master key")
            self._fernet = Fernet(key)
        return self._fernet

    def set(self, name: str, value: str) -> None:
        """Encrypt and store a secret under ``name`` (e.g. 'anthropic')."""
        self._ensure_dir()
        path = self._secret_path(name)
        path.write_bytes(self._get_fernet().encrypt(value.encode()))
        try:
            path.chmod(0o600)
        except OSError:
            logger.warning(f"Could not restrict permissions on secret: {name}")
        logger.info(f"Stored secret: {name}")

    def get(self, name: str) -> str | None:
        """
        Return the decrypted secret, or None if it does not exist.

        Raises:
            DecryptionError: If the master key no longer matches.
        """
        path = self._secret_path(name)
        if not path.exists():
            return None

        try:
            return self._get_fernet().decrypt(path.read_bytes()).decode()
        except InvalidToken as e:
            raise DecryptionError(
                f"Failed to decrypt secret '{name}'. Master key may have changed."
            ) from e

    def delete(self, name: str) -> bool:
        """Delete a secret. Returns False if it did not exist."""
        path = self._secret_path(name)
        if not path.exists():
            return False
        path.unlink()
        logger.info(f"Deleted secret: {name}")
        return True

    def list(self) -> list[str]:
        """Names of all stored secrets."""
        if not self.secrets_dir.is_dir():
            return []
        return sorted(p.stem for p in self.secrets_dir.glob(f"*{SECRET_SUFFIX}") if p.is_file())

    def exists(self, name: str) -> bool:
        return self._secret_path(name).exists()
