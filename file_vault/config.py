"""Configuration settings for File Vault Lite."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

# Storage limits
MAX_UPLOAD_SIZE = 1000 * 1024 * 1024  # 1000MB
CHUNK_SIZE = 64 * 1024  # 64KB

# Directory paths
UPLOAD_DIR = "./uploads"
TEMP_DIR = "./temp"
LOG_DIR = "./logs"

# Listener
HOST = "0.0.0.0"
PORT = 8080

# Environment variables holding the shared credential pair
USERNAME_ENV = "FV_USERNAME"
PASSWORD_ENV = "FV_PASSWORD"


class ConfigError(Exception):
    """Raised when the vault cannot be configured from its environment."""


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class VaultConfig:
    credentials: Credentials
    upload_dir: Path = Path(UPLOAD_DIR)
    temp_dir: Path = Path(TEMP_DIR)
    max_upload_size: int = MAX_UPLOAD_SIZE

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'VaultConfig':
        """Create VaultConfig from the process environment.

        Both credential variables must be set to non-empty values, otherwise
        anyone sending an empty username and password would be let in.
        """
        if environ is None:
            environ = os.environ

        username = environ.get(USERNAME_ENV, "")
        password = environ.get(PASSWORD_ENV, "")
        missing = [name for name, value in ((USERNAME_ENV, username), (PASSWORD_ENV, password)) if not value]
        if missing:
            raise ConfigError(f"Missing or empty environment variables: {', '.join(missing)}")

        return cls(credentials=Credentials(username=username, password=password))
