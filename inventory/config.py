"""
inventory/config.py - Central configuration

Immutable defaults plus environment helpers. Runtime knobs that callers tune
per deployment (timeouts, concurrency, deadlines) are read from the
environment through the ``get_env_*`` helpers.

Usage:
    from inventory.config import settings, get_default_region

    region = get_default_region()
    timeout = settings.FETCH_TIMEOUT_SECONDS
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

__version__ = "0.4.0"


@dataclass(frozen=True)
class Settings:
    """Immutable defaults"""

    DEFAULT_REGION: str = "us-east-1"

    # Collection
    FETCH_TIMEOUT_SECONDS: float = 60.0
    MAX_ACCOUNT_WORKERS: int = 10
    MAX_RETRIES: int = 2

    # boto3 client
    API_CONNECT_TIMEOUT: int = 10
    API_READ_TIMEOUT: int = 30

    # Query
    DEFAULT_QUERY_LIMIT: int = 100
    MAX_QUERY_LIMIT: int = 1000

    # Files
    DEFAULT_STORE_FILE: str = "inventory.json"
    DEFAULT_ACCOUNTS_FILE: str = "accounts.yaml"

    NAME_TAG: str = "Name"


settings = Settings()


def get_version() -> str:
    """Return the package version"""
    return __version__


# =============================================================================
# Environment helpers
# =============================================================================


def get_default_region() -> str:
    """Default region: AWS_REGION > AWS_DEFAULT_REGION > settings"""
    return os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION") or settings.DEFAULT_REGION


def get_env_bool(key: str, default: bool = False) -> bool:
    """Read a boolean environment variable

    Unrecognized values fall back to the default.
    """
    value = os.environ.get(key, "").strip().lower()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    return default


def get_env_int(key: str, default: int = 0) -> int:
    """Read an integer environment variable, falling back to the default"""
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        logger.warning("Invalid integer for %s, using default %s", key, default)
        return default


def get_env_float(key: str, default: float | None = None) -> float | None:
    """Read a float environment variable, falling back to the default"""
    raw = os.environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid number for %s, using default %s", key, default)
        return default


# =============================================================================
# Logging
# =============================================================================


@dataclass
class LogConfig:
    """Logging configuration"""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"

    @classmethod
    def from_env(cls) -> LogConfig:
        """Load from LOG_LEVEL / LOG_FORMAT"""
        return cls(
            level=os.environ.get("LOG_LEVEL", cls.level).upper(),
            format=os.environ.get("LOG_FORMAT", cls.format),
        )

    def apply(self) -> None:
        """Configure the root logger"""
        logging.basicConfig(level=self.level, format=self.format, datefmt=self.date_format)
        # botocore noise
        for name in ("botocore.credentials", "botocore.loaders", "botocore.session", "botocore.httpchecksum"):
            logging.getLogger(name).setLevel(logging.WARNING)
