# common/config/env_config.py
import os
from typing import Optional
from common.api_error import ConfigurationError


def get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    """Read an optional environment variable."""
    return os.getenv(name, default=default)


def require_env(name: str) -> str:
    """
    Read a required environment variable.

    Raises:
        ConfigurationError: If the variable is unset or empty
    """
    value = os.getenv(name)
    if not value:
        raise ConfigurationError(f"Missing required env variable: {name}")
    return value


def get_env_int(name: str, default: int) -> int:
    """
    Read an optional integer environment variable.

    Raises:
        ConfigurationError: If the variable is set but not an integer
    """
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"Env variable {name} must be an integer, got {raw!r}"
        ) from exc


__all__ = ["require_env", "get_env", "get_env_int"]
