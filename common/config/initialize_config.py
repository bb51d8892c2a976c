# common/config/initialize_config.py
"""
Configuration initialization.

initialize_config() loads and validates the environment once per process,
configures structlog at the configured level and stores the result for
get_config().
"""
from typing import Optional, List
from pydantic import ValidationError
from .app_config import AppConfig, load_app_config
from .structlog_config import configure_structlog
from common.api_error import ConfigurationError


class _ConfigState:
    """Process-wide holder for the validated configuration."""

    _instance: Optional["_ConfigState"] = None
    _config: Optional[AppConfig]

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._config = None
        return cls._instance

    @property
    def config(self) -> AppConfig:
        if self._config is None:
            raise RuntimeError(
                "Configuration not initialized. Call initialize_config() at startup."
            )
        return self._config

    @property
    def is_initialized(self) -> bool:
        return self._config is not None

    def set_config(self, config: AppConfig) -> None:
        self._config = config


_state = _ConfigState()


def initialize_config() -> AppConfig:
    """
    Initialize and validate all application configuration.

    Must run once at startup before anything calls get_config().

    Raises:
        ConfigurationError: If configuration is missing or invalid
    """
    try:
        config = load_app_config()
    except ValidationError as e:
        errors: List[str] = []
        for error in e.errors():
            field = ".".join(str(x) for x in error["loc"])
            errors.append(f"{field}: {error['msg']}")

        raise ConfigurationError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {msg}" for msg in errors)
        ) from e
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    configure_structlog(config.logging.level_int)
    _state.set_config(config)
    return config


def get_config() -> AppConfig:
    """
    Raises:
        RuntimeError: If initialize_config() has not run
    """
    return _state.config


def is_config_initialized() -> bool:
    return _state.is_initialized


__all__ = [
    "initialize_config",
    "get_config",
    "is_config_initialized",
]
