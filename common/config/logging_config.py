# common/config/logging_config.py
from dataclasses import dataclass
from .env_config import require_env, get_env
from .config_types import EnvLogLevel, EnvLogBackends
from common.api_error import ConfigurationError

_default_log_level_env_key = "LOG_LEVEL"
_default_log_backends_env_key = "LOG_BACKENDS"


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    log_level: EnvLogLevel
    log_backends: tuple[EnvLogBackends, ...] = (EnvLogBackends.FILE,)

    @property
    def level_value(self) -> str:
        return self.log_level.value

    @property
    def level_int(self) -> int:
        return self.log_level.level


def load_logging_config(
    log_level_env_key: str = _default_log_level_env_key,
    log_backends_env_key: str = _default_log_backends_env_key,
) -> LoggingConfig:
    """
    Load logging configuration from environment.

    LOG_LEVEL is required. LOG_BACKENDS is a comma-separated list and
    defaults to "file".

    Raises:
        ConfigurationError: If LOG_LEVEL is missing, or either value is invalid
    """
    log_level_val = require_env(log_level_env_key).upper()
    backends_val = get_env(log_backends_env_key) or EnvLogBackends.FILE.value

    try:
        return LoggingConfig(
            log_level=EnvLogLevel(log_level_val),
            log_backends=tuple(
                EnvLogBackends(name.strip().lower())
                for name in backends_val.split(",")
                if name.strip()
            ),
        )
    except ValueError as exc:
        valid_levels = ", ".join(level.value for level in EnvLogLevel)
        valid_backends = ", ".join(backend.value for backend in EnvLogBackends)

        raise ConfigurationError(
            f"Invalid logging configuration. "
            f"{log_level_env_key} must be one of [{valid_levels}], "
            f"{log_backends_env_key} entries must be one of [{valid_backends}]"
        ) from exc


__all__ = [
    "LoggingConfig",
    "load_logging_config",
]
