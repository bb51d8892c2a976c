# common/config/config_types.py
"""Enumerations accepted in environment configuration."""

from enum import Enum
import logging


class EnvLogLevel(str, Enum):
    """
    Supported log levels.

    Inherits from str so values serialize naturally to JSON.

    Examples:
        >>> EnvLogLevel("INFO").level == logging.INFO
        True
    """

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def level(self) -> int:
        """Numeric level for the stdlib logging module."""
        return getattr(logging, self.value)

    def __str__(self) -> str:
        return self.value


class EnvLogBackends(str, Enum):
    """Where persisted log entries are written."""

    FILE = "file"

    def __str__(self) -> str:
        return self.value


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"

    @property
    def is_production(self) -> bool:
        return self == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        return self == Environment.DEVELOPMENT

    def __str__(self) -> str:
        return self.value


class DbDriver(str, Enum):
    """Supported async database drivers."""

    ASYNCPG = "asyncpg"
    PSYCOPG = "psycopg"
    AIOSQLITE = "aiosqlite"

    @property
    def is_sqlite(self) -> bool:
        return self == DbDriver.AIOSQLITE


class SslMode(str, Enum):
    """PostgreSQL SSL modes."""

    DISABLE = "disable"
    ALLOW = "allow"
    PREFER = "prefer"
    REQUIRE = "require"
    VERIFY_CA = "verify-ca"
    VERIFY_FULL = "verify-full"


__all__ = [
    "EnvLogLevel",
    "EnvLogBackends",
    "Environment",
    "DbDriver",
    "SslMode",
]
