# common/config/app_config.py
"""
Complete application configuration with validation.

Database configuration supports PostgreSQL (asyncpg/psycopg, optionally over
SSL) for deployments and SQLite (aiosqlite) for local runs and tests.
Scheduling policy values live here too so they can be tuned per environment.
"""

from typing import Optional, Any
from pydantic import BaseModel, Field, field_validator, model_validator, SecretStr
from .config_types import EnvLogLevel, DbDriver, SslMode, Environment
from .env_config import require_env, get_env, get_env_int
from .logging_config import LoggingConfig
from pathlib import Path


class DatabaseConfig(BaseModel):
    """
    Database configuration with SSL/TLS support.

    For the aiosqlite driver ``name`` is the database file path and the
    host/port/credential fields are ignored.
    """

    driver: DbDriver = Field(...)
    name: str = Field(..., min_length=1, description="Database name or SQLite file")
    host: Optional[str] = Field(default=None, min_length=1)
    port: Optional[int] = Field(default=None, gt=0, le=65535)
    slow_query_threshold: float = Field(
        default=500.0, gt=0, description="Milliseconds before SQL counts as slow"
    )

    username: Optional[str] = Field(default=None, min_length=1)
    password: Optional[SecretStr] = Field(default=None)

    pool_size: int = Field(default=10, ge=1, le=100)
    max_overflow: int = Field(default=20, ge=0, le=100)
    pool_timeout: int = Field(default=30, ge=1, le=300)
    pool_recycle: int = Field(default=3600, ge=300)

    ssl_mode: Optional[SslMode] = Field(default=None)
    ssl_cert_path: Optional[Path] = Field(default=None)
    ssl_key_path: Optional[Path] = Field(default=None)
    ssl_ca_path: Optional[Path] = Field(default=None)

    model_config = {"frozen": True}

    @field_validator("ssl_cert_path", "ssl_key_path", "ssl_ca_path")
    @classmethod
    def validate_ssl_paths(cls, v: Optional[Path]) -> Optional[Path]:
        if v is not None and not v.exists():
            raise ValueError(f"SSL file not found: {v}")
        return v

    @model_validator(mode="after")
    def validate_server_fields(self) -> "DatabaseConfig":
        if not self.driver.is_sqlite and (not self.host or not self.port):
            raise ValueError(f"host and port are required for driver {self.driver.value}")
        return self

    def get_connection_url(self, include_password: bool = False) -> str:
        """
        Build the SQLAlchemy connection URL.

        Args:
            include_password: Include the real password (for connecting);
                otherwise it is masked (for logging)
        """
        if self.driver.is_sqlite:
            return f"sqlite+aiosqlite:///{self.name}"

        if self.username:
            if include_password and self.password:
                auth = f"{self.username}:{self.password.get_secret_value()}@"
            elif self.password:
                auth = f"{self.username}:****@"
            else:
                auth = f"{self.username}@"
        else:
            auth = ""
        return f"postgresql+{self.driver.value}://{auth}{self.host}:{self.port}/{self.name}"

    def requires_ssl(self) -> bool:
        return self.ssl_mode in [
            SslMode.REQUIRE,
            SslMode.VERIFY_CA,
            SslMode.VERIFY_FULL,
        ]

    def to_dict_safe(self) -> dict[str, Any]:
        """Dump with the password masked (safe for logging)."""
        data = self.model_dump(mode="json")
        if data.get("password"):
            data["password"] = "****"
        return data


class SchedulingConfig(BaseModel):
    """Tunable appointment policy."""

    # The appointments table enforces the same ceiling with a check constraint
    max_reschedules: int = Field(default=3, ge=0, le=3)
    eligibility_window_months: int = Field(default=3, ge=0, le=24)
    default_slot_minutes: int = Field(default=60, gt=0, le=480)

    model_config = {"frozen": True}


class AppConfig(BaseModel):
    """
    Complete application configuration.

    Loaded from environment variables and validated at startup. Invalid
    configuration fails fast with a readable message.
    """

    app_title: str = Field(..., min_length=1)
    app_version: str = Field(..., pattern=r"^\d+\.\d+\.\d+$")
    environment: Environment

    logging: LoggingConfig
    database: Optional[DatabaseConfig] = None
    scheduling: SchedulingConfig = Field(default_factory=SchedulingConfig)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_production_settings(self) -> "AppConfig":
        if self.environment.is_production:
            if self.database is None:
                raise ValueError("Database config required in production")
            if self.database.driver.is_sqlite:
                raise ValueError("SQLite is not supported in production")
            if self.logging.log_level == EnvLogLevel.DEBUG:
                raise ValueError("DEBUG log level not allowed in production")
        return self


def load_database_config(environment: Environment) -> Optional[DatabaseConfig]:
    """
    Load database configuration from environment.

    Returns None when DB_DRIVER is unset.

    Environment variables:
    Required:
    - DB_DRIVER: asyncpg, psycopg or aiosqlite
    - DB_NAME: Database name (SQLite: file path)
    Required for PostgreSQL:
    - DB_HOST, DB_PORT
    Required in production, optional otherwise:
    - DB_USER, DB_PASSWORD, DB_SSL_MODE
    Optional:
    - DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_TIMEOUT, DB_POOL_RECYCLE
    - SLOW_QUERY_THRESHOLD (ms)
    - DB_SSL_CERT, DB_SSL_KEY, DB_SSL_CA
    """
    driver_str = get_env("DB_DRIVER")
    if not driver_str:
        return None

    try:
        driver = DbDriver(driver_str)
    except ValueError:
        valid_drivers = [d.value for d in DbDriver]
        raise ValueError(
            f"Invalid DB_DRIVER: {driver_str}. Must be one of: {valid_drivers}"
        )

    name = require_env("DB_NAME")
    if driver.is_sqlite:
        return DatabaseConfig(driver=driver, name=name)

    if environment.is_production:
        username = require_env("DB_USER")
        password_str: Optional[str] = require_env("DB_PASSWORD")
        ssl_mode_str: Optional[str] = require_env("DB_SSL_MODE")
    else:
        username = get_env("DB_USER")
        password_str = get_env("DB_PASSWORD")
        ssl_mode_str = get_env("DB_SSL_MODE")

    ssl_mode: Optional[SslMode] = None
    if ssl_mode_str:
        try:
            ssl_mode = SslMode(ssl_mode_str)
        except ValueError:
            valid_modes = [m.value for m in SslMode]
            raise ValueError(
                f"Invalid DB_SSL_MODE: {ssl_mode_str}. Must be one of: {valid_modes}"
            )

    def _path(key: str) -> Optional[Path]:
        value = get_env(key)
        return Path(value) if value else None

    return DatabaseConfig(
        driver=driver,
        name=name,
        host=require_env("DB_HOST"),
        port=int(require_env("DB_PORT")),
        username=username,
        password=SecretStr(password_str) if password_str else None,
        pool_size=get_env_int("DB_POOL_SIZE", 10),
        max_overflow=get_env_int("DB_MAX_OVERFLOW", 20),
        pool_timeout=get_env_int("DB_POOL_TIMEOUT", 30),
        pool_recycle=get_env_int("DB_POOL_RECYCLE", 3600),
        slow_query_threshold=float(get_env("SLOW_QUERY_THRESHOLD") or 500),
        ssl_mode=ssl_mode,
        ssl_cert_path=_path("DB_SSL_CERT"),
        ssl_key_path=_path("DB_SSL_KEY"),
        ssl_ca_path=_path("DB_SSL_CA"),
    )


def load_scheduling_config() -> SchedulingConfig:
    """
    Environment variables (all optional):
    - SCHEDULING_MAX_RESCHEDULES (default 3)
    - SCHEDULING_ELIGIBILITY_MONTHS (default 3)
    - SCHEDULING_DEFAULT_SLOT_MINUTES (default 60)
    """
    return SchedulingConfig(
        max_reschedules=get_env_int("SCHEDULING_MAX_RESCHEDULES", 3),
        eligibility_window_months=get_env_int("SCHEDULING_ELIGIBILITY_MONTHS", 3),
        default_slot_minutes=get_env_int("SCHEDULING_DEFAULT_SLOT_MINUTES", 60),
    )


def load_app_config() -> AppConfig:
    """
    Load complete application configuration.

    Raises:
        ValidationError: If configuration is invalid
        ConfigurationError: If required env vars are missing
    """
    from .logging_config import load_logging_config

    env_str = require_env("ENVIRONMENT")

    try:
        environment = Environment(env_str)
    except ValueError:
        valid_envs = [e.value for e in Environment]
        raise ValueError(
            f"Invalid ENVIRONMENT: {env_str}. Must be one of: {valid_envs}"
        )

    return AppConfig(
        app_title=require_env("APP_TITLE"),
        app_version=require_env("APP_VERSION"),
        environment=environment,
        logging=load_logging_config(),
        database=load_database_config(environment),
        scheduling=load_scheduling_config(),
    )


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "SchedulingConfig",
    "load_app_config",
    "load_database_config",
    "load_scheduling_config",
]
