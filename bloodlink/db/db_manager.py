# bloodlink/db/db_manager.py
"""
Database manager: engine, connection pool and session handling.
Schema changes go through Alembic; create_all() exists only for tests
and throwaway SQLite databases.
"""

import ssl
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from sqlalchemy import event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from common import DatabaseConfig, get_app_logger, request_timer_context_var
from .models import DbBaseModel

logger = get_app_logger(__name__)

_SUPPORTED_URL_PREFIXES = (
    "postgresql+asyncpg://",
    "postgresql+psycopg://",
    "sqlite+aiosqlite://",
)


def _record_sql_timing(engine: Engine) -> None:
    """Add each statement's execution time to the current request's timer."""

    @event.listens_for(engine, "before_cursor_execute")
    def _before(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("query_start", []).append(time.perf_counter())

    @event.listens_for(engine, "after_cursor_execute")
    def _after(conn, cursor, statement, parameters, context, executemany):
        started = conn.info["query_start"].pop()
        timer = request_timer_context_var.get()
        if timer is not None:
            timer.add("sql", (time.perf_counter() - started) * 1000)
            timer.add("query_count", 1)


class DbManager:
    """
    Usage:
        db_manager = DbManager.from_config(config.database)
        await db_manager.verify_connection()

        async with db_manager.session() as session:
            ...

        await db_manager.dispose()
    """

    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_timeout: int = 30,
        pool_recycle: int = 3600,
        pool_pre_ping: bool = True,
        echo: bool = False,
        connect_args: Optional[dict[str, Any]] = None,
    ):
        """
        Args:
            url: Async SQLAlchemy URL (postgresql+asyncpg://, sqlite+aiosqlite://, ...)
            pool_size: Persistent connections (PostgreSQL only)
            max_overflow: Extra connections beyond pool_size (PostgreSQL only)
            pool_timeout: Seconds to wait for a pooled connection (PostgreSQL only)
            pool_recycle: Recycle connections after N seconds (PostgreSQL only)
            pool_pre_ping: Test connections before handing them out
            echo: Log every SQL statement
            connect_args: Driver-specific arguments (SSL context, ...)
        """
        self._validate_url(url)
        self._is_sqlite = url.startswith("sqlite")

        engine_kwargs: dict[str, Any] = {}
        if not self._is_sqlite:
            # aiosqlite uses a static/null pool that rejects sizing options
            engine_kwargs = {
                "pool_size": pool_size,
                "max_overflow": max_overflow,
                "pool_timeout": pool_timeout,
                "pool_recycle": pool_recycle,
            }

        self.engine: AsyncEngine = create_async_engine(
            url,
            echo=echo,
            pool_pre_ping=pool_pre_ping,
            connect_args=connect_args or {},
            **engine_kwargs,
        )
        _record_sql_timing(self.engine.sync_engine)

        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        self._verified = False

        logger.info("db_manager_initialized", sqlite=self._is_sqlite, **engine_kwargs)

    @classmethod
    def from_config(cls, config: DatabaseConfig, **kwargs: Any) -> "DbManager":
        connect_args: dict[str, Any] = kwargs.pop("connect_args", {})

        if config.ssl_mode is not None and config.driver.value == "asyncpg":
            if config.requires_ssl():
                ssl_context = ssl.create_default_context()
                if config.ssl_ca_path:
                    ssl_context.load_verify_locations(cafile=str(config.ssl_ca_path))
                if config.ssl_cert_path and config.ssl_key_path:
                    ssl_context.load_cert_chain(
                        certfile=str(config.ssl_cert_path),
                        keyfile=str(config.ssl_key_path),
                    )
                if config.ssl_mode.value != "verify-full":
                    ssl_context.check_hostname = False
                if config.ssl_mode.value == "require":
                    ssl_context.verify_mode = ssl.CERT_NONE
                connect_args["ssl"] = ssl_context
            elif config.ssl_mode.value == "disable":
                connect_args["ssl"] = False

        return cls(
            url=config.get_connection_url(include_password=True),
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
            connect_args=connect_args,
            **kwargs,
        )

    @staticmethod
    def _validate_url(url: str) -> None:
        if not url or not url.startswith(_SUPPORTED_URL_PREFIXES):
            raise ValueError(
                f"Invalid database URL. Expected one of {', '.join(_SUPPORTED_URL_PREFIXES)}, "
                f"got: {url[:20]}..."
            )

    async def verify_connection(self) -> None:
        """
        Raises:
            ConnectionError: If the database cannot be reached
        """
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (OSError, SQLAlchemyError) as e:
            logger.error("db_connection_failed", error=str(e))
            raise ConnectionError(f"Failed to connect to database: {e}") from e
        self._verified = True
        logger.info("db_connection_verified")

    async def verify_migrations_current(self) -> str:
        """
        Returns:
            The applied Alembic revision

        Raises:
            RuntimeError: If no migration has been applied
        """
        async with self.engine.connect() as conn:
            has_table = await conn.run_sync(
                lambda sync_conn: inspect(sync_conn).has_table("alembic_version")
            )
            if not has_table:
                raise RuntimeError(
                    "alembic_version table not found. Have you run 'alembic upgrade head'?"
                )
            result = await conn.execute(text("SELECT version_num FROM alembic_version"))
            revision = result.scalar()

        if revision is None:
            raise RuntimeError("alembic_version is empty. Run 'alembic upgrade head'.")
        logger.info("db_migration_version", revision=revision)
        return revision

    async def create_all(self) -> None:
        """Create every table directly from the models. Tests and local SQLite only."""
        async with self.engine.begin() as conn:
            await conn.run_sync(DbBaseModel.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(DbBaseModel.metadata.drop_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Transactional session: commits on success, rolls back and re-raises
        on any exception. Time spent inside is reported to the request timer
        under "db".
        """
        timer = request_timer_context_var.get()
        started = time.perf_counter()
        session = self.session_maker()
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.debug("db_session_rolled_back", error_type=type(e).__name__)
            raise
        finally:
            await session.close()
            if timer is not None:
                timer.add("db", (time.perf_counter() - started) * 1000)

    async def health_check(self) -> dict[str, Any]:
        start = time.perf_counter()
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (OSError, SQLAlchemyError) as e:
            return {"healthy": False, "error": str(e)}

        return {
            "healthy": True,
            "response_time_ms": round((time.perf_counter() - start) * 1000, 2),
            **self.get_pool_stats(),
        }

    def get_pool_stats(self) -> dict[str, Any]:
        pool = self.engine.pool
        stats: dict[str, Any] = {"pool_status": pool.status()}
        # QueuePool exposes counters; the SQLite pools do not.
        for name in ("size", "checkedin", "checkedout", "overflow"):
            counter = getattr(pool, name, None)
            if callable(counter):
                stats[f"pool_{name}"] = counter()
        return stats

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("db_connections_disposed")


__all__ = ["DbManager"]
