# main.py
from fastapi import FastAPI, HTTPException, Request
from datetime import datetime, timezone
from pydantic import BaseModel, Field
from dotenv import load_dotenv
from common.config import (
    AppConfig,
    initialize_config,
    get_config,
    is_configured,
)
from common.logger import get_app_logger
from common.logger.logger_middleware import RequestLoggingMiddleware
from common.logger.log_backends import get_all_metrics, shutdown_all_backends
from common.logger.persistence import get_persistence_metrics, shutdown_persistence
from common.api_error import ConfigurationError, AppError
from typing import Any, Optional
from bloodlink.api.v1 import routers
from bloodlink.db import DbManager
from bloodlink.scheduling import SchedulingPolicy
from contextlib import asynccontextmanager
from fastapi.responses import JSONResponse
import sys

logger = get_app_logger(
    name=__name__,
    track_timing=True,
    persist=True,
)


class HealthCheckResponse(BaseModel):
    status: str = Field(..., description="Current system health status")
    timestamp: datetime = Field(..., description="Server time in ISO 8601 format")
    version: str = Field(..., description="Application version")
    logging_configured: bool = Field(..., description="Logging configuration status")
    log_level: str = Field(..., description="Application log level")
    database: Optional[dict[str, Any]] = Field(None, description="Connection pool health")


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="What went wrong")
    timestamp: datetime = Field(..., description="Server time when the error occurred")


def _lifespan_for(config: AppConfig):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db_config = config.database
        if db_config is None:
            raise RuntimeError("Database configuration required (set DB_DRIVER)")

        logger.info("database_config", **db_config.to_dict_safe())
        db_manager = DbManager.from_config(db_config)
        await db_manager.verify_connection()

        if db_config.driver.is_sqlite:
            # Local SQLite files are created on the fly; PostgreSQL goes through Alembic
            await db_manager.create_all()
        else:
            try:
                await db_manager.verify_migrations_current()
            except RuntimeError as e:
                logger.error("migration_check_failed", error=str(e), hint="alembic upgrade head")
                raise

        app.state.db_manager = db_manager
        yield
        logger.info("shutting_down")
        await db_manager.dispose()
        shutdown_persistence()
        shutdown_all_backends()

    return lifespan


def create_app(config: AppConfig) -> FastAPI:
    """Build the API for ``config``. Tests call this with app.state filled in by hand."""
    app = FastAPI(
        title=config.app_title,
        version=config.app_version,
        description=f"Running in {config.environment} environment",
        lifespan=_lifespan_for(config),
    )
    app.state.scheduling_policy = SchedulingPolicy.from_config(config.scheduling)

    app.add_middleware(
        RequestLoggingMiddleware,
        expose_performance_headers=not config.environment.is_production,
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "app_error",
            path=request.url.path,
            error_code=exc.code,
            status_code=exc.status_code,
            message=exc.message,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                **exc.to_dict(), timestamp=datetime.now(timezone.utc)
            ).model_dump(mode="json"),
        )

    @app.get(
        "/health",
        response_model=HealthCheckResponse,
        responses={
            200: {"description": "System is healthy", "model": HealthCheckResponse},
            503: {"description": "Database unreachable", "model": ErrorResponse},
        },
    )
    async def check_health(request: Request) -> HealthCheckResponse:
        database = None
        db_manager: Optional[DbManager] = getattr(request.app.state, "db_manager", None)
        if db_manager is not None:
            database = await db_manager.health_check()
            if not database["healthy"]:
                logger.error("health_check_failed", endpoint="/health", **database)
                raise HTTPException(
                    status_code=503,
                    detail=ErrorResponse(
                        error="DATABASE_UNAVAILABLE",
                        message=database.get("error", "unknown"),
                        timestamp=datetime.now(timezone.utc),
                    ).model_dump(mode="json"),
                )

        return HealthCheckResponse(
            status="Healthy",
            timestamp=datetime.now(timezone.utc),
            version=config.app_version,
            logging_configured=is_configured(),
            log_level=config.logging.level_value,
            database=database,
        )

    @app.get("/metrics")
    async def metrics() -> dict[str, Any]:
        """Logging performance metrics."""
        return {
            "logger": logger.get_timing_stats(),
            "persistence": get_persistence_metrics(),
            "backends": get_all_metrics(),
        }

    for router in routers:
        app.include_router(router)

    return app


load_dotenv()
try:
    initialize_config()
except ConfigurationError as e:
    # Can't use logger yet, but that's OK - this is a fatal startup error
    print(f"FATAL: Configuration error:\n{e}", file=sys.stderr)
    sys.exit(1)

config = get_config()
app = create_app(config)

__all__ = ["app", "config", "create_app"]
