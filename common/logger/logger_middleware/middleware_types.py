# common/logger/logger_middleware/middleware_types.py
"""Structured shapes for the per-request log entry."""

from typing import Optional, Dict, Any
from datetime import datetime, timezone
from pydantic import BaseModel, Field, computed_field

from common.config.env_config import get_env

DEFAULT_SLOW_REQUEST_MS = 1000.0
DEFAULT_SLOW_QUERY_MS = 500.0


def slow_query_threshold() -> float:
    """SQL time (ms) above which a request is flagged; SLOW_QUERY_THRESHOLD or 500."""
    from common.config.initialize_config import get_config, is_config_initialized

    if is_config_initialized():
        database = get_config().database
        if database is not None:
            return database.slow_query_threshold
    return float(get_env("SLOW_QUERY_THRESHOLD") or DEFAULT_SLOW_QUERY_MS)


class PerformanceBreakdown(BaseModel):
    total_ms: float
    app_logic_ms: float
    db_session_total_ms: float
    sql_execution_total_ms: float
    query_count: int = Field(0, description="SQL statements executed")

    @property
    def db_overhead_ms(self) -> float:
        """Session time not spent executing SQL (pool checkout, commit)."""
        return round(self.db_session_total_ms - self.sql_execution_total_ms, 2)


class RequestMetadata(BaseModel):
    method: str
    path: str
    status_code: int = Field(..., ge=100, le=599)
    duration_ms: float = Field(..., ge=0)

    model_config = {"frozen": True}

    @computed_field
    def duration_seconds(self) -> float:
        return round(self.duration_ms / 1000, 3)


class RequestDetails(BaseModel):
    request_id: Optional[str] = None
    user_id: Optional[str] = Field(None, description="X-User-Id of the caller")
    client_host: Optional[str] = None
    user_agent: Optional[str] = None
    query_params: Optional[Dict[str, Any]] = None
    path_params: Optional[Dict[str, Any]] = None
    content_length: Optional[int] = Field(None, ge=0)

    model_config = {"frozen": True}


class RequestLogEntry(BaseModel):
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: RequestMetadata
    details: Optional[RequestDetails] = None
    performance: Optional[PerformanceBreakdown] = None
    slow_request_ms: float = Field(DEFAULT_SLOW_REQUEST_MS, exclude=True)

    model_config = {"frozen": True}

    @computed_field
    def is_slow(self) -> bool:
        return self.metadata.duration_ms > self.slow_request_ms

    @computed_field
    def is_error(self) -> bool:
        return self.metadata.status_code >= 500

    @computed_field
    def optimization_warnings(self) -> list[str]:
        """
        Hints worth acting on. High DB share on a fast request is normal,
        so percentage checks only apply past 200ms.
        """
        warns: list[str] = []
        perf = self.performance
        if perf is None:
            return warns

        threshold = slow_query_threshold()
        total = self.metadata.duration_ms

        # Availability and booking should each need a handful of statements.
        if perf.query_count > 10:
            warns.append(f"N+1_QUERY_SUSPECTED: {perf.query_count} queries")
        elif perf.query_count > 5:
            warns.append(f"HIGH_QUERY_COUNT: {perf.query_count} queries")

        if perf.sql_execution_total_ms > threshold:
            warns.append(
                f"SLOW_SQL: {perf.sql_execution_total_ms:.0f}ms executing queries"
            )

        if perf.db_overhead_ms > threshold / 2 and perf.db_overhead_ms > total * 0.3:
            warns.append(
                f"HIGH_CONNECTION_OVERHEAD: {perf.db_overhead_ms:.0f}ms outside SQL"
            )

        if total > 200 and perf.db_session_total_ms / total > 0.8:
            warns.append(
                f"DB_DOMINATED_REQUEST: {perf.db_session_total_ms / total:.0%} "
                f"of {total:.0f}ms"
            )
        return warns


__all__ = [
    "RequestMetadata",
    "RequestDetails",
    "RequestLogEntry",
    "PerformanceBreakdown",
    "slow_query_threshold",
]
