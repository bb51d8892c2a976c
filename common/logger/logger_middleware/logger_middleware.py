# common/logger/logger_middleware/logger_middleware.py
"""
Request logging middleware.

    app.add_middleware(
        RequestLoggingMiddleware,
        expose_performance_headers=not config.environment.is_production,
        log_query_params=False,
    )

Every response gets X-Request-ID. Server-Timing is added when enabled
globally or when a route depends on enable_perf_headers.
"""

from typing import Callable, Awaitable, Optional
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import structlog

from common.context_vars import request_timer_context_var
from ..logger import get_app_logger
from .request_timer import RequestTimer
from .middleware_types import (
    DEFAULT_SLOW_REQUEST_MS,
    PerformanceBreakdown,
    RequestDetails,
    RequestLogEntry,
    RequestMetadata,
)

USER_ID_HEADER = "X-User-Id"
REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One structured log line per request, with a timing breakdown."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        expose_performance_headers: bool = False,
        log_details: bool = True,
        slow_request_ms: float = DEFAULT_SLOW_REQUEST_MS,
        log_query_params: bool = True,
        log_client_info: bool = True,
        logger_name: Optional[str] = None,
    ):
        super().__init__(app)
        self.expose_performance_headers = expose_performance_headers
        self.log_details = log_details
        self.slow_request_ms = slow_request_ms
        self.log_query_params = log_query_params
        self.log_client_info = log_client_info
        self.logger = get_app_logger(
            name=logger_name or __name__, persist=True, track_timing=True
        )

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        timer = RequestTimer()
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        timer_token = request_timer_context_var.set(timer)
        start = time.perf_counter()
        try:
            # Service log lines emitted inside the handler carry request_id
            with structlog.contextvars.bound_contextvars(request_id=request_id):
                with timer.capture("app"):
                    response = await call_next(request)
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            request_timer_context_var.reset(timer_token)

        perf = PerformanceBreakdown(
            total_ms=round(duration_ms, 2),
            app_logic_ms=round(timer.timings.get("app", 0), 2),
            db_session_total_ms=round(timer.timings.get("db", 0), 2),
            sql_execution_total_ms=round(timer.timings.get("sql", 0), 2),
            query_count=int(timer.timings.get("query_count", 0)),
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        if self.expose_performance_headers or getattr(request.state, "expose_perf", False):
            response.headers["Server-Timing"] = (
                f"{timer.format_server_timing()}, total;dur={duration_ms:.2f}"
            )

        self._log_request(self._build_log_entry(request, response, duration_ms, request_id, perf))
        return response

    def _build_log_entry(
        self,
        request: Request,
        response: Response,
        duration_ms: float,
        request_id: str,
        perf: PerformanceBreakdown,
    ) -> RequestLogEntry:
        details = None
        if self.log_details:
            client = request.client if self.log_client_info else None
            details = RequestDetails(
                request_id=request_id,
                user_id=request.headers.get(USER_ID_HEADER),
                client_host=client.host if client else None,
                user_agent=(
                    request.headers.get("user-agent") if self.log_client_info else None
                ),
                query_params=(
                    dict(request.query_params)
                    if self.log_query_params and request.query_params
                    else None
                ),
                path_params=dict(request.path_params) or None,
                content_length=int(response.headers.get("content-length", 0)) or None,
            )

        return RequestLogEntry(
            metadata=RequestMetadata(
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            ),
            details=details,
            performance=perf,
            slow_request_ms=self.slow_request_ms,
        )

    def _log_request(self, entry: RequestLogEntry) -> None:
        """5xx logs at error; slow requests and 4xx at warning; the rest at info."""
        data = entry.model_dump(mode="json", exclude_none=True)

        if entry.is_error:
            self.logger.error("request_failed", **data)
        elif entry.is_slow:
            self.logger.warning("request_slow", **data)
        elif entry.metadata.status_code >= 400:
            self.logger.warning("request_rejected", **data)
        else:
            self.logger.info("request_completed", **data)


async def enable_perf_headers(request: Request) -> None:
    """
    Route or router dependency that turns on Server-Timing for its responses:

        @router.get("/availability/{blood_bank_id}", dependencies=[Depends(enable_perf_headers)])
    """
    request.state.expose_perf = True


__all__ = [
    "RequestLoggingMiddleware",
    "enable_perf_headers",
    "USER_ID_HEADER",
    "REQUEST_ID_HEADER",
]
