# common/logger/logger_middleware/request_timer.py
import time
from contextlib import contextmanager
from typing import Dict, Iterator


class RequestTimer:
    """
    Accumulates named durations (ms) for one request.

    Names seen so far: "app" (handler), "db" (session lifetime),
    "sql" (cursor execution) and "query_count" (a counter, not a duration).
    """

    def __init__(self) -> None:
        self.timings: Dict[str, float] = {}

    def add(self, name: str, amount: float) -> None:
        self.timings[name] = self.timings.get(name, 0) + amount

    @contextmanager
    def capture(self, name: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            self.add(name, (time.perf_counter() - start) * 1000)

    def format_server_timing(self) -> str:
        """Server-Timing header value, e.g. ``app;dur=12.30, sql;dur=4.10``."""
        return ", ".join(
            f"{name};dur={value:.2f}"
            for name, value in self.timings.items()
            if name != "query_count"
        )


__all__ = ["RequestTimer"]
