# common/logger/persistence.py
"""
Background persistence for log entries.

Log calls only enqueue; a daemon thread drains the queue in batches and
hands each batch to the active backends (see log_backends.registry).
Failures are reported on stderr and counted, never raised into the caller.
"""

import queue
import sys
import threading
import time
from typing import Any, Dict, List, Optional

from .log_backends import get_active_backends

_MAX_QUEUE = 10_000
_MAX_BATCH = 100


class LogPersistenceHandler:
    """Process-wide queue plus worker thread, started on first use."""

    _instance: Optional["LogPersistenceHandler"] = None
    _lock = threading.Lock()

    _initialized: bool

    def __new__(cls) -> "LogPersistenceHandler":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    instance = super().__new__(cls)
                    instance._initialized = False
                    cls._instance = instance
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return

        self._queue: "queue.Queue[Dict[str, Any]]" = queue.Queue(maxsize=_MAX_QUEUE)
        self._stop = threading.Event()
        self._worker: Optional[threading.Thread] = None
        self._written = 0
        self._dropped = 0
        self._write_seconds = 0.0
        self._initialized = True

    def _ensure_worker(self) -> None:
        if self._worker is not None and self._worker.is_alive():
            return
        with self._lock:
            if self._worker is None or not self._worker.is_alive():
                self._stop.clear()
                self._worker = threading.Thread(
                    target=self._drain, daemon=True, name="LogPersistenceWorker"
                )
                self._worker.start()

    def _next_batch(self) -> List[Dict[str, Any]]:
        try:
            batch = [self._queue.get(timeout=0.5)]
        except queue.Empty:
            return []
        while len(batch) < _MAX_BATCH:
            try:
                batch.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return batch

    def _drain(self) -> None:
        while not self._stop.is_set() or not self._queue.empty():
            batch = self._next_batch()
            if not batch:
                continue
            try:
                self._write_batch(batch)
            finally:
                for _ in batch:
                    self._queue.task_done()

    def _write_batch(self, batch: List[Dict[str, Any]]) -> None:
        started = time.perf_counter()
        for backend in get_active_backends():
            for entry in batch:
                if not backend.write(entry):
                    self._dropped += 1
        self._written += len(batch)
        self._write_seconds += time.perf_counter() - started

    def enqueue(self, entry: Dict[str, Any]) -> bool:
        """Queue ``entry`` without blocking. False when the queue is full."""
        self._ensure_worker()
        try:
            self._queue.put_nowait(entry)
        except queue.Full:
            print("Log queue full, dropping log entry", file=sys.stderr)
            self._dropped += 1
            return False
        return True

    def get_metrics(self) -> Dict[str, Any]:
        avg = self._write_seconds / self._written if self._written else 0
        return {
            "total_logs": self._written,
            "failed_logs": self._dropped,
            "queue_size": self._queue.qsize(),
            "avg_write_time_ms": avg * 1000,
            "worker_alive": bool(self._worker and self._worker.is_alive()),
        }

    def flush(self) -> None:
        """Block until every queued entry has been written."""
        if self._worker is not None and self._worker.is_alive():
            self._queue.join()

    def shutdown(self, timeout: float = 5.0) -> None:
        self.flush()
        self._stop.set()
        if self._worker is not None and self._worker.is_alive():
            self._worker.join(timeout=timeout)


_handler = LogPersistenceHandler()


def persist_log(log_entry: Dict[str, Any]) -> bool:
    return _handler.enqueue(log_entry)


def flush_persistence() -> None:
    _handler.flush()


def get_persistence_metrics() -> Dict[str, Any]:
    return _handler.get_metrics()


def shutdown_persistence(timeout: float = 5.0) -> None:
    _handler.shutdown(timeout)


__all__ = [
    "LogPersistenceHandler",
    "persist_log",
    "flush_persistence",
    "get_persistence_metrics",
    "shutdown_persistence",
]
