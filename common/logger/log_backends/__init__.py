# common/logger/log_backends/__init__.py
"""
Log persistence backends, selected with LOG_BACKENDS (comma-separated).
Only "file" ships with the service; others can be added via register_backend().
"""

from .base import LogBackend
from .file_backend import FileBackend
from .registry import (
    get_active_backends,
    get_all_metrics,
    register_backend,
    shutdown_all_backends,
)

__all__ = [
    "LogBackend",
    "FileBackend",
    "get_active_backends",
    "get_all_metrics",
    "register_backend",
    "shutdown_all_backends",
]
