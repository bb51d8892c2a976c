# common/logger/log_backends/registry.py
"""
Maps LOG_BACKENDS names to backend classes and keeps the live instances.

The backend list comes from the loaded AppConfig when there is one, else
from the LOG_BACKENDS variable, else "file".
"""

import sys
import threading
from typing import Any, Dict, List, Type

from common.config.env_config import get_env

from .base import LogBackend
from .file_backend import FileBackend

_BACKEND_REGISTRY: Dict[str, Type[LogBackend]] = {"file": FileBackend}

_active_backends: List[LogBackend] = []
_initialized = False
_lock = threading.Lock()


def register_backend(name: str, backend_class: Type[LogBackend]) -> None:
    _BACKEND_REGISTRY[name] = backend_class


def _configured_names() -> List[str]:
    # Imported here: initialize_config imports this package indirectly.
    from common.config.initialize_config import get_config, is_config_initialized

    if is_config_initialized():
        return [backend.value for backend in get_config().logging.log_backends]
    raw = get_env("LOG_BACKENDS") or "file"
    return [name.strip() for name in raw.split(",") if name.strip()]


def _initialize_backends() -> None:
    global _initialized

    for backend_name in _configured_names():
        backend_class = _BACKEND_REGISTRY.get(backend_name)
        if backend_class is None:
            print(
                f"Unknown log backend '{backend_name}'. "
                f"Available: {', '.join(_BACKEND_REGISTRY)}",
                file=sys.stderr,
            )
            continue
        _active_backends.append(backend_class())

    if not _active_backends:
        _active_backends.append(FileBackend())
    _initialized = True


def get_active_backends() -> List[LogBackend]:
    if not _initialized:
        with _lock:
            if not _initialized:
                _initialize_backends()
    return _active_backends


def shutdown_all_backends(timeout: float = 5.0) -> None:
    for backend in _active_backends:
        backend.shutdown(timeout)


def get_all_metrics() -> Dict[str, Any]:
    return {backend.name: backend.get_metrics() for backend in get_active_backends()}


__all__ = [
    "register_backend",
    "get_active_backends",
    "shutdown_all_backends",
    "get_all_metrics",
]
