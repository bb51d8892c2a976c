# common/logger/log_backends/base.py
from abc import ABC, abstractmethod
from typing import Any, Dict


class LogBackend(ABC):
    """
    Destination for persisted log entries.

    Entries always carry ``timestamp`` (ISO 8601), ``level``, ``logger`` and
    ``message``; everything else is whatever the caller logged.
    """

    def __init__(self, **options: Any):
        self.options = options

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def write(self, log_entry: Dict[str, Any]) -> bool:
        """Store one entry. Returns False instead of raising on failure."""

    @abstractmethod
    def get_metrics(self) -> Dict[str, Any]: ...

    def shutdown(self, timeout: float = 5.0) -> None:
        return None


__all__ = ["LogBackend"]
