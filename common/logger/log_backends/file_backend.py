# common/logger/log_backends/file_backend.py
"""Weekly JSON-lines files under LOG_DIR (default: <project root>/logs)."""

import json
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional

from common.config.env_config import get_env
from common.scripts import get_project_root, get_week_date_range

from .base import LogBackend


class FileBackend(LogBackend):
    """
    Appends each entry as one JSON line to ``wkNN_<monday>--<sunday>.json``,
    where the week is taken from the entry's own timestamp.
    """

    def __init__(self, log_dir: Optional[Path] = None, **options: Any):
        super().__init__(**options)
        configured = log_dir or get_env("LOG_DIR")
        self._log_dir = Path(configured) if configured else get_project_root() / "logs"
        self._log_dir.mkdir(parents=True, exist_ok=True)
        self._total_writes = 0
        self._failed_writes = 0

    @property
    def name(self) -> str:
        return "file"

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    def file_for(self, log_date: date) -> Path:
        week_start, week_end, week_number = get_week_date_range(log_date)
        return self._log_dir / (
            f"wk{week_number:02d}_{week_start.isoformat()}--{week_end.isoformat()}.json"
        )

    @staticmethod
    def _entry_date(log_entry: Dict[str, Any]) -> date:
        stamp = log_entry.get("timestamp")
        if isinstance(stamp, str):
            try:
                return datetime.fromisoformat(stamp).date()
            except ValueError:
                pass
        return date.today()

    def write(self, log_entry: Dict[str, Any]) -> bool:
        path = self.file_for(self._entry_date(log_entry))
        try:
            # default=str covers dates, enums and UUIDs logged as fields
            line = json.dumps(log_entry, ensure_ascii=False, default=str)
            with path.open(mode="a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        except (OSError, TypeError, ValueError) as exc:
            print(f"FileBackend write to {path} failed: {exc}", file=sys.stderr)
            self._failed_writes += 1
            return False

        self._total_writes += 1
        return True

    def get_metrics(self) -> Dict[str, Any]:
        return {
            "backend": self.name,
            "total_writes": self._total_writes,
            "failed_writes": self._failed_writes,
            "log_directory": str(self._log_dir),
        }


__all__ = ["FileBackend"]
