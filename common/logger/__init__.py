# common/logger/__init__.py
from .logger import AppLogger, TimingStats, get_app_logger, logger

__all__ = ["AppLogger", "TimingStats", "get_app_logger", "logger"]
