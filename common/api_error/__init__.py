# common/api_error/__init__.py
from .app_error import AppError, DatabaseError
from .config_error import ConfigurationError

__all__ = ["AppError", "DatabaseError", "ConfigurationError"]
