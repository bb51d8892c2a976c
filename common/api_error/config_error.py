# common/api_error/config_error.py
class ConfigurationError(RuntimeError):
    """
    Raised when application configuration is invalid or an
    environment variable required at startup is missing.
    """


__all__ = ["ConfigurationError"]
