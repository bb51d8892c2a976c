# common/api_error/app_error.py
class AppError(Exception):
    """Base error for all application-specific issues."""

    status_code: int = 400
    code: str = "APP_ERROR"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
    ):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code, "message": self.message}


class DatabaseError(AppError):
    """Unexpected storage failure surfaced to the caller as an internal error."""

    status_code = 500
    code = "DATABASE_ERROR"


__all__ = ["AppError", "DatabaseError"]
