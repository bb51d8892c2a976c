# bloodlink/db/deps.py
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import AsyncGenerator, Optional

from bloodlink.scheduling import DEFAULT_POLICY, SchedulingPolicy
from common import AppError
from .db_manager import DbManager
from .models import User


def get_db_manager(request: Request) -> DbManager:
    """The manager created in lifespan; app.state keeps multiple apps independent."""
    manager = getattr(request.app.state, "db_manager", None)
    if manager is None:
        raise RuntimeError(
            "DbManager not found in app.state. Ensure lifespan is configured."
        )
    return manager


async def get_db(
    manager: DbManager = Depends(get_db_manager),
) -> AsyncGenerator[AsyncSession, None]:
    async with manager.session() as session:
        yield session


def get_scheduling_policy(request: Request) -> SchedulingPolicy:
    return getattr(request.app.state, "scheduling_policy", DEFAULT_POLICY)


class Unauthenticated(AppError):
    status_code = 401
    code = "UNAUTHENTICATED"


async def get_current_user(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve who is acting from the X-User-Id header. Identity only:
    credentials are checked upstream of this service.
    """
    if not x_user_id:
        raise Unauthenticated("X-User-Id header is required")

    user = await db.get(User, x_user_id)
    if user is None or not user.is_active:
        raise Unauthenticated(f"Unknown or inactive user: {x_user_id}")
    return user

__all__ = [
    "get_db",
    "get_db_manager",
    "get_scheduling_policy",
    "get_current_user",
    "Unauthenticated",
]
