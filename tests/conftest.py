# tests/conftest.py
import os
import tempfile
from datetime import date, datetime, timezone
from typing import Any, Optional

import pytest
from httpx import ASGITransport, AsyncClient

_TMP = tempfile.mkdtemp(prefix="bloodlink-tests-")

# Configuration is read once per process, so the environment is fixed here,
# before anything imports main or initializes config.
os.environ.update(
    {
        "ENVIRONMENT": "development",
        "APP_TITLE": "BloodLink Scheduling (tests)",
        "APP_VERSION": "1.0.0",
        "LOG_LEVEL": "DEBUG",
        "LOG_BACKENDS": "file",
        "LOG_DIR": os.path.join(_TMP, "logs"),
        "DB_DRIVER": "aiosqlite",
        "DB_NAME": os.path.join(_TMP, "unused.db"),
    }
)

from common.config import initialize_config  # noqa: E402

initialize_config()

from bloodlink.db import DbManager  # noqa: E402
from bloodlink.db.models import User, UserRole  # noqa: E402
from bloodlink.scheduling import BloodType  # noqa: E402
from bloodlink.services.v1 import AppointmentService, BookingLocks  # noqa: E402

# Monday 2030-01-07, 08:00 UTC
NOW = datetime(2030, 1, 7, 8, 0, tzinfo=timezone.utc)
MONDAY = date(2030, 1, 14)
TUESDAY = date(2030, 1, 15)

MORNING_HOURS = {
    "monday": {"open": "09:00", "close": "12:00"},
    "tuesday": {"open": "09:00", "close": "12:00"},
    "wednesday": {"open": "09:00", "close": "12:00"},
    "thursday": {"open": "09:00", "close": "12:00"},
    "friday": {"open": "09:00", "close": "12:00"},
    "saturday": None,
    "sunday": None,
}


def fixed_clock() -> datetime:
    return NOW


@pytest.fixture
async def db_manager(tmp_path):
    manager = DbManager(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await manager.create_all()
    yield manager
    await manager.dispose()


@pytest.fixture
async def session(db_manager):
    async with db_manager.session() as session:
        yield session


async def _add_user(session, **fields: Any) -> User:
    user = User(**fields)
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
def make_blood_bank(session):
    counter = iter(range(1, 1000))

    async def factory(operating_hours: Optional[dict] = None, is_active: bool = True) -> User:
        n = next(counter)
        return await _add_user(
            session,
            role=UserRole.BLOOD_BANK,
            name=f"Bank {n}",
            organization_name=f"Central Blood Bank {n}",
            email=f"bank{n}@example.org",
            operating_hours=MORNING_HOURS if operating_hours is None else operating_hours,
            is_active=is_active,
        )

    return factory


@pytest.fixture
def make_donor(session):
    counter = iter(range(1, 1000))

    async def factory(
        last_donation_date: Optional[date] = None,
        eligible_to_donate: bool = True,
        blood_type: Optional[BloodType] = None,
    ) -> User:
        n = next(counter)
        return await _add_user(
            session,
            role=UserRole.DONOR,
            name=f"Donor {n}",
            email=f"donor{n}@example.org",
            eligible_to_donate=eligible_to_donate,
            last_donation_date=last_donation_date,
            blood_type=blood_type,
        )

    return factory


@pytest.fixture
async def admin(session):
    return await _add_user(
        session, role=UserRole.ADMIN, name="Admin", email="admin@example.org"
    )


@pytest.fixture
async def blood_bank(make_blood_bank):
    return await make_blood_bank()


@pytest.fixture
async def donor(make_donor):
    return await make_donor()


@pytest.fixture
def service(session):
    return AppointmentService(session, clock=fixed_clock, locks=BookingLocks())


@pytest.fixture
def app(db_manager):
    from main import config, create_app

    application = create_app(config)
    application.state.db_manager = db_manager
    application.state.clock = fixed_clock
    return application


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
