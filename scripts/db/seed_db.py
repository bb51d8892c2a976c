# scripts/db/seed_db.py
import csv
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Optional

from bloodlink.db import DbManager
from bloodlink.db.models import User
from bloodlink.db.schemas import UserCreate
from bloodlink.scheduling import SchedulingError
from bloodlink.services.v1 import AppointmentService, AvailabilityService
from common import get_app_logger

logger = get_app_logger(__name__)


def build_users(template: dict[str, Any], records: int, start_index: int = 0) -> list[UserCreate]:
    """Validated profiles from ``template`` with a per-record name and email."""
    local, _, domain = template["email"].partition("@")
    return [
        UserCreate(
            **{
                **template,
                "name": f"{template['name']} {i}",
                "email": f"{local}+{i}@{domain}",
                **(
                    {"organization_name": f"{template['organization_name']} {i}"}
                    if template.get("organization_name")
                    else {}
                ),
            }
        )
        for i in range(start_index, start_index + records)
    ]


def write_users_to_csv(filename: Path, users: list[UserCreate]) -> None:
    if not users:
        return
    filename.parent.mkdir(parents=True, exist_ok=True)
    rows = [user.model_dump(mode="json") for user in users]
    with filename.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=list(rows[0]))
        writer.writeheader()
        for row in rows:
            # JSON columns go in as their repr; the CSV is for eyeballing, not reloading
            writer.writerow({k: v if not isinstance(v, dict) else str(v) for k, v in row.items()})


async def seed_db(
    db_manager: DbManager,
    data_template: dict[str, dict[str, Any]],
    records: int,
    start_index: int = 0,
    export_csv: bool = False,
    csv_dir: str = "data/seed",
) -> dict[str, list[User]]:
    """
    Insert ``records`` users per template group.

    Returns:
        Group name -> inserted User rows
    """
    inserted: dict[str, list[User]] = {}
    for group, template in data_template.items():
        users = build_users(template, records, start_index)
        if export_csv:
            write_users_to_csv(Path(csv_dir) / f"{group}.csv", users)

        rows = [User(**user.model_dump()) for user in users]
        async with db_manager.session() as session:
            session.add_all(rows)
        inserted[group] = rows
        logger.info("seeded_users", group=group, count=len(rows))
    return inserted


async def seed_appointments(
    db_manager: DbManager,
    blood_banks: list[User],
    donors: list[User],
    per_donor: int = 1,
    start: Optional[date] = None,
) -> int:
    """
    Book the first open slot for each donor through the normal booking path,
    walking forward day by day from ``start`` (default tomorrow).

    Returns:
        Number of appointments created
    """
    if not blood_banks:
        return 0
    day = start or date.today() + timedelta(days=1)
    created = 0

    for index, donor in enumerate(donors):
        bank = blood_banks[index % len(blood_banks)]
        booked = 0
        for offset in range(14):
            if booked >= per_donor:
                break
            on_date = day + timedelta(days=offset)
            async with db_manager.session() as session:
                availability = await AvailabilityService(session).compute_available_slots(
                    bank.user_id, on_date
                )
                if not availability.slots:
                    continue
                start_time, end_time = availability.slots[0].as_strings()
                try:
                    await AppointmentService(session).create_appointment(
                        donor_id=donor.user_id,
                        blood_bank_id=bank.user_id,
                        on_date=on_date,
                        start_time=start_time,
                        end_time=end_time,
                    )
                except SchedulingError as e:
                    logger.warning("seed_booking_skipped", donor_id=donor.user_id, reason=e.message)
                    continue
            booked += 1
        created += booked

    logger.info("seeded_appointments", count=created)
    return created


__all__ = ["seed_db", "seed_appointments", "build_users", "write_users_to_csv"]
