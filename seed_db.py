"""
Database Seeding Script
=======================

Creates demo blood banks and donors, and optionally books appointments for
the donors through the regular booking rules.

Usage:
    python seed_db.py --records 3
    python seed_db.py --records 5 --appointments 2 --export-csv --csv-dir data/seed
    python seed_db.py --records 3 --reset

Requires the same environment as the API (see .env.example).
"""

import sys
import argparse
import asyncio
from dotenv import load_dotenv

from bloodlink.db import DbManager
from common.config import DatabaseConfig, get_config, initialize_config
from common.api_error import ConfigurationError
from scripts.db import DEFAULT_DATA_TEMPLATE, seed_appointments, seed_db


async def run_seed(
    db_config: DatabaseConfig,
    records: int,
    appointments: int,
    export_csv: bool,
    csv_dir: str,
    reset: bool = False,
) -> None:
    db_manager = DbManager.from_config(db_config)
    await db_manager.verify_connection()
    if db_config.driver.is_sqlite:
        if reset:
            await db_manager.drop_all()
        await db_manager.create_all()
    elif reset:
        # PostgreSQL schema belongs to Alembic
        print("--reset only applies to SQLite; use alembic downgrade base", file=sys.stderr)
    try:
        users = await seed_db(
            db_manager=db_manager,
            data_template=DEFAULT_DATA_TEMPLATE,
            records=records,
            export_csv=export_csv,
            csv_dir=csv_dir,
        )
        if appointments:
            await seed_appointments(
                db_manager,
                users.get("blood_banks", []),
                users.get("donors", []),
                per_donor=appointments,
            )
    finally:
        await db_manager.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed demo blood banks and donors")
    parser.add_argument(
        "--records",
        type=int,
        required=True,
        help="Users to create per group (blood banks, donors)",
    )
    parser.add_argument(
        "--appointments",
        type=int,
        default=0,
        help="Appointments to book per donor (default 0)",
    )
    parser.add_argument("--export-csv", action="store_true", help="Export generated users to CSV")
    parser.add_argument("--csv-dir", type=str, default="data/seed", help="Directory for CSV files")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop and recreate all tables first (SQLite only)",
    )
    args = parser.parse_args()

    db_config = get_config().database
    if db_config is None:
        print("FATAL: Database configuration required (set DB_DRIVER)", file=sys.stderr)
        sys.exit(1)

    asyncio.run(
        run_seed(
            db_config,
            args.records,
            args.appointments,
            args.export_csv,
            args.csv_dir,
            reset=args.reset,
        )
    )


if __name__ == "__main__":
    load_dotenv()
    try:
        initialize_config()
    except ConfigurationError as e:
        print(f"FATAL: Configuration error:\n{e}", file=sys.stderr)
        sys.exit(1)
    main()
