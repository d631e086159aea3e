#!/usr/bin/env python3
"""
Database reset script for the Clinic Scheduler.

Drops every table, recreates the schema and seeds one clinic with a weekly
schedule, booking settings and a few staff members, so the API can be tried
out right away.
"""

import sys
import os
from datetime import time

# Add backend/src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'backend', 'src'))

from sqlalchemy import inspect

from core.config import DATABASE_URL, DEFAULT_CLINIC_ID
from core.constants import DEFAULT_BOOKING_ADVANCE_DAYS, DEFAULT_BOOKING_BUFFER_MINUTES, DEFAULT_CHAIRS_COUNT
from core.database import create_tables, drop_tables, engine, get_db_context
from models import BusinessHours, Clinic, ClinicSettings, Staff

EXPECTED_TABLES = [
    'clinics', 'staff', 'patients', 'appointments',
    'business_hours', 'holidays', 'clinic_settings',
]

# day_of_week (0=Sunday) -> (open, close); None means closed
WEEKLY_SCHEDULE = {
    0: None,
    1: (time(9, 0), time(18, 0)),
    2: (time(9, 0), time(18, 0)),
    3: (time(9, 0), time(18, 0)),
    4: (time(9, 0), time(18, 0)),
    5: (time(9, 0), time(18, 0)),
    6: (time(9, 0), time(13, 0)),
}

SAMPLE_STAFF = [
    ("山田 太郎", "doctor", 2),
    ("佐藤 花子", "hygienist", None),
    ("鈴木 一郎", "hygienist", None),
]


def seed_default_clinic() -> None:
    """Create the default clinic with its schedule, settings and staff."""
    with get_db_context() as db:
        clinic = Clinic(id=DEFAULT_CLINIC_ID, name="サンプル歯科クリニック")
        db.add(clinic)
        db.flush()

        for day_of_week, hours in WEEKLY_SCHEDULE.items():
            if hours is None:
                db.add(BusinessHours(clinic_id=clinic.id, day_of_week=day_of_week, is_closed=True))
            else:
                db.add(BusinessHours(
                    clinic_id=clinic.id,
                    day_of_week=day_of_week,
                    open_time=hours[0],
                    close_time=hours[1],
                    is_closed=False,
                ))

        db.add(ClinicSettings(
            clinic_id=clinic.id,
            chairs_count=DEFAULT_CHAIRS_COUNT,
            booking_advance_days=DEFAULT_BOOKING_ADVANCE_DAYS,
            booking_buffer_minutes=DEFAULT_BOOKING_BUFFER_MINUTES,
        ))

        for name, role, capacity in SAMPLE_STAFF:
            db.add(Staff(clinic_id=clinic.id, name=name, role=role, max_concurrent_appointments=capacity))

        db.commit()


def reset_database():
    """Reset the database by dropping all tables and recreating them."""

    print("🔄 Resetting Clinic Scheduler database...")
    print(f"Database URL: {DATABASE_URL}")

    try:
        print("🗑️  Dropping existing tables...")
        drop_tables()

        print("🏗️  Creating fresh tables...")
        create_tables()

        table_names = inspect(engine).get_table_names()
        print("📋 Created tables:")
        for table in EXPECTED_TABLES:
            if table in table_names:
                print(f"   ✅ {table}")
            else:
                print(f"   ❌ {table} (missing)")

        if not all(table in table_names for table in EXPECTED_TABLES):
            print("⚠️  Warning: Some tables may be missing")
            return

        print("🌱 Seeding default clinic...")
        seed_default_clinic()

        print("🎉 Database reset complete!")
        print("\n📊 Database is now ready with:")
        print(f"   - 1 clinic (id={DEFAULT_CLINIC_ID})")
        print("   - business hours: Mon-Fri 09:00-18:00, Sat 09:00-13:00, Sun closed")
        print(f"   - {DEFAULT_CHAIRS_COUNT} chairs, {DEFAULT_BOOKING_ADVANCE_DAYS} days booking window")
        print(f"   - {len(SAMPLE_STAFF)} staff members")

    except Exception as e:
        print(f"❌ Error resetting database: {e}")
        raise


def show_usage():
    """Show usage information."""
    print("Clinic Scheduler Database Reset Script")
    print("=" * 40)
    print()
    print("This script will:")
    print("1. Drop all existing tables")
    print("2. Recreate all tables")
    print("3. Seed the default clinic, its schedule, settings and staff")
    print()
    print("Usage:")
    print("  python reset_database.py [--yes]")
    print()
    print("Without --yes, asks for confirmation unless DATABASE_URL is a SQLite database.")


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] in ['--help', '-h']:
        show_usage()
    elif not DATABASE_URL.startswith("sqlite") and "--yes" not in sys.argv:
        answer = input(f"This will erase all data in {DATABASE_URL}. Continue? [y/N] ")
        if answer.strip().lower() == "y":
            reset_database()
        else:
            print("Aborted.")
    else:
        reset_database()
