#!/usr/bin/env python3
"""
Database Initialization Script for SocietySync

This script:
1. Tests database connectivity
2. Creates any missing tables
3. Optionally seeds the platform allow-lists, so the first admin can register

Usage:
    python scripts/init_db.py                                  # Connect and create tables
    python scripts/init_db.py --check                          # Only check connectivity
    python scripts/init_db.py --status                         # Show table status
    python scripts/init_db.py --admin-email chief@college.edu  # Allow an admin to register
    python scripts/init_db.py --faculty-email prof@college.edu --faculty-email dean@college.edu
"""

import asyncio
import sys
import argparse
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import inspect, text  # noqa: E402


async def test_connection() -> bool:
    """Test database connectivity"""
    print("\n[InitDB] Testing database connection...")

    try:
        from app.core.database import get_engine, get_database_url

        db_url = get_database_url()
        print(f"[InitDB] Connecting to: {db_url.split('@')[1] if '@' in db_url else db_url}")

        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))

        print("[InitDB] Database connection successful!")
        return True

    except Exception as e:
        print(f"[InitDB] ERROR: Database connection failed: {e}")
        return False


async def create_tables() -> bool:
    print("\n[InitDB] Creating/verifying database tables...")

    try:
        from app.core.database import init_db

        await init_db()
        print("[InitDB] Database tables created/verified!")
        return True

    except Exception as e:
        print(f"[InitDB] ERROR: Table creation failed: {e}")
        return False


async def seed_allow_lists(admin_emails, faculty_emails) -> bool:
    """Append to the platform allow-lists without dropping existing entries"""
    print("\n[InitDB] Updating platform allow-lists...")

    try:
        from app.core.database import get_session_local
        from app.services.eligibility_service import eligibility_service, normalize_email_list

        async with get_session_local()() as session:
            config = await eligibility_service.get_platform_config(session)
            if admin_emails:
                config.admin_emails = normalize_email_list(list(config.admin_emails or []) + list(admin_emails))
            if faculty_emails:
                config.faculty_whitelist = normalize_email_list(
                    list(config.faculty_whitelist or []) + list(faculty_emails)
                )
            await session.commit()

            print(f"[InitDB] Admin allow-list: {', '.join(config.admin_emails) or '(empty)'}")
            print(f"[InitDB] Faculty whitelist: {', '.join(config.faculty_whitelist) or '(empty)'}")
        return True

    except Exception as e:
        print(f"[InitDB] ERROR: Could not update allow-lists: {e}")
        return False


async def show_table_status():
    print("\n[InitDB] Database Table Status:")
    print("-" * 50)

    try:
        from app.core.database import get_engine

        def describe(sync_conn):
            inspector = inspect(sync_conn)
            return {name: len(inspector.get_columns(name)) for name in inspector.get_table_names()}

        async with get_engine().connect() as conn:
            tables = await conn.run_sync(describe)

        print(f"Total tables: {len(tables)}")
        print("\nTables:")
        for table in sorted(tables):
            print(f"  - {table} ({tables[table]} columns)")

    except Exception as e:
        print(f"[InitDB] Could not inspect tables: {e}")


async def main() -> int:
    parser = argparse.ArgumentParser(description="SocietySync Database Initialization")
    parser.add_argument("--check", action="store_true", help="Only check connectivity")
    parser.add_argument("--status", action="store_true", help="Show table status")
    parser.add_argument("--admin-email", action="append", default=[], help="Add an email to the admin allow-list")
    parser.add_argument("--faculty-email", action="append", default=[], help="Add an email to the faculty whitelist")

    args = parser.parse_args()

    print("=" * 50)
    print("  SocietySync - Database Initialization")
    print("=" * 50)

    from app.core.database import close_db

    try:
        # Always test connection first
        if not await test_connection():
            print("\n[InitDB] FAILED: Cannot connect to database")
            return 1

        if args.check:
            print("\n[InitDB] Connection check completed!")
            return 0

        if args.status:
            await show_table_status()
            return 0

        if not await create_tables():
            print("[InitDB] FAILED: Could not create tables")
            return 1

        if args.admin_email or args.faculty_email:
            if not await seed_allow_lists(args.admin_email, args.faculty_email):
                return 1

        await show_table_status()
    finally:
        await close_db()

    print("\n" + "=" * 50)
    print("  Database Initialization Complete!")
    print("=" * 50)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
