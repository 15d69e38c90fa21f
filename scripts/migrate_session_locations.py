"""Backfill coordinates for sessions configured with only a maps link.

Usage: APP_ENV=production python scripts/migrate_session_locations.py
"""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

from dotenv import load_dotenv

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.session_attendance.session_attendance.common.logging_utils import configure_logging
from src.session_attendance.session_attendance.database.connection import DBConfig, DatabaseConnection
from src.session_attendance.session_attendance.sessions.migration import backfill_session_locations
from src.session_attendance.session_attendance.sessions.mysql_session_repository import MySQLSessionRepository


def main() -> int:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    conn = DatabaseConnection.get_instance(DBConfig.from_dict(dict(settings.DB_CONFIG)))
    summary = backfill_session_locations(MySQLSessionRepository(conn))

    print("Migration summary:")
    print(f"  Total sessions checked: {summary.total}")
    print(f"  Fixed: {summary.fixed}")
    print(f"  Failed: {summary.failed}")
    print(f"  Skipped: {summary.skipped}")
    if summary.failures:
        print("  Sessions needing manual attention: " + ", ".join(str(i) for i in summary.failures))
    return 1 if summary.failed else 0


if __name__ == "__main__":
    sys.exit(main())
