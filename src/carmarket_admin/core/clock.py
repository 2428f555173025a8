# src/carmarket_admin/core/clock.py
from datetime import datetime, timezone


def utcnow() -> datetime:
    # naive UTC, comparable with values read back from SQLite and Postgres alike
    return datetime.now(timezone.utc).replace(tzinfo=None)
