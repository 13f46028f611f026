# utils/clock.py
from datetime import datetime, timezone


def utcnow() -> datetime:
     """Current UTC time as a naive datetime (all DateTime columns store naive UTC)."""
     return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
     if value.tzinfo is None:
          return value
     return value.astimezone(timezone.utc).replace(tzinfo=None)
