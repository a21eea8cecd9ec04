"""Small shared helpers."""
from datetime import datetime, timezone
from typing import Optional
import uuid


def utcnow() -> datetime:
    """Naive UTC timestamp; the engine compares naive datetimes throughout."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())
