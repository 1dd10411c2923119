"""Time helpers. Everything stored in the database is naive UTC."""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as a naive UTC datetime, matching TIMESTAMP columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def from_epoch_seconds(value: float) -> datetime:
    """Convert a gateway epoch timestamp into naive UTC."""
    return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)
