from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def epoch_millis(moment: datetime) -> int:
    """Record timestamps (createdAt/updatedAt) are stored as epoch milliseconds."""
    return int(moment.timestamp() * 1000)


def get_clock() -> Clock:
    """FastAPI dependency; tests override it with a fixed clock."""
    return utc_now
