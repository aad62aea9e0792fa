from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    BOOKED = "BOOKED"
    CHECKED_OUT = "CHECKED_OUT"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES = frozenset({BookingStatus.CHECKED_OUT, BookingStatus.CANCELLED})

# Old clients wrote these spellings; anything unrecognised stays BOOKED so a
# room is never freed by accident.
_ALIASES = {
    "CHECKED_OUT": BookingStatus.CHECKED_OUT,
    "CHECKEDOUT": BookingStatus.CHECKED_OUT,
    "CHECKED-OUT": BookingStatus.CHECKED_OUT,
    "CANCELLED": BookingStatus.CANCELLED,
    "CANCELED": BookingStatus.CANCELLED,
    "PENDING": BookingStatus.PENDING,
}


def normalize_booking_status(raw) -> BookingStatus:
    if isinstance(raw, BookingStatus):
        return raw
    key = str(raw or "").strip().upper()
    return _ALIASES.get(key, BookingStatus.BOOKED)


def is_terminal(raw) -> bool:
    return normalize_booking_status(raw) in TERMINAL_STATUSES
