from datetime import date, datetime, timezone
from typing import Optional, Union

from frontdesk.errors import InvalidDateRange

Timestamp = Union[str, date, datetime]


def parse_timestamp(value) -> Optional[datetime]:
    """
    Read a stored or submitted timestamp as an aware UTC datetime.

    Accepts ISO 8601 strings (a trailing ``Z`` included), bare dates,
    datetimes and epoch milliseconds. Returns None for empty or unreadable
    values; naive values are taken to be UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def validate_stay_dates(check_in: Timestamp, check_out: Timestamp):
    """Return both ends of a stay as datetimes; check-out may equal check-in."""
    start = parse_timestamp(check_in)
    end = parse_timestamp(check_out)
    if start is None or end is None or end < start:
        raise InvalidDateRange(check_in, check_out)
    return start, end


def to_iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def validate_room_numbers(value):
    """Normalize submitted room numbers ("3", 3, "3,4") to a non-empty list of strings."""
    if isinstance(value, (str, int)):
        value = str(value).split(",")
    numbers = []
    for item in value or []:
        text = str(item).strip()
        if not text:
            continue
        if not text.isdigit() or int(text) <= 0:
            raise ValueError(f"Invalid room number: {item!r}")
        if str(int(text)) not in numbers:
            numbers.append(str(int(text)))
    if not numbers:
        raise ValueError("At least one room number is required")
    return numbers
