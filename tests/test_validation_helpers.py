from datetime import date, datetime, timezone

import pytest

from frontdesk.errors import InvalidDateRange
from frontdesk.utils.validation_helpers import (
    parse_timestamp,
    to_iso,
    validate_room_numbers,
    validate_stay_dates,
)

from tests.conf_tests import DAY0, DAY1


@pytest.mark.parametrize(
    "value",
    [
        "2026-03-01T12:00:00Z",
        "2026-03-01T12:00:00+00:00",
        "2026-03-01T17:30:00+05:30",
        "2026-03-01T12:00:00",
        datetime(2026, 3, 1, 12, 0),
        1772366400000,
    ],
)
def test_parse_timestamp_forms(value):
    assert parse_timestamp(value) == DAY0


def test_parse_timestamp_dates_and_garbage():
    assert parse_timestamp(date(2026, 3, 1)) == datetime(2026, 3, 1, tzinfo=timezone.utc)
    assert parse_timestamp("") is None
    assert parse_timestamp(None) is None
    assert parse_timestamp("tomorrow") is None


def test_validate_stay_dates():
    assert validate_stay_dates(DAY0, DAY1) == (DAY0, DAY1)
    assert validate_stay_dates("2026-03-01", "2026-03-01")[0] == datetime(2026, 3, 1, tzinfo=timezone.utc)
    with pytest.raises(InvalidDateRange):
        validate_stay_dates(DAY1, DAY0)
    with pytest.raises(InvalidDateRange):
        validate_stay_dates(None, DAY1)


def test_to_iso():
    assert to_iso(DAY0) == "2026-03-01T12:00:00Z"


def test_validate_room_numbers():
    assert validate_room_numbers("3, 4,3") == ["3", "4"]
    assert validate_room_numbers(205) == ["205"]
    assert validate_room_numbers(["007", "8"]) == ["7", "8"]
    with pytest.raises(ValueError):
        validate_room_numbers("3,lobby")
    with pytest.raises(ValueError):
        validate_room_numbers([])
    with pytest.raises(ValueError):
        validate_room_numbers("0")
