import asyncio

import pytest

from frontdesk.errors import (
    BookingPersistFailed,
    InvalidDateRange,
    RoomNotAvailable,
    RoomProvisioningFailed,
)
from frontdesk.services.reservation import reserve_room, reserve_rooms
from frontdesk.services.rooms import ensure_room, find_room, seed_rooms
from frontdesk.store.memory import MemoryStore
from frontdesk.utils.status import BookingStatus

from tests.conf_tests import (
    DAY0,
    DAY1,
    clock,
    room_state,
    run,
    seeded_store,
    store,
)


# pylint: disable-next=redefined-outer-name
def test_reserve_room_locks_room_and_writes_booking(seeded_store, clock):
    booking_id = run(reserve_room(seeded_store, "cust-1", "205", DAY0, DAY1, clock))

    room = room_state(seeded_store, 205)
    assert room["is_available"] is False
    assert room["status"] == "occupied"
    assert room["current_booking_id"] == booking_id

    booking = run(seeded_store.get(f"bookings/{booking_id}"))
    assert booking["customerId"] == "cust-1"
    assert booking["roomNo"] == "205"
    assert booking["status"] == BookingStatus.BOOKED.value
    assert booking["checkInDate"] == "2026-03-01T12:00:00Z"
    assert booking["checkOutDate"] == "2026-03-02T12:00:00Z"


# pylint: disable-next=redefined-outer-name
def test_same_day_stay_is_allowed(seeded_store, clock):
    booking_id = run(reserve_room(seeded_store, "cust-1", 3, DAY0, DAY0, clock))
    assert room_state(seeded_store, 3)["current_booking_id"] == booking_id


# pylint: disable-next=redefined-outer-name
def test_check_out_before_check_in_is_rejected_before_any_write(store, clock):
    with pytest.raises(InvalidDateRange):
        run(reserve_room(store, "cust-1", "205", DAY1, DAY0, clock))
    assert store.writes == []


# pylint: disable-next=redefined-outer-name
def test_unreadable_dates_are_rejected(store, clock):
    with pytest.raises(InvalidDateRange):
        run(reserve_room(store, "cust-1", "205", "not a date", DAY1, clock))


# pylint: disable-next=redefined-outer-name
def test_occupied_room_is_refused_without_partial_writes(seeded_store, clock):
    first = run(reserve_room(seeded_store, "cust-1", "205", DAY0, DAY1, clock))
    writes_before = list(seeded_store.writes)

    with pytest.raises(RoomNotAvailable) as excinfo:
        run(reserve_room(seeded_store, "cust-2", "205", DAY0, DAY1, clock))

    assert excinfo.value.room_number == "205"
    assert seeded_store.writes == writes_before
    assert list(run(seeded_store.get("bookings"))) == [first]


# pylint: disable-next=redefined-outer-name
def test_stale_available_flag_does_not_hide_a_lock(seeded_store, clock):
    key, room = run(find_room(seeded_store, 11))
    run(seeded_store.set(f"rooms/{key}", {**room, "is_available": True, "current_booking_id": "-legacy"}))

    with pytest.raises(RoomNotAvailable):
        run(reserve_room(seeded_store, "cust-1", "11", DAY0, DAY1, clock))
    assert room_state(seeded_store, 11)["current_booking_id"] == "-legacy"


# pylint: disable-next=redefined-outer-name
def test_concurrent_reservations_for_one_room_have_one_winner(seeded_store, clock):
    async def race():
        return await asyncio.gather(
            reserve_room(seeded_store, "cust-1", "205", DAY0, DAY1, clock),
            reserve_room(seeded_store, "cust-2", "205", DAY0, DAY1, clock),
            return_exceptions=True,
        )

    results = run(race())
    winners = [r for r in results if isinstance(r, str)]
    losers = [r for r in results if isinstance(r, RoomNotAvailable)]
    assert len(winners) == 1
    assert len(losers) == 1

    assert room_state(seeded_store, 205)["current_booking_id"] == winners[0]
    assert list(run(seeded_store.get("bookings"))) == winners


# pylint: disable-next=redefined-outer-name
def test_concurrent_reservations_provision_a_missing_room_once(store, clock):
    async def race():
        return await asyncio.gather(
            *[reserve_room(store, f"cust-{i}", "999", DAY0, DAY1, clock) for i in range(4)],
            return_exceptions=True,
        )

    results = run(race())
    assert len([r for r in results if isinstance(r, str)]) == 1
    assert len([r for r in results if isinstance(r, RoomNotAvailable)]) == 3

    rooms = run(store.get("rooms"))
    assert len(rooms) == 1
    (room,) = rooms.values()
    assert room["room_no"] == 999
    assert room["type"] == "Standard"


# pylint: disable-next=redefined-outer-name
def test_missing_room_is_created_on_first_booking(store, clock):
    booking_id = run(reserve_room(store, "cust-1", "412", DAY0, DAY1, clock))
    room = room_state(store, 412)
    assert room["current_booking_id"] == booking_id
    assert room["beds"] == 1


# pylint: disable-next=redefined-outer-name
def test_legacy_room_without_index_entry_is_reused(store, clock):
    run(store.set("rooms/-old", {"roomNumber": "7", "is_available": True}))

    key, _, created = run(ensure_room(store, 7, clock))

    assert key == "-old"
    assert created is False
    assert run(store.get("room_index/7")) == "-old"


# pylint: disable-next=redefined-outer-name
def test_invalid_room_number_fails_provisioning(store, clock):
    with pytest.raises(RoomProvisioningFailed):
        run(reserve_room(store, "cust-1", "lobby", DAY0, DAY1, clock))


# pylint: disable-next=redefined-outer-name
def test_failed_booking_write_rolls_back_room_lock(seeded_store, clock):
    seeded_store.fail_on("set", "bookings/")

    with pytest.raises(BookingPersistFailed) as excinfo:
        run(reserve_room(seeded_store, "cust-1", "205", DAY0, DAY1, clock))

    assert excinfo.value.rolled_back is True
    room = room_state(seeded_store, 205)
    assert room["is_available"] is True
    assert room["current_booking_id"] is None
    assert run(seeded_store.get("bookings")) is None

    # The room is usable straight away
    booking_id = run(reserve_room(seeded_store, "cust-2", "205", DAY0, DAY1, clock))
    assert room_state(seeded_store, 205)["current_booking_id"] == booking_id


# pylint: disable-next=redefined-outer-name
def test_failed_rollback_is_reported(seeded_store, clock):
    seeded_store.fail_on("set", "bookings/")
    # provisioning check and lock pass, the rollback fails
    seeded_store.fail_on("transaction", "rooms/", skip=2)

    with pytest.raises(BookingPersistFailed) as excinfo:
        run(reserve_room(seeded_store, "cust-1", "205", DAY0, DAY1, clock))

    assert excinfo.value.rolled_back is False


# pylint: disable-next=redefined-outer-name
def test_reserve_rooms_books_each_room_independently(seeded_store, clock):
    outcomes = run(reserve_rooms(seeded_store, "cust-1", ["3", "4"], DAY0, DAY1, clock))

    assert [o.room_number for o in outcomes] == ["3", "4"]
    assert all(o.ok for o in outcomes)
    assert room_state(seeded_store, 3)["current_booking_id"] == outcomes[0].booking_id
    assert room_state(seeded_store, 4)["current_booking_id"] == outcomes[1].booking_id


# pylint: disable-next=redefined-outer-name
def test_reserve_rooms_stops_at_first_failure_and_keeps_earlier_rooms(seeded_store, clock):
    run(reserve_room(seeded_store, "cust-0", "4", DAY0, DAY1, clock))

    outcomes = run(reserve_rooms(seeded_store, "cust-1", ["3", "4", "5"], DAY0, DAY1, clock))

    assert len(outcomes) == 2
    assert outcomes[0].ok
    assert isinstance(outcomes[1].error, RoomNotAvailable)
    assert room_state(seeded_store, 3)["current_booking_id"] == outcomes[0].booking_id
    assert room_state(seeded_store, 5)["current_booking_id"] is None


class SlowBookingWrites(MemoryStore):
    """Booking writes take a second, either before or after the record lands."""

    def __init__(self, write_first=False):
        super().__init__()
        self.write_first = write_first

    async def set(self, path, value):
        if not path.startswith("bookings/"):
            return await super().set(path, value)
        if self.write_first:
            await super().set(path, value)
            await asyncio.sleep(1)
        else:
            await asyncio.sleep(1)
            await super().set(path, value)


# pylint: disable-next=redefined-outer-name
def test_reservation_cancelled_during_booking_write_releases_room(clock):
    slow_store = SlowBookingWrites()
    run(seed_rooms(slow_store, clock))

    with pytest.raises(asyncio.TimeoutError):
        run(asyncio.wait_for(reserve_room(slow_store, "cust-1", "205", DAY0, DAY1, clock), 0.05))

    room = room_state(slow_store, 205)
    assert room["is_available"] is True
    assert room["current_booking_id"] is None
    assert run(slow_store.get("bookings")) is None


# pylint: disable-next=redefined-outer-name
def test_reservation_cancelled_after_booking_landed_keeps_lock(clock):
    slow_store = SlowBookingWrites(write_first=True)
    run(seed_rooms(slow_store, clock))

    with pytest.raises(asyncio.TimeoutError):
        run(asyncio.wait_for(reserve_room(slow_store, "cust-1", "205", DAY0, DAY1, clock), 0.05))

    (booking_id,) = run(slow_store.get("bookings"))
    assert room_state(slow_store, 205)["current_booking_id"] == booking_id
