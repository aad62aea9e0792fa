import pytest

from frontdesk.errors import BookingNotFound
from frontdesk.services.checkout import (
    ReleaseResult,
    cancel_booking,
    checkout,
    checkout_customer,
)
from frontdesk.services.reconciliation import reconcile
from frontdesk.services.reservation import reserve_room
from frontdesk.services.rooms import find_room
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
def test_checkout_releases_room(seeded_store, clock):
    booking_id = run(reserve_room(seeded_store, "cust-1", "205", DAY0, DAY1, clock))
    clock.advance(hours=20)

    outcomes = run(checkout(seeded_store, booking_id, clock))

    assert len(outcomes) == 1
    assert outcomes[0].ok
    assert outcomes[0].result == ReleaseResult.RELEASED
    assert outcomes[0].room_number == "205"

    room = room_state(seeded_store, 205)
    assert room["is_available"] is True
    assert room["status"] == "available"
    assert room["current_booking_id"] is None

    booking = run(seeded_store.get(f"bookings/{booking_id}"))
    assert booking["status"] == BookingStatus.CHECKED_OUT.value
    assert booking["checkOutActual"] == "2026-03-02T08:00:00Z"
    assert booking["checkOutDate"] == "2026-03-02T12:00:00Z"


# pylint: disable-next=redefined-outer-name
def test_second_checkout_changes_nothing(seeded_store, clock):
    booking_id = run(reserve_room(seeded_store, "cust-1", "205", DAY0, DAY1, clock))
    run(checkout(seeded_store, booking_id, clock))
    writes = len(seeded_store.writes)

    outcomes = run(checkout(seeded_store, booking_id, clock))

    assert outcomes[0].ok
    assert outcomes[0].result == ReleaseResult.ALREADY_CLOSED
    assert len(seeded_store.writes) == writes


# pylint: disable-next=redefined-outer-name
def test_checkout_of_closed_booking_leaves_new_guest_alone(seeded_store, clock):
    first = run(reserve_room(seeded_store, "cust-1", "205", DAY0, DAY1, clock))
    run(checkout(seeded_store, first, clock))
    second = run(reserve_room(seeded_store, "cust-2", "205", DAY0, DAY1, clock))

    outcomes = run(checkout(seeded_store, first, clock))

    assert outcomes[0].result == ReleaseResult.ALREADY_CLOSED
    assert room_state(seeded_store, 205)["current_booking_id"] == second


# pylint: disable-next=redefined-outer-name
def test_checkout_unknown_booking(store, clock):
    with pytest.raises(BookingNotFound):
        run(checkout(store, "-missing", clock))


# pylint: disable-next=redefined-outer-name
def test_checkout_does_not_release_room_held_by_another_booking(seeded_store, clock):
    booking_id = run(reserve_room(seeded_store, "cust-1", "205", DAY0, DAY1, clock))
    key, room = run(find_room(seeded_store, 205))
    run(seeded_store.set(f"rooms/{key}", {**room, "current_booking_id": "-other"}))

    outcomes = run(checkout(seeded_store, booking_id, clock))

    assert outcomes[0].result == ReleaseResult.HELD_BY_OTHER
    assert room_state(seeded_store, 205)["current_booking_id"] == "-other"
    booking = run(seeded_store.get(f"bookings/{booking_id}"))
    assert booking["status"] == BookingStatus.CHECKED_OUT.value


# pylint: disable-next=redefined-outer-name
def test_checkout_frees_room_flagged_occupied_without_lock(seeded_store, clock):
    booking_id = run(reserve_room(seeded_store, "cust-1", "6", DAY0, DAY1, clock))
    key, room = run(find_room(seeded_store, 6))
    run(seeded_store.set(f"rooms/{key}", {**room, "current_booking_id": None}))

    outcomes = run(checkout(seeded_store, booking_id, clock))

    assert outcomes[0].result == ReleaseResult.RELEASED
    assert room_state(seeded_store, 6)["is_available"] is True


# pylint: disable-next=redefined-outer-name
def test_checkout_of_booking_for_unknown_room(store, clock):
    run(store.set("bookings/-b1", {"customerId": "cust-1", "roomNo": "808", "status": "BOOKED"}))

    outcomes = run(checkout(store, "-b1", clock))

    assert outcomes[0].result == ReleaseResult.ROOM_NOT_FOUND
    assert run(store.get("bookings/-b1"))["status"] == BookingStatus.CHECKED_OUT.value


# pylint: disable-next=redefined-outer-name
def test_checkout_customer_releases_every_room(seeded_store, clock):
    run(reserve_room(seeded_store, "cust-1", "3", DAY0, DAY1, clock))
    run(reserve_room(seeded_store, "cust-1", "4", DAY0, DAY1, clock))
    run(reserve_room(seeded_store, "cust-2", "5", DAY0, DAY1, clock))

    outcomes = run(checkout_customer(seeded_store, "cust-1", clock))

    assert len(outcomes) == 2
    assert all(o.ok for o in outcomes)
    assert sorted(o.room_number for o in outcomes) == ["3", "4"]
    assert room_state(seeded_store, 3)["is_available"] is True
    assert room_state(seeded_store, 4)["is_available"] is True
    assert room_state(seeded_store, 5)["is_available"] is False


# pylint: disable-next=redefined-outer-name
def test_checkout_customer_skips_closed_bookings(seeded_store, clock):
    first = run(reserve_room(seeded_store, "cust-1", "3", DAY0, DAY1, clock))
    run(checkout(seeded_store, first, clock))
    run(reserve_room(seeded_store, "cust-1", "4", DAY0, DAY1, clock))

    outcomes = run(checkout_customer(seeded_store, "cust-1", clock))

    assert [o.room_number for o in outcomes] == ["4"]


# pylint: disable-next=redefined-outer-name
def test_one_failed_room_does_not_block_the_others(seeded_store, clock):
    run(reserve_room(seeded_store, "cust-1", "3", DAY0, DAY1, clock))
    run(reserve_room(seeded_store, "cust-1", "4", DAY0, DAY1, clock))
    key_4, _ = run(find_room(seeded_store, 4))
    seeded_store.fail_on("transaction", f"rooms/{key_4}")

    outcomes = run(checkout_customer(seeded_store, "cust-1", clock))

    by_room = {o.room_number: o for o in outcomes}
    assert by_room["3"].result == ReleaseResult.RELEASED
    assert by_room["4"].result == ReleaseResult.FAILED
    assert by_room["4"].error
    assert room_state(seeded_store, 3)["is_available"] is True
    assert room_state(seeded_store, 4)["is_available"] is False

    # The booking is closed; the sweep frees the room it still holds
    assert run(reconcile(seeded_store, clock=clock)) == 1
    assert room_state(seeded_store, 4)["is_available"] is True


# pylint: disable-next=redefined-outer-name
def test_cancel_booking_frees_room(seeded_store, clock):
    booking_id = run(reserve_room(seeded_store, "cust-1", "101", DAY0, DAY1, clock))

    outcome = run(cancel_booking(seeded_store, booking_id, clock))

    assert outcome.result == ReleaseResult.RELEASED
    booking = run(seeded_store.get(f"bookings/{booking_id}"))
    assert booking["status"] == BookingStatus.CANCELLED.value
    assert booking["cancelledAt"] == "2026-03-01T12:00:00Z"
    assert booking["checkOutActual"] is None
    assert room_state(seeded_store, 101)["is_available"] is True


# pylint: disable-next=redefined-outer-name
def test_cancel_twice(seeded_store, clock):
    booking_id = run(reserve_room(seeded_store, "cust-1", "101", DAY0, DAY1, clock))
    run(cancel_booking(seeded_store, booking_id, clock))

    outcome = run(cancel_booking(seeded_store, booking_id, clock))

    assert outcome.result == ReleaseResult.ALREADY_CLOSED


# pylint: disable-next=redefined-outer-name
def test_cancel_after_checkout_keeps_checked_out(seeded_store, clock):
    booking_id = run(reserve_room(seeded_store, "cust-1", "101", DAY0, DAY1, clock))
    run(checkout(seeded_store, booking_id, clock))

    run(cancel_booking(seeded_store, booking_id, clock))

    booking = run(seeded_store.get(f"bookings/{booking_id}"))
    assert booking["status"] == BookingStatus.CHECKED_OUT.value
