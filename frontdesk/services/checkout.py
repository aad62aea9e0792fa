import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from frontdesk.errors import BookingNotFound, StoreError
from frontdesk.services.availability import is_room_available, released
from frontdesk.services.reservation import BOOKINGS
from frontdesk.services.rooms import ROOMS, RoomDirectory
from frontdesk.store.base import ABORT, StoreClient
from frontdesk.utils.clock import Clock, epoch_millis, utc_now
from frontdesk.utils.status import BookingStatus, is_terminal
from frontdesk.utils.validation_helpers import to_iso

logger = logging.getLogger(__name__)


class ReleaseResult(str, Enum):
    RELEASED = "released"
    ALREADY_CLOSED = "already_closed"
    ROOM_NOT_FOUND = "room_not_found"
    HELD_BY_OTHER = "held_by_other"
    FAILED = "failed"


@dataclass
class CheckoutOutcome:
    booking_id: str
    room_number: Optional[str]
    result: ReleaseResult
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.result != ReleaseResult.FAILED


def booking_room_number(booking: dict) -> Optional[str]:
    value = booking.get("roomNo", booking.get("room_no"))
    return None if value is None else str(value)


def closed_booking(booking: dict, status: BookingStatus, now) -> dict:
    """Copy of ``booking`` moved to a terminal ``status`` at ``now``."""
    now_iso = to_iso(now)
    updated = {**booking, "status": status.value, "updatedAt": epoch_millis(now)}
    expected = booking.get("checkOutDate") or booking.get("checkoutDate")
    if status == BookingStatus.CHECKED_OUT:
        updated["checkOutActual"] = now_iso
        updated["checkOutDate"] = expected or now_iso
    else:
        updated["cancelledAt"] = now_iso
    return updated


async def release_room(
    store: StoreClient,
    room_key: str,
    booking_id: str,
    clock: Clock = utc_now,
    claim_unreferenced: bool = True,
):
    """
    Free ``room_key`` if it is still locked to ``booking_id``.

    With ``claim_unreferenced`` a room flagged occupied without any
    back-reference is freed too; such rooms come from clients that wrote
    the flag but never the lock. A room locked to another booking is never
    touched. Returns the store's TransactionResult.
    """
    now_ms = epoch_millis(clock())

    def release(current):
        if current is None:
            return ABORT
        holder = current.get("current_booking_id")
        if holder == booking_id:
            return released(current, now_ms)
        if claim_unreferenced and not holder and not is_room_available(current):
            return released(current, now_ms)
        return ABORT

    return await store.transaction(f"{ROOMS}/{room_key}", release)


async def _close(store, booking_id, status, directory, clock) -> CheckoutOutcome:
    now = clock()

    def transition(current):
        if current is None or is_terminal(current.get("status")):
            return ABORT
        return closed_booking(current, status, now)

    try:
        result = await store.transaction(f"{BOOKINGS}/{booking_id}", transition)
    except StoreError as e:
        logger.error(f"Closing booking {booking_id} failed: {e}")
        return CheckoutOutcome(booking_id, None, ReleaseResult.FAILED, str(e))
    if result.value is None:
        raise BookingNotFound(booking_id)

    room_number = booking_room_number(result.value)
    room_key, _ = directory.lookup(room_number)
    if room_key is None:
        logger.warning(f"Booking {booking_id} names room {room_number}, which does not exist")
        outcome = ReleaseResult.ROOM_NOT_FOUND if result.committed else ReleaseResult.ALREADY_CLOSED
        return CheckoutOutcome(booking_id, room_number, outcome)

    try:
        # A booking closed earlier only reclaims a lock that still names it
        release = await release_room(store, room_key, booking_id, clock, claim_unreferenced=result.committed)
    except StoreError as e:
        logger.error(f"Releasing room {room_number} for booking {booking_id} failed: {e}")
        return CheckoutOutcome(booking_id, room_number, ReleaseResult.FAILED, str(e))

    if release.committed:
        logger.info(f"Booking {booking_id} {status.value}, room {room_number} released")
        return CheckoutOutcome(booking_id, room_number, ReleaseResult.RELEASED)
    if not result.committed:
        return CheckoutOutcome(booking_id, room_number, ReleaseResult.ALREADY_CLOSED)

    holder = (release.value or {}).get("current_booking_id")
    if holder and holder != booking_id:
        logger.warning(f"Room {room_number} is held by booking {holder}; left as is for {booking_id}")
        return CheckoutOutcome(booking_id, room_number, ReleaseResult.HELD_BY_OTHER)
    return CheckoutOutcome(booking_id, room_number, ReleaseResult.RELEASED)


async def checkout(store: StoreClient, booking_id: str, clock: Clock = utc_now) -> List[CheckoutOutcome]:
    """Check out one booking. Checking out a closed booking changes nothing."""
    booking = await store.get(f"{BOOKINGS}/{booking_id}")
    if booking is None:
        raise BookingNotFound(booking_id)
    directory = await RoomDirectory.load(store)
    return [await _close(store, booking_id, BookingStatus.CHECKED_OUT, directory, clock)]


async def checkout_customer(store: StoreClient, customer_id: str, clock: Clock = utc_now) -> List[CheckoutOutcome]:
    """Check out every open booking the customer holds, one room at a time."""
    bookings = await store.get(BOOKINGS) or {}
    directory = await RoomDirectory.load(store)
    outcomes = []
    for booking_id in sorted(bookings):
        booking = bookings[booking_id]
        if booking.get("customerId") != customer_id:
            continue
        if is_terminal(booking.get("status")):
            continue
        try:
            outcomes.append(await _close(store, booking_id, BookingStatus.CHECKED_OUT, directory, clock))
        except BookingNotFound:
            # Deleted after the snapshot was read
            continue
    logger.info(f"Checked out customer {customer_id}: {len(outcomes)} bookings")
    return outcomes


async def cancel_booking(store: StoreClient, booking_id: str, clock: Clock = utc_now) -> CheckoutOutcome:
    booking = await store.get(f"{BOOKINGS}/{booking_id}")
    if booking is None:
        raise BookingNotFound(booking_id)
    directory = await RoomDirectory.load(store)
    return await _close(store, booking_id, BookingStatus.CANCELLED, directory, clock)
