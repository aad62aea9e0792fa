"""
Room reservation.

A reservation claims a room for a new booking in one conditional write on
the room record, then writes the booking. If the booking write fails the
room is released again before the error reaches the caller, so a room is
never left locked to a booking that does not exist. The same holds when
the reservation is cancelled while the booking is being written.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from frontdesk.errors import (
    BookingPersistFailed,
    FrontDeskError,
    RoomNotAvailable,
    StoreError,
)
from frontdesk.services.availability import is_room_available, locked, released
from frontdesk.services.rooms import ROOMS, ensure_room, new_room_record, parse_room_number
from frontdesk.store.base import ABORT, StoreClient
from frontdesk.utils.clock import Clock, epoch_millis, utc_now
from frontdesk.utils.status import BookingStatus
from frontdesk.utils.validation_helpers import to_iso, validate_stay_dates

logger = logging.getLogger(__name__)

BOOKINGS = "bookings"


@dataclass
class ReservationOutcome:
    room_number: str
    booking_id: Optional[str] = None
    error: Optional[FrontDeskError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def reserve_room(
    store: StoreClient,
    customer_id: str,
    room_number,
    check_in,
    check_out,
    clock: Clock = utc_now,
) -> str:
    """
    Book ``room_number`` for ``customer_id`` and return the new booking id.

    Raises InvalidDateRange before touching the store, RoomNotAvailable when
    the room is already held, RoomProvisioningFailed when the room cannot
    be resolved or created and BookingPersistFailed when the booking write
    fails after the room was locked.
    """
    start, end = validate_stay_dates(check_in, check_out)

    room_key, _, _ = await ensure_room(store, room_number, clock)
    room_no = str(parse_room_number(room_number))
    booking_id = await store.push_key(BOOKINGS)
    room_path = f"{ROOMS}/{room_key}"
    now_ms = epoch_millis(clock())

    def claim(current):
        room = current if current is not None else new_room_record(int(room_no), now_ms)
        if not is_room_available(room):
            return ABORT
        return locked(room, booking_id, now_ms)

    logger.debug(f"Locking room {room_no} ({room_key}) for booking {booking_id}")
    result = await store.transaction(room_path, claim)
    if not result.committed:
        holder = (result.value or {}).get("current_booking_id")
        logger.warning(f"Room {room_no} not available for customer {customer_id}, held by {holder}")
        raise RoomNotAvailable(room_no)

    booking = {
        "customerId": customer_id,
        "roomNo": room_no,
        "checkInDate": to_iso(start),
        "checkOutDate": to_iso(end),
        "checkOutActual": None,
        "status": BookingStatus.BOOKED.value,
        "createdAt": now_ms,
        "updatedAt": now_ms,
    }
    booking_path = f"{BOOKINGS}/{booking_id}"
    try:
        await store.set(booking_path, booking)
    except StoreError as e:
        logger.error(f"Saving booking {booking_id} failed, releasing room {room_no}: {e}")
        rolled_back = await _release_lock(store, room_path, booking_id, clock)
        raise BookingPersistFailed(booking_id, room_no, rolled_back=rolled_back) from e
    except BaseException:
        # Cancelled or interrupted mid-write; the rollback must finish even if
        # the caller cancels again while it runs
        logger.warning(f"Booking {booking_id} interrupted while saving, settling room {room_no}")
        await asyncio.shield(_settle_interrupted(store, booking_path, room_path, booking_id, clock))
        raise

    logger.info(f"Booked room {room_no} for customer {customer_id} as {booking_id}")
    return booking_id


async def _settle_interrupted(store: StoreClient, booking_path: str, room_path: str, booking_id: str, clock: Clock):
    """Keep the lock if the booking made it to the store, release it otherwise."""
    try:
        saved = await store.get(booking_path) is not None
    except StoreError as e:
        logger.error(f"Could not read back {booking_path}, releasing the room: {e}")
        saved = False
    if saved:
        logger.info(f"Booking {booking_id} was saved before the interruption; room stays locked")
        return
    await _release_lock(store, room_path, booking_id, clock)


async def _release_lock(store: StoreClient, room_path: str, booking_id: str, clock: Clock) -> bool:
    now_ms = epoch_millis(clock())

    def unlock(current):
        if current is None or current.get("current_booking_id") != booking_id:
            return ABORT
        return released(current, now_ms)

    try:
        await store.transaction(room_path, unlock)
    except StoreError:
        logger.exception(f"Rollback of {room_path} for booking {booking_id} failed; room stays locked")
        return False
    return True


async def reserve_rooms(
    store: StoreClient,
    customer_id: str,
    room_numbers: Iterable,
    check_in,
    check_out,
    clock: Clock = utc_now,
) -> List[ReservationOutcome]:
    """
    Reserve several rooms for one guest, one independent reservation each.

    Stops at the first failure; rooms reserved before it stay booked. The
    returned list has an outcome for every room attempted.
    """
    validate_stay_dates(check_in, check_out)
    outcomes = []
    for room_number in room_numbers:
        try:
            booking_id = await reserve_room(store, customer_id, room_number, check_in, check_out, clock)
        except FrontDeskError as e:
            outcomes.append(ReservationOutcome(room_number=str(room_number), error=e))
            break
        outcomes.append(ReservationOutcome(room_number=str(room_number), booking_id=booking_id))
    return outcomes
