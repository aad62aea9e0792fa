"""
Repair of drift between bookings and rooms.

Bookings past their expected check-out are closed, and rooms still locked
by closed, past-due or orphaned bookings are released. Every write is a
conditional transaction keyed on the lock holder seen when the decision
was made, so a reservation that lands mid-sweep is never undone. Running
the sweep twice in a row corrects nothing the second time.

Which foreign locks get released is a policy choice. By default a room
held by a *different* booking is freed only when that booking is closed,
or was never written and the lock is older than
``Config.ORPHAN_LOCK_GRACE_SECONDS``. ``release_foreign_locks=True``
restores the older behaviour of freeing any occupied room a due booking
points at, which can free a room another active booking legitimately
holds.
"""
import logging
from datetime import timedelta
from typing import Optional

from frontdesk.config import Config
from frontdesk.services.availability import is_room_available, released
from frontdesk.services.checkout import booking_room_number
from frontdesk.services.reservation import BOOKINGS
from frontdesk.services.rooms import ROOMS, RoomDirectory
from frontdesk.store.base import ABORT, StoreClient
from frontdesk.utils.clock import Clock, epoch_millis, utc_now
from frontdesk.utils.status import BookingStatus, is_terminal, normalize_booking_status
from frontdesk.utils.validation_helpers import parse_timestamp, to_iso

logger = logging.getLogger(__name__)


def expected_checkout(booking: dict):
    return parse_timestamp(booking.get("checkOutDate") or booking.get("checkoutDate"))


def is_due(booking: dict, now) -> bool:
    """
    An open booking whose expected check-out is at or before ``now``.

    Cancelled bookings are terminal too and never due; older clients
    re-closed past-due cancellations as checked out.
    """
    if is_terminal(booking.get("status")):
        return False
    expected = expected_checkout(booking)
    return expected is not None and expected <= now


class _Sweep:
    def __init__(self, store: StoreClient, clock: Clock, release_foreign_locks: bool):
        self.store = store
        self.clock = clock
        self.now = clock()
        self.release_foreign_locks = release_foreign_locks
        self.grace = timedelta(seconds=Config.ORPHAN_LOCK_GRACE_SECONDS)

    async def force_checkout(self, booking_id: str) -> bool:
        now = self.now

        def transition(current):
            if current is None or is_terminal(current.get("status")):
                return ABORT
            expected = expected_checkout(current)
            fallback = to_iso(expected) if expected else to_iso(now)
            return {
                **current,
                "status": BookingStatus.CHECKED_OUT.value,
                "checkOutActual": current.get("checkOutActual") or fallback,
                "checkOutDate": current.get("checkOutDate") or current.get("checkoutDate") or fallback,
                "updatedAt": epoch_millis(now),
            }

        result = await self.store.transaction(f"{BOOKINGS}/{booking_id}", transition)
        return result.committed

    async def release_if_held(self, room_key: str, holder) -> bool:
        """Free the room only while its lock is exactly ``holder`` and it is occupied."""
        now_ms = epoch_millis(self.clock())

        def release(current):
            if current is None or is_room_available(current):
                return ABORT
            if (current.get("current_booking_id") or None) != holder:
                return ABORT
            return released(current, now_ms)

        result = await self.store.transaction(f"{ROOMS}/{room_key}", release)
        return result.committed

    async def lock_is_stale(self, room: dict, holder: str, permissive=None) -> bool:
        """Whether ``holder`` no longer justifies keeping the room locked."""
        if permissive is None:
            permissive = self.release_foreign_locks
        if permissive:
            return True
        holder_booking = await self.store.get(f"{BOOKINGS}/{holder}")
        if holder_booking is not None:
            return is_terminal(holder_booking.get("status"))
        locked_at = parse_timestamp(room.get("updatedAt"))
        return locked_at is None or locked_at <= self.now - self.grace

    async def release_for(self, booking_id: str, room_key: str) -> bool:
        room = await self.store.get(f"{ROOMS}/{room_key}")
        if room is None or is_room_available(room):
            return False
        holder = room.get("current_booking_id") or None
        if holder == booking_id or holder is None:
            return await self.release_if_held(room_key, holder)
        if await self.lock_is_stale(room, holder):
            logger.warning(f"Releasing room {room.get('room_no')} held by {holder} while closing {booking_id}")
            return await self.release_if_held(room_key, holder)
        logger.warning(f"Room {room.get('room_no')} is held by active booking {holder}; not released for {booking_id}")
        return False


async def reconcile(
    store: StoreClient,
    customer_id: Optional[str] = None,
    clock: Clock = utc_now,
    release_foreign_locks: Optional[bool] = None,
) -> int:
    """
    Close past-due bookings and free rooms they or closed bookings still hold.

    Limited to one guest's bookings when ``customer_id`` is given; otherwise
    rooms locked to bookings that no longer exist are cleared as well.
    Returns the number of bookings and orphaned room locks corrected.
    """
    if release_foreign_locks is None:
        release_foreign_locks = Config.RECONCILE_RELEASE_FOREIGN_LOCKS
    sweep = _Sweep(store, clock, release_foreign_locks)
    bookings = await store.get(BOOKINGS) or {}
    directory = await RoomDirectory.load(store)
    corrected = 0

    for booking_id in sorted(bookings):
        booking = bookings[booking_id]
        if customer_id is not None and booking.get("customerId") != customer_id:
            continue
        status = normalize_booking_status(booking.get("status"))
        room_key, room = directory.lookup(booking_room_number(booking))

        if is_terminal(status):
            # Closed, but the close never reached the room
            if room is not None and room.get("current_booking_id") == booking_id:
                if await sweep.release_if_held(room_key, booking_id):
                    logger.info(f"Released room {room.get('room_no')} still locked to closed booking {booking_id}")
                    corrected += 1
            continue

        if not is_due(booking, sweep.now):
            continue

        changed = await sweep.force_checkout(booking_id)
        if room_key is not None and await sweep.release_for(booking_id, room_key):
            changed = True
        if changed:
            logger.info(f"Closed past-due booking {booking_id} for room {booking_room_number(booking)}")
            corrected += 1

    if customer_id is None:
        corrected += await _clear_orphaned_locks(sweep, bookings, directory)

    logger.info(f"Reconciliation corrected {corrected} records")
    return corrected


async def _clear_orphaned_locks(sweep: _Sweep, bookings: dict, directory: RoomDirectory) -> int:
    cleared = 0
    for room_key in sorted(directory.rooms):
        room = directory.rooms[room_key]
        holder = room.get("current_booking_id")
        if not holder or holder in bookings:
            continue
        if await sweep.lock_is_stale(room, holder, permissive=False) and await sweep.release_if_held(room_key, holder):
            logger.warning(f"Cleared orphaned lock {holder} on room {room.get('room_no')}")
            cleared += 1
    return cleared
