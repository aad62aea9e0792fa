import logging

from frontdesk.services.availability import released
from frontdesk.services.customers import CUSTOMERS
from frontdesk.services.reservation import BOOKINGS
from frontdesk.services.rooms import ROOMS
from frontdesk.store.base import ABORT, StoreClient
from frontdesk.utils.clock import Clock, epoch_millis, utc_now

logger = logging.getLogger(__name__)


async def reset_state(store: StoreClient, clock: Clock = utc_now) -> int:
    """
    Wipe all bookings and customers and mark every room available.

    Administrative only: this bypasses the reservation protocol, so run it
    while no front-desk client is taking bookings. Returns rooms reset.
    """
    await store.set(BOOKINGS, None)
    await store.set(CUSTOMERS, None)
    rooms = await store.get(ROOMS) or {}
    now_ms = epoch_millis(clock())
    for key in sorted(rooms):
        await store.transaction(f"{ROOMS}/{key}", lambda current: ABORT if current is None else released(current, now_ms))
    logger.warning(f"Reset complete: {len(rooms)} rooms marked available, bookings and customers cleared")
    return len(rooms)
