import logging
from typing import Dict, Optional, Tuple

from frontdesk.errors import RoomProvisioningFailed, StoreError
from frontdesk.services.availability import AVAILABLE
from frontdesk.store.base import ABORT, StoreClient
from frontdesk.utils.clock import Clock, epoch_millis, utc_now

logger = logging.getLogger(__name__)

ROOMS = "rooms"
ROOM_INDEX = "room_index"

# (room_no, beds, type, ac_make)
DEFAULT_ROOMS = [
    (2, 3, "AC", ""), (3, 3, "AC", "LLOYD"), (4, 2, "AC", ""), (5, 3, "AC", ""),
    (6, 4, "AC", ""), (7, 4, "AC", ""), (8, 3, "AC", ""), (9, 2, "AC", ""),
    (10, 3, "AC", ""), (11, 3, "AC", ""),
    (101, 4, "AC", ""), (102, 3, "AC", ""), (103, 3, "AC", ""), (104, 2, "Non AC", ""),
    (105, 2, "AC", "LLOYD"), (106, 3, "AC", "LLOYD"),
    (111, 2, "Non AC", ""), (112, 2, "AC", "IFB"), (113, 3, "AC", "OLD"), (114, 3, "AC", ""),
    (115, 3, "AC", ""), (116, 4, "AC", ""),
    (201, 4, "AC", ""), (202, 6, "AC", "IFB"), (203, 4, "AC", ""), (204, 6, "AC", ""),
    (205, 4, "AC", "WHIRLPOOL"), (206, 2, "AC", "LLOYD"), (207, 4, "AC", "LLOYD (NEW)"),
    (208, 4, "AC", "IFB"), (209, 2, "AC", "LLOYD"), (210, 4, "AC", "DOLLER"), (211, 4, "Non AC", ""),
    (301, 4, "Non AC", ""), (302, 0, "Non AC", "Small Hall"), (303, 4, "AC", "LLOYD (NEW)"),
    (304, 4, "AC", "IFB, LLOYD"), (305, 4, "Non AC", ""), (306, 6, "AC", "LLOYD"),
    (307, 4, "AC", "LLOYD (NEW)"),
]


def parse_room_number(value) -> int:
    """Room numbers arrive as ints or strings; both mean the same room."""
    if isinstance(value, bool):
        raise ValueError(f"Not a room number: {value!r}")
    number = int(str(value).strip())
    if number <= 0:
        raise ValueError(f"Not a room number: {value!r}")
    return number


def record_room_number(record) -> Optional[int]:
    if not isinstance(record, dict):
        return None
    for field in ("room_no", "roomNumber"):
        try:
            return parse_room_number(record[field])
        except (KeyError, TypeError, ValueError):
            continue
    return None


def new_room_record(room_no: int, now_ms: int, beds=1, room_type="Standard", ac_make="") -> dict:
    return {
        "room_no": room_no,
        "beds": beds,
        "type": room_type,
        "ac_make": ac_make,
        "remarks": "",
        "status": AVAILABLE,
        "is_available": True,
        "current_booking_id": None,
        "createdAt": now_ms,
        "updatedAt": now_ms,
    }


class RoomDirectory:
    """Room lookups against one snapshot of ``rooms`` and ``room_index``."""

    def __init__(self, rooms: Dict[str, dict], index: Dict[str, str] = None):
        self.rooms = rooms or {}
        self.index = index or {}

    @classmethod
    async def load(cls, store: StoreClient):
        rooms = await store.get(ROOMS) or {}
        index = await store.get(ROOM_INDEX) or {}
        return cls(rooms, index)

    def lookup(self, room_number) -> Tuple[Optional[str], Optional[dict]]:
        try:
            number = parse_room_number(room_number)
        except (TypeError, ValueError):
            return None, None
        key = self.index.get(str(number))
        if key and key in self.rooms:
            return key, self.rooms[key]
        # Rooms written before the index existed
        for key in sorted(self.rooms):
            if record_room_number(self.rooms[key]) == number:
                return key, self.rooms[key]
        return None, None


async def find_room(store: StoreClient, room_number) -> Tuple[Optional[str], Optional[dict]]:
    number = parse_room_number(room_number)
    key = await store.get(f"{ROOM_INDEX}/{number}")
    if key:
        record = await store.get(f"{ROOMS}/{key}")
        if record is not None:
            return key, record
    directory = RoomDirectory(await store.get(ROOMS) or {})
    return directory.lookup(number)


async def ensure_room(store: StoreClient, room_number, clock: Clock = utc_now, template=None):
    """
    Fetch the room with ``room_number``, creating it if there is none.

    Ownership of the number is claimed with a conditional create on
    ``room_index/<number>``, so two callers provisioning the same missing
    room end up with the same record. Returns ``(key, record, created)``.
    """
    try:
        number = parse_room_number(room_number)
    except (TypeError, ValueError) as e:
        raise RoomProvisioningFailed(room_number, "not a room number") from e

    index_path = f"{ROOM_INDEX}/{number}"
    try:
        owner = await store.get(index_path)
        if not owner:
            legacy_key, _ = RoomDirectory(await store.get(ROOMS) or {}).lookup(number)
            candidate = legacy_key or await store.push_key(ROOMS)
            claim = await store.transaction(index_path, lambda current: ABORT if current else candidate)
            owner = claim.value
            if claim.committed:
                logger.debug(f"Room {number} indexed under key {owner}")

        now_ms = epoch_millis(clock())
        fields = template or {}

        def create_if_missing(current):
            if current is not None:
                return ABORT
            return new_room_record(number, now_ms, **fields)

        result = await store.transaction(f"{ROOMS}/{owner}", create_if_missing)
    except StoreError as e:
        logger.error(f"Provisioning room {number} failed: {e}")
        raise RoomProvisioningFailed(number, str(e)) from e

    if result.committed:
        logger.info(f"Provisioned room {number} ({owner})")
    return owner, result.value, result.committed


async def seed_rooms(store: StoreClient, clock: Clock = utc_now, rooms=None) -> int:
    """Install the fixed room inventory; rooms that already exist are left alone."""
    created = 0
    for room_no, beds, room_type, ac_make in rooms or DEFAULT_ROOMS:
        template = {"beds": beds, "room_type": room_type, "ac_make": ac_make}
        _, _, was_created = await ensure_room(store, room_no, clock, template=template)
        if was_created:
            created += 1
    logger.info(f"Room seeding created {created} rooms")
    return created
