"""Bookability of a single room record."""

AVAILABLE = "available"
OCCUPIED = "occupied"


def is_room_available(room) -> bool:
    """
    Return whether ``room`` can take a new booking.

    Missing fields read as available so that old records stay usable, but
    a present ``current_booking_id`` always means occupied, whatever the
    ``is_available`` flag says. Never raises.
    """
    if not isinstance(room, dict):
        return room is None
    if room.get("current_booking_id"):
        return False
    if room.get("is_available") is False:
        return False
    status = room.get("status")
    if isinstance(status, str) and status.strip().lower() == OCCUPIED:
        return False
    return True


def derived_status(room) -> str:
    return AVAILABLE if is_room_available(room) else OCCUPIED


def released(room: dict, now_ms: int) -> dict:
    """Copy of ``room`` with its lock cleared."""
    return {
        **room,
        "is_available": True,
        "status": AVAILABLE,
        "current_booking_id": None,
        "updatedAt": now_ms,
    }


def locked(room: dict, booking_id: str, now_ms: int) -> dict:
    """Copy of ``room`` held by ``booking_id``."""
    return {
        **room,
        "is_available": False,
        "status": OCCUPIED,
        "current_booking_id": booking_id,
        "updatedAt": now_ms,
    }
