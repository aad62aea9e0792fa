"""Read-only projections over rooms, bookings and customers."""
from typing import Callable, List

from frontdesk.config import Config
from frontdesk.errors import BookingNotFound
from frontdesk.services.availability import derived_status, is_room_available
from frontdesk.services.checkout import booking_room_number
from frontdesk.services.customers import CUSTOMERS, customer_view, selected_rooms
from frontdesk.services.reservation import BOOKINGS
from frontdesk.services.rooms import ROOMS, RoomDirectory, find_room, record_room_number
from frontdesk.store.base import StoreClient
from frontdesk.utils.status import BookingStatus, normalize_booking_status


def room_view(key: str, record: dict) -> dict:
    try:
        beds = int(record.get("beds") or 1)
    except (TypeError, ValueError):
        beds = 1
    return {
        "key": key,
        "room_no": record_room_number(record) or 0,
        "beds": beds,
        "type": record.get("type") or "Standard",
        "ac_make": record.get("ac_make") or "",
        "remarks": record.get("remarks") or "",
        "status": derived_status(record),
        "is_available": is_room_available(record),
        "current_booking_id": record.get("current_booking_id") or None,
    }


def project_rooms(snapshot) -> List[dict]:
    rooms = [room_view(key, record) for key, record in (snapshot or {}).items()]
    return sorted(rooms, key=lambda room: room["room_no"])


def room_stats(rooms: List[dict], total_rooms: int = None) -> dict:
    """Dashboard counts; the total is the fixed inventory size, not the record count."""
    total = Config.TOTAL_ROOMS if total_rooms is None else total_rooms
    occupied = sorted(room["room_no"] for room in rooms if not room["is_available"])
    return {
        "total_rooms": total,
        "occupied_rooms": len(occupied),
        "available_rooms": max(total - len(occupied), 0),
        "occupied_room_nos": occupied,
    }


async def list_rooms(store: StoreClient) -> List[dict]:
    return project_rooms(await store.get(ROOMS))


async def list_available_rooms(store: StoreClient) -> List[dict]:
    return [room for room in await list_rooms(store) if room["is_available"]]


async def get_room(store: StoreClient, room_number):
    try:
        key, record = await find_room(store, room_number)
    except (TypeError, ValueError):
        return None
    return None if key is None else room_view(key, record)


async def dashboard_counts(store: StoreClient) -> dict:
    return room_stats(await list_rooms(store))


def subscribe_dashboard_counts(store: StoreClient, callback: Callable[[dict], None]) -> Callable[[], None]:
    """Push fresh counts to ``callback`` whenever a room changes. Returns the unsubscribe hook."""
    return store.subscribe(ROOMS, lambda snapshot: callback(room_stats(project_rooms(snapshot))))


def booking_view(booking_id: str, booking: dict, customers: dict, directory: RoomDirectory) -> dict:
    room_number = booking_room_number(booking)
    room_key, room = directory.lookup(room_number)
    customer_id = booking.get("customerId")
    customer = customers.get(customer_id) if customer_id else None
    return {
        "id": booking_id,
        "customer_id": customer_id,
        "room_no": room_number,
        "room_key": room_key,
        "status": normalize_booking_status(booking.get("status")).value,
        "check_in_date": booking.get("checkInDate"),
        "check_out_date": booking.get("checkOutDate") or booking.get("checkoutDate"),
        "check_out_actual": booking.get("checkOutActual"),
        "created_at": booking.get("createdAt"),
        "customer": customer_view(customer_id, customer) if customer else None,
        "room": room_view(room_key, room) if room is not None else None,
    }


async def list_bookings(store: StoreClient) -> List[dict]:
    bookings = await store.get(BOOKINGS) or {}
    customers = await store.get(CUSTOMERS) or {}
    directory = await RoomDirectory.load(store)
    views = [booking_view(key, record, customers, directory) for key, record in bookings.items()]
    return sorted(views, key=lambda view: (view["created_at"] or 0, view["id"]), reverse=True)


async def get_booking_detail(store: StoreClient, booking_id: str) -> dict:
    booking = await store.get(f"{BOOKINGS}/{booking_id}")
    if booking is None:
        raise BookingNotFound(booking_id)
    bookings = await store.get(BOOKINGS) or {}
    customers = await store.get(CUSTOMERS) or {}
    directory = await RoomDirectory.load(store)
    detail = booking_view(booking_id, booking, customers, directory)

    # Every room of the same stay: the guest's selection plus their open bookings
    customer_id = booking.get("customerId")
    room_numbers = set(selected_rooms(customers.get(customer_id) or {}))
    for other in bookings.values():
        if other.get("customerId") != customer_id:
            continue
        if normalize_booking_status(other.get("status")) == BookingStatus.CHECKED_OUT:
            continue
        try:
            room_numbers.add(int(booking_room_number(other)))
        except (TypeError, ValueError):
            continue
    detail["room_numbers"] = sorted(room_numbers)
    return detail
