"""Guest directory. Bookings only need the customer key it hands out."""
import logging

from frontdesk.errors import CustomerNotFound
from frontdesk.store.base import StoreClient
from frontdesk.utils.clock import Clock, epoch_millis, utc_now

logger = logging.getLogger(__name__)

CUSTOMERS = "customers"

# python name -> stored field
FIELDS = {
    "guest_name": "guestName",
    "father_name": "fatherName",
    "mobile_number": "mobileNumber",
    "members_count": "membersCount",
    "vehicle_number": "vehicleNumber",
    "address": "address",
    "city": "city",
    "amount": "amount",
    "id_type": "idType",
    "id_number": "idNumber",
    "id_image_urls": "idImageUrls",
    "check_in_date": "checkInDate",
    "check_out_date": "checkOutDate",
    "selected_room": "selectedRoom",
}

# Older clients wrote snake_case copies of some fields
LEGACY_FIELDS = {
    "guestName": "name",
    "fatherName": "father_name",
    "mobileNumber": "phone",
    "membersCount": "member_count",
    "vehicleNumber": "vehicle_number",
    "idType": "id_type",
    "idNumber": "id_number",
}


def _read(record: dict, field: str, default=None):
    value = record.get(field)
    if value in (None, "") and field in LEGACY_FIELDS:
        value = record.get(LEGACY_FIELDS[field])
    return default if value in (None, "") else value


def _to_record(fields: dict) -> dict:
    record = {}
    for name, value in fields.items():
        if name not in FIELDS or value is None:
            continue
        if name == "selected_room" and isinstance(value, (list, tuple)):
            value = ",".join(str(room) for room in value)
        elif hasattr(value, "isoformat"):
            value = value.isoformat()
        record[FIELDS[name]] = value
    return record


def selected_rooms(record: dict):
    """Room numbers the guest picked at check-in, from ``selectedRoom``."""
    raw = record.get("selectedRoom") or record.get("selected_room") or record.get("selectedRooms")
    if raw is None:
        return []
    parts = raw if isinstance(raw, list) else str(raw).split(",")
    numbers = []
    for part in parts:
        try:
            numbers.append(int(str(part).strip()))
        except ValueError:
            continue
    return numbers


def customer_view(customer_id: str, record: dict) -> dict:
    image_urls = record.get("idImageUrls") or []
    legacy_image = record.get("idImageUrl") or record.get("id_image_url")
    if not image_urls and legacy_image:
        image_urls = [legacy_image]
    return {
        "id": customer_id,
        "guest_name": _read(record, "guestName", "Guest"),
        "father_name": _read(record, "fatherName", ""),
        "mobile_number": _read(record, "mobileNumber", ""),
        "members_count": _read(record, "membersCount", 1),
        "vehicle_number": _read(record, "vehicleNumber", ""),
        "address": _read(record, "address", ""),
        "city": _read(record, "city", ""),
        "amount": _read(record, "amount", ""),
        "id_type": _read(record, "idType", "Aadhaar"),
        "id_number": _read(record, "idNumber", ""),
        "id_image_urls": list(image_urls),
        "check_in_date": record.get("checkInDate"),
        "check_out_date": record.get("checkOutDate"),
        "selected_rooms": selected_rooms(record),
        "created_at": record.get("createdAt"),
    }


async def create_customer(store: StoreClient, fields: dict, clock: Clock = utc_now) -> str:
    customer_id = await store.push_key(CUSTOMERS)
    now_ms = epoch_millis(clock())
    record = {
        "idType": "Aadhaar",
        "idImageUrls": [],
        **_to_record(fields),
        "status": "active",
        "createdAt": now_ms,
        "updatedAt": now_ms,
    }
    await store.set(f"{CUSTOMERS}/{customer_id}", record)
    logger.info(f"Created customer {customer_id}")
    return customer_id


async def get_customer(store: StoreClient, customer_id: str) -> dict:
    record = await store.get(f"{CUSTOMERS}/{customer_id}")
    if record is None:
        raise CustomerNotFound(customer_id)
    return customer_view(customer_id, record)


async def list_customers(store: StoreClient):
    records = await store.get(CUSTOMERS) or {}
    views = [customer_view(key, record) for key, record in records.items()]
    return sorted(views, key=lambda view: (view["created_at"] or 0, view["id"]), reverse=True)


async def update_customer(store: StoreClient, customer_id: str, fields: dict, clock: Clock = utc_now) -> dict:
    if await store.get(f"{CUSTOMERS}/{customer_id}") is None:
        raise CustomerNotFound(customer_id)
    changes = _to_record(fields)
    changes["updatedAt"] = epoch_millis(clock())
    await store.update(f"{CUSTOMERS}/{customer_id}", changes)
    logger.debug(f"Updated customer {customer_id}: {sorted(changes)}")
    return await get_customer(store, customer_id)


async def delete_customer(store: StoreClient, customer_id: str) -> None:
    if await store.get(f"{CUSTOMERS}/{customer_id}") is None:
        raise CustomerNotFound(customer_id)
    await store.set(f"{CUSTOMERS}/{customer_id}", None)
    logger.info(f"Deleted customer {customer_id}")
