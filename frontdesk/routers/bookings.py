from typing import List, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, status
import logging

from frontdesk.db import get_store
from frontdesk.errors import (
    BookingNotFound,
    BookingPersistFailed,
    CustomerNotFound,
    InvalidDateRange,
    RoomNotAvailable,
    RoomProvisioningFailed,
    StoreError,
)
from frontdesk.schemas.booking import (
    BookingCreate,
    BookingDetailResponse,
    BookingResponse,
    CheckoutOutcomeResponse,
    ReconcileRequest,
    ReconcileResponse,
    ReservationResponse,
)
from frontdesk.services import views
from frontdesk.services.checkout import cancel_booking, checkout
from frontdesk.services.customers import get_customer
from frontdesk.services.reconciliation import reconcile
from frontdesk.services.reservation import reserve_rooms
from frontdesk.store.base import StoreClient
from frontdesk.utils.clock import get_clock

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/bookings",
    tags=["bookings"],
)

maintenance_router = APIRouter(
    prefix="/maintenance",
    tags=["maintenance"],
)


def http_error(error: Exception) -> HTTPException:
    """Translate a booking-core error into the HTTP response for it."""
    if isinstance(error, (BookingNotFound, CustomerNotFound)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, RoomNotAvailable):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    if isinstance(error, InvalidDateRange):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, RoomProvisioningFailed) and error.__cause__ is not None \
            and not isinstance(error.__cause__, StoreError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, (RoomProvisioningFailed, BookingPersistFailed, StoreError)):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))


def outcome_dict(outcome):
    data = dict(vars(outcome))
    if data.get("error") is not None:
        data["error"] = str(data["error"])
    if "result" in data:
        data["result"] = data["result"].value
    return data


@router.post(
    "/",
    response_model=ReservationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Check a guest into one or more rooms",
    description="Reserve each requested room for the guest. Rooms are reserved one at a time; "
                "a failure stops the rest but keeps the rooms already reserved."
)
async def create_booking(
    booking: BookingCreate,
    store: StoreClient = Depends(get_store),
    clock=Depends(get_clock),
):
    """
    Check a guest into one or more rooms.

    - **customer_id**: Key of an existing customer.
    - **room_numbers**: Rooms to reserve, in order.
    - **check_in_date**: Start of the stay.
    - **check_out_date**: Expected end of the stay (may equal check-in).

    Returns one outcome per room attempted. Responds 409 when the first room
    is already occupied.
    """
    logger.debug(f"Booking rooms {booking.room_numbers} for customer {booking.customer_id}")
    try:
        await get_customer(store, booking.customer_id)
        outcomes = await reserve_rooms(
            store,
            booking.customer_id,
            booking.room_numbers,
            booking.check_in_date,
            booking.check_out_date,
            clock,
        )
    except (CustomerNotFound, InvalidDateRange, StoreError) as e:
        logger.error(f"Booking for customer {booking.customer_id} rejected: {e}")
        raise http_error(e)

    if not outcomes[0].ok:
        logger.error(f"Booking for customer {booking.customer_id} failed: {outcomes[0].error}")
        raise http_error(outcomes[0].error)
    return {"customer_id": booking.customer_id, "outcomes": [outcome_dict(o) for o in outcomes]}


@router.get(
    "/",
    response_model=List[BookingResponse],
    summary="List all bookings",
    description="Retrieve bookings, newest first, with their customer and room resolved."
)
async def get_bookings(skip: int = 0, limit: int = 100, store: StoreClient = Depends(get_store)):
    """
    Retrieve a list of bookings.

    - **skip**: Number of bookings to skip.
    - **limit**: Maximum number of bookings to return.
    """
    bookings = await views.list_bookings(store)
    logger.debug(f"Retrieved {len(bookings)} bookings")
    return bookings[skip:skip + limit]


@router.get(
    "/{booking_id}",
    response_model=BookingDetailResponse,
    summary="Get a booking by ID",
    description="Retrieve a booking with its customer, room and every room of the same stay."
)
async def get_booking(booking_id: str, store: StoreClient = Depends(get_store)):
    try:
        return await views.get_booking_detail(store, booking_id)
    except BookingNotFound as e:
        logger.error(f"Booking not found: {booking_id}")
        raise http_error(e)


@router.post(
    "/{booking_id}/checkout",
    response_model=List[CheckoutOutcomeResponse],
    summary="Check out a booking",
    description="Close the booking and release its room. Repeating the call changes nothing."
)
async def checkout_booking(
    booking_id: str,
    store: StoreClient = Depends(get_store),
    clock=Depends(get_clock),
):
    try:
        outcomes = await checkout(store, booking_id, clock)
    except (BookingNotFound, StoreError) as e:
        logger.error(f"Checkout of {booking_id} failed: {e}")
        raise http_error(e)
    return [outcome_dict(o) for o in outcomes]


@router.post(
    "/{booking_id}/cancel",
    response_model=CheckoutOutcomeResponse,
    summary="Cancel a booking",
    description="Cancel an active booking and release its room."
)
async def cancel(
    booking_id: str,
    store: StoreClient = Depends(get_store),
    clock=Depends(get_clock),
):
    try:
        outcome = await cancel_booking(store, booking_id, clock)
    except (BookingNotFound, StoreError) as e:
        logger.error(f"Cancelling {booking_id} failed: {e}")
        raise http_error(e)
    return outcome_dict(outcome)


@maintenance_router.post(
    "/reconcile",
    response_model=ReconcileResponse,
    summary="Repair room and booking drift",
    description="Close past-due bookings and release rooms left locked. Safe to repeat."
)
async def run_reconcile(
    request: Optional[ReconcileRequest] = Body(default=None),
    store: StoreClient = Depends(get_store),
    clock=Depends(get_clock),
):
    customer_id = request.customer_id if request else None
    try:
        corrected = await reconcile(store, customer_id=customer_id, clock=clock)
    except StoreError as e:
        logger.error(f"Reconciliation failed: {e}")
        raise http_error(e)
    return {"corrected": corrected}
