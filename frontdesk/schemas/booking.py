from pydantic import BaseModel, field_validator
from datetime import datetime
from typing import List, Optional

from frontdesk.schemas.customer import CustomerResponse
from frontdesk.schemas.room import RoomResponse
from frontdesk.utils.validation_helpers import validate_room_numbers


class BookingCreate(BaseModel):
    customer_id: str
    room_numbers: List[str]
    check_in_date: datetime
    check_out_date: datetime

    @field_validator("room_numbers", mode="before")
    @classmethod
    def check_room_numbers(cls, value):
        return validate_room_numbers(value)


class BookingResponse(BaseModel):
    id: str
    customer_id: Optional[str] = None
    room_no: Optional[str] = None
    room_key: Optional[str] = None
    status: str
    check_in_date: Optional[str] = None
    check_out_date: Optional[str] = None
    check_out_actual: Optional[str] = None
    created_at: Optional[int] = None
    customer: Optional[CustomerResponse] = None
    room: Optional[RoomResponse] = None


class BookingDetailResponse(BookingResponse):
    room_numbers: List[int] = []


class ReservationOutcomeResponse(BaseModel):
    room_number: str
    booking_id: Optional[str] = None
    error: Optional[str] = None


class ReservationResponse(BaseModel):
    customer_id: str
    outcomes: List[ReservationOutcomeResponse]


class CheckoutOutcomeResponse(BaseModel):
    booking_id: str
    room_number: Optional[str] = None
    result: str
    error: Optional[str] = None


class ReconcileRequest(BaseModel):
    customer_id: Optional[str] = None


class ReconcileResponse(BaseModel):
    corrected: int
