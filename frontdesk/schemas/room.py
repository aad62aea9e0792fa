from pydantic import BaseModel
from typing import List, Optional


class RoomResponse(BaseModel):
    key: str
    room_no: int
    beds: int
    type: str
    ac_make: str = ""
    remarks: str = ""
    status: str
    is_available: bool
    current_booking_id: Optional[str] = None


class RoomStats(BaseModel):
    total_rooms: int
    occupied_rooms: int
    available_rooms: int
    occupied_room_nos: List[int]
