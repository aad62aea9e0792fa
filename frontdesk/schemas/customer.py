from datetime import datetime
from pydantic import BaseModel, field_validator
from typing import List, Optional, Union


class CustomerBase(BaseModel):
    guest_name: str
    mobile_number: str
    members_count: int = 1
    father_name: Optional[str] = None
    vehicle_number: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    amount: Optional[str] = None
    id_type: Optional[str] = None
    id_number: str
    id_image_urls: List[str] = []
    check_in_date: Optional[datetime] = None
    check_out_date: Optional[datetime] = None
    selected_room: Optional[Union[str, List[str]]] = None

    @field_validator("guest_name", "mobile_number", "id_number")
    @classmethod
    def check_not_blank(cls, value):
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(BaseModel):
    guest_name: Optional[str] = None
    mobile_number: Optional[str] = None
    members_count: Optional[int] = None
    father_name: Optional[str] = None
    vehicle_number: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    amount: Optional[str] = None
    id_type: Optional[str] = None
    id_number: Optional[str] = None
    id_image_urls: Optional[List[str]] = None
    check_in_date: Optional[datetime] = None
    check_out_date: Optional[datetime] = None
    selected_room: Optional[Union[str, List[str]]] = None


class CustomerResponse(BaseModel):
    id: str
    guest_name: str
    father_name: str = ""
    mobile_number: str = ""
    members_count: int = 1
    vehicle_number: str = ""
    address: str = ""
    city: str = ""
    amount: str = ""
    id_type: str = ""
    id_number: str = ""
    id_image_urls: List[str] = []
    check_in_date: Optional[str] = None
    check_out_date: Optional[str] = None
    selected_rooms: List[int] = []
    created_at: Optional[int] = None
