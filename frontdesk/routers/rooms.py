from fastapi import APIRouter, Depends, HTTPException, status
from typing import List
import logging

from frontdesk.db import get_store
from frontdesk.schemas.room import RoomResponse, RoomStats
from frontdesk.services import views
from frontdesk.store.base import StoreClient

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/rooms",
    tags=["rooms"],
)

dashboard_router = APIRouter(
    prefix="/dashboard",
    tags=["dashboard"],
)


@router.get("/", response_model=List[RoomResponse])
async def get_rooms(skip: int = 0, limit: int = 100, store: StoreClient = Depends(get_store)):
    """
    Retrieve all rooms ordered by room number, with derived availability.
    """
    rooms = await views.list_rooms(store)
    return rooms[skip:skip + limit]


@router.get("/available", response_model=List[RoomResponse])
async def get_available_rooms(store: StoreClient = Depends(get_store)):
    """
    Retrieve the rooms that can take a new booking right now.
    """
    rooms = await views.list_available_rooms(store)
    logger.debug(f"{len(rooms)} rooms available")
    return rooms


@router.get("/{room_no}", response_model=RoomResponse)
async def get_room(room_no: int, store: StoreClient = Depends(get_store)):
    """
    Retrieve a room by its room number.
    """
    room = await views.get_room(store, room_no)
    if room is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return room


@dashboard_router.get("/counts", response_model=RoomStats)
async def get_dashboard_counts(store: StoreClient = Depends(get_store)):
    """
    Total, available and occupied room counts, plus the occupied room numbers.
    """
    return await views.dashboard_counts(store)
