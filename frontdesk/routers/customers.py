from fastapi import APIRouter, Depends, status
from typing import List
import logging

from frontdesk.db import get_store
from frontdesk.errors import CustomerNotFound, StoreError
from frontdesk.routers.bookings import http_error, outcome_dict
from frontdesk.schemas.booking import CheckoutOutcomeResponse
from frontdesk.schemas.customer import CustomerCreate, CustomerResponse, CustomerUpdate
from frontdesk.services import customers
from frontdesk.services.checkout import checkout_customer
from frontdesk.store.base import StoreClient
from frontdesk.utils.clock import get_clock

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/customers",
    tags=["customers"],
)


@router.post("/", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    customer: CustomerCreate,
    store: StoreClient = Depends(get_store),
    clock=Depends(get_clock),
):
    """
    Register a guest. The returned id is what bookings refer to.
    """
    customer_id = await customers.create_customer(store, customer.model_dump(), clock)
    return await customers.get_customer(store, customer_id)


@router.get("/", response_model=List[CustomerResponse])
async def get_customers(store: StoreClient = Depends(get_store)):
    return await customers.list_customers(store)


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(customer_id: str, store: StoreClient = Depends(get_store)):
    try:
        return await customers.get_customer(store, customer_id)
    except CustomerNotFound as e:
        raise http_error(e)


@router.put("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: str,
    customer_update: CustomerUpdate,
    store: StoreClient = Depends(get_store),
    clock=Depends(get_clock),
):
    """
    Update a guest's details. Only the fields sent are changed.
    """
    try:
        return await customers.update_customer(
            store, customer_id, customer_update.model_dump(exclude_unset=True), clock
        )
    except CustomerNotFound as e:
        raise http_error(e)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_customer(customer_id: str, store: StoreClient = Depends(get_store)):
    try:
        await customers.delete_customer(store, customer_id)
    except CustomerNotFound as e:
        raise http_error(e)
    return None


@router.post("/{customer_id}/checkout", response_model=List[CheckoutOutcomeResponse])
async def checkout_guest(
    customer_id: str,
    store: StoreClient = Depends(get_store),
    clock=Depends(get_clock),
):
    """
    Check out every open booking of the guest. Each room is released on its
    own; the response has one outcome per booking.
    """
    try:
        outcomes = await checkout_customer(store, customer_id, clock)
    except StoreError as e:
        logger.error(f"Checkout of customer {customer_id} failed: {e}")
        raise http_error(e)
    return [outcome_dict(o) for o in outcomes]
