from contextlib import asynccontextmanager
from fastapi import FastAPI
import logging

from frontdesk.config import Config
from frontdesk.db import SessionLocal, init_database
from frontdesk.routers import bookings, customers, rooms
from frontdesk.services.rooms import seed_rooms
from frontdesk.store.sql import SqlStore

logging.basicConfig(level=Config.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    "lifespan for initing database and room inventory"
    init_database()
    if Config.SEED_ROOMS:
        created = await seed_rooms(SqlStore(SessionLocal))
        logger.info(f"Startup seeding added {created} rooms")
    yield


app = FastAPI(
    lifespan=lifespan,
    title="Front desk",
    description="Hotel front-desk service: check-in, room inventory, checkout and reconciliation.",
    version="0.1.0",
    license_info={
        "name": "MIT",
        "url": "https://opensource.org/licenses/MIT",
    },
)


app.include_router(rooms.router)
app.include_router(rooms.dashboard_router)
app.include_router(customers.router)
app.include_router(bookings.router)
app.include_router(bookings.maintenance_router)
