import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from frontdesk.db import get_store
from frontdesk.main import app
from frontdesk.services.customers import create_customer
from frontdesk.services.rooms import find_room, seed_rooms
from frontdesk.store.memory import MemoryStore
from frontdesk.utils.clock import get_clock

DAY0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
DAY1 = DAY0 + timedelta(days=1)

client = TestClient(app)


def run(coro):
    """Drive a coroutine to completion from a synchronous test."""
    return asyncio.run(coro)


class FixedClock:
    def __init__(self, now=DAY0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def room_state(store, room_number):
    """The stored record of a room, looked up by number."""
    _, record = run(find_room(store, room_number))
    return record


# Fixtures
@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def seeded_store(store, clock):
    """A store holding the default room inventory"""
    run(seed_rooms(store, clock))
    return store


@pytest.fixture
def test_customer(seeded_store, clock):
    """Fixture to create a guest and return their id"""
    return run(create_customer(seeded_store, {
        "guest_name": "Asha Verma",
        "mobile_number": "9800000001",
        "members_count": 3,
        "id_number": "1234-5678-9012",
        "city": "Jaipur",
    }, clock))


@pytest.fixture
def api(seeded_store, clock):
    """Test client wired to the in-memory store and the fixed clock"""
    app.dependency_overrides[get_store] = lambda: seeded_store
    app.dependency_overrides[get_clock] = lambda: clock
    yield client
    app.dependency_overrides.clear()
