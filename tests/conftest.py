"""Shared fixtures: in-memory storage, a frozen clock and a log-entry factory."""
import itertools
import os
import tempfile
from datetime import datetime

import pytest

os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{tempfile.mkdtemp()}/gymtracker-test.db")

from gymtracker.clock import FixedClock
from gymtracker.models import LogEntry
from gymtracker.services.storage import MemoryKeyValueStore

# Wednesday; the week started Sunday 2024-01-07
NOW = datetime(2024, 1, 10, 12, 0)

_ids = itertools.count(1)


def make_log(**overrides) -> LogEntry:
    data = {
        "id": f"log-{next(_ids)}",
        "exerciseId": "e1",
        "exerciseName": "Bench Press",
        "date": NOW,
        "sets": [{"weight": 100, "reps": 5}],
        "difficulty": "normal",
        "nextWeight": 105,
    }
    data.update(overrides)
    return LogEntry.model_validate(data)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def store():
    return MemoryKeyValueStore()


@pytest.fixture
def client(store, clock):
    from fastapi.testclient import TestClient

    from gymtracker.deps import get_clock, get_store
    from gymtracker.main import app

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_clock] = lambda: clock
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
