from __future__ import annotations

from functools import lru_cache

from .clock import Clock, SystemClock
from .services.storage import KeyValueStore, MemoryKeyValueStore, SqlKeyValueStore
from .settings import get_settings


@lru_cache
def get_store() -> KeyValueStore:
    if get_settings().storage_backend == "memory":
        return MemoryKeyValueStore()
    return SqlKeyValueStore()


def get_clock() -> Clock:
    return SystemClock()
