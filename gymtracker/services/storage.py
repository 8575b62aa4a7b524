from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol

from pydantic import TypeAdapter

from ..db import get_session
from ..models import KeyValue, LogEntry, Routine

if TYPE_CHECKING:
    from .sessions import SessionAssigner

logger = logging.getLogger(__name__)

ROUTINES_KEY = "routines"
WORKOUT_LOGS_KEY = "workoutLogs"
WORKOUT_HISTORY_KEY = "workoutHistory"
EXERCISES_KEY = "exercises"

_log_list = TypeAdapter(List[LogEntry])
_routine_list = TypeAdapter(List[Routine])


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def remove(self, key: str) -> None: ...

    def lock(self, key: str) -> asyncio.Lock: ...


class _KeyLocks:
    """One lock per storage key so read-modify-write cycles on a key run one at a time."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}

    def lock(self, key: str) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]


class MemoryKeyValueStore(_KeyLocks):
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        super().__init__()
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)


class SqlKeyValueStore(_KeyLocks):
    """Key-value pairs in the ``keyvalue`` table of the configured database."""

    async def get(self, key: str) -> Optional[str]:
        async with get_session() as session:
            row = await session.get(KeyValue, key)
            return row.value if row is not None else None

    async def set(self, key: str, value: str) -> None:
        async with get_session() as session:
            row = await session.get(KeyValue, key)
            if row is None:
                session.add(KeyValue(key=key, value=value))
            else:
                row.value = value
                session.add(row)
            await session.commit()

    async def remove(self, key: str) -> None:
        async with get_session() as session:
            row = await session.get(KeyValue, key)
            if row is not None:
                await session.delete(row)
                await session.commit()


async def load_json(store: KeyValueStore, key: str, expected: type) -> Any:
    raw = await store.get(key)
    if not raw:
        return expected()
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Could not parse stored {key}: {exc}") from exc
    if not isinstance(value, expected):
        raise ValueError(f"Stored {key} must contain a JSON {expected.__name__}")
    return value


async def save_json(store: KeyValueStore, key: str, value: Any) -> None:
    await store.set(key, json.dumps(value))


class LogRepository:
    """The flat, append-only workout log.

    Entries are edited as raw dicts so fields this version does not model
    survive a rewrite.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    async def list(self) -> List[LogEntry]:
        return _log_list.validate_python(await load_json(self.store, WORKOUT_LOGS_KEY, list))

    async def append(self, entry: LogEntry, assigner: Optional[SessionAssigner] = None) -> LogEntry:
        """Append ``entry`` and return it as stored.

        With an ``assigner`` the session id is picked from the log as read
        under the key lock, so concurrent free-form entries join one session.
        """
        async with self.store.lock(WORKOUT_LOGS_KEY):
            raw = await load_json(self.store, WORKOUT_LOGS_KEY, list)
            if assigner is not None:
                session_id = assigner.assign(_log_list.validate_python(raw))
                entry = entry.model_copy(update={"session_id": session_id})
            raw.append(entry.to_json_dict())
            await save_json(self.store, WORKOUT_LOGS_KEY, raw)
        logger.debug("storage: appended log %s (session %s)", entry.id, entry.session_id)
        return entry

    async def backfill_session_duration(self, session_id: str, seconds: float) -> int:
        """Stamp ``sessionDuration`` on every entry of a finished session."""
        updated = 0
        async with self.store.lock(WORKOUT_LOGS_KEY):
            raw = await load_json(self.store, WORKOUT_LOGS_KEY, list)
            for item in raw:
                if item.get("sessionId") == session_id:
                    item["sessionDuration"] = seconds
                    updated += 1
            if updated:
                await save_json(self.store, WORKOUT_LOGS_KEY, raw)
        return updated

    async def delete_session(self, session_key: str) -> int:
        """Remove every entry whose session id (or own id, for legacy entries) matches."""
        async with self.store.lock(WORKOUT_LOGS_KEY):
            raw = await load_json(self.store, WORKOUT_LOGS_KEY, list)
            kept = [item for item in raw if (item.get("sessionId") or item.get("id")) != session_key]
            removed = len(raw) - len(kept)
            if removed:
                await save_json(self.store, WORKOUT_LOGS_KEY, kept)
        return removed

    async def clear(self) -> None:
        await self.store.remove(WORKOUT_LOGS_KEY)


class RoutineRepository:
    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    async def list(self) -> List[Routine]:
        return _routine_list.validate_python(await load_json(self.store, ROUTINES_KEY, list))

    async def get(self, routine_id: str) -> Optional[Routine]:
        for routine in await self.list():
            if routine.id == routine_id:
                return routine
        return None

    async def save(self, routine: Routine) -> None:
        """Insert ``routine``, or replace the stored routine with the same id."""
        async with self.store.lock(ROUTINES_KEY):
            raw = await load_json(self.store, ROUTINES_KEY, list)
            data = routine.to_json_dict()
            for i, item in enumerate(raw):
                if item.get("id") == routine.id:
                    raw[i] = data
                    break
            else:
                raw.append(data)
            await save_json(self.store, ROUTINES_KEY, raw)

    async def delete(self, routine_id: str) -> bool:
        async with self.store.lock(ROUTINES_KEY):
            raw = await load_json(self.store, ROUTINES_KEY, list)
            kept = [item for item in raw if item.get("id") != routine_id]
            if len(kept) == len(raw):
                return False
            await save_json(self.store, ROUTINES_KEY, kept)
        return True

    async def clear(self) -> None:
        await self.store.remove(ROUTINES_KEY)


class HistoryRepository:
    """Last completed entry per exercise id, used to pre-fill the next workout."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    async def get_all(self) -> Dict[str, Dict[str, Any]]:
        return await load_json(self.store, WORKOUT_HISTORY_KEY, dict)

    async def last_next_weight(self, exercise_id: str) -> Optional[float]:
        last = (await self.get_all()).get(exercise_id)
        return last.get("nextWeight") if last else None

    async def record(self, exercise_id: str, entry: LogEntry) -> None:
        async with self.store.lock(WORKOUT_HISTORY_KEY):
            history = await load_json(self.store, WORKOUT_HISTORY_KEY, dict)
            history[exercise_id] = entry.to_json_dict()
            await save_json(self.store, WORKOUT_HISTORY_KEY, history)

    async def clear(self) -> None:
        await self.store.remove(WORKOUT_HISTORY_KEY)


async def reset_all(store: KeyValueStore) -> None:
    """Forget routines, logs and history. The exercise menu is kept."""
    await RoutineRepository(store).clear()
    await LogRepository(store).clear()
    await HistoryRepository(store).clear()
    logger.info("storage: restored to default (routines, logs and history cleared)")
