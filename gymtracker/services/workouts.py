from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException

from ..clock import Clock, align
from ..deps import get_clock, get_store
from ..errors import InvalidWorkoutError, NotFoundError
from ..models import DEFAULT_MUSCLE_GROUP, CamelModel, Difficulty, LogEntry, Session, WorkoutSet
from ..settings import get_settings
from .exercises import muscle_group_of
from .progression import is_valid_weight, next_weight
from .sessions import SessionAssigner, group_into_sessions
from .storage import HistoryRepository, KeyValueStore, LogRepository, reset_all

logger = logging.getLogger(__name__)

router = APIRouter()


def new_entry_id() -> str:
    return uuid.uuid4().hex


async def record_exercise(
    store: KeyValueStore,
    clock: Clock,
    exercise_id: str,
    exercise_name: str,
    sets: List[WorkoutSet],
    difficulty: Difficulty,
    muscle_group: Optional[str] = None,
    last_weight: Optional[float] = None,
    start_time: Optional[datetime] = None,
    window: Optional[timedelta] = None,
) -> LogEntry:
    """Log a free-form (non-routine) exercise and recommend its next weight.

    The progression base is ``last_weight``, else the ``nextWeight`` stored in
    the history index for this exercise, else the weight of the last set
    performed. The muscle group comes from the exercise menu when the caller
    does not give one. The entry joins the open free-form session or starts a
    new one.
    """
    if not sets:
        raise InvalidWorkoutError("Please add at least one set")
    if not all(is_valid_weight(s.weight) for s in sets) or not is_valid_weight(last_weight):
        raise InvalidWorkoutError("Please enter a valid weight value")

    now = clock.now()
    if last_weight is None:
        last_weight = await HistoryRepository(store).last_next_weight(exercise_id)
    base_weight = last_weight or sets[-1].weight or 0
    if not is_valid_weight(base_weight):
        raise InvalidWorkoutError("Please enter a valid weight value")
    recommended = next_weight(base_weight, difficulty)

    if muscle_group is None:
        muscle_group = await muscle_group_of(store, exercise_id)
    if window is None:
        window = timedelta(hours=get_settings().session_window_hours)

    duration = None
    if start_time is not None:
        duration = max(0, int((now - align(start_time, now)).total_seconds()))

    entry = LogEntry(
        id=new_entry_id(),
        exercise_id=exercise_id,
        exercise_name=exercise_name,
        muscle_group=muscle_group or DEFAULT_MUSCLE_GROUP,
        date=now,
        sets=sets,
        difficulty=difficulty,
        next_weight=recommended,
        start_time=start_time,
        end_time=now if start_time is not None else None,
        duration=duration,
    )
    entry = await LogRepository(store).append(entry, SessionAssigner(clock, window))
    await HistoryRepository(store).record(exercise_id, entry)
    logger.info(
        "workout: saved %s to %s, next time try %s %s",
        exercise_name, entry.session_id, recommended, get_settings().weight_unit,
    )
    return entry


async def finish_session(store: KeyValueStore, session_id: str, seconds: float) -> int:
    updated = await LogRepository(store).backfill_session_duration(session_id, seconds)
    if not updated:
        raise NotFoundError("session", session_id)
    logger.info("workout: session %s finished after %ss (%d entries)", session_id, seconds, updated)
    return updated


async def delete_session(store: KeyValueStore, session_key: str) -> int:
    removed = await LogRepository(store).delete_session(session_key)
    if not removed:
        raise NotFoundError("session", session_key)
    logger.info("workout: deleted session %s (%d entries)", session_key, removed)
    return removed


class RecordExerciseRequest(CamelModel):
    exercise_id: str
    exercise_name: str
    muscle_group: Optional[str] = None
    sets: List[WorkoutSet]
    difficulty: Difficulty
    last_weight: Optional[float] = None
    start_time: Optional[datetime] = None


class FinishSessionRequest(CamelModel):
    session_duration: float


@router.post("/workouts")
async def create_workout(
    body: RecordExerciseRequest,
    store: KeyValueStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> Dict[str, Any]:
    try:
        entry = await record_exercise(
            store,
            clock,
            exercise_id=body.exercise_id,
            exercise_name=body.exercise_name,
            sets=body.sets,
            difficulty=body.difficulty,
            muscle_group=body.muscle_group,
            last_weight=body.last_weight,
            start_time=body.start_time,
        )
    except InvalidWorkoutError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return entry.to_json_dict()


@router.get("/sessions", response_model=List[Session])
async def list_sessions(store: KeyValueStore = Depends(get_store)) -> List[Session]:
    return group_into_sessions(await LogRepository(store).list())


@router.post("/sessions/{session_id}/finish")
async def finish(session_id: str, body: FinishSessionRequest, store: KeyValueStore = Depends(get_store)) -> Dict[str, Any]:
    try:
        updated = await finish_session(store, session_id, body.session_duration)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"session_id": session_id, "updated": updated}


@router.delete("/sessions/{session_key}")
async def remove_session(session_key: str, store: KeyValueStore = Depends(get_store)) -> Dict[str, Any]:
    try:
        removed = await delete_session(store, session_key)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"session_id": session_key, "removed": removed}


@router.post("/reset")
async def reset(store: KeyValueStore = Depends(get_store)) -> Dict[str, Any]:
    await reset_all(store)
    return {"status": "ok"}
