from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException

from ..clock import Clock
from ..deps import get_clock, get_store
from ..errors import InvalidWorkoutError, NotFoundError
from ..models import CamelModel, Difficulty, LogEntry, Routine, RoutineExercise, WorkoutSet
from .progression import is_valid_weight, next_weight
from .sessions import new_session_id
from .storage import HistoryRepository, KeyValueStore, LogRepository, RoutineRepository
from .workouts import new_entry_id

logger = logging.getLogger(__name__)

router = APIRouter()


def _new_id() -> str:
    return uuid.uuid4().hex


def renumber(exercises: List[RoutineExercise]) -> List[RoutineExercise]:
    return [ex.model_copy(update={"order": i}) for i, ex in enumerate(exercises)]


async def _require(repo: RoutineRepository, routine_id: str) -> Routine:
    routine = await repo.get(routine_id)
    if routine is None:
        raise NotFoundError("routine", routine_id)
    return routine


def _validate(name: str, exercises: List[RoutineExercise]) -> None:
    if not name.strip():
        raise InvalidWorkoutError("Please enter a routine name")
    if not exercises:
        raise InvalidWorkoutError("Please add at least one exercise")
    for ex in exercises:
        if not is_valid_weight(ex.starting_weight) or not is_valid_weight(ex.current_weight):
            raise InvalidWorkoutError(f"Please enter a valid weight for {ex.exercise_name}")


async def create_routine(store: KeyValueStore, clock: Clock, name: str, exercises: List[RoutineExercise]) -> Routine:
    _validate(name, exercises)
    routine = Routine(
        id=_new_id(),
        name=name.strip(),
        exercises=renumber(exercises),
        created_at=clock.now(),
        completed=False,
    )
    await RoutineRepository(store).save(routine)
    logger.info("routine: created %s with %d exercises", routine.name, len(routine.exercises))
    return routine


async def update_routine(store: KeyValueStore, routine_id: str, name: str, exercises: List[RoutineExercise]) -> Routine:
    _validate(name, exercises)
    repo = RoutineRepository(store)
    routine = await _require(repo, routine_id)
    routine = routine.model_copy(update={"name": name.strip(), "exercises": renumber(exercises)})
    await repo.save(routine)
    return routine


async def delete_routine(store: KeyValueStore, routine_id: str) -> None:
    if not await RoutineRepository(store).delete(routine_id):
        raise NotFoundError("routine", routine_id)


async def start_routine(store: KeyValueStore, routine_id: str) -> str:
    """Open a routine workout and return its session id."""
    routine = await _require(RoutineRepository(store), routine_id)
    if not routine.exercises:
        raise InvalidWorkoutError("Please add exercises to this routine first")
    return new_session_id("routine-session")


async def adjust_weight(
    store: KeyValueStore, routine_id: str, routine_exercise_id: str, weight: Optional[float]
) -> Routine:
    """Manually override the next weight of one routine exercise (``None`` clears it)."""
    if not is_valid_weight(weight):
        raise InvalidWorkoutError("Please enter a valid weight value")
    repo = RoutineRepository(store)
    routine = await _require(repo, routine_id)
    if routine.find_exercise(routine_exercise_id) is None:
        raise NotFoundError("routine exercise", routine_exercise_id)
    routine.exercises = [
        ex.model_copy(update={"current_weight": weight}) if ex.id == routine_exercise_id else ex
        for ex in routine.exercises
    ]
    await repo.save(routine)
    return routine


async def complete_routine_exercise(
    store: KeyValueStore,
    clock: Clock,
    routine_id: str,
    routine_exercise_id: str,
    difficulty: Difficulty,
    session_id: str,
) -> LogEntry:
    """Record one routine exercise as done and carry its next weight forward.

    The routine does not track individual sets, so the log gets a single
    placeholder set at the working weight with zero reps.
    """
    difficulty = Difficulty(difficulty)
    repo = RoutineRepository(store)
    routine = await _require(repo, routine_id)
    exercise = routine.find_exercise(routine_exercise_id)
    if exercise is None:
        raise NotFoundError("routine exercise", routine_exercise_id)

    now = clock.now()
    current = exercise.current_weight or exercise.starting_weight or 0
    if not is_valid_weight(current):
        raise InvalidWorkoutError(f"Please enter a valid weight for {exercise.exercise_name}")
    recommended = next_weight(current, difficulty)

    entry = LogEntry(
        id=new_entry_id(),
        session_id=session_id,
        routine_id=routine.id,
        routine_name=routine.name,
        exercise_id=exercise.exercise_id,
        exercise_name=exercise.exercise_name,
        muscle_group=exercise.muscle_group,
        date=now,
        sets=[WorkoutSet(weight=current, reps=0)],
        difficulty=difficulty,
        next_weight=recommended,
    )
    await LogRepository(store).append(entry)
    await HistoryRepository(store).record(exercise.exercise_id, entry)

    routine.exercises = [
        ex.model_copy(update={"current_weight": recommended, "last_difficulty": difficulty, "last_performed": now})
        if ex.id == routine_exercise_id
        else ex
        for ex in routine.exercises
    ]
    routine.last_performed = now
    await repo.save(routine)
    logger.info("routine: %s / %s rated %s, next %s", routine.name, exercise.exercise_name, difficulty.value, recommended)
    return entry


async def finish_routine(
    store: KeyValueStore, routine_id: str, session_id: Optional[str] = None, session_duration: Optional[float] = None
) -> Routine:
    """Mark a routine completed, whether every exercise was done or the workout ended early."""
    repo = RoutineRepository(store)
    routine = await _require(repo, routine_id)
    routine.completed = True
    await repo.save(routine)
    if session_id and session_duration:
        await LogRepository(store).backfill_session_duration(session_id, session_duration)
    logger.info("routine: %s completed", routine.name)
    return routine


async def duplicate_routine(store: KeyValueStore, clock: Clock, routine_id: str) -> Routine:
    """Fresh, not-yet-completed copy whose weights start from the latest recommendations."""
    repo = RoutineRepository(store)
    routine = await _require(repo, routine_id)
    if not routine.exercises:
        raise InvalidWorkoutError("This routine has no exercises to duplicate")

    exercise_ids = {ex.exercise_id for ex in routine.exercises}
    latest: Dict[str, Optional[float]] = {}
    logs = sorted(await LogRepository(store).list(), key=lambda e: e.date.timestamp(), reverse=True)
    for log in logs:
        if log.exercise_id in exercise_ids and log.exercise_id not in latest:
            latest[log.exercise_id] = log.next_weight

    copy = Routine(
        id=_new_id(),
        name=f"{routine.name} (Copy)",
        exercises=[
            ex.model_copy(update={
                "id": _new_id(),
                "current_weight": latest.get(ex.exercise_id) or ex.current_weight or ex.starting_weight,
                "last_difficulty": None,
                "last_performed": None,
            })
            for ex in routine.exercises
        ],
        created_at=clock.now(),
        completed=False,
    )
    await repo.save(copy)
    logger.info("routine: duplicated %s as %s", routine.name, copy.id)
    return copy


class RoutineRequest(CamelModel):
    name: str
    exercises: List[RoutineExercise]


class CompleteExerciseRequest(CamelModel):
    difficulty: Difficulty
    session_id: str


class AdjustWeightRequest(CamelModel):
    weight: Optional[float] = None


class FinishRoutineRequest(CamelModel):
    session_id: Optional[str] = None
    session_duration: Optional[float] = None


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


@router.get("/routines", response_model=List[Routine])
async def list_routines(store: KeyValueStore = Depends(get_store)) -> List[Routine]:
    return await RoutineRepository(store).list()


@router.post("/routines", response_model=Routine)
async def create(body: RoutineRequest, store: KeyValueStore = Depends(get_store), clock: Clock = Depends(get_clock)) -> Routine:
    try:
        return await create_routine(store, clock, body.name, body.exercises)
    except InvalidWorkoutError as e:
        raise _http_error(e)


@router.put("/routines/{routine_id}", response_model=Routine)
async def update(routine_id: str, body: RoutineRequest, store: KeyValueStore = Depends(get_store)) -> Routine:
    try:
        return await update_routine(store, routine_id, body.name, body.exercises)
    except (NotFoundError, InvalidWorkoutError) as e:
        raise _http_error(e)


@router.delete("/routines/{routine_id}")
async def delete(routine_id: str, store: KeyValueStore = Depends(get_store)) -> Dict[str, Any]:
    try:
        await delete_routine(store, routine_id)
    except NotFoundError as e:
        raise _http_error(e)
    return {"deleted": routine_id}


@router.post("/routines/{routine_id}/start")
async def start(routine_id: str, store: KeyValueStore = Depends(get_store)) -> Dict[str, Any]:
    try:
        session_id = await start_routine(store, routine_id)
    except (NotFoundError, InvalidWorkoutError) as e:
        raise _http_error(e)
    return {"routine_id": routine_id, "session_id": session_id}


@router.put("/routines/{routine_id}/exercises/{exercise_id}/weight", response_model=Routine)
async def set_weight(
    routine_id: str, exercise_id: str, body: AdjustWeightRequest, store: KeyValueStore = Depends(get_store)
) -> Routine:
    try:
        return await adjust_weight(store, routine_id, exercise_id, body.weight)
    except (NotFoundError, InvalidWorkoutError) as e:
        raise _http_error(e)


@router.post("/routines/{routine_id}/exercises/{exercise_id}/complete")
async def complete(
    routine_id: str,
    exercise_id: str,
    body: CompleteExerciseRequest,
    store: KeyValueStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> Dict[str, Any]:
    try:
        entry = await complete_routine_exercise(store, clock, routine_id, exercise_id, body.difficulty, body.session_id)
    except (NotFoundError, InvalidWorkoutError) as e:
        raise _http_error(e)
    return entry.to_json_dict()


@router.post("/routines/{routine_id}/finish", response_model=Routine)
async def finish(routine_id: str, body: FinishRoutineRequest, store: KeyValueStore = Depends(get_store)) -> Routine:
    try:
        return await finish_routine(store, routine_id, body.session_id, body.session_duration)
    except NotFoundError as e:
        raise _http_error(e)


@router.post("/routines/{routine_id}/duplicate", response_model=Routine)
async def duplicate(routine_id: str, store: KeyValueStore = Depends(get_store), clock: Clock = Depends(get_clock)) -> Routine:
    try:
        return await duplicate_routine(store, clock, routine_id)
    except (NotFoundError, InvalidWorkoutError) as e:
        raise _http_error(e)
