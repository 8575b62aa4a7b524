from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..clock import Clock
from ..deps import get_clock, get_store
from ..errors import InvalidWorkoutError, NotFoundError
from ..models import Exercise
from .storage import EXERCISES_KEY, KeyValueStore, load_json, save_json

logger = logging.getLogger(__name__)

router = APIRouter()

# (id, name, muscle group, equipment); ids match the ones already stored on devices
DEFAULT_EXERCISES = [
    ("1", "Bench Press - Barbell", "chest", "Barbell"),
    ("101", "Bench Press - Dumbbell", "chest", "Dumbbell"),
    ("102", "Bench Press - Plate-loaded Machine", "chest", "Plate-loaded Machine"),
    ("103", "Bench Press - Pulley Machine", "chest", "Pulley Machine"),
    ("11", "Incline Bench Press - Barbell", "chest", "Barbell"),
    ("104", "Incline Bench Press - Dumbbell", "chest", "Dumbbell"),
    ("105", "Incline Bench Press - Plate-loaded Machine", "chest", "Plate-loaded Machine"),
    ("106", "Decline Bench Press - Barbell", "chest", "Barbell"),
    ("107", "Decline Bench Press - Dumbbell", "chest", "Dumbbell"),
    ("13", "Chest Fly - Dumbbell", "chest", "Dumbbell"),
    ("108", "Chest Fly - Pulley Machine", "chest", "Pulley Machine"),
    ("109", "Chest Fly - Plate-loaded Machine", "chest", "Plate-loaded Machine"),
    ("15", "Push-ups", "chest", "Bodyweight"),
    ("3", "Deadlift - Barbell", "back", "Barbell"),
    ("110", "Deadlift - Trap Bar", "back", "Trap Bar"),
    ("4", "Pull-ups", "back", "Bodyweight"),
    ("111", "Chin-ups", "back", "Bodyweight"),
    ("9", "Lat Pulldown - Pulley Machine", "back", "Pulley Machine"),
    ("112", "Lat Pulldown - Plate-loaded Machine", "back", "Plate-loaded Machine"),
    ("16", "Row - Barbell", "back", "Barbell"),
    ("17", "Row - Dumbbell", "back", "Dumbbell"),
    ("18", "Row - Pulley Machine", "back", "Pulley Machine"),
    ("113", "Row - Plate-loaded Machine", "back", "Plate-loaded Machine"),
    ("114", "T-Bar Row - Barbell", "back", "Barbell"),
    ("115", "T-Bar Row - Plate-loaded Machine", "back", "Plate-loaded Machine"),
    ("19", "Face Pulls - Pulley Machine", "back", "Pulley Machine"),
    ("20", "Shoulder Press - Barbell", "shoulders", "Barbell"),
    ("5", "Shoulder Press - Dumbbell", "shoulders", "Dumbbell"),
    ("116", "Shoulder Press - Plate-loaded Machine", "shoulders", "Plate-loaded Machine"),
    ("117", "Shoulder Press - Pulley Machine", "shoulders", "Pulley Machine"),
    ("21", "Lateral Raises - Dumbbell", "shoulders", "Dumbbell"),
    ("118", "Lateral Raises - Pulley Machine", "shoulders", "Pulley Machine"),
    ("22", "Front Raises - Dumbbell", "shoulders", "Dumbbell"),
    ("119", "Front Raises - Barbell", "shoulders", "Barbell"),
    ("23", "Rear Delt Fly - Dumbbell", "shoulders", "Dumbbell"),
    ("120", "Rear Delt Fly - Pulley Machine", "shoulders", "Pulley Machine"),
    ("121", "Rear Delt Fly - Plate-loaded Machine", "shoulders", "Plate-loaded Machine"),
    ("24", "Arnold Press - Dumbbell", "shoulders", "Dumbbell"),
    ("6", "Bicep Curl - Dumbbell", "biceps", "Dumbbell"),
    ("25", "Bicep Curl - Barbell", "biceps", "Barbell"),
    ("27", "Bicep Curl - Pulley Machine", "biceps", "Pulley Machine"),
    ("122", "Bicep Curl - Plate-loaded Machine", "biceps", "Plate-loaded Machine"),
    ("26", "Hammer Curl - Dumbbell", "biceps", "Dumbbell"),
    ("123", "Hammer Curl - Pulley Machine", "biceps", "Pulley Machine"),
    ("28", "Preacher Curl - Barbell", "biceps", "Barbell"),
    ("124", "Preacher Curl - Dumbbell", "biceps", "Dumbbell"),
    ("125", "Preacher Curl - Pulley Machine", "biceps", "Pulley Machine"),
    ("7", "Tricep Dips", "triceps", "Bodyweight"),
    ("29", "Tricep Pushdown - Pulley Machine", "triceps", "Pulley Machine"),
    ("30", "Overhead Tricep Extension - Dumbbell", "triceps", "Dumbbell"),
    ("126", "Overhead Tricep Extension - Barbell", "triceps", "Barbell"),
    ("127", "Overhead Tricep Extension - Pulley Machine", "triceps", "Pulley Machine"),
    ("31", "Close-Grip Bench Press - Barbell", "triceps", "Barbell"),
    ("32", "Skull Crushers - Barbell", "triceps", "Barbell"),
    ("128", "Skull Crushers - Dumbbell", "triceps", "Dumbbell"),
    ("2", "Squat - Barbell", "legs", "Barbell"),
    ("129", "Squat - Dumbbell", "legs", "Dumbbell"),
    ("130", "Squat - Pulley Machine", "legs", "Pulley Machine"),
    ("8", "Leg Press - Plate-loaded Machine", "legs", "Plate-loaded Machine"),
    ("131", "Leg Press - Pulley Machine", "legs", "Pulley Machine"),
    ("33", "Lunges - Dumbbell", "legs", "Dumbbell"),
    ("132", "Lunges - Barbell", "legs", "Barbell"),
    ("133", "Lunges", "legs", "Bodyweight"),
    ("34", "Romanian Deadlift - Barbell", "legs", "Barbell"),
    ("134", "Romanian Deadlift - Dumbbell", "legs", "Dumbbell"),
    ("35", "Leg Curl - Pulley Machine", "legs", "Pulley Machine"),
    ("135", "Leg Curl - Plate-loaded Machine", "legs", "Plate-loaded Machine"),
    ("36", "Leg Extension - Pulley Machine", "legs", "Pulley Machine"),
    ("136", "Leg Extension - Plate-loaded Machine", "legs", "Plate-loaded Machine"),
    ("37", "Calf Raises - Pulley Machine", "legs", "Pulley Machine"),
    ("137", "Calf Raises - Plate-loaded Machine", "legs", "Plate-loaded Machine"),
    ("138", "Calf Raises - Barbell", "legs", "Barbell"),
    ("38", "Bulgarian Split Squat - Dumbbell", "legs", "Dumbbell"),
    ("139", "Bulgarian Split Squat - Barbell", "legs", "Barbell"),
    ("140", "Bulgarian Split Squat", "legs", "Bodyweight"),
    ("141", "Hack Squat - Plate-loaded Machine", "legs", "Plate-loaded Machine"),
    ("10", "Crunches", "abs", "Bodyweight"),
    ("39", "Plank", "abs", "Bodyweight"),
    ("40", "Russian Twists", "abs", "Bodyweight"),
    ("41", "Hanging Leg Raises", "abs", "Bodyweight"),
    ("42", "Cable Crunch - Pulley Machine", "abs", "Pulley Machine"),
    ("43", "Ab Wheel Rollout", "abs", "Ab Wheel"),
    ("142", "Ab Crunch - Pulley Machine", "abs", "Pulley Machine"),
    ("44", "Running - Treadmill", "cardio", "Treadmill"),
    ("143", "Running - Outdoor", "cardio", "None"),
    ("45", "Cycling - Bike", "cardio", "Bike"),
    ("144", "Cycling - Outdoor", "cardio", "None"),
    ("46", "Rowing - Machine", "cardio", "Rowing Machine"),
    ("145", "Elliptical", "cardio", "Elliptical"),
    ("146", "Stairmaster", "cardio", "Stairmaster"),
    ("47", "Burpees", "other", "Bodyweight"),
    ("48", "Kettlebell Swings", "other", "Kettlebell"),
    ("147", "Box Jumps", "other", "Box"),
    ("148", "Battle Ropes", "other", "Battle Ropes"),
]


def default_exercises() -> List[Dict[str, Any]]:
    return [
        {"id": id_, "name": name, "muscle_group": group, "equipment": equipment}
        for id_, name, group, equipment in DEFAULT_EXERCISES
    ]


class ExerciseRepository:
    """The exercise menu: built-in defaults plus exercises the user added.

    Defaults missing from the stored menu (first run, or new defaults shipped
    since) are merged back in on read. A deleted default therefore returns
    on the next read, as it always has on the phone.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    async def _load_merged(self) -> List[Dict[str, Any]]:
        raw = await load_json(self.store, EXERCISES_KEY, list)
        stored_ids = {item.get("id") for item in raw}
        missing = [item for item in default_exercises() if item["id"] not in stored_ids]
        if missing:
            raw.extend(missing)
            await save_json(self.store, EXERCISES_KEY, raw)
            logger.debug("exercises: merged %d default exercises into the menu", len(missing))
        return raw

    async def list(self) -> List[Exercise]:
        async with self.store.lock(EXERCISES_KEY):
            raw = await self._load_merged()
        return [Exercise.model_validate(item) for item in raw]

    async def get(self, exercise_id: str) -> Optional[Exercise]:
        for exercise in await self.list():
            if exercise.id == exercise_id:
                return exercise
        return None

    async def add(self, exercise: Exercise) -> None:
        async with self.store.lock(EXERCISES_KEY):
            raw = await self._load_merged()
            raw.append(exercise.model_dump(mode="json", exclude_none=True))
            await save_json(self.store, EXERCISES_KEY, raw)

    async def delete(self, exercise_id: str) -> bool:
        async with self.store.lock(EXERCISES_KEY):
            raw = await load_json(self.store, EXERCISES_KEY, list)
            kept = [item for item in raw if item.get("id") != exercise_id]
            if len(kept) == len(raw):
                return False
            await save_json(self.store, EXERCISES_KEY, kept)
        return True


async def add_exercise(
    store: KeyValueStore,
    clock: Clock,
    name: str,
    muscle_group: str,
    equipment: Optional[str] = None,
    description: Optional[str] = None,
) -> Exercise:
    if not name.strip():
        raise InvalidWorkoutError("Please enter an exercise name")
    exercise = Exercise(
        id=uuid.uuid4().hex,
        name=name.strip(),
        muscle_group=muscle_group,
        equipment=(equipment or "").strip() or None,
        description=(description or "").strip() or None,
        created_at=clock.now(),
    )
    await ExerciseRepository(store).add(exercise)
    logger.info("exercises: added %s (%s)", exercise.name, exercise.muscle_group)
    return exercise


async def muscle_group_of(store: KeyValueStore, exercise_id: str) -> Optional[str]:
    exercise = await ExerciseRepository(store).get(exercise_id)
    return exercise.muscle_group if exercise else None


class ExerciseRequest(BaseModel):
    name: str
    muscle_group: str = "chest"
    equipment: Optional[str] = None
    description: Optional[str] = None


@router.get("/exercises", response_model=List[Exercise])
async def list_exercises(
    muscle_group: Optional[str] = None,
    q: Optional[str] = None,
    store: KeyValueStore = Depends(get_store),
) -> List[Exercise]:
    exercises = await ExerciseRepository(store).list()
    if muscle_group:
        exercises = [ex for ex in exercises if ex.muscle_group == muscle_group]
    if q:
        exercises = [ex for ex in exercises if q.lower() in ex.name.lower()]
    return exercises


@router.post("/exercises", response_model=Exercise)
async def create_exercise(
    body: ExerciseRequest, store: KeyValueStore = Depends(get_store), clock: Clock = Depends(get_clock)
) -> Exercise:
    try:
        return await add_exercise(store, clock, body.name, body.muscle_group, body.equipment, body.description)
    except InvalidWorkoutError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/exercises/{exercise_id}")
async def remove_exercise(exercise_id: str, store: KeyValueStore = Depends(get_store)) -> Dict[str, Any]:
    if not await ExerciseRepository(store).delete(exercise_id):
        raise HTTPException(status_code=404, detail=str(NotFoundError("exercise", exercise_id)))
    return {"deleted": exercise_id}
