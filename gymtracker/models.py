from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlmodel import SQLModel, Field


DEFAULT_MUSCLE_GROUP = "other"


class KeyValue(SQLModel, table=True):
    key: str = Field(primary_key=True)
    value: str


class Difficulty(str, Enum):
    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"
    EXPERT = "expert"


class CamelModel(BaseModel):
    """Entities are persisted with the camelCase keys the mobile app wrote."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class WorkoutSet(CamelModel):
    weight: float = 0
    reps: int = 0


class LogEntry(CamelModel):
    """One completed exercise.

    Entries written before sessions, muscle groups and timing existed lack
    ``sessionId``, ``muscleGroup``, ``duration`` and ``sessionDuration``.
    Defaulting rules:

    * no ``sessionId``: the entry is its own session, keyed by ``id``
    * no ``muscleGroup``: ``"other"``
    * no ``duration`` / ``sessionDuration``: contributes no time
    """

    id: str
    session_id: Optional[str] = None
    routine_id: Optional[str] = None
    routine_name: Optional[str] = None
    exercise_id: str = ""
    exercise_name: str = ""
    muscle_group: Optional[str] = None
    date: datetime
    sets: List[WorkoutSet] = []
    difficulty: Optional[Difficulty] = None
    next_weight: Optional[float] = None
    duration: Optional[float] = None
    session_duration: Optional[float] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @property
    def session_key(self) -> str:
        return self.session_id or self.id

    @property
    def group(self) -> str:
        return self.muscle_group or DEFAULT_MUSCLE_GROUP

    @property
    def volume(self) -> float:
        return sum(s.weight * s.reps for s in self.sets)


class Session(CamelModel):
    """Derived view over the entries sharing a session key. Never persisted."""

    session_id: str
    date: datetime
    routine_id: Optional[str] = None
    routine_name: Optional[str] = None
    entries: List[LogEntry]
    total_exercises: int
    total_sets: int
    total_volume: float
    total_duration: float


class Exercise(BaseModel):
    """An entry of the exercise menu. Stored with snake_case keys, unlike log entries."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    muscle_group: str = DEFAULT_MUSCLE_GROUP
    equipment: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class RoutineExercise(CamelModel):
    id: str
    exercise_id: str
    exercise_name: str
    muscle_group: Optional[str] = None
    order: int = 0
    starting_weight: Optional[float] = None
    current_weight: Optional[float] = None
    last_difficulty: Optional[Difficulty] = None
    last_performed: Optional[datetime] = None


class Routine(CamelModel):
    id: str
    name: str
    exercises: List[RoutineExercise] = []
    created_at: Optional[datetime] = None
    last_performed: Optional[datetime] = None
    completed: bool = False

    def find_exercise(self, routine_exercise_id: str) -> Optional[RoutineExercise]:
        for ex in self.exercises:
            if ex.id == routine_exercise_id:
                return ex
        return None
