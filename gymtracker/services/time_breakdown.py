from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from pydantic import BaseModel

from ..clock import align
from ..models import LogEntry


class ExerciseTimeBreakdown(BaseModel):
    exercise_id: str
    exercise_name: str
    total_time: float
    workout_count: int
    percentage: float  # share of the muscle group's time


class MuscleGroupTimeBreakdown(BaseModel):
    muscle_group: str
    total_time: float
    percentage: float  # share of the grand total
    exercise_count: int
    exercises: List[ExerciseTimeBreakdown]


def attributed_times(logs: Iterable[LogEntry]) -> Iterator[Tuple[LogEntry, float]]:
    """Yield ``(entry, seconds)`` for every entry that is credited with time.

    An entry's own ``duration`` always wins. Entries without one fall back to
    their session's ``sessionDuration``, credited only to the first such entry
    of that session so a session total is never counted twice.
    """
    seen_sessions: Set[str] = set()
    for log in logs:
        seconds = 0.0
        if log.duration:
            seconds = log.duration
        elif log.session_id and log.session_duration:
            if log.session_id not in seen_sessions:
                seen_sessions.add(log.session_id)
                seconds = log.session_duration
        if seconds > 0:
            yield log, seconds


def total_time(logs: Iterable[LogEntry]) -> float:
    return sum(seconds for _, seconds in attributed_times(logs))


def filter_by_date(
    logs: Iterable[LogEntry],
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> List[LogEntry]:
    """Entries dated within ``[start_date, end_date]``; either bound may be omitted."""
    kept = []
    for log in logs:
        if start_date is not None and align(log.date, start_date) < start_date:
            continue
        if end_date is not None and align(log.date, end_date) > end_date:
            continue
        kept.append(log)
    return kept


def breakdown_by_muscle_group_and_exercise(
    logs: Iterable[LogEntry],
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> List[MuscleGroupTimeBreakdown]:
    filtered = filter_by_date(logs, start_date, end_date)

    group_time: Dict[str, float] = {}
    # muscle group -> exercise id -> [name, seconds, count]
    group_exercises: Dict[str, Dict[str, list]] = {}

    for log, seconds in attributed_times(filtered):
        group = log.group
        group_time[group] = group_time.get(group, 0.0) + seconds
        exercises = group_exercises.setdefault(group, {})
        if log.exercise_id in exercises:
            exercises[log.exercise_id][1] += seconds
            exercises[log.exercise_id][2] += 1
        else:
            exercises[log.exercise_id] = [log.exercise_name, seconds, 1]

    grand_total = sum(group_time.values())

    breakdown: List[MuscleGroupTimeBreakdown] = []
    for group, group_total in group_time.items():
        exercises = [
            ExerciseTimeBreakdown(
                exercise_id=exercise_id,
                exercise_name=name,
                total_time=seconds,
                workout_count=count,
                percentage=(seconds / group_total * 100) if group_total > 0 else 0,
            )
            for exercise_id, (name, seconds, count) in group_exercises.get(group, {}).items()
        ]
        exercises.sort(key=lambda ex: ex.total_time, reverse=True)
        breakdown.append(
            MuscleGroupTimeBreakdown(
                muscle_group=group,
                total_time=group_total,
                percentage=(group_total / grand_total * 100) if grand_total > 0 else 0,
                exercise_count=len(exercises),
                exercises=exercises,
            )
        )

    breakdown.sort(key=lambda g: g.total_time, reverse=True)
    return breakdown
