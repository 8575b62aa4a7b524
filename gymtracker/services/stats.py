from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Set

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ..clock import Clock, align
from ..deps import get_clock, get_store
from ..models import LogEntry
from ..timeformat import format_duration
from .progression import round_half_up
from .storage import KeyValueStore, LogRepository
from .time_breakdown import MuscleGroupTimeBreakdown, attributed_times, breakdown_by_muscle_group_and_exercise, total_time

router = APIRouter()

# Fixed policy: a PR counts as "recent" for 30 days; the dashboard shows five
PR_WINDOW_DAYS = 30
RECENT_PR_LIMIT = 5

WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


class Delta(BaseModel):
    value: float
    percentage: int
    is_positive: bool


class PersonalRecord(BaseModel):
    exercise_name: str
    exercise_id: str
    max_weight: float
    date: datetime


class PeriodSummary(BaseModel):
    workouts: int = 0
    volume: float = 0
    time: float = 0
    average_weight: float = 0
    pr_count: int = 0


class DayActivity(BaseModel):
    date: date
    label: str
    count: int


class Stats(BaseModel):
    total_workouts: int = 0
    total_exercises: int = 0
    total_sets: int = 0
    total_volume: int = 0
    workouts_this_week: int = 0
    workouts_this_month: int = 0
    current_streak: int = 0
    total_workout_time: float = 0
    average_workout_time: int = 0
    longest_workout_time: float = 0
    shortest_workout_time: float = 0
    # format_duration renderings of the four times above
    total_workout_time_label: str = "N/A"
    average_workout_time_label: str = "N/A"
    longest_workout_time_label: str = "N/A"
    shortest_workout_time_label: str = "N/A"
    this_week: PeriodSummary = Field(default_factory=PeriodSummary)
    last_week: PeriodSummary = Field(default_factory=PeriodSummary)
    this_month: PeriodSummary = Field(default_factory=PeriodSummary)
    last_month: PeriodSummary = Field(default_factory=PeriodSummary)
    week_over_week: Dict[str, Delta] = {}
    month_over_month: Dict[str, Delta] = {}
    personal_records: List[PersonalRecord] = []
    recent_prs: List[PersonalRecord] = []
    weekly_activity: List[DayActivity] = []
    month_volume_by_week: List[float] = [0, 0, 0, 0]


def calculate_delta(current: float, previous: float) -> Delta:
    delta = current - previous
    if previous == 0:
        return Delta(value=delta, percentage=100 if current > 0 else 0, is_positive=current > 0)
    return Delta(
        value=delta,
        percentage=round_half_up(delta / previous * 100),
        is_positive=delta > 0,
    )


class PeriodWindows:
    """Calendar windows around a reference instant.

    Weeks start on Sunday 00:00. "This" windows end at ``now``; "last week" is
    the seven days before this week's start; "last month" is the whole
    previous calendar month.
    """

    def __init__(self, now: datetime) -> None:
        self.now = now
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        self.today = today
        self.week_start = today - timedelta(days=(now.weekday() + 1) % 7)
        self.last_week_start = self.week_start - timedelta(days=7)
        self.month_start = today.replace(day=1)
        self.last_month_start = (self.month_start - timedelta(days=1)).replace(day=1)

    def this_week(self, at: datetime) -> bool:
        return self.week_start <= at <= self.now

    def last_week(self, at: datetime) -> bool:
        return self.last_week_start <= at < self.week_start

    def this_month(self, at: datetime) -> bool:
        return self.month_start <= at <= self.now

    def last_month(self, at: datetime) -> bool:
        return self.last_month_start <= at < self.month_start


def current_streak(logs: List[LogEntry], now: datetime) -> int:
    """Consecutive training days ending today or yesterday; 0 once a day is missed."""
    days = sorted({align(log.date, now).date() for log in logs}, reverse=True)
    if not days:
        return 0
    today = now.date()
    if days[0] != today and days[0] != today - timedelta(days=1):
        return 0
    streak = 1
    for newer, older in zip(days, days[1:]):
        if (newer - older).days == 1:
            streak += 1
        else:
            break
    return streak


def personal_records(logs: List[LogEntry]) -> List[PersonalRecord]:
    """Heaviest set per exercise name, dated at the first entry that reached it."""
    records: Dict[str, PersonalRecord] = {}
    for log in sorted(logs, key=lambda e: e.date.timestamp()):
        for s in log.sets:
            best = records.get(log.exercise_name)
            if s.weight > (best.max_weight if best else 0):
                records[log.exercise_name] = PersonalRecord(
                    exercise_name=log.exercise_name,
                    exercise_id=log.exercise_id,
                    max_weight=s.weight,
                    date=log.date,
                )
    return sorted(records.values(), key=lambda r: r.max_weight, reverse=True)


def recent_personal_records(
    records: List[PersonalRecord],
    now: datetime,
    days: int = PR_WINDOW_DAYS,
    limit: int = RECENT_PR_LIMIT,
) -> List[PersonalRecord]:
    cutoff = now - timedelta(days=days)
    recent = [r for r in records if cutoff <= align(r.date, now) <= now]
    recent.sort(key=lambda r: r.max_weight, reverse=True)
    return recent[:limit]


def weekly_activity(logs: List[LogEntry], now: datetime) -> List[DayActivity]:
    """Distinct sessions per day over the last seven days, oldest first."""
    today = now.date()
    days = [today - timedelta(days=offset) for offset in range(6, -1, -1)]
    sessions_by_day: Dict[date, Set[str]] = {d: set() for d in days}
    for log in logs:
        day = align(log.date, now).date()
        if day in sessions_by_day:
            sessions_by_day[day].add(log.session_key)
    return [
        DayActivity(date=d, label=WEEKDAY_LABELS[d.weekday()], count=len(sessions_by_day[d]))
        for d in days
    ]


class _PeriodAccumulator:
    def __init__(self) -> None:
        self.sessions: Set[str] = set()
        self.volume = 0.0
        self.time = 0.0
        self.seen_time_sessions: Set[str] = set()
        self.weight_total = 0.0
        self.set_count = 0

    def add(self, log: LogEntry) -> None:
        self.sessions.add(log.session_key)
        self.volume += log.volume
        for s in log.sets:
            self.weight_total += s.weight
            self.set_count += 1
        if log.duration:
            self.time += log.duration
        elif log.session_id and log.session_duration and log.session_id not in self.seen_time_sessions:
            self.seen_time_sessions.add(log.session_id)
            self.time += log.session_duration

    def summary(self, pr_count: int) -> PeriodSummary:
        average = round(self.weight_total / self.set_count, 1) if self.set_count else 0
        return PeriodSummary(
            workouts=len(self.sessions),
            volume=self.volume,
            time=self.time,
            average_weight=average,
            pr_count=pr_count,
        )


def _compare(current: PeriodSummary, previous: PeriodSummary) -> Dict[str, Delta]:
    return {
        field: calculate_delta(getattr(current, field), getattr(previous, field))
        for field in ("workouts", "volume", "time", "average_weight", "pr_count")
    }


def compute_stats(logs: List[LogEntry], now: datetime) -> Stats:
    """Dashboard statistics for the whole log as of ``now``.

    Pure: the same log list and ``now`` always give the same result. An empty
    log gives all-zero stats.
    """
    logs = list(logs)
    windows = PeriodWindows(now)
    periods = {
        "this_week": (_PeriodAccumulator(), windows.this_week),
        "last_week": (_PeriodAccumulator(), windows.last_week),
        "this_month": (_PeriodAccumulator(), windows.this_month),
        "last_month": (_PeriodAccumulator(), windows.last_month),
    }
    session_keys: Set[str] = set()
    total_sets = 0
    total_volume = 0.0
    month_volume_by_week = [0.0, 0.0, 0.0, 0.0]

    for log in logs:
        at = align(log.date, now)
        session_keys.add(log.session_key)
        total_sets += len(log.sets)
        total_volume += log.volume
        for accumulator, contains in periods.values():
            if contains(at):
                accumulator.add(log)
        if windows.this_month(at):
            week_of_month = (at.day - 1) // 7
            if week_of_month < 4:
                month_volume_by_week[week_of_month] += log.volume

    workout_times = [seconds for _, seconds in attributed_times(logs)]
    total_seconds = total_time(logs)
    average_seconds = round_half_up(total_seconds / len(workout_times)) if workout_times else 0
    longest_seconds = max(workout_times, default=0)
    shortest_seconds = min(workout_times, default=0)

    records = personal_records(logs)
    summaries = {}
    for name, (accumulator, contains) in periods.items():
        pr_count = sum(1 for r in records if contains(align(r.date, now)))
        summaries[name] = accumulator.summary(pr_count)

    return Stats(
        total_workouts=len(session_keys),
        total_exercises=len(logs),
        total_sets=total_sets,
        total_volume=round_half_up(total_volume),
        workouts_this_week=summaries["this_week"].workouts,
        workouts_this_month=summaries["this_month"].workouts,
        current_streak=current_streak(logs, now),
        total_workout_time=total_seconds,
        average_workout_time=average_seconds,
        longest_workout_time=longest_seconds,
        shortest_workout_time=shortest_seconds,
        total_workout_time_label=format_duration(total_seconds),
        average_workout_time_label=format_duration(average_seconds),
        longest_workout_time_label=format_duration(longest_seconds),
        shortest_workout_time_label=format_duration(shortest_seconds),
        this_week=summaries["this_week"],
        last_week=summaries["last_week"],
        this_month=summaries["this_month"],
        last_month=summaries["last_month"],
        week_over_week=_compare(summaries["this_week"], summaries["last_week"]),
        month_over_month=_compare(summaries["this_month"], summaries["last_month"]),
        personal_records=records,
        recent_prs=recent_personal_records(records, now),
        weekly_activity=weekly_activity(logs, now),
        month_volume_by_week=month_volume_by_week,
    )


def exercise_stats(logs: List[LogEntry], exercise_id: str, recent: int = 3) -> Dict[str, Any]:
    """PR, average set weight, set count and latest entries for one exercise."""
    exercise_logs = sorted(
        (log for log in logs if log.exercise_id == exercise_id),
        key=lambda e: e.date.timestamp(),
        reverse=True,
    )
    all_sets = [s for log in exercise_logs for s in log.sets]
    if not all_sets:
        pr: Optional[float] = None
        avg: Optional[int] = None
    else:
        pr = max(s.weight for s in all_sets)
        avg = round_half_up(sum(s.weight for s in all_sets) / len(all_sets))
    return {
        "exercise_id": exercise_id,
        "exercise_name": exercise_logs[0].exercise_name if exercise_logs else None,
        "pr": pr,
        "avg": avg,
        "total_sets": len(all_sets),
        "last_performed": exercise_logs[0].date if exercise_logs else None,
        "recent": [log.to_json_dict() for log in exercise_logs[:recent]],
    }


@router.get("/stats", response_model=Stats)
async def stats(store: KeyValueStore = Depends(get_store), clock: Clock = Depends(get_clock)) -> Stats:
    logs = await LogRepository(store).list()
    return compute_stats(logs, clock.now())


@router.get("/time-breakdown", response_model=List[MuscleGroupTimeBreakdown])
async def time_breakdown(
    period: str = Query("total", pattern="^(total|week|month)$"),
    store: KeyValueStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> List[MuscleGroupTimeBreakdown]:
    """
    Time spent per muscle group and exercise, for all time or the
    current week / month to date
    """
    logs = await LogRepository(store).list()
    now = clock.now()
    if period == "week":
        return breakdown_by_muscle_group_and_exercise(logs, PeriodWindows(now).week_start, now)
    if period == "month":
        return breakdown_by_muscle_group_and_exercise(logs, PeriodWindows(now).month_start, now)
    return breakdown_by_muscle_group_and_exercise(logs)


@router.get("/exercises/{exercise_id}/stats")
async def exercise_progress(exercise_id: str, store: KeyValueStore = Depends(get_store)) -> Dict[str, Any]:
    logs = await LogRepository(store).list()
    return exercise_stats(logs, exercise_id)
