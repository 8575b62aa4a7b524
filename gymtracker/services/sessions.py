from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from ..clock import Clock, SystemClock, align
from ..models import LogEntry, Session

DEFAULT_SESSION_WINDOW = timedelta(hours=3)


def session_duration(entries: Iterable[LogEntry]) -> float:
    """Shared ``sessionDuration`` if any entry carries it, else the sum of per-entry durations."""
    entries = list(entries)
    for e in entries:
        if e.session_duration:
            return e.session_duration
    return sum(e.duration or 0 for e in entries)


def build_session(session_key: str, entries: List[LogEntry]) -> Session:
    ordered = sorted(entries, key=lambda e: e.date.timestamp())
    first = ordered[0]
    return Session(
        session_id=session_key,
        date=first.date,
        routine_id=first.routine_id,
        routine_name=first.routine_name,
        entries=ordered,
        total_exercises=len(ordered),
        total_sets=sum(len(e.sets) for e in ordered),
        total_volume=sum(e.volume for e in ordered),
        total_duration=session_duration(ordered),
    )


def group_into_sessions(logs: Iterable[LogEntry]) -> List[Session]:
    """Group log entries into workout sessions, newest session first.

    Entries are keyed by ``sessionId``; legacy entries without one each form a
    single-entry session keyed by their own ``id``.
    """
    by_key: Dict[str, List[LogEntry]] = {}
    for log in logs:
        by_key.setdefault(log.session_key, []).append(log)

    sessions = [build_session(key, entries) for key, entries in by_key.items()]
    sessions.sort(key=lambda s: s.date.timestamp(), reverse=True)
    return sessions


def new_session_id(prefix: str = "session") -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


class SessionAssigner:
    """Picks the session id for a free-form (non-routine) exercise entry.

    A new entry joins the most recent non-routine session when that session's
    latest entry is no older than ``window``; otherwise a new session starts.
    Routine workouts carry their own id from routine start and are never merged.
    """

    def __init__(self, clock: Optional[Clock] = None, window: timedelta = DEFAULT_SESSION_WINDOW) -> None:
        self.clock = clock or SystemClock()
        self.window = window

    def open_session(self, logs: Iterable[LogEntry]) -> Optional[str]:
        now = self.clock.now()
        latest: Optional[LogEntry] = None
        latest_at: Optional[datetime] = None
        for log in logs:
            if log.routine_id or not log.session_id:
                continue
            at = align(log.date, now)
            if latest_at is None or at >= latest_at:
                latest, latest_at = log, at
        if latest is not None and latest_at >= now - self.window:
            return latest.session_id
        return None

    def assign(self, logs: Iterable[LogEntry]) -> str:
        return self.open_session(logs) or new_session_id()
