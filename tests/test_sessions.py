"""Session reconstruction and free-form session assignment."""
from datetime import datetime, timedelta

from conftest import NOW, make_log

from gymtracker.clock import FixedClock
from gymtracker.services.sessions import (
    SessionAssigner,
    group_into_sessions,
    session_duration,
)


class TestGroupIntoSessions:

    def test_groups_by_session_id(self):
        logs = [
            make_log(sessionId="A", date=NOW),
            make_log(sessionId="B", date=NOW - timedelta(days=1)),
            make_log(sessionId="A", date=NOW - timedelta(minutes=20)),
        ]
        sessions = group_into_sessions(logs)
        assert [s.session_id for s in sessions] == ["A", "B"]
        assert sessions[0].total_exercises == 2

    def test_legacy_entries_are_singleton_sessions(self):
        logs = [make_log(id="old-1"), make_log(id="old-2")]
        sessions = group_into_sessions(logs)
        assert sorted(s.session_id for s in sessions) == ["old-1", "old-2"]
        assert all(s.total_exercises == 1 for s in sessions)

    def test_entries_ordered_and_session_dated_by_earliest(self):
        late = make_log(sessionId="A", date=NOW)
        early = make_log(sessionId="A", date=NOW - timedelta(hours=1))
        session = group_into_sessions([late, early])[0]
        assert [e.id for e in session.entries] == [early.id, late.id]
        assert session.date == early.date

    def test_newest_session_first(self):
        logs = [
            make_log(sessionId="old", date=NOW - timedelta(days=3)),
            make_log(sessionId="new", date=NOW),
            make_log(sessionId="mid", date=NOW - timedelta(days=1)),
        ]
        assert [s.session_id for s in group_into_sessions(logs)] == ["new", "mid", "old"]

    def test_totals(self):
        logs = [
            make_log(sessionId="A", sets=[{"weight": 100, "reps": 5}, {"weight": 110, "reps": 3}]),
            make_log(sessionId="A", sets=[{"weight": 50, "reps": 10}]),
        ]
        session = group_into_sessions(logs)[0]
        assert session.total_sets == 3
        assert session.total_volume == 100 * 5 + 110 * 3 + 50 * 10

    def test_placeholder_and_empty_sets(self):
        logs = [
            make_log(sessionId="R", sets=[{"weight": 135, "reps": 0}]),
            make_log(sessionId="R", sets=[]),
        ]
        session = group_into_sessions(logs)[0]
        assert session.total_sets == 1
        assert session.total_volume == 0

    def test_empty_log(self):
        assert group_into_sessions([]) == []


class TestSessionDuration:

    def test_prefers_shared_session_duration(self):
        logs = [
            make_log(sessionId="A", duration=60, sessionDuration=900),
            make_log(sessionId="A", duration=120, sessionDuration=900),
        ]
        assert session_duration(logs) == 900

    def test_falls_back_to_sum_of_durations(self):
        logs = [make_log(sessionId="A", duration=60), make_log(sessionId="A", duration=120)]
        assert session_duration(logs) == 180
        assert group_into_sessions(logs)[0].total_duration == 180

    def test_no_timing_is_zero(self):
        assert session_duration([make_log(sessionId="A")]) == 0

