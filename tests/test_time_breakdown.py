"""Time attribution per muscle group and exercise."""
from datetime import datetime

import pytest

from conftest import make_log

from gymtracker.services.time_breakdown import (
    breakdown_by_muscle_group_and_exercise,
    filter_by_date,
    total_time,
)


def _by_group(breakdown):
    return {g.muscle_group: g for g in breakdown}


class TestAttribution:

    def test_session_fallback_scenario(self):
        logs = [
            make_log(sessionId="A", exerciseId="e1", duration=300, muscleGroup="chest", date="2024-01-01"),
            make_log(sessionId="A", exerciseId="e2", sessionDuration=900, muscleGroup="back", date="2024-01-01"),
        ]
        groups = _by_group(breakdown_by_muscle_group_and_exercise(logs))
        assert groups["chest"].total_time == 300
        assert groups["back"].total_time == 900
        assert groups["chest"].percentage == pytest.approx(25)
        assert groups["back"].percentage == pytest.approx(75)

    def test_own_duration_wins_over_session_duration(self):
        logs = [
            make_log(sessionId="S", exerciseId="e1", muscleGroup="chest", duration=60, sessionDuration=3600),
            make_log(sessionId="S", exerciseId="e2", muscleGroup="back", sessionDuration=3600),
        ]
        groups = _by_group(breakdown_by_muscle_group_and_exercise(logs))
        assert groups["chest"].total_time == 60
        assert groups["back"].total_time == 3600
        assert total_time(logs) == 3660

    def test_session_duration_credited_once(self):
        logs = [
            make_log(sessionId="S", exerciseId="e1", muscleGroup="legs", sessionDuration=1800),
            make_log(sessionId="S", exerciseId="e2", muscleGroup="legs", sessionDuration=1800),
            make_log(sessionId="S", exerciseId="e3", muscleGroup="back", sessionDuration=1800),
        ]
        breakdown = breakdown_by_muscle_group_and_exercise(logs)
        assert [(g.muscle_group, g.total_time) for g in breakdown] == [("legs", 1800)]
        assert breakdown[0].exercises[0].exercise_id == "e1"
        assert breakdown[0].exercise_count == 1

    def test_entries_without_timing_are_ignored(self):
        logs = [make_log(id="legacy"), make_log(sessionDuration=600)]  # no sessionId
        assert breakdown_by_muscle_group_and_exercise(logs) == []

    def test_missing_muscle_group_is_other(self):
        logs = [make_log(duration=90)]
        assert breakdown_by_muscle_group_and_exercise(logs)[0].muscle_group == "other"

    def test_workout_count_per_qualifying_entry(self):
        logs = [
            make_log(exerciseId="e1", muscleGroup="chest", duration=100),
            make_log(exerciseId="e1", muscleGroup="chest", duration=200),
        ]
        exercise = breakdown_by_muscle_group_and_exercise(logs)[0].exercises[0]
        assert exercise.workout_count == 2
        assert exercise.total_time == 300


class TestPercentagesAndOrdering:

    @pytest.fixture
    def logs(self):
        return [
            make_log(exerciseId="e1", exerciseName="Bench", muscleGroup="chest", duration=100),
            make_log(exerciseId="e3", exerciseName="Fly", muscleGroup="chest", duration=300),
            make_log(exerciseId="e2", exerciseName="Row", muscleGroup="back", duration=600),
            make_log(exerciseId="e4", exerciseName="Curl", muscleGroup="biceps", duration=200),
        ]

    def test_groups_sum_to_100(self, logs):
        breakdown = breakdown_by_muscle_group_and_exercise(logs)
        assert sum(g.percentage for g in breakdown) == pytest.approx(100)

    def test_exercises_relative_to_group(self, logs):
        chest = _by_group(breakdown_by_muscle_group_and_exercise(logs))["chest"]
        assert [e.percentage for e in chest.exercises] == pytest.approx([75, 25])
        assert sum(e.percentage for e in chest.exercises) == pytest.approx(100)

    def test_sorted_descending(self, logs):
        breakdown = breakdown_by_muscle_group_and_exercise(logs)
        assert [g.muscle_group for g in breakdown] == ["back", "chest", "biceps"]
        assert [e.exercise_name for e in breakdown[1].exercises] == ["Fly", "Bench"]

    def test_empty(self):
        assert breakdown_by_muscle_group_and_exercise([]) == []


class TestDateFilter:

    @pytest.fixture
    def logs(self):
        return [
            make_log(id="a", date=datetime(2024, 1, 1, 9), duration=60),
            make_log(id="b", date=datetime(2024, 1, 5, 9), duration=60),
            make_log(id="c", date=datetime(2024, 1, 9, 9), duration=60),
        ]

    def test_inclusive_bounds(self, logs):
        kept = filter_by_date(logs, datetime(2024, 1, 1, 9), datetime(2024, 1, 5, 9))
        assert [log.id for log in kept] == ["a", "b"]

    def test_open_start(self, logs):
        assert [log.id for log in filter_by_date(logs, end_date=datetime(2024, 1, 2))] == ["a"]

    def test_open_end(self, logs):
        assert [log.id for log in filter_by_date(logs, start_date=datetime(2024, 1, 2))] == ["b", "c"]

    def test_breakdown_respects_filter(self, logs):
        breakdown = breakdown_by_muscle_group_and_exercise(logs, start_date=datetime(2024, 1, 4))
        assert breakdown[0].total_time == 120
