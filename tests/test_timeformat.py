import pytest

from gymtracker.timeformat import format_duration, format_duration_mmss


@pytest.mark.parametrize("seconds,expected", [
    (None, "N/A"),
    (0, "N/A"),
    (-10, "N/A"),
    (30, "< 1 min"),
    (45 * 60, "45 min"),
    (2 * 3600, "2h"),
    (3600 + 23 * 60 + 10, "1h 23m"),
])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


@pytest.mark.parametrize("seconds,expected", [
    (0, "0:00"),
    (45 * 60 + 30, "45:30"),
    (3600 + 23 * 60 + 45, "1:23:45"),
])
def test_format_duration_mmss(seconds, expected):
    assert format_duration_mmss(seconds) == expected
