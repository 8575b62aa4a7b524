from __future__ import annotations

from datetime import datetime
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Local wall-clock time, naive like the timestamps the app writes."""

    def now(self) -> datetime:
        return datetime.now()


class FixedClock:
    def __init__(self, at: datetime) -> None:
        self.at = at

    def now(self) -> datetime:
        return self.at


def align(value: datetime, reference: datetime) -> datetime:
    """Express ``value`` in the same kind of time as ``reference``.

    Aware timestamps are converted into the reference's zone; against a naive
    reference they are converted to local time and made naive. A naive value
    against an aware reference is assumed to be in the reference's zone.
    Calendar-day comparisons then happen in the reference's local time.
    """
    if reference.tzinfo is None:
        if value.tzinfo is None:
            return value
        return value.astimezone().replace(tzinfo=None)
    if value.tzinfo is None:
        return value.replace(tzinfo=reference.tzinfo)
    return value.astimezone(reference.tzinfo)
