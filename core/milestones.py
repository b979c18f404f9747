"""
milestones.py — Edge-triggered boundary detection.

A boundary is every multiple of a fixed width (30 minutes by default).  The
tracker remembers the highest boundary index it has reported, so each
boundary fires at most once even when the duration jumps over it in a
single authoritative resync (29:58 → 31:02 never lands on 30:00).
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import List


@dataclass(frozen=True)
class MilestoneEvent:
    index: int
    boundary: timedelta
    duration: timedelta


class MilestoneTracker:
    """Reports boundary crossings of *width* between successive durations.

    Args:
        width: Boundary spacing.
        start: Duration at creation; boundaries at or below it are treated
               as already reported.
    """

    def __init__(self, width: timedelta, start: timedelta = timedelta(0)) -> None:
        if width <= timedelta(0):
            raise ValueError("milestone width must be positive")
        self._width = width
        self._last_index = self.index_of(start)

    @property
    def width(self) -> timedelta:
        return self._width

    @property
    def last_index(self) -> int:
        return self._last_index

    def index_of(self, duration: timedelta) -> int:
        return max(0, duration // self._width)

    def advance(self, duration: timedelta) -> List[MilestoneEvent]:
        """Return one event per boundary crossed since the last report."""
        new_index = self.index_of(duration)
        events = [
            MilestoneEvent(index=i, boundary=self._width * i, duration=duration)
            for i in range(self._last_index + 1, new_index + 1)
        ]
        if new_index > self._last_index:
            self._last_index = new_index
        return events

    def reset(self, duration: timedelta) -> None:
        """Forget reported boundaries above *duration* (day rollover)."""
        self._last_index = self.index_of(duration)
