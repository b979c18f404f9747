"""
policy.py — Timing configuration for the sync engine.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from core.errors import ConfigError


@dataclass(frozen=True)
class SyncPolicy:
    """How often to tick and resync, and what counts as a full day.

    Args:
        tick_interval:      Local interpolation step.
        resync_interval:    Delay between authoritative fetches.
        daily_goal:         Duration shown as a full progress disc.
        milestone_interval: Width of the boundaries that raise milestone events.
        stale_after:        Consecutive fetch failures before the snapshot is
                            flagged stale.
        fetch_timeout:      Upper bound on a single fetch, and therefore on
                            how long ``stop()`` can wait for one.
    """

    tick_interval: timedelta = timedelta(seconds=1)
    resync_interval: timedelta = timedelta(seconds=60)
    daily_goal: timedelta = timedelta(hours=8)
    milestone_interval: timedelta = timedelta(minutes=30)
    stale_after: int = 3
    fetch_timeout: timedelta = timedelta(seconds=10)

    def validate(self) -> None:
        """Raise ConfigError if any setting is unusable."""
        for name in ("tick_interval", "resync_interval", "daily_goal",
                     "milestone_interval", "fetch_timeout"):
            value = getattr(self, name)
            if not isinstance(value, timedelta):
                raise ConfigError(f"{name} must be a timedelta, got {type(value).__name__}")
            if value <= timedelta(0):
                raise ConfigError(f"{name} must be positive, got {value}")
        if isinstance(self.stale_after, bool) or not isinstance(self.stale_after, int):
            raise ConfigError("stale_after must be an integer")
        if self.stale_after < 1:
            raise ConfigError(f"stale_after must be at least 1, got {self.stale_after}")
