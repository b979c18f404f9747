"""
engine.py — Reconciles local ticking with authoritative resyncs.

Threads
-------
  sync-tick    every ``tick_interval``: if tracking, add one interval to the
               duration (local interpolation for a smooth per-second title).
  sync-resync  every ``resync_interval``: fetch the authoritative status and
               overwrite duration/active unconditionally.

Both threads wait on the same ``threading.Event``, so ``stop()`` wakes them
immediately.  The only blocking call, ``source.fetch()``, never runs while
the snapshot lock is held: each writer computes a new ``Snapshot`` from the
one it read, then installs it with a compare-and-swap under the lock.  The
same critical section advances the milestone trackers and pushes to the
subscriber slots, so consumers always see whole snapshots in install order.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Callable, List, Optional, Tuple, Union

from core.channels import EventStream, LatestSlot
from core.duration import format_duration
from core.errors import FetchError
from core.milestones import MilestoneEvent, MilestoneTracker
from core.policy import SyncPolicy
from core.status import StatusReading, StatusSource, parse_status

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """Immutable view of the engine state."""

    duration: timedelta
    active: bool
    last_updated: float
    stale: bool = False

    @property
    def title(self) -> str:
        return format_duration(self.duration)

    def ratio(self, goal: timedelta) -> float:
        """Fraction of *goal* tracked so far (not clamped)."""
        return self.duration / goal


class SyncEngine:
    """Owns the tracked-time snapshot and the two loops that update it.

    Usage::

        engine = SyncEngine(SyncPolicy(), HubstaffCliSource())
        engine.start()
        for snap in engine.subscribe():
            print(snap.title)
        # … from another thread …
        engine.stop()

    Args:
        policy: Timing configuration; validated here, so a ``ConfigError``
                surfaces before any thread is started.
        source: Authoritative status source.
        clock:  Wall-clock function used to stamp ``Snapshot.last_updated``.
    """

    def __init__(
        self,
        policy: SyncPolicy,
        source: StatusSource,
        clock: Callable[[], float] = time.time,
    ) -> None:
        policy.validate()
        self._policy = policy
        self._source = source
        self._clock = clock

        self._lock = threading.Lock()
        self._resync_guard = threading.Lock()
        self._stop_event = threading.Event()
        self._threads: List[threading.Thread] = []
        self._started = False

        self._snapshot: Optional[Snapshot] = None
        self._failures = 0
        self._last_authoritative: Optional[timedelta] = None
        self._slots: List[LatestSlot[Snapshot]] = []
        self._milestones: List[Tuple[MilestoneTracker, EventStream[MilestoneEvent]]] = []

    # ── State inspection ───────────────────────────────────────────────────
    @property
    def policy(self) -> SyncPolicy:
        return self._policy

    @property
    def is_running(self) -> bool:
        return self._started and not self._stop_event.is_set()

    @property
    def consecutive_failures(self) -> int:
        return self._failures

    def snapshot(self) -> Snapshot:
        """Current snapshot. Never blocks."""
        snap = self._snapshot
        if snap is None:
            raise RuntimeError("engine has not been started")
        return snap

    # ── Lifecycle ──────────────────────────────────────────────────────────
    def start(self, initial_seed: Union[str, StatusReading, None] = None) -> Snapshot:
        """Seed the snapshot, then launch the tick and resync threads.

        Args:
            initial_seed: Status JSON text or a ``StatusReading`` to start
                          from instead of a synchronous ``source.fetch()``.
        """
        seeded = self.seed(initial_seed)
        self._started = True
        self._threads = [
            threading.Thread(target=self._tick_loop, daemon=True, name="sync-tick"),
            threading.Thread(target=self._resync_loop, daemon=True, name="sync-resync"),
        ]
        for t in self._threads:
            t.start()
        return seeded

    def seed(self, initial_seed: Union[str, StatusReading, None] = None) -> Snapshot:
        """Install the first snapshot without launching the loops.

        ``start()`` calls this; harnesses can call it directly and then drive
        ``tick()`` / ``resync()`` by hand.  A failed initial fetch (or an
        unparsable seed) is not fatal: the engine starts at zero, paused.
        """
        if self._started:
            raise RuntimeError("engine already started")
        if self._stop_event.is_set():
            raise RuntimeError("engine has been stopped")

        now = self._clock()
        try:
            if initial_seed is None:
                reading = self._source.fetch()
            elif isinstance(initial_seed, StatusReading):
                reading = initial_seed
            else:
                reading = parse_status(initial_seed)
        except FetchError as exc:
            logger.warning("Initial sync failed, starting from zero: %s", exc)
            seeded = self._empty_seed(now)
        except Exception:
            logger.exception("Status source raised an unexpected error during initial sync")
            seeded = self._empty_seed(now)
        else:
            self._last_authoritative = reading.duration
            seeded = Snapshot(reading.duration, reading.active, now)

        with self._lock:
            self._snapshot = seeded
            for tracker, _stream in self._milestones:
                tracker.reset(seeded.duration)
            for slot in self._slots:
                slot.put(seeded)
        logger.info("First sync = %s (tracking=%s)", seeded.title, seeded.active)
        return seeded

    def stop(self) -> None:
        """Cancel both loops, abandon any in-flight fetch and close all streams.

        Safe to call more than once. Once it returns, no snapshot is
        installed and nothing is delivered to subscribers.
        """
        self._stop_event.set()
        self._source.close()

        timeout = (self._policy.fetch_timeout + self._policy.tick_interval).total_seconds()
        for t in self._threads:
            if t is threading.current_thread():
                continue
            t.join(timeout)
            if t.is_alive():
                logger.warning("%s still running %.1fs after stop", t.name, timeout)
        self._threads = []

        with self._lock:
            for slot in self._slots:
                slot.close()
            for _tracker, stream in self._milestones:
                stream.close()
            self._slots.clear()
            self._milestones.clear()
        logger.info("Sync engine stopped")

    # ── Consumers ──────────────────────────────────────────────────────────
    def subscribe(self) -> LatestSlot[Snapshot]:
        """Latest-wins stream of snapshots, primed with the current one."""
        slot: LatestSlot[Snapshot] = LatestSlot()
        with self._lock:
            if self._stop_event.is_set():
                slot.close()
                return slot
            self._slots.append(slot)
            if self._snapshot is not None:
                slot.put(self._snapshot)
        return slot

    def unsubscribe(self, slot: LatestSlot[Snapshot]) -> None:
        with self._lock:
            if slot in self._slots:
                self._slots.remove(slot)
        slot.close()

    def on_milestone(self, interval: Optional[timedelta] = None) -> EventStream[MilestoneEvent]:
        """Stream of boundary crossings every *interval* of tracked time.

        Boundaries at or below the current duration are never reported.
        """
        width = interval if interval is not None else self._policy.milestone_interval
        stream: EventStream[MilestoneEvent] = EventStream()
        with self._lock:
            if self._stop_event.is_set():
                stream.close()
                return stream
            start = self._snapshot.duration if self._snapshot is not None else timedelta(0)
            self._milestones.append((MilestoneTracker(width, start), stream))
        return stream

    # ── Single steps (driven by the loops, or directly) ────────────────────
    def tick(self) -> Optional[Snapshot]:
        """Advance the duration by one tick interval if tracking is active."""
        step = self._policy.tick_interval

        def advance(current: Snapshot) -> Optional[Snapshot]:
            if not current.active:
                return None
            return replace(current, duration=current.duration + step, last_updated=self._clock())

        return self._update(advance)

    def resync(self) -> bool:
        """Fetch the authoritative status and install it.

        Returns True if a new value was installed; False if the fetch failed,
        the engine is stopping, or another resync is already in flight.
        """
        if self._stop_event.is_set():
            return False
        if not self._resync_guard.acquire(blocking=False):
            logger.debug("Resync already in flight, skipping")
            return False
        try:
            try:
                reading = self._source.fetch()
            except FetchError as exc:
                self._record_failure(exc)
                return False
            except Exception as exc:
                logger.exception("Status source raised an unexpected error")
                self._record_failure(exc)
                return False

            if self._failures:
                logger.info("Status source recovered after %d failure(s)", self._failures)
            self._failures = 0
            # only a drop below the previous authoritative value is a new day;
            # falling below the interpolated value is drift correction
            last = self._last_authoritative
            rollover = last is not None and reading.duration < last
            self._last_authoritative = reading.duration
            now = self._clock()
            installed = self._update(
                lambda _current: Snapshot(reading.duration, reading.active, now, stale=False),
                rollover=rollover,
            )
            if installed is not None:
                logger.debug("Resync: tracked %s (tracking=%s)", installed.title, installed.active)
            return installed is not None
        finally:
            self._resync_guard.release()

    # ── Internal ───────────────────────────────────────────────────────────
    def _tick_loop(self) -> None:
        interval = self._policy.tick_interval.total_seconds()
        while not self._stop_event.wait(interval):
            self.tick()

    def _resync_loop(self) -> None:
        interval = self._policy.resync_interval.total_seconds()
        while not self._stop_event.wait(interval):
            self.resync()

    def _record_failure(self, exc: Exception) -> None:
        self._failures += 1
        logger.warning("Status fetch failed (%d in a row): %s", self._failures, exc)
        if self._failures < self._policy.stale_after:
            return

        def mark_stale(current: Snapshot) -> Optional[Snapshot]:
            return None if current.stale else replace(current, stale=True)

        if self._update(mark_stale) is not None:
            logger.warning("Snapshot marked stale after %d consecutive failures", self._failures)

    def _empty_seed(self, now: float) -> Snapshot:
        self._failures = 1
        return Snapshot(timedelta(0), False, now, stale=self._failures >= self._policy.stale_after)

    def _update(
        self,
        compute: Callable[[Snapshot], Optional[Snapshot]],
        rollover: bool = False,
    ) -> Optional[Snapshot]:
        """Copy-on-write install: compute off-lock, swap only if unchanged."""
        while True:
            if self._stop_event.is_set():
                return None
            current = self._snapshot
            if current is None:
                return None
            new = compute(current)
            if new is None:
                return None
            with self._lock:
                if self._stop_event.is_set():
                    return None
                if self._snapshot is not current:
                    continue
                self._install(current, new, rollover)
                return new

    def _install(self, previous: Snapshot, new: Snapshot, rollover: bool) -> None:
        # caller holds self._lock
        self._snapshot = new
        if rollover:
            logger.info("Day rollover: %s -> %s, milestones reset", previous.title, new.title)
            for tracker, _stream in self._milestones:
                tracker.reset(new.duration)
        else:
            for tracker, stream in self._milestones:
                for event in tracker.advance(new.duration):
                    logger.info("Milestone reached: %s", format_duration(event.boundary))
                    stream.put(event)
        for slot in self._slots:
            slot.put(new)
