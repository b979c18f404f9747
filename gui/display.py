"""
display.py — What the engine's consumers look like, and the pump feeding them.

Any display (the pystray icon, or the headless console logger below)
implements ``DisplayAdapter``.  ``DisplayBridge`` reads the engine's snapshot
and milestone streams on two daemon threads and hands each item to the
adapter; the adapter never touches engine state.
"""
from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import List, Optional, Protocol

from core.duration import format_duration
from core.engine import Snapshot, SyncEngine
from core.milestones import MilestoneEvent

logger = logging.getLogger(__name__)


class DisplayAdapter(Protocol):
    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...

    def show(self, snapshot: Snapshot) -> None:
        ...

    def milestone(self, event: MilestoneEvent) -> None:
        ...


class ConsoleDisplay:
    """Headless display: logs the title whenever it changes."""

    def __init__(self) -> None:
        self._last_title: Optional[str] = None

    def start(self) -> None:
        logger.info("Console display started")

    def stop(self) -> None:
        logger.info("Console display stopped")

    def show(self, snapshot: Snapshot) -> None:
        title = snapshot.title
        if title == self._last_title:
            return
        self._last_title = title
        state = "tracking" if snapshot.active else "paused"
        stale = " (stale)" if snapshot.stale else ""
        logger.info("Tracked: %s [%s]%s", title, state, stale)

    def milestone(self, event: MilestoneEvent) -> None:
        logger.info("Milestone: %s tracked", format_duration(event.boundary))


class DisplayBridge:
    """Pumps engine output into a display adapter.

    Args:
        engine:    A started (or about to be started) SyncEngine.
        display:   Adapter receiving snapshots and milestone events.
        milestone: Boundary width for milestone events; defaults to the
                   engine policy's ``milestone_interval``.
    """

    def __init__(
        self,
        engine: SyncEngine,
        display: DisplayAdapter,
        milestone: Optional[timedelta] = None,
    ) -> None:
        self._engine = engine
        self._display = display
        self._milestone = milestone
        self._threads: List[threading.Thread] = []

    def start(self) -> None:
        snapshots = self._engine.subscribe()
        events = self._engine.on_milestone(self._milestone)
        self._threads = [
            threading.Thread(target=self._pump, args=(snapshots, self._display.show),
                             daemon=True, name="display-snapshots"),
            threading.Thread(target=self._pump, args=(events, self._display.milestone),
                             daemon=True, name="display-milestones"),
        ]
        for t in self._threads:
            t.start()

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for both pumps to finish (they end when the engine stops)."""
        for t in self._threads:
            t.join(timeout)

    @staticmethod
    def _pump(stream, deliver) -> None:
        for item in stream:
            try:
                deliver(item)
            except Exception:
                logger.exception("Display failed to handle %r", item)
