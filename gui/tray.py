"""
tray.py — System-tray display for the tracked time.

The icon is the progress pie from ``core.icon`` (no asset files needed);
the title shows ``Tracked: HH:MM:SS``.  The pie is green while tracking,
red while paused, and grey when the last few status fetches failed.  The
menu forwards "Settings" and "Quit" to the owning process; the tray never
changes engine state itself.
"""
from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import Callable, Optional, Tuple

import pystray

from core.duration import format_duration
from core.engine import Snapshot
from core.icon import GREEN, GREY, RED, Color, render_image
from core.milestones import MilestoneEvent

logger = logging.getLogger(__name__)


def _color_for(snapshot: Snapshot) -> Color:
    if snapshot.stale:
        return GREY
    return GREEN if snapshot.active else RED


class TrackerTray:
    """Manages the tray icon while the engine is running.

    Args:
        goal:        Duration drawn as a full disc.
        on_settings: Called when "Settings" is clicked.
        on_quit:     Called when "Quit" is clicked.
    """

    def __init__(
        self,
        goal: timedelta,
        on_settings: Optional[Callable[[], None]] = None,
        on_quit: Optional[Callable[[], None]] = None,
    ) -> None:
        self._goal = goal
        self._on_settings = on_settings
        self._on_quit = on_quit
        self._icon: Optional[pystray.Icon] = None
        self._thread: Optional[threading.Thread] = None
        self._last_picture: Optional[Tuple[float, Color]] = None

    # ── Public API ─────────────────────────────────────────────────────────
    def start(self) -> None:
        """Start the tray icon in a daemon thread."""
        menu = pystray.Menu(
            pystray.MenuItem("Settings", self._settings_clicked),
            pystray.MenuItem("Quit", self._quit_clicked),
        )
        self._icon = pystray.Icon(
            name="hubstaff-tray",
            icon=render_image(0.0),
            title="Tray Clock",
            menu=menu,
        )
        self._thread = threading.Thread(
            target=self._icon.run,
            daemon=True,
            name="tray-icon",
        )
        self._thread.start()
        logger.info("Tray icon started")

    def stop(self) -> None:
        """Remove the tray icon."""
        if self._icon is not None:
            self._icon.stop()
            self._icon = None
        logger.info("Tray icon stopped")

    def show(self, snapshot: Snapshot) -> None:
        icon = self._icon
        if icon is None:
            return
        suffix = " (not synced)" if snapshot.stale else ""
        icon.title = f"Tracked: {snapshot.title}{suffix}"

        # Re-render only when the picture would change
        ratio = round(min(1.0, max(0.0, snapshot.ratio(self._goal))), 3)
        picture = (ratio, _color_for(snapshot))
        if picture != self._last_picture:
            icon.icon = render_image(ratio, color=picture[1])
            self._last_picture = picture

    def milestone(self, event: MilestoneEvent) -> None:
        icon = self._icon
        if icon is None:
            return
        message = f"{format_duration(event.boundary)} tracked today"
        try:
            icon.notify(message, "Hubstaff")
        except NotImplementedError:
            logger.info("Milestone: %s (notifications unsupported)", message)

    # ── Menu handlers ──────────────────────────────────────────────────────
    def _settings_clicked(self, icon=None, item=None) -> None:
        logger.info("Open settings window")
        if self._on_settings is not None:
            self._on_settings()

    def _quit_clicked(self, icon=None, item=None) -> None:
        logger.info("Quitting...")
        if self._on_quit is not None:
            self._on_quit()
