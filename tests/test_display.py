"""
test_display.py — Unit tests for gui/display.py and gui/tray.py.

pystray is replaced with a MagicMock (inserted before ``gui.tray`` is
imported, and patched into the module for every test) so no real tray icon
is ever created.
"""
from __future__ import annotations

import logging
import sys
import threading
from datetime import timedelta
from typing import List
from unittest.mock import MagicMock

import pytest

sys.modules.setdefault("pystray", MagicMock())

import gui.tray as tray_mod   # noqa: E402 — import after mocks are inserted
from core.engine import Snapshot, SyncEngine   # noqa: E402
from core.milestones import MilestoneEvent   # noqa: E402
from core.policy import SyncPolicy   # noqa: E402
from core.status import SeedSource   # noqa: E402
from gui.display import ConsoleDisplay, DisplayBridge   # noqa: E402

SEED = '{"active_project":{"tracked_today":"0:29:59"},"tracking":true}'


# ── Helpers ────────────────────────────────────────────────────────────────
class _RecordingDisplay:
    def __init__(self) -> None:
        self.snapshots: List[Snapshot] = []
        self.events: List[MilestoneEvent] = []
        self.got_event = threading.Event()

    def start(self) -> None:
        pass

    def stop(self) -> None:
        pass

    def show(self, snapshot: Snapshot) -> None:
        self.snapshots.append(snapshot)

    def milestone(self, event: MilestoneEvent) -> None:
        self.events.append(event)
        self.got_event.set()


def _snap(seconds: int, active: bool = True, stale: bool = False) -> Snapshot:
    return Snapshot(timedelta(seconds=seconds), active, 0.0, stale)


@pytest.fixture(autouse=True)
def fake_pystray(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    fake = MagicMock()
    monkeypatch.setattr(tray_mod, "pystray", fake)
    return fake


# ── DisplayBridge ──────────────────────────────────────────────────────────
class TestDisplayBridge:
    def test_pumps_snapshots_and_milestones(self) -> None:
        engine = SyncEngine(SyncPolicy(resync_interval=timedelta(hours=1)), SeedSource(SEED))
        engine.seed()
        display = _RecordingDisplay()
        bridge = DisplayBridge(engine, display)
        bridge.start()
        engine.tick()
        assert display.got_event.wait(timeout=2.0)
        engine.stop()
        bridge.join(timeout=2.0)

        assert display.events[0].boundary == timedelta(minutes=30)
        assert display.snapshots[-1].duration == timedelta(minutes=30)

    def test_display_errors_do_not_kill_the_pump(self) -> None:
        engine = SyncEngine(SyncPolicy(resync_interval=timedelta(hours=1)), SeedSource(SEED))
        engine.seed()
        display = _RecordingDisplay()
        calls = []

        def flaky_show(snapshot: Snapshot) -> None:
            calls.append(snapshot)
            if len(calls) == 1:
                raise RuntimeError("render failed")

        display.show = flaky_show   # type: ignore[assignment]
        bridge = DisplayBridge(engine, display)
        bridge.start()
        engine.tick()
        assert display.got_event.wait(timeout=2.0)
        engine.stop()
        bridge.join(timeout=2.0)
        assert calls[-1].duration == timedelta(minutes=30)


# ── ConsoleDisplay ─────────────────────────────────────────────────────────
class TestConsoleDisplay:
    def test_logs_title_once_per_change(self, caplog: pytest.LogCaptureFixture) -> None:
        d = ConsoleDisplay()
        with caplog.at_level(logging.INFO, logger="gui.display"):
            d.show(_snap(13820))
            d.show(_snap(13820))
            d.show(_snap(13821, stale=True))
        lines = [r.getMessage() for r in caplog.records]
        assert lines == ["Tracked: 03:50:20 [tracking]", "Tracked: 03:50:21 [tracking] (stale)"]

    def test_logs_milestone(self, caplog: pytest.LogCaptureFixture) -> None:
        d = ConsoleDisplay()
        with caplog.at_level(logging.INFO, logger="gui.display"):
            d.milestone(MilestoneEvent(1, timedelta(minutes=30), timedelta(seconds=1801)))
        assert "00:30:00" in caplog.text


# ── TrackerTray ────────────────────────────────────────────────────────────
class TestTrackerTray:
    def test_start_creates_icon_with_menu(self, fake_pystray: MagicMock) -> None:
        tray = tray_mod.TrackerTray(goal=timedelta(hours=8))
        tray.start()
        assert fake_pystray.Icon.called
        assert fake_pystray.MenuItem.call_count == 2
        labels = [c.args[0] for c in fake_pystray.MenuItem.call_args_list]
        assert labels == ["Settings", "Quit"]
        tray.stop()

    def test_show_sets_title_and_icon(self, fake_pystray: MagicMock) -> None:
        tray = tray_mod.TrackerTray(goal=timedelta(hours=8))
        tray.start()
        icon = fake_pystray.Icon.return_value
        tray.show(_snap(4 * 3600))
        assert icon.title == "Tracked: 04:00:00"
        assert icon.icon.size == (64, 64)

    def test_stale_snapshot_is_flagged(self, fake_pystray: MagicMock) -> None:
        tray = tray_mod.TrackerTray(goal=timedelta(hours=8))
        tray.start()
        icon = fake_pystray.Icon.return_value
        tray.show(_snap(60, stale=True))
        assert icon.title.endswith("(not synced)")
        # pixel on the ring, straight up
        assert icon.icon.getpixel((32, 4)) == tray_mod.GREY

    def test_paused_snapshot_is_red(self, fake_pystray: MagicMock) -> None:
        tray = tray_mod.TrackerTray(goal=timedelta(hours=8))
        tray.start()
        icon = fake_pystray.Icon.return_value
        tray.show(_snap(60, active=False))
        assert icon.icon.getpixel((32, 4)) == tray_mod.RED
        # same ratio, tracking again: the colour alone forces a re-render
        tray.show(_snap(60, active=True))
        assert icon.icon.getpixel((32, 4)) == tray_mod.GREEN

    def test_icon_not_rerendered_for_same_picture(self, fake_pystray: MagicMock,
                                                  monkeypatch: pytest.MonkeyPatch) -> None:
        calls = []
        real = tray_mod.render_image
        monkeypatch.setattr(tray_mod, "render_image", lambda *a, **kw: calls.append(a) or real(*a, **kw))
        tray = tray_mod.TrackerTray(goal=timedelta(hours=8))
        tray.start()
        calls.clear()
        tray.show(_snap(3600))
        tray.show(_snap(3601))
        assert len(calls) == 1

    def test_milestone_notifies(self, fake_pystray: MagicMock) -> None:
        tray = tray_mod.TrackerTray(goal=timedelta(hours=8))
        tray.start()
        tray.milestone(MilestoneEvent(1, timedelta(minutes=30), timedelta(seconds=1800)))
        fake_pystray.Icon.return_value.notify.assert_called_once()
        assert "00:30:00" in fake_pystray.Icon.return_value.notify.call_args.args[0]

    def test_menu_forwards_to_callbacks(self) -> None:
        settings, quit_ = MagicMock(), MagicMock()
        tray = tray_mod.TrackerTray(goal=timedelta(hours=8), on_settings=settings, on_quit=quit_)
        tray._settings_clicked()
        tray._quit_clicked()
        settings.assert_called_once_with()
        quit_.assert_called_once_with()

    def test_show_before_start_is_ignored(self) -> None:
        tray = tray_mod.TrackerTray(goal=timedelta(hours=8))
        tray.show(_snap(10))   # must not raise
