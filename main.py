"""
main.py — Entry point for hubstaff-tray.

Flow
----
1. Parse flags and configure logging.
2. Build the status source:
     – ``--test JSON`` → SeedSource replaying the given status JSON.
     – otherwise       → HubstaffCliSource running ``HubstaffCLI status``.
3. Start the SyncEngine (initial synchronous fetch, then tick + resync
   threads).
4. Attach a display (the tray icon, or ConsoleDisplay with ``--headless``)
   through a DisplayBridge.
5. Block until "Quit" is clicked (or Ctrl+C), then stop engine and display.
"""
from __future__ import annotations

import argparse
import logging
import threading
from datetime import timedelta
from pathlib import Path
from typing import Optional, Sequence

from core.errors import ConfigError
from core.engine import SyncEngine
from core.policy import SyncPolicy
from core.status import HubstaffCliSource, SeedSource, StatusSource, default_hubstaff_dir
from gui.display import ConsoleDisplay, DisplayAdapter, DisplayBridge
from gui.settings_window import SettingsWindow
from gui.tray import TrackerTray

logger = logging.getLogger("hubstaff_tray")

_EPILOG = """\
Test mode runs against a literal status JSON instead of HubstaffCLI.

Examples:

  Tracking active with 3 hours 50 minutes 18 seconds tracked today:

    hubstaff-tray -t '{"active_project":{"id":3,"name":"Development","tracked_today":"3:50:18"},"tracking":true}'

  Tracking inactive with 5 hours 50 minutes 18 seconds tracked today:

    hubstaff-tray --test '{"active_project":{"id":3,"name":"Development","tracked_today":"5:50:18"},"tracking":false}'
"""


# ══════════════════════════════════════════════════════════════════════════
# Setup
# ══════════════════════════════════════════════════════════════════════════
def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hubstaff-tray",
        description="Tray clock showing time tracked today in Hubstaff.",
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-t", "--test", metavar="JSON",
                        help="run in test mode with the given status JSON")
    parser.add_argument("--hubstaff-dir", type=Path, default=None,
                        help="folder containing HubstaffCLI (default: $HUBSTAFF_HOME or ~/Hubstaff)")
    parser.add_argument("--goal", type=float, default=8.0,
                        help="daily goal in hours, drawn as a full circle (default: 8)")
    parser.add_argument("--resync", type=float, default=60.0,
                        help="seconds between Hubstaff status queries (default: 60)")
    parser.add_argument("--milestone", type=float, default=30.0,
                        help="minutes between milestone notifications (default: 30)")
    parser.add_argument("--timeout", type=float, default=10.0,
                        help="seconds to wait for HubstaffCLI (default: 10)")
    parser.add_argument("--headless", action="store_true",
                        help="log the tracked time instead of showing a tray icon")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="enable debug logging")
    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_policy(args: argparse.Namespace) -> SyncPolicy:
    policy = SyncPolicy(
        resync_interval=timedelta(seconds=args.resync),
        daily_goal=timedelta(hours=args.goal),
        milestone_interval=timedelta(minutes=args.milestone),
        fetch_timeout=timedelta(seconds=args.timeout),
    )
    policy.validate()
    return policy


def _build_source(args: argparse.Namespace) -> StatusSource:
    if args.test:
        logger.info("Test mode: status seeded from command line")
        return SeedSource(args.test)
    return HubstaffCliSource(directory=args.hubstaff_dir, timeout=args.timeout)


def _open_settings(source: StatusSource) -> threading.Thread:
    """Show the settings window on its own thread (Tk owns that thread)."""
    if isinstance(source, HubstaffCliSource):
        directory = source.directory
        on_save = source.set_directory
    else:
        directory = default_hubstaff_dir()

        def on_save(path: Path) -> None:
            logger.info("Test mode: Hubstaff folder %s ignored", path)

    def run() -> None:
        SettingsWindow(directory=directory, on_save=on_save).run()

    thread = threading.Thread(target=run, daemon=True, name="settings-window")
    thread.start()
    return thread


# ══════════════════════════════════════════════════════════════════════════
# Entry
# ══════════════════════════════════════════════════════════════════════════
def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        policy = _build_policy(args)
    except ConfigError as exc:
        parser.error(str(exc))

    source = _build_source(args)
    engine = SyncEngine(policy, source)
    quit_requested = threading.Event()

    display: DisplayAdapter
    if args.headless:
        display = ConsoleDisplay()
    else:
        display = TrackerTray(
            goal=policy.daily_goal,
            on_settings=lambda: _open_settings(source),
            on_quit=quit_requested.set,
        )

    engine.start()
    display.start()
    bridge = DisplayBridge(engine, display)
    bridge.start()

    try:
        # Short waits keep the main thread responsive to Ctrl+C
        while not quit_requested.wait(0.5):
            pass
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        engine.stop()
        bridge.join(timeout=1.0)
        display.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
