"""
status.py — Authoritative status sources for the sync engine.

Wire format
-----------
``HubstaffCLI status`` prints a JSON object; only two fields matter::

    {"active_project": {"id": 3, "name": "Development", "tracked_today": "3:50:18"},
     "tracking": true}

Sources
-------
  • ``HubstaffCliSource`` — runs the real CLI binary (one process per fetch).
  • ``SeedSource``        — replays a literal JSON string; used by ``--test``
                            mode and by the unit tests.

Both implement the ``StatusSource`` protocol: ``fetch()`` returns a
``StatusReading`` or raises a ``FetchError``; ``close()`` abandons whatever
fetch is in flight.
"""
from __future__ import annotations

import json
import logging
import os
import subprocess
import threading
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Optional, Protocol, Union

from core.duration import parse_duration
from core.errors import MalformedPayload, SourceUnavailable

logger = logging.getLogger(__name__)

DEFAULT_EXECUTABLE = "./HubstaffCLI.bin.x86_64"
DEFAULT_TIMEOUT_S = 10.0


@dataclass(frozen=True)
class StatusReading:
    """One authoritative answer from the tracker."""

    duration: timedelta
    active: bool


class StatusSource(Protocol):
    def fetch(self) -> StatusReading:
        ...

    def close(self) -> None:
        ...


# ── Payload parsing ────────────────────────────────────────────────────────
def parse_status(payload: Union[str, bytes]) -> StatusReading:
    """Decode the CLI's JSON answer into a StatusReading.

    Raises:
        MalformedPayload: not JSON, or the expected fields are missing.
        InvalidDuration:  ``tracked_today`` is not ``H:MM:SS``.
    """
    if isinstance(payload, bytes):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedPayload(f"status output is not UTF-8: {exc}") from exc
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise MalformedPayload(f"status output is not JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise MalformedPayload("status output is not a JSON object")
    project = data.get("active_project")
    if not isinstance(project, dict) or "tracked_today" not in project:
        raise MalformedPayload("missing active_project.tracked_today")
    tracking = data.get("tracking", False)
    if not isinstance(tracking, bool):
        raise MalformedPayload(f"tracking must be a boolean, got {tracking!r}")

    return StatusReading(duration=parse_duration(project["tracked_today"]), active=tracking)


def default_hubstaff_dir() -> Path:
    """``$HUBSTAFF_HOME`` if set, else ``~/Hubstaff``."""
    env = os.environ.get("HUBSTAFF_HOME")
    if env:
        return Path(env)
    return Path.home() / "Hubstaff"


# ── Live source ────────────────────────────────────────────────────────────
class HubstaffCliSource:
    """Queries ``HubstaffCLI status`` in a subprocess.

    Args:
        directory:  Folder containing the CLI binary (default: see
                    ``default_hubstaff_dir``).
        executable: Binary to run, relative to *directory*.
        timeout:    Seconds to wait for the CLI before killing it.
    """

    def __init__(
        self,
        directory: Optional[Path] = None,
        executable: str = DEFAULT_EXECUTABLE,
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self._directory = Path(directory) if directory is not None else default_hubstaff_dir()
        self._executable = executable
        self._timeout = timeout
        self._lock = threading.Lock()
        self._proc: Optional[subprocess.Popen] = None
        self._closed = False

    @property
    def directory(self) -> Path:
        return self._directory

    def set_directory(self, directory: Path) -> None:
        """Point later fetches at a different Hubstaff install."""
        self._directory = Path(directory)
        logger.info("Hubstaff directory set to %s", self._directory)

    def fetch(self) -> StatusReading:
        with self._lock:
            if self._closed:
                raise SourceUnavailable("source is closed")
            try:
                proc = subprocess.Popen(
                    [self._executable, "status"],
                    cwd=self._directory,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                )
            except OSError as exc:
                raise SourceUnavailable(f"cannot launch {self._executable}: {exc}") from exc
            self._proc = proc

        try:
            out, err = proc.communicate(timeout=self._timeout)
        except subprocess.TimeoutExpired as exc:
            proc.kill()
            proc.communicate()
            raise SourceUnavailable(f"{self._executable} timed out after {self._timeout}s") from exc
        finally:
            with self._lock:
                self._proc = None

        if proc.returncode != 0:
            detail = err.decode("utf-8", "replace").strip() if err else ""
            raise SourceUnavailable(
                f"{self._executable} exited with code {proc.returncode}" + (f": {detail}" if detail else "")
            )

        reading = parse_status(out)
        logger.debug("Synchronized with %s: %s", self._executable, reading)
        return reading

    def close(self) -> None:
        """Kill a running CLI process (if any) and refuse further fetches."""
        with self._lock:
            self._closed = True
            proc = self._proc
        if proc is not None and proc.poll() is None:
            try:
                proc.kill()
            except OSError:
                logger.debug("CLI process already gone")


# ── Seeded source (test mode) ──────────────────────────────────────────────
class SeedSource:
    """Answers every fetch from a literal status JSON string.

    The seed is parsed on each fetch so a malformed seed fails the same way a
    malformed CLI answer would.
    """

    def __init__(self, seed: str) -> None:
        self._seed = seed
        self._lock = threading.Lock()

    def override(self, seed: str) -> None:
        """Replace the seed used by subsequent fetches."""
        with self._lock:
            self._seed = seed

    def fetch(self) -> StatusReading:
        with self._lock:
            seed = self._seed
        return parse_status(seed)

    def close(self) -> None:
        pass
