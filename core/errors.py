"""
errors.py — Exception taxonomy for the status source and the sync policy.

Fetch errors are never fatal: the engine catches every ``FetchError``, logs
it and keeps the last good snapshot.  ``ConfigError`` is the only error that
stops the engine, and it is raised before any thread is launched.
"""
from __future__ import annotations


class FetchError(Exception):
    """Base class for anything that can go wrong while querying the tracker."""


class SourceUnavailable(FetchError):
    """The tracking tool could not be launched, timed out, or exited non-zero."""


class MalformedPayload(FetchError):
    """The tool answered, but the answer is not the expected status JSON."""


class InvalidDuration(MalformedPayload):
    """``tracked_today`` is not a valid ``H:MM:SS`` value."""


class ConfigError(ValueError):
    """The sync policy is unusable (e.g. a non-positive interval)."""
