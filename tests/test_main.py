"""
test_main.py — Unit tests for the wiring in main.py.

Only the pure setup helpers are exercised; no tray icon or window is shown.
"""
from __future__ import annotations

import logging
import sys
from datetime import timedelta
from pathlib import Path
from unittest.mock import MagicMock

import pytest

pytest.importorskip("tkinter")
sys.modules.setdefault("pystray", MagicMock())

import main as main_mod   # noqa: E402 — import after mocks are inserted
from core.status import HubstaffCliSource, SeedSource   # noqa: E402

SEED = '{"active_project":{"tracked_today":"3:50:18"},"tracking":true}'


def _args(*argv: str):
    return main_mod._build_parser().parse_args(list(argv))


class TestArguments:
    def test_defaults(self) -> None:
        policy = main_mod._build_policy(_args())
        assert policy.daily_goal == timedelta(hours=8)
        assert policy.resync_interval == timedelta(seconds=60)
        assert policy.milestone_interval == timedelta(minutes=30)

    def test_custom_policy(self) -> None:
        policy = main_mod._build_policy(_args("--goal", "6", "--resync", "30", "--milestone", "15"))
        assert policy.daily_goal == timedelta(hours=6)
        assert policy.resync_interval == timedelta(seconds=30)
        assert policy.milestone_interval == timedelta(minutes=15)

    def test_invalid_policy_exits(self) -> None:
        with pytest.raises(SystemExit):
            main_mod.main(["--resync", "0", "--headless"])

    def test_test_flag_uses_seed_source(self) -> None:
        source = main_mod._build_source(_args("-t", SEED))
        assert isinstance(source, SeedSource)
        assert source.fetch().duration == timedelta(seconds=13818)

    def test_long_test_flag(self) -> None:
        assert isinstance(main_mod._build_source(_args("--test", SEED)), SeedSource)

    def test_live_source_uses_directory(self, tmp_path: Path) -> None:
        source = main_mod._build_source(_args("--hubstaff-dir", str(tmp_path)))
        assert isinstance(source, HubstaffCliSource)
        assert source.directory == tmp_path


class TestSettings:
    def test_live_source_saves_directory(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        window = MagicMock()
        monkeypatch.setattr(main_mod, "SettingsWindow", window)
        source = HubstaffCliSource(directory=tmp_path)
        main_mod._open_settings(source).join(timeout=5.0)
        kwargs = window.call_args.kwargs
        assert kwargs["directory"] == tmp_path
        kwargs["on_save"](tmp_path / "other")
        assert source.directory == tmp_path / "other"
        window.return_value.run.assert_called_once_with()

    def test_opens_in_test_mode(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
                                caplog: pytest.LogCaptureFixture) -> None:
        window = MagicMock()
        monkeypatch.setattr(main_mod, "SettingsWindow", window)
        monkeypatch.setenv("HUBSTAFF_HOME", str(tmp_path))
        main_mod._open_settings(SeedSource(SEED)).join(timeout=5.0)
        window.return_value.run.assert_called_once_with()
        kwargs = window.call_args.kwargs
        assert kwargs["directory"] == tmp_path
        with caplog.at_level(logging.INFO, logger="hubstaff_tray"):
            kwargs["on_save"](tmp_path / "elsewhere")
        assert "ignored" in caplog.text
