from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from devlog_mcp.clock import LocalClock
from devlog_mcp.config import DevlogSettings

FIXED_NOW = datetime(2026, 10, 18, 9, 30, 15)


class MutableClock(LocalClock):
    """Clock whose current instant can be moved by tests."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.current = now
        super().__init__(lambda: self.current)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in (
        "DEVLOG_CONFIG",
        "DEVLOG_REPO_PATH",
        "DEVLOG_LOGS_SUBDIR",
        "DEVLOG_REMOTE_URL",
        "DEVLOG_GIT_PATH",
        "DEVLOG_SYNC_INTERVAL",
        "DEVLOG_COMMAND_TIMEOUT",
        "DEVLOG_SHUTDOWN_TIMEOUT",
        "DEVLOG_ROLLOVER",
        "DEVLOG_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def make_settings(tmp_path: Path):
    def _make(**overrides) -> DevlogSettings:
        values = {"repo_path": tmp_path / "developer_repo"}
        values.update(overrides)
        return DevlogSettings.from_values(values)

    return _make
