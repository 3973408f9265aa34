from __future__ import annotations

import argparse
import importlib.util
import json
from pathlib import Path

import pytest

from devlog_mcp.git.runner import FakeGitRunner, fake_result


def _load_diag(name: str):
    module_path = Path(__file__).resolve().parents[1] / "scripts" / "devlog_diag.py"
    spec = importlib.util.spec_from_file_location(name, module_path)
    assert spec and spec.loader
    diag = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(diag)
    return diag


def _write_logs(settings) -> Path:
    logs_dir = settings.logs_dir
    logs_dir.mkdir(parents=True)
    (logs_dir / "2026-10-17.log").write_text("17:00:00 - Saved: a.txt\n", encoding="utf-8")
    (logs_dir / "2026-10-18.log").write_text(
        "".join(f"09:30:{idx:02d} - Modified: a.txt\n" for idx in range(5)),
        encoding="utf-8",
    )
    return logs_dir


def test_logs_lists_daily_files(monkeypatch, capsys, make_settings):
    settings = make_settings()
    logs_dir = _write_logs(settings)
    diag = _load_diag("devlog_diag_logs_module")
    monkeypatch.setattr(diag, "load_settings", lambda: settings)

    diag.cmd_logs(argparse.Namespace(json=True))

    records = json.loads(capsys.readouterr().out)
    assert [record["date"] for record in records] == ["2026-10-17", "2026-10-18"]
    assert records[1]["entries"] == 5
    assert records[1]["path"] == str(logs_dir / "2026-10-18.log")


def test_logs_reports_empty_directory(monkeypatch, capsys, make_settings):
    settings = make_settings()
    diag = _load_diag("devlog_diag_empty_module")
    monkeypatch.setattr(diag, "load_settings", lambda: settings)

    diag.cmd_logs(argparse.Namespace(json=False))

    assert capsys.readouterr().out.startswith("No logs under")


def test_tail_defaults_to_newest_log(monkeypatch, capsys, make_settings):
    settings = make_settings()
    _write_logs(settings)
    diag = _load_diag("devlog_diag_tail_module")
    monkeypatch.setattr(diag, "load_settings", lambda: settings)

    diag.cmd_tail(argparse.Namespace(date=None, limit=2))

    assert capsys.readouterr().out.splitlines() == [
        "09:30:03 - Modified: a.txt",
        "09:30:04 - Modified: a.txt",
    ]


def test_tail_missing_date_exits(monkeypatch, capsys, make_settings):
    settings = make_settings()
    _write_logs(settings)
    diag = _load_diag("devlog_diag_tail_missing_module")
    monkeypatch.setattr(diag, "load_settings", lambda: settings)

    with pytest.raises(SystemExit):
        diag.cmd_tail(argparse.Namespace(date="2026-01-01", limit=20))

    assert "Log file not found" in capsys.readouterr().out


def test_pending_reports_uncommitted_logs(monkeypatch, capsys, make_settings):
    settings = make_settings()
    settings.repo_path.mkdir(parents=True)
    runner = FakeGitRunner(
        {
            "status": [
                fake_result(
                    "status",
                    stdout=" M developer_logs/2026-10-17.log\n?? developer_logs/2026-10-18.log\n",
                )
            ]
        }
    )
    diag = _load_diag("devlog_diag_pending_module")
    monkeypatch.setattr(diag, "load_settings", lambda: settings)
    monkeypatch.setattr(diag, "load_runner", lambda _settings: runner)

    diag.cmd_pending(argparse.Namespace())

    payload = json.loads(capsys.readouterr().out)
    assert payload["pending"] == [
        {"state": "M", "path": "developer_logs/2026-10-17.log"},
        {"state": "??", "path": "developer_logs/2026-10-18.log"},
    ]
    assert runner.invocations == [("status", "--porcelain", "--", "developer_logs")]


def test_pending_reports_git_failure(monkeypatch, capsys, make_settings):
    settings = make_settings()
    settings.repo_path.mkdir(parents=True)
    runner = FakeGitRunner({"status": [fake_result("status", 128, stderr="fatal: not a git repository")]})
    diag = _load_diag("devlog_diag_pending_failure_module")
    monkeypatch.setattr(diag, "load_settings", lambda: settings)
    monkeypatch.setattr(diag, "load_runner", lambda _settings: runner)

    with pytest.raises(SystemExit):
        diag.cmd_pending(argparse.Namespace())

    assert "not a git repository" in capsys.readouterr().out


def test_main_without_command_prints_help(capsys):
    diag = _load_diag("devlog_diag_help_module")

    diag.main([])

    assert "devlog diagnostics" in capsys.readouterr().out
