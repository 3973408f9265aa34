"""devlog diagnostics CLI."""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from devlog_mcp.config import ConfigLoadError, DevlogSettings, get_settings
from devlog_mcp.git import GitRunner, GitRunnerError


def load_settings() -> DevlogSettings:
    try:
        return get_settings()
    except ConfigLoadError as exc:
        print(f"config unavailable: {exc}")
        raise SystemExit(1)


def load_runner(settings: DevlogSettings) -> GitRunner:
    try:
        return GitRunner(
            Path(settings.git_path) if settings.git_path else None,
            timeout=settings.command_timeout_seconds,
        )
    except GitRunnerError as exc:
        print(f"git unavailable: {exc}")
        raise SystemExit(1)


def _logs_dir(settings: DevlogSettings) -> Path:
    return settings.repo_path.expanduser() / settings.logs_subdir


def _count_entries(path: Path) -> int:
    with path.open("r", encoding="utf-8", errors="replace") as handle:
        return sum(1 for line in handle if line.strip())


def cmd_logs(args: argparse.Namespace) -> None:
    settings = load_settings()
    logs_dir = _logs_dir(settings)
    files = sorted(logs_dir.glob("*.log")) if logs_dir.is_dir() else []
    records = [
        {
            "date": path.stem,
            "path": str(path),
            "entries": _count_entries(path),
            "bytes": path.stat().st_size,
        }
        for path in files
    ]
    if args.json:
        print(json.dumps(records, indent=2))
    else:
        if not records:
            print(f"No logs under {logs_dir}")
        for record in records:
            print(f"{record['date']} [{record['entries']} entries] -> {record['path']}")


def cmd_tail(args: argparse.Namespace) -> None:
    settings = load_settings()
    logs_dir = _logs_dir(settings)
    if args.date:
        path = logs_dir / f"{args.date}.log"
    else:
        candidates = sorted(logs_dir.glob("*.log")) if logs_dir.is_dir() else []
        if not candidates:
            print(f"No logs under {logs_dir}")
            raise SystemExit(1)
        path = candidates[-1]
    if not path.is_file():
        print(f"Log file not found: {path}")
        raise SystemExit(1)

    lines = [line.rstrip("\n") for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]
    if args.limit is not None and args.limit > 0:
        lines = lines[-args.limit :]
    for line in lines:
        print(line)


def cmd_pending(args: argparse.Namespace) -> None:
    settings = load_settings()
    runner = load_runner(settings)
    repo_path = settings.repo_path.expanduser()
    if not repo_path.is_dir():
        print(f"Repository not found at {repo_path}")
        raise SystemExit(1)
    try:
        result = asyncio.run(runner.status(repo_path, settings.logs_subdir))
    except GitRunnerError as exc:
        print(f"git status failed: {exc}")
        raise SystemExit(1)
    if not result.ok:
        print(f"git status failed: {result.error_message}")
        raise SystemExit(1)

    pending = [
        {"state": line[:2].strip(), "path": line[3:]}
        for line in result.stdout.splitlines()
        if line.strip()
    ]
    print(json.dumps({"repo_path": str(repo_path), "pending": pending}, indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="devlog diagnostics")
    sub = parser.add_subparsers(dest="cmd")

    p_logs = sub.add_parser("logs", help="List daily log files with entry counts")
    p_logs.add_argument("--json", action="store_true", help="Output JSON")
    p_logs.set_defaults(func=cmd_logs)

    p_tail = sub.add_parser("tail", help="Show the latest entries of a daily log")
    p_tail.add_argument("--date", help="Day to show (YYYY-MM-DD); defaults to the newest log")
    p_tail.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Number of entries to show (default: 20)",
    )
    p_tail.set_defaults(func=cmd_tail)

    p_pending = sub.add_parser("pending", help="Show log files with uncommitted changes")
    p_pending.set_defaults(func=cmd_pending)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()
