from __future__ import annotations

import asyncio
from pathlib import Path

from devlog_mcp.activity import ChangeTracker
from devlog_mcp.git import GitTimeoutError
from devlog_mcp.git.runner import FakeGitRunner, fake_result
from devlog_mcp.sync import PERIODIC_MESSAGE, SyncExecutor, SyncScheduler, SyncStage, SyncStatus

NOTHING = "On branch main\nYour branch is up to date with 'origin/main'.\n\nnothing to commit, working tree clean\n"


def _executor(tmp_path: Path, runner: FakeGitRunner | None = None):
    runner = runner or FakeGitRunner()
    tracker = ChangeTracker()
    tracker.mark_dirty()
    return SyncExecutor(runner, tracker, tmp_path, "developer_logs"), tracker, runner


def _log_file(tmp_path: Path, content: str = "09:30:15 - Saved: a.txt\n") -> Path:
    path = tmp_path / "developer_logs" / "2026-10-18.log"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_sync_runs_add_commit_push_in_order(tmp_path: Path) -> None:
    executor, tracker, runner = _executor(tmp_path)

    outcome = asyncio.run(executor.sync(PERIODIC_MESSAGE))

    assert outcome.status is SyncStatus.COMMITTED
    assert outcome.ok
    assert runner.invocations == [
        ("add", "developer_logs"),
        ("commit", "-m", PERIODIC_MESSAGE),
        ("push",),
    ]
    assert runner.cwds == [tmp_path, tmp_path, tmp_path]
    assert not tracker.dirty


def test_second_sync_is_nothing_to_commit(tmp_path: Path) -> None:
    runner = FakeGitRunner({"commit": [fake_result("commit"), fake_result("commit", 1, stdout=NOTHING)]})
    executor, tracker, _ = _executor(tmp_path, runner)

    first = asyncio.run(executor.sync("first"))
    second = asyncio.run(executor.sync("second"))

    assert first.status is SyncStatus.COMMITTED
    assert second.status is SyncStatus.NOTHING_TO_COMMIT
    assert second.ok
    assert runner.subcommands == ["add", "commit", "push", "add", "commit", "rev-list"]
    assert not tracker.dirty


def test_nothing_to_commit_still_pushes_earlier_commits(tmp_path: Path) -> None:
    runner = FakeGitRunner(
        {
            "commit": [fake_result("commit", 1, stdout=NOTHING)],
            "rev-list": [fake_result("rev-list", stdout="2\n")],
        }
    )
    executor, tracker, _ = _executor(tmp_path, runner)

    outcome = asyncio.run(executor.sync("retry"))

    assert outcome.status is SyncStatus.COMMITTED
    assert runner.subcommands == ["add", "commit", "rev-list", "push"]
    assert not tracker.dirty


def test_stage_failures_stop_the_pipeline_and_keep_dirty(tmp_path: Path) -> None:
    cases = {
        SyncStage.ADD: ({"add": [fake_result("add", 128, stderr="fatal: pathspec did not match")]}, ["add"]),
        SyncStage.COMMIT: (
            {"commit": [fake_result("commit", 128, stderr="fatal: Unable to create index.lock")]},
            ["add", "commit"],
        ),
        SyncStage.PUSH: (
            {"push": [fake_result("push", 1, stderr="fatal: unable to access remote")]},
            ["add", "commit", "push"],
        ),
    }
    for stage, (responses, expected_calls) in cases.items():
        executor, tracker, runner = _executor(tmp_path, FakeGitRunner(responses))

        outcome = asyncio.run(executor.sync("attempt"))

        assert outcome.status is SyncStatus.FAILED
        assert outcome.stage is stage
        assert runner.subcommands == expected_calls
        assert tracker.dirty


def test_failure_messages_name_the_stage(tmp_path: Path) -> None:
    runner = FakeGitRunner({"push": [fake_result("push", 1, stderr="network down")]})
    executor, _, _ = _executor(tmp_path, runner)

    outcome = asyncio.run(executor.sync("attempt"))

    assert outcome.message == "Error pushing log changes: network down"
    assert outcome.to_dict()["stage"] == "push"


def test_runner_errors_become_stage_failures(tmp_path: Path) -> None:
    runner = FakeGitRunner({"commit": [GitTimeoutError("git commit timed out after 120s")]})
    executor, tracker, _ = _executor(tmp_path, runner)

    outcome = asyncio.run(executor.sync("attempt"))

    assert outcome.status is SyncStatus.FAILED
    assert outcome.stage is SyncStage.COMMIT
    assert "timed out" in outcome.message
    assert tracker.dirty


def test_failed_attempt_retries_from_scratch(tmp_path: Path) -> None:
    runner = FakeGitRunner({"push": [fake_result("push", 1, stderr="offline")]})
    executor, tracker, _ = _executor(tmp_path, runner)

    asyncio.run(executor.sync("first"))
    outcome = asyncio.run(executor.sync("second"))

    assert outcome.status is SyncStatus.COMMITTED
    assert runner.subcommands == ["add", "commit", "push", "add", "commit", "push"]
    assert not tracker.dirty


def test_append_during_sync_keeps_tracker_dirty(tmp_path: Path) -> None:
    executor, tracker, runner = _executor(tmp_path)

    async def append_while_staging(args, cwd) -> None:
        if args[0] == "add":
            tracker.mark_dirty()

    runner.on_invoke = append_while_staging
    outcome = asyncio.run(executor.sync("attempt"))

    assert outcome.status is SyncStatus.COMMITTED
    assert tracker.dirty


def test_only_one_attempt_in_flight(tmp_path: Path) -> None:
    executor, tracker, runner = _executor(tmp_path)
    active = 0
    peak = 0

    async def track(args, cwd) -> None:
        nonlocal active, peak
        if args[0] == "add":
            active += 1
            peak = max(peak, active)
        await asyncio.sleep(0.01)
        if args[0] == "push":
            active -= 1

    runner.on_invoke = track

    async def scenario():
        return await asyncio.gather(*(executor.sync(f"attempt {idx}") for idx in range(3)))

    outcomes = asyncio.run(scenario())

    assert [outcome.status for outcome in outcomes] == [SyncStatus.COMMITTED] * 3
    assert peak == 1
    assert executor.attempts == 3


def test_non_waiting_trigger_is_skipped_while_in_flight(tmp_path: Path) -> None:
    executor, tracker, runner = _executor(tmp_path)
    reached = None
    release = None

    async def hold(args, cwd) -> None:
        if args[0] == "push":
            reached.set()
            await release.wait()

    runner.on_invoke = hold

    async def scenario():
        nonlocal reached, release
        reached = asyncio.Event()
        release = asyncio.Event()
        first = asyncio.create_task(executor.sync("first"))
        await reached.wait()
        assert executor.in_flight
        skipped = await executor.sync("second", wait=False)
        release.set()
        return skipped, await first

    skipped, first = asyncio.run(scenario())

    assert skipped.status is SyncStatus.SKIPPED
    assert first.status is SyncStatus.COMMITTED
    assert runner.subcommands.count("add") == 1


def test_scheduler_only_syncs_dirty_non_empty_logs(tmp_path: Path) -> None:
    runner = FakeGitRunner()
    tracker = ChangeTracker()
    executor = SyncExecutor(runner, tracker, tmp_path, "developer_logs")
    log_path = tmp_path / "developer_logs" / "2026-10-18.log"
    scheduler = SyncScheduler(executor, tracker, lambda: log_path)

    assert asyncio.run(scheduler.maybe_sync()) is None

    tracker.mark_dirty()
    assert asyncio.run(scheduler.maybe_sync()) is None

    _log_file(tmp_path, content="")
    assert asyncio.run(scheduler.maybe_sync()) is None
    assert runner.invocations == []

    _log_file(tmp_path)
    outcome = asyncio.run(scheduler.maybe_sync())

    assert outcome.status is SyncStatus.COMMITTED
    assert runner.invocations[1] == ("commit", "-m", PERIODIC_MESSAGE)
    assert scheduler.last_outcome is outcome
    assert not tracker.dirty


def test_scheduler_tick_dropped_while_in_flight(tmp_path: Path) -> None:
    log_path = _log_file(tmp_path)
    executor, tracker, runner = _executor(tmp_path)
    scheduler = SyncScheduler(executor, tracker, lambda: log_path)
    reached = None
    release = None

    async def hold(args, cwd) -> None:
        if args[0] == "push":
            reached.set()
            await release.wait()

    runner.on_invoke = hold

    async def scenario():
        nonlocal reached, release
        reached = asyncio.Event()
        release = asyncio.Event()
        first = asyncio.create_task(scheduler.flush_now("explicit"))
        await reached.wait()
        tracker.mark_dirty()
        tick = await scheduler.maybe_sync()
        release.set()
        await first
        return tick

    tick = asyncio.run(scenario())

    assert tick.status is SyncStatus.SKIPPED
    assert tracker.dirty
    assert runner.subcommands.count("add") == 1


def test_flush_queues_behind_in_flight_attempt(tmp_path: Path) -> None:
    log_path = _log_file(tmp_path)
    executor, tracker, runner = _executor(tmp_path)
    scheduler = SyncScheduler(executor, tracker, lambda: log_path)
    reached = None
    release = None

    async def hold(args, cwd) -> None:
        if args[0] == "push" and not release.is_set():
            reached.set()
            await release.wait()

    runner.on_invoke = hold

    async def scenario():
        nonlocal reached, release
        reached = asyncio.Event()
        release = asyncio.Event()
        first = asyncio.create_task(scheduler.flush_now("first"))
        await reached.wait()
        tracker.mark_dirty()
        queued = asyncio.create_task(scheduler.flush_now("queued"))
        await asyncio.sleep(0)
        release.set()
        return await first, await queued

    first, queued = asyncio.run(scenario())

    assert first.status is SyncStatus.COMMITTED
    assert queued.status is SyncStatus.COMMITTED
    assert runner.subcommands == ["add", "commit", "push", "add", "commit", "push"]
    assert not tracker.dirty


def test_flush_returns_none_when_clean(tmp_path: Path) -> None:
    log_path = _log_file(tmp_path)
    runner = FakeGitRunner()
    tracker = ChangeTracker()
    scheduler = SyncScheduler(SyncExecutor(runner, tracker, tmp_path, "developer_logs"), tracker, lambda: log_path)

    assert asyncio.run(scheduler.flush_now("final")) is None
    assert runner.invocations == []


def test_periodic_timer_syncs_and_stops(tmp_path: Path) -> None:
    log_path = _log_file(tmp_path)
    executor, tracker, runner = _executor(tmp_path)
    scheduler = SyncScheduler(executor, tracker, lambda: log_path, interval=0.01)

    async def scenario():
        scheduler.start()
        assert scheduler.is_running
        for _ in range(100):
            if not tracker.dirty:
                break
            await asyncio.sleep(0.01)
        await scheduler.stop()

    asyncio.run(scenario())

    assert not scheduler.is_running
    assert not tracker.dirty
    assert runner.subcommands.count("push") == 1
