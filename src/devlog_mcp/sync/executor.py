"""Stage, commit and push the logs directory."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from ..activity import ChangeTracker
from ..git import GitExecutionResult, GitRunner, GitRunnerError
from .models import SyncOutcome, SyncStage, SyncStatus

logger = logging.getLogger(__name__)

_STAGE_ERRORS = {
    SyncStage.ADD: "Error adding log files",
    SyncStage.COMMIT: "Error committing log files",
    SyncStage.PUSH: "Error pushing log changes",
}


class _StageFailed(Exception):
    def __init__(self, stage: SyncStage, detail: str) -> None:
        super().__init__(detail)
        self.stage = stage
        self.detail = detail


class SyncExecutor:
    """Runs the add → commit → push pipeline, one attempt at a time.

    Each stage only runs once the previous one succeeded. A failed attempt
    leaves the tracker dirty; retrying is left to the caller's next trigger.
    """

    def __init__(
        self,
        runner: GitRunner,
        tracker: ChangeTracker,
        repo_path: Path,
        logs_subdir: str,
    ) -> None:
        self._runner = runner
        self._tracker = tracker
        self._repo_path = Path(repo_path)
        self._logs_subdir = logs_subdir
        self._lock = asyncio.Lock()
        self.attempts = 0

    @property
    def in_flight(self) -> bool:
        return self._lock.locked()

    @property
    def lock(self) -> asyncio.Lock:
        return self._lock

    async def sync(self, message: str, *, wait: bool = True) -> SyncOutcome:
        """Run one attempt; with ``wait=False`` an in-flight attempt makes this a no-op."""

        if not wait and self._lock.locked():
            return SyncOutcome.skipped(message)
        async with self._lock:
            return await self.sync_locked(message)

    async def sync_locked(self, message: str) -> SyncOutcome:
        """Run one attempt; the caller must hold :attr:`lock`."""

        self.attempts += 1
        revision = self._tracker.snapshot()
        try:
            status = await self._pipeline(message)
        except _StageFailed as failure:
            text = f"{_STAGE_ERRORS[failure.stage]}: {failure.detail}"
            logger.warning(
                "Sync failed",
                extra={"stage": failure.stage.value, "detail": failure.detail, "reason": message},
            )
            return SyncOutcome(status=SyncStatus.FAILED, message=text, reason=message, stage=failure.stage)

        self._tracker.mark_synced(revision)
        if status is SyncStatus.NOTHING_TO_COMMIT:
            text = "No changes to commit."
        else:
            text = "Developer logs updated and pushed successfully."
        logger.info("Sync finished", extra={"status": status.value, "reason": message})
        return SyncOutcome(status=status, message=text, reason=message)

    async def _pipeline(self, message: str) -> SyncStatus:
        await self._stage(SyncStage.ADD, self._runner.add(self._repo_path, self._logs_subdir))

        commit = await self._run(SyncStage.COMMIT, self._runner.commit(self._repo_path, message))
        if not commit.ok:
            if not commit.nothing_to_commit:
                raise _StageFailed(SyncStage.COMMIT, commit.error_message)
            if not await self._has_unpushed_commits():
                return SyncStatus.NOTHING_TO_COMMIT

        await self._stage(SyncStage.PUSH, self._runner.push(self._repo_path))
        return SyncStatus.COMMITTED

    async def _stage(self, stage: SyncStage, call) -> GitExecutionResult:
        result = await self._run(stage, call)
        if not result.ok:
            raise _StageFailed(stage, result.error_message)
        return result

    @staticmethod
    async def _run(stage: SyncStage, call) -> GitExecutionResult:
        try:
            return await call
        except GitRunnerError as exc:
            raise _StageFailed(stage, str(exc)) from exc

    async def _has_unpushed_commits(self) -> bool:
        # A previous attempt may have committed and then failed to push.
        try:
            result = await self._runner.unpushed_count(self._repo_path)
        except GitRunnerError:
            return False
        if not result.ok:
            return False
        try:
            return int(result.stdout.strip() or "0") > 0
        except ValueError:
            return False


__all__ = ["SyncExecutor"]
