"""Tracking session lifecycle: provision, record, sync, finalize."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterable

from .activity import ActivityEvent, ActivityRecorder, ChangeTracker, EventBus, EventKind, LogEntry
from .clock import LocalClock
from .config import DevlogSettings
from .errors import AlreadyStartedError, NotStartedError
from .git import GitRunner
from .provisioning import ProvisionResult, RemoteUrlSupplier, RepositoryProvisioner
from .sync import SyncExecutor, SyncOutcome, SyncScheduler

logger = logging.getLogger(__name__)

TERMINATE_MESSAGE = "Final update of developer logs before termination."
SHUTDOWN_MESSAGE = "Final update of developer logs before shutdown."


class TrackingState(Enum):
    IDLE = "idle"
    PROVISIONING = "provisioning"
    TRACKING = "tracking"


@dataclass(slots=True)
class Session:
    """One start-to-terminate tracking lifecycle."""

    repo_path: Path
    logs_dir: Path
    remote_url: str | None = None
    log_file_path: Path | None = None
    active: bool = True
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SessionController:
    """Owns the single tracking session and wires its components together."""

    def __init__(
        self,
        settings: DevlogSettings,
        runner: GitRunner,
        *,
        clock: LocalClock | None = None,
        bus: EventBus | None = None,
        recorder: ActivityRecorder | None = None,
    ) -> None:
        self._settings = settings
        self._runner = runner
        self._tracker = ChangeTracker()
        self._bus = bus or EventBus()
        self._recorder = recorder or ActivityRecorder(
            self._tracker,
            clock=clock or LocalClock(),
            rollover_at_midnight=settings.rollover_at_midnight,
        )
        self._recorder.attach(self._bus)
        self._provisioner = RepositoryProvisioner(runner)
        self._state = TrackingState.IDLE
        self._session: Session | None = None
        self._executor: SyncExecutor | None = None
        self._scheduler: SyncScheduler | None = None
        self._last_outcome: SyncOutcome | None = None

    @property
    def state(self) -> TrackingState:
        return self._state

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def tracker(self) -> ChangeTracker:
        return self._tracker

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def recorder(self) -> ActivityRecorder:
        return self._recorder

    @property
    def scheduler(self) -> SyncScheduler | None:
        return self._scheduler

    @property
    def executor(self) -> SyncExecutor | None:
        return self._executor

    @property
    def dirty(self) -> bool:
        return self._tracker.dirty

    @property
    def last_outcome(self) -> SyncOutcome | None:
        if self._scheduler is not None and self._scheduler.last_outcome is not None:
            return self._scheduler.last_outcome
        return self._last_outcome

    async def start(self, remote_url_supplier: RemoteUrlSupplier | None = None) -> ProvisionResult:
        """Provision the repository and begin tracking.

        Provisioning failures are returned, not raised; the controller stays idle.
        """

        if self._state is not TrackingState.IDLE:
            raise AlreadyStartedError(f"Tracking is already {self._state.value}")

        self._state = TrackingState.PROVISIONING
        repo_path = self._settings.repo_path
        try:
            result = await self._provisioner.ensure_repository(
                repo_path, self._remote_supplier(remote_url_supplier)
            )
        except BaseException:
            self._state = TrackingState.IDLE
            raise

        if not result.ok:
            self._state = TrackingState.IDLE
            logger.warning(
                "Tracking not started",
                extra={"error": result.error.value if result.error else None, "detail": result.message},
            )
            return result

        logs_dir = repo_path / self._settings.logs_subdir
        log_file_path = self._recorder.bind(logs_dir)
        self._session = Session(
            repo_path=repo_path,
            logs_dir=logs_dir,
            remote_url=result.remote_url,
            log_file_path=log_file_path,
        )
        self._executor = SyncExecutor(self._runner, self._tracker, repo_path, self._settings.logs_subdir)
        self._scheduler = SyncScheduler(
            self._executor,
            self._tracker,
            lambda: self._recorder.last_written,
            interval=self._settings.sync_interval_seconds,
        )
        self._scheduler.start()
        self._state = TrackingState.TRACKING
        logger.info("Tracking started", extra={"log_file": str(log_file_path)})
        return result

    def _remote_supplier(self, explicit: RemoteUrlSupplier | None) -> RemoteUrlSupplier | None:
        if explicit is not None:
            return explicit
        if self._settings.remote_url:
            configured = self._settings.remote_url
            return lambda: configured
        return None

    def publish(self, event: ActivityEvent) -> list[Exception]:
        """Deliver an editor event to every subscriber; failures are returned."""

        return self._bus.publish(event)

    def record(self, kind: str | EventKind, subject: str | None = None) -> LogEntry | None:
        """Record one event directly; append failures propagate."""

        return self._recorder.record(kind, subject)

    def seed_open_documents(self, subjects: Iterable[str]) -> None:
        self._recorder.seed_open_documents(subjects)

    async def flush_now(self, reason: str) -> SyncOutcome | None:
        scheduler = self._require_tracking()
        return await scheduler.flush_now(reason)

    async def terminate(self) -> SyncOutcome | None:
        """Stop the timer, let a running sync finish, flush pending entries and return to idle."""

        scheduler = self._require_tracking()
        await scheduler.stop()
        try:
            outcome = await scheduler.flush_now(TERMINATE_MESSAGE)
        finally:
            self._teardown()
        logger.info("Tracking terminated")
        return outcome

    async def shutdown_finalize(self) -> SyncOutcome | None:
        """Best-effort flush before process exit, bounded by the shutdown timeout."""

        if self._state is not TrackingState.TRACKING or self._scheduler is None:
            logger.info("No changes to commit during shutdown.")
            return None

        scheduler = self._scheduler
        outcome: SyncOutcome | None = None

        async def _final_flush() -> SyncOutcome | None:
            await scheduler.stop()
            if not self._tracker.dirty:
                return None
            return await scheduler.flush_now(SHUTDOWN_MESSAGE)

        try:
            outcome = await asyncio.wait_for(
                _final_flush(),
                timeout=self._settings.shutdown_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Shutdown flush timed out",
                extra={"timeout": self._settings.shutdown_timeout_seconds},
            )
        finally:
            self._teardown()
        return outcome

    def _require_tracking(self) -> SyncScheduler:
        if self._state is not TrackingState.TRACKING or self._scheduler is None:
            raise NotStartedError("Tracking was not started!")
        return self._scheduler

    def _teardown(self) -> None:
        if self._scheduler is not None and self._scheduler.last_outcome is not None:
            self._last_outcome = self._scheduler.last_outcome
        self._recorder.unbind()
        if self._session is not None:
            self._session.active = False
            self._session.log_file_path = None
        self._session = None
        self._scheduler = None
        self._executor = None
        self._state = TrackingState.IDLE

    def status(self) -> dict[str, Any]:
        session = self._session
        return {
            "state": self._state.value,
            "repo_path": str(self._settings.repo_path),
            "remote_url": session.remote_url if session else None,
            "log_file": str(self._recorder.log_file_path) if self._recorder.log_file_path else None,
            "started_at": session.started_at.isoformat() if session else None,
            "dirty": self._tracker.dirty,
            "open_documents": len(self._recorder.documents),
            "sync_in_flight": bool(self._executor and self._executor.in_flight),
            "sync_interval_seconds": self._settings.sync_interval_seconds,
            "last_sync": self.last_outcome.to_dict() if self.last_outcome else None,
        }


__all__ = [
    "SHUTDOWN_MESSAGE",
    "Session",
    "SessionController",
    "TERMINATE_MESSAGE",
    "TrackingState",
]
