"""Append-only daily activity log."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable

from ..clock import LocalClock
from ..errors import AppendFailedError
from .events import EventBus, Subscription
from .models import FALLBACK_SUBJECT, ActivityEvent, EventKind, LogEntry
from .tracker import ChangeTracker, OpenDocuments

logger = logging.getLogger(__name__)


class ActivityRecorder:
    """Formats activity events and appends them to the day's log file.

    The recorder only writes while bound to a logs directory and while the
    ``should_log`` gate passes. By default the gate is "at least one document is
    open", fed by ``Opened``/``Closed`` events.
    """

    def __init__(
        self,
        tracker: ChangeTracker,
        *,
        clock: LocalClock | None = None,
        documents: OpenDocuments | None = None,
        should_log: Callable[[], bool] | None = None,
        rollover_at_midnight: bool = True,
    ) -> None:
        self._tracker = tracker
        self._clock = clock or LocalClock()
        self._documents = documents if documents is not None else OpenDocuments()
        self._should_log = should_log or (lambda: self._documents.active)
        self._rollover = rollover_at_midnight
        self._logs_dir: Path | None = None
        self._bound_path: Path | None = None
        self._last_written: Path | None = None

    @property
    def documents(self) -> OpenDocuments:
        return self._documents

    @property
    def bound(self) -> bool:
        return self._logs_dir is not None

    @property
    def logs_dir(self) -> Path | None:
        return self._logs_dir

    @property
    def log_file_path(self) -> Path | None:
        """Path the next entry would be appended to."""

        if self._logs_dir is None:
            return None
        if self._rollover:
            return self._path_for_today(self._logs_dir)
        return self._bound_path

    @property
    def last_written(self) -> Path | None:
        return self._last_written

    def bind(self, logs_dir: Path) -> Path:
        self._logs_dir = Path(logs_dir)
        self._bound_path = self._path_for_today(self._logs_dir)
        return self._bound_path

    def unbind(self) -> None:
        self._logs_dir = None
        self._bound_path = None

    def attach(self, bus: EventBus) -> list[Subscription]:
        return bus.subscribe_all(self.handle)

    def seed_open_documents(self, subjects: Iterable[str]) -> None:
        self._documents.seed(subjects)

    def record(self, kind: str | EventKind, subject: str | None = None) -> LogEntry | None:
        """Record a single-subject event; returns the entry or None when nothing was written."""

        entries = self.handle(ActivityEvent.of(kind, subject))
        return entries[0] if entries else None

    def handle(self, event: ActivityEvent) -> list[LogEntry]:
        real_subjects = [s for s in event.resolved_subjects() if s != FALLBACK_SUBJECT]
        if event.kind is EventKind.OPENED:
            for subject in real_subjects:
                self._documents.opened(subject)
        try:
            path = self.log_file_path
            if path is None or not self._should_log():
                return []
            timestamp = self._clock.time_of_day()
            entries = [
                LogEntry(timestamp=timestamp, kind=event.kind, subject=subject)
                for subject in event.resolved_subjects()
            ]
            self._append(path, entries)
            return entries
        finally:
            if event.kind is EventKind.CLOSED:
                for subject in real_subjects:
                    self._documents.closed(subject)

    def _append(self, path: Path, entries: list[LogEntry]) -> None:
        payload = "".join(entry.render() for entry in entries)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as handle:
                handle.write(payload)
        except OSError as exc:
            raise AppendFailedError(f"Cannot append to {path}: {exc}") from exc
        self._tracker.mark_dirty()
        self._last_written = path
        logger.debug("Appended %d log entries", len(entries), extra={"path": str(path)})

    def _path_for_today(self, logs_dir: Path) -> Path:
        return logs_dir / f"{self._clock.today()}.log"


__all__ = ["ActivityRecorder"]
