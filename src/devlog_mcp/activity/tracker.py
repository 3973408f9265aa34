"""Unsynced-change tracking and the open-document logging gate."""

from __future__ import annotations

from typing import Iterable


class ChangeTracker:
    """Dirty flag backed by a revision counter.

    Every append bumps the revision. A sync snapshots the revision before it
    stages anything and, on success, records that snapshot as synced, so an
    append landing while the sync is in flight keeps the tracker dirty.
    """

    def __init__(self) -> None:
        self._revision = 0
        self._synced_revision = 0

    @property
    def dirty(self) -> bool:
        return self._revision != self._synced_revision

    @property
    def revision(self) -> int:
        return self._revision

    def mark_dirty(self) -> int:
        self._revision += 1
        return self._revision

    def snapshot(self) -> int:
        return self._revision

    def mark_synced(self, revision: int) -> None:
        if revision > self._synced_revision:
            self._synced_revision = revision


class OpenDocuments:
    """Tracks which documents the editor currently has open."""

    def __init__(self, initial: Iterable[str] | None = None) -> None:
        self._open: dict[str, int] = {}
        for subject in initial or ():
            self.opened(subject)

    def opened(self, subject: str) -> None:
        self._open[subject] = self._open.get(subject, 0) + 1

    def closed(self, subject: str) -> None:
        count = self._open.get(subject, 0)
        if count <= 1:
            self._open.pop(subject, None)
        else:
            self._open[subject] = count - 1

    def seed(self, subjects: Iterable[str]) -> None:
        for subject in subjects:
            if subject not in self._open:
                self.opened(subject)

    @property
    def active(self) -> bool:
        return bool(self._open)

    def __len__(self) -> int:
        return len(self._open)

    def __contains__(self, subject: object) -> bool:
        return subject in self._open


__all__ = ["ChangeTracker", "OpenDocuments"]
