"""Activity event and log entry models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

FALLBACK_SUBJECT = "Workspace event"


class EventKind(Enum):
    """Fixed vocabulary of editor activity."""

    MODIFIED = "Modified"
    OPENED = "Opened"
    CLOSED = "Closed"
    SAVED = "Saved"
    WORKSPACE_FOLDERS_CHANGED = "WorkspaceFoldersChanged"
    CREATED = "Created"
    DELETED = "Deleted"
    RENAMED = "Renamed"

    @property
    def label(self) -> str:
        """Text written into the log line."""

        return _LABELS.get(self, self.value)

    @classmethod
    def parse(cls, raw: str | EventKind) -> EventKind:
        """Resolve a kind from its value, label, member name or host event name."""

        if isinstance(raw, EventKind):
            return raw
        key = _normalize(raw)
        try:
            return _LOOKUP[key]
        except KeyError as exc:
            choices = ", ".join(kind.value for kind in cls)
            raise ValueError(f"Unknown event kind '{raw}'. Expected one of: {choices}") from exc


_LABELS = {EventKind.WORKSPACE_FOLDERS_CHANGED: "Workspace folders changed"}

_HOST_EVENTS = {
    "document-modified": EventKind.MODIFIED,
    "document-opened": EventKind.OPENED,
    "document-closed": EventKind.CLOSED,
    "document-saved": EventKind.SAVED,
    "workspace-folders-changed": EventKind.WORKSPACE_FOLDERS_CHANGED,
    "files-created": EventKind.CREATED,
    "files-deleted": EventKind.DELETED,
    "files-renamed": EventKind.RENAMED,
}


def _normalize(raw: str) -> str:
    return "".join(ch for ch in raw.lower() if ch.isalnum())


_LOOKUP: dict[str, EventKind] = {}
for _kind in EventKind:
    _LOOKUP[_normalize(_kind.value)] = _kind
    _LOOKUP[_normalize(_kind.name)] = _kind
    _LOOKUP[_normalize(_kind.label)] = _kind
for _name, _kind in _HOST_EVENTS.items():
    _LOOKUP[_normalize(_name)] = _kind


@dataclass(frozen=True, slots=True)
class ActivityEvent:
    """An editor notification: one kind, zero or more affected subjects."""

    kind: EventKind
    subjects: tuple[str, ...] = ()

    @classmethod
    def of(cls, kind: str | EventKind, subject: str | Iterable[str] | None = None) -> ActivityEvent:
        if subject is None:
            subjects: tuple[str, ...] = ()
        elif isinstance(subject, str):
            subjects = (subject,)
        else:
            subjects = tuple(subject)
        return cls(kind=EventKind.parse(kind), subjects=subjects)

    def resolved_subjects(self) -> tuple[str, ...]:
        """Subjects to log; a subject-less event logs the workspace fallback once."""

        # One entry per line; embedded newlines would split it.
        cleaned = tuple(
            subject.replace("\r", " ").replace("\n", " ").strip()
            for subject in self.subjects
            if subject and subject.strip()
        )
        return cleaned or (FALLBACK_SUBJECT,)


@dataclass(frozen=True, slots=True)
class LogEntry:
    """One appended line of the daily log."""

    timestamp: str
    kind: EventKind
    subject: str

    def render(self) -> str:
        return f"{self.timestamp} - {self.kind.label}: {self.subject}\n"


__all__ = ["ActivityEvent", "EventKind", "FALLBACK_SUBJECT", "LogEntry"]
