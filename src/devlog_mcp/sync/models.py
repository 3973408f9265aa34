"""Result types for sync attempts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class SyncStatus(Enum):
    """Status of a sync attempt."""

    COMMITTED = "committed"
    NOTHING_TO_COMMIT = "nothing_to_commit"
    FAILED = "failed"
    SKIPPED = "skipped"  # another attempt was in flight


class SyncStage(Enum):
    ADD = "add"
    COMMIT = "commit"
    PUSH = "push"


@dataclass(slots=True)
class SyncOutcome:
    """Result of one add/commit/push attempt."""

    status: SyncStatus
    message: str
    reason: str = ""
    stage: SyncStage | None = None
    finished_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def ok(self) -> bool:
        return self.status in {SyncStatus.COMMITTED, SyncStatus.NOTHING_TO_COMMIT}

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "stage": self.stage.value if self.stage else None,
            "message": self.message,
            "reason": self.reason,
            "finished_at": self.finished_at.isoformat(),
        }

    @classmethod
    def skipped(cls, reason: str) -> SyncOutcome:
        return cls(status=SyncStatus.SKIPPED, message="A sync is already in progress.", reason=reason)


__all__ = ["SyncOutcome", "SyncStage", "SyncStatus"]
