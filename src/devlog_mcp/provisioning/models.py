"""Outcome types for repository provisioning."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ProvisionStatus(Enum):
    READY = "ready"
    CLONED = "cloned"
    FAILED = "failed"


class ProvisionFailure(Enum):
    NO_REMOTE_PROVIDED = "no_remote_provided"
    CLONE_FAILED = "clone_failed"
    VERIFY_FAILED = "verify_failed"
    NOT_A_REPOSITORY = "not_a_repository"


@dataclass(slots=True)
class ProvisionResult:
    """Holds the outcome of ensuring a local working copy."""

    status: ProvisionStatus
    path: Path
    message: str
    remote_url: str | None = None
    error: ProvisionFailure | None = None

    @property
    def ok(self) -> bool:
        return self.status is not ProvisionStatus.FAILED

    @classmethod
    def failed(cls, path: Path, error: ProvisionFailure, message: str) -> ProvisionResult:
        return cls(status=ProvisionStatus.FAILED, path=path, message=message, error=error)


__all__ = ["ProvisionFailure", "ProvisionResult", "ProvisionStatus"]
