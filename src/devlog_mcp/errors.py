"""Exceptions shared across devlog components."""

from __future__ import annotations


class DevlogError(RuntimeError):
    """Base class for devlog errors."""


class NotStartedError(DevlogError):
    """Raised when an operation needs an active tracking session and none exists."""


class AlreadyStartedError(DevlogError):
    """Raised when tracking is started while a session is already active."""


class AppendFailedError(DevlogError):
    """Raised when a log entry cannot be appended to the daily log file."""


__all__ = ["DevlogError", "NotStartedError", "AlreadyStartedError", "AppendFailedError"]
