"""Activity events, the logging gate and the daily log recorder."""

from .events import EventBus, Subscription
from .models import ActivityEvent, EventKind, FALLBACK_SUBJECT, LogEntry
from .recorder import ActivityRecorder
from .tracker import ChangeTracker, OpenDocuments

__all__ = [
    "ActivityEvent",
    "ActivityRecorder",
    "ChangeTracker",
    "EventBus",
    "EventKind",
    "FALLBACK_SUBJECT",
    "LogEntry",
    "OpenDocuments",
    "Subscription",
]
