"""Log synchronization: executor pipeline and scheduler."""

from .executor import SyncExecutor
from .models import SyncOutcome, SyncStage, SyncStatus
from .scheduler import PERIODIC_MESSAGE, SyncScheduler

__all__ = [
    "PERIODIC_MESSAGE",
    "SyncExecutor",
    "SyncOutcome",
    "SyncScheduler",
    "SyncStage",
    "SyncStatus",
]
