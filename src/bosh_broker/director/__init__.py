"""BOSH director access."""

from .client import (
    ACTIVE_TASK_STATES,
    TASK_DONE,
    TASK_FAILED,
    TASK_PROCESSING,
    TASK_QUEUED,
    DirectorClient,
)

__all__ = [
    "ACTIVE_TASK_STATES",
    "TASK_DONE",
    "TASK_FAILED",
    "TASK_PROCESSING",
    "TASK_QUEUED",
    "DirectorClient",
]
