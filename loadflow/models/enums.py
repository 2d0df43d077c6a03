"""Enumerations for LoadFlow."""

from enum import Enum


class TerminationMode(str, Enum):
    """How a load run decides to stop creating new batches."""

    DURATION = "duration"
    """Stop scheduling once the duration is reached; in-flight steps get the graceful stop timeout."""

    COMPLETE_CURRENT_INTERVAL = "complete_current_interval"
    """Let the batch in progress finish, but start no new batch after the deadline."""

    STRICT_DURATION = "strict_duration"
    """Cancel in-flight steps at the deadline; cancelled steps are not counted."""


class WorkerMode(str, Enum):
    """Which worker implementation drives a load run."""

    TASK_BASED = "task_based"
    """One asyncio task per step, batches gathered in lockstep."""

    HYBRID = "hybrid"
    """Fixed pool of consumer tasks reading scheduled work from a channel."""
