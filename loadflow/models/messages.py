"""Messages posted by workers to the result collector."""

from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StepResultMessage(BaseModel):
    """
    Outcome of a single executed step.

    Immutable once created: it is handed from a worker task to the
    collector and may be read from any task without locking. Two messages
    with the same fields compare equal.
    """

    model_config = ConfigDict(frozen=True)

    is_success: bool
    """Whether the step succeeded."""

    latency_ms: float = 0.0
    """Wall-clock time spent inside the step's action."""

    queue_time_ms: float = 0.0
    """Time between the step being scheduled and it starting (hybrid worker only)."""

    @classmethod
    def create(cls, is_success: bool) -> "StepResultMessage":
        """Create a message carrying only the outcome flag."""
        return cls(is_success=is_success)


class StartLoadMessage(BaseModel):
    """The load run clock has started."""

    model_config = ConfigDict(frozen=True)

    started_at: datetime = Field(default_factory=_utcnow)


class RequestStartedMessage(BaseModel):
    """A step has been picked up and is about to execute."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=_utcnow)


class BatchCompletedMessage(BaseModel):
    """A batch of steps has been dispatched (hybrid) or completed (task-based)."""

    model_config = ConfigDict(frozen=True)

    batch_number: int
    items_processed: int
    completed_at: datetime = Field(default_factory=_utcnow)


class WorkerThreadCountMessage(BaseModel):
    """Number of concurrent workers the run is using."""

    model_config = ConfigDict(frozen=True)

    thread_count: int
