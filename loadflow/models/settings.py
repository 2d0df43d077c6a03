"""Load settings and execution plans."""

from typing import Any, Awaitable, Callable, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import TerminationMode


MIN_GRACEFUL_STOP_SECONDS = 5.0
MAX_GRACEFUL_STOP_SECONDS = 60.0
GRACEFUL_STOP_FRACTION = 0.3


class LoadSettings(BaseModel):
    """
    Timing and concurrency parameters of a load run.

    All durations are in seconds.
    """

    model_config = ConfigDict(frozen=True)

    concurrency: int = Field(ge=1)
    """Number of steps started in each batch."""

    duration: float = Field(gt=0)
    """Total time window during which batches are scheduled."""

    interval: float = Field(gt=0)
    """Time between the starts of successive batches."""

    graceful_stop_timeout: Optional[float] = Field(default=None, ge=0)
    """How long to wait for in-flight steps after the duration expires."""

    termination_mode: TerminationMode = TerminationMode.DURATION
    """How the run decides to stop creating new batches."""

    @property
    def effective_graceful_stop_timeout(self) -> float:
        """
        Graceful stop timeout, defaulting to 30% of the duration.

        The default is bounded between 5 and 60 seconds.
        """
        if self.graceful_stop_timeout is not None:
            return self.graceful_stop_timeout
        return min(
            max(self.duration * GRACEFUL_STOP_FRACTION, MIN_GRACEFUL_STOP_SECONDS),
            MAX_GRACEFUL_STOP_SECONDS,
        )


class LoadExecutionPlan(BaseModel):
    """A named action to hammer with the given settings."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    """Scenario name, used for logging and stored results."""

    settings: LoadSettings

    action: Callable[[], Awaitable[Any]]
    """Coroutine function executed once per step; its truthiness is the outcome."""

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Execution plan name must not be empty")
        return value
