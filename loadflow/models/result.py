"""Load result model - aggregated metrics of one load run."""

from datetime import datetime, timezone
from pydantic import BaseModel, Field
from uuid import uuid4


class LoadResult(BaseModel):
    """
    Aggregated outcome of a load run.

    Built by the result collector once the worker has finished, and
    persisted by the result store.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    """Unique identifier for this run."""

    scenario_name: str
    """Name of the execution plan that was run."""

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Counts
    total: int = 0
    success: int = 0
    failure: int = 0

    time: float = 0.0
    """Seconds between the run starting and the result being taken."""

    # Latency (milliseconds)
    max_latency: float = 0.0
    min_latency: float = 0.0
    average_latency: float = 0.0
    median_latency: float = 0.0
    percentile_95_latency: float = 0.0
    percentile_99_latency: float = 0.0

    # Request tracking
    requests_started: int = 0
    requests_in_flight: int = 0

    # Throughput
    requests_per_second: float = 0.0
    avg_queue_time: float = 0.0
    max_queue_time: float = 0.0

    # Resource utilization
    worker_threads_used: int = 0
    worker_utilization: float = 0.0
    batches_completed: int = 0

    @property
    def success_rate(self) -> float:
        """Fraction of completed steps that succeeded."""
        if self.total == 0:
            return 0.0
        return self.success / self.total

    @property
    def is_success(self) -> bool:
        """True when at least one step ran and none failed."""
        return self.total > 0 and self.failure == 0
