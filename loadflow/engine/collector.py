"""Result collector - aggregates step outcomes into a LoadResult."""

import asyncio
import math
import time
from typing import Optional
import logging

from ..models import (
    LoadResult,
    StepResultMessage,
    StartLoadMessage,
    RequestStartedMessage,
    BatchCompletedMessage,
    WorkerThreadCountMessage,
)

logger = logging.getLogger(__name__)

_CLOSE = object()


def calculate_percentile(values: list[float], percentile: float) -> float:
    """
    Nearest-rank percentile of ``values``.

    Returns 0 for an empty list.
    """
    if not values:
        return 0.0
    ordered = sorted(values)
    index = math.ceil((percentile / 100.0) * len(ordered)) - 1
    index = max(0, min(index, len(ordered) - 1))
    return ordered[index]


class ResultCollector:
    """
    Mailbox that workers post messages to during a load run.

    Messages are queued without blocking and applied in order by a single
    consumer task, so the counters never need a lock.

    Usage:
        collector = ResultCollector("checkout")
        async with collector:
            collector.post(StartLoadMessage())
            collector.post(StepResultMessage(is_success=True, latency_ms=12.5))
        result = collector.get_result()
    """

    def __init__(self, scenario_name: str):
        self.scenario_name = scenario_name

        self._mailbox: asyncio.Queue = asyncio.Queue()
        self._consumer: Optional[asyncio.Task] = None

        self._total = 0
        self._success = 0
        self._failure = 0
        self._started = 0
        self._in_flight = 0
        self._latencies: list[float] = []
        self._queue_times: list[float] = []
        self._batches_completed = 0
        self._worker_threads_used = 0
        self._start_time: Optional[float] = None

    async def __aenter__(self) -> "ResultCollector":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.close()
        return False

    # -------------------------------------------------------------------------
    # Mailbox
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Start the consumer task."""
        if self._consumer is None:
            self._consumer = asyncio.create_task(self.run())

    def post(self, message) -> None:
        """Queue a message for processing. Never blocks."""
        self._mailbox.put_nowait(message)

    async def run(self) -> None:
        """Process messages until the collector is closed."""
        while True:
            message = await self._mailbox.get()
            if message is _CLOSE:
                break
            self.handle(message)

    async def close(self) -> None:
        """Drain every queued message and stop the consumer."""
        if self._consumer is None:
            return
        self._mailbox.put_nowait(_CLOSE)
        await self._consumer
        self._consumer = None

    # -------------------------------------------------------------------------
    # Message handling
    # -------------------------------------------------------------------------

    def handle(self, message) -> None:
        """Apply a single message to the aggregate counters."""
        if isinstance(message, StepResultMessage):
            self._total += 1
            self._in_flight = max(0, self._in_flight - 1)
            if message.is_success:
                self._success += 1
            else:
                self._failure += 1
            self._latencies.append(message.latency_ms)
            if message.queue_time_ms > 0:
                self._queue_times.append(message.queue_time_ms)
            logger.debug(
                f"Step completed. Success: {self._success}, Failure: {self._failure}, "
                f"In-flight: {self._in_flight}"
            )

        elif isinstance(message, RequestStartedMessage):
            self._started += 1
            self._in_flight += 1

        elif isinstance(message, StartLoadMessage):
            self._start_time = time.monotonic()
            logger.info(f"Load scenario '{self.scenario_name}' started at {message.started_at}")

        elif isinstance(message, BatchCompletedMessage):
            self._batches_completed += 1
            logger.debug(f"Batch {message.batch_number} completed. Total batches: {self._batches_completed}")

        elif isinstance(message, WorkerThreadCountMessage):
            if message.thread_count > self._worker_threads_used:
                self._worker_threads_used = message.thread_count

        else:
            logger.warning(f"Ignoring unknown message type: {type(message).__name__}")

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    def get_result(self) -> LoadResult:
        """Build a snapshot of the metrics collected so far."""
        elapsed = 0.0
        if self._start_time is not None:
            elapsed = time.monotonic() - self._start_time

        latencies = self._latencies
        queue_times = self._queue_times

        # Fraction of the pool's time spent inside actions.
        utilization = 0.0
        if self._worker_threads_used > 0 and elapsed > 0:
            busy_seconds = sum(latencies) / 1000
            utilization = min(1.0, busy_seconds / (self._worker_threads_used * elapsed))

        result = LoadResult(
            scenario_name=self.scenario_name,
            total=self._total,
            success=self._success,
            failure=self._failure,
            time=elapsed,
            max_latency=max(latencies) if latencies else 0.0,
            min_latency=min(latencies) if latencies else 0.0,
            average_latency=sum(latencies) / len(latencies) if latencies else 0.0,
            median_latency=calculate_percentile(latencies, 50),
            percentile_95_latency=calculate_percentile(latencies, 95),
            percentile_99_latency=calculate_percentile(latencies, 99),
            requests_started=self._started,
            requests_in_flight=self._in_flight,
            requests_per_second=self._total / elapsed if elapsed > 0 else 0.0,
            avg_queue_time=sum(queue_times) / len(queue_times) if queue_times else 0.0,
            max_queue_time=max(queue_times) if queue_times else 0.0,
            worker_threads_used=self._worker_threads_used,
            worker_utilization=utilization,
            batches_completed=self._batches_completed,
        )

        logger.info(
            f"Scenario '{self.scenario_name}' completed. Started: {self._started}, "
            f"Completed: {self._total}, In-flight: {self._in_flight}"
        )
        return result
