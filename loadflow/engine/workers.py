"""Load workers - generate load by executing a plan's action in batches."""

import asyncio
import os
import time
import traceback
from abc import ABC, abstractmethod
from typing import Optional
import logging

from ..config import LoadWorkerConfiguration
from ..models import (
    LoadExecutionPlan,
    TerminationMode,
    WorkerMode,
    StepResultMessage,
    StartLoadMessage,
    RequestStartedMessage,
    BatchCompletedMessage,
    WorkerThreadCountMessage,
)
from .collector import ResultCollector

logger = logging.getLogger(__name__)


class LoadWorker(ABC):
    """
    Base class for workers.

    A worker owns the scheduling loop of one load run. It reports every
    step to the result collector and never lets an action's exception
    abort the run.
    """

    mode: WorkerMode

    def __init__(
        self,
        plan: LoadExecutionPlan,
        collector: ResultCollector,
        configuration: Optional[LoadWorkerConfiguration] = None,
    ):
        self.plan = plan
        self.collector = collector
        self.configuration = configuration or LoadWorkerConfiguration()

    @property
    def name(self) -> str:
        return f"{self.mode.value}:{self.plan.name}"

    @abstractmethod
    async def run(self) -> None:
        """Generate load until the plan's termination condition is met."""
        pass

    async def _execute_step(
        self,
        scheduled_at: Optional[float] = None,
        batch_number: Optional[int] = None,
    ) -> None:
        """Run the action once and post its outcome."""
        loop = asyncio.get_running_loop()
        self.collector.post(RequestStartedMessage())

        queue_time_ms = 0.0
        if scheduled_at is not None:
            queue_time_ms = (loop.time() - scheduled_at) * 1000
            if queue_time_ms > self.configuration.queue_time_warning_ms:
                logger.warning(
                    f"[{self.name}] High queue time {queue_time_ms:.2f}ms "
                    f"for work item from batch {batch_number}"
                )

        start = time.perf_counter()
        try:
            outcome = bool(await self.plan.action())
        except Exception as e:
            outcome = False
            logger.error(
                f"[{self.name}] Step from batch {batch_number} raised: {e}\n"
                f"{traceback.format_exc()}"
            )
        latency_ms = (time.perf_counter() - start) * 1000

        self.collector.post(
            StepResultMessage(
                is_success=outcome,
                latency_ms=latency_ms,
                queue_time_ms=queue_time_ms,
            )
        )

        if self.configuration.enable_detailed_metrics:
            logger.debug(f"[{self.name}] Result: {outcome}, Latency: {latency_ms:.2f} ms")

    def _drain_timeout(self, deadline: float) -> Optional[float]:
        """
        How long to wait for in-flight work once scheduling has stopped.

        None means wait until it completes.
        """
        settings = self.plan.settings
        mode = settings.termination_mode
        if mode == TerminationMode.STRICT_DURATION:
            return max(0.0, deadline - asyncio.get_running_loop().time())
        if mode == TerminationMode.COMPLETE_CURRENT_INTERVAL:
            return None
        return max(0.0, deadline - asyncio.get_running_loop().time()) + (
            settings.effective_graceful_stop_timeout
        )


class TaskBasedWorker(LoadWorker):
    """
    Runs each batch as ``concurrency`` tasks gathered together.

    The next batch starts ``interval`` seconds after the previous one has
    finished.
    """

    mode = WorkerMode.TASK_BASED

    async def run(self) -> None:
        settings = self.plan.settings
        loop = asyncio.get_running_loop()
        deadline = loop.time() + settings.duration

        self.collector.post(StartLoadMessage())
        self.collector.post(WorkerThreadCountMessage(thread_count=settings.concurrency))
        logger.info(f"Worker '{self.name}' started load test")

        batch_number = 0
        try:
            while loop.time() < deadline:
                batch = asyncio.gather(
                    *(self._execute_step(batch_number=batch_number) for _ in range(settings.concurrency))
                )
                try:
                    await asyncio.wait_for(batch, timeout=self._drain_timeout(deadline))
                except asyncio.TimeoutError:
                    logger.warning(
                        f"Worker '{self.name}' cancelled batch {batch_number} at the end of the run"
                    )
                    break

                self.collector.post(
                    BatchCompletedMessage(batch_number=batch_number, items_processed=settings.concurrency)
                )
                batch_number += 1

                remaining = deadline - loop.time()
                if remaining <= 0:
                    break
                await asyncio.sleep(min(settings.interval, remaining))
        finally:
            logger.info(f"Worker '{self.name}' has completed load testing after {batch_number} batches")


class HybridWorker(LoadWorker):
    """
    Fixed pool of consumer tasks fed by a scheduler through a channel.

    The scheduler enqueues one batch per interval, aligned to the run's
    start time, so slow steps delay their own batch without shifting the
    schedule. Time spent waiting in the channel is reported as queue time.
    """

    mode = WorkerMode.HYBRID

    def __init__(
        self,
        plan: LoadExecutionPlan,
        collector: ResultCollector,
        configuration: Optional[LoadWorkerConfiguration] = None,
    ):
        super().__init__(plan, collector, configuration)
        self.worker_count = self.calculate_worker_count()

    def calculate_worker_count(self) -> int:
        """Pool size: configured, or two per core scaled up with concurrency."""
        if self.configuration.max_workers:
            return self.configuration.max_workers

        cores = os.cpu_count() or 1
        scaled = max(cores * 2, self.plan.settings.concurrency // 10)
        count = min(scaled, min(1000, cores * 50))

        logger.info(
            f"Calculated worker count: {count} (cores: {cores}, "
            f"concurrency: {self.plan.settings.concurrency})"
        )
        return count

    async def run(self) -> None:
        settings = self.plan.settings
        loop = asyncio.get_running_loop()
        start = loop.time()
        deadline = start + settings.duration

        channel: asyncio.Queue = asyncio.Queue(maxsize=self.configuration.channel_capacity or 0)

        self.collector.post(StartLoadMessage())
        self.collector.post(WorkerThreadCountMessage(thread_count=self.worker_count))
        logger.info(f"Worker '{self.name}' started load test with {self.worker_count} consumers")

        consumers = [
            asyncio.create_task(self._consume(worker_id, channel))
            for worker_id in range(self.worker_count)
        ]
        try:
            await self._schedule(channel, start, deadline)

            # Consumers never exit on their own; they are cancelled once the
            # backlog is done or the drain timeout expires.
            try:
                await asyncio.wait_for(channel.join(), timeout=self._drain_timeout(deadline))
            except asyncio.TimeoutError:
                if settings.termination_mode == TerminationMode.STRICT_DURATION:
                    logger.info(
                        f"Worker '{self.name}' dropping {channel.qsize()} queued items at the deadline"
                    )
                else:
                    logger.warning(
                        f"Worker '{self.name}' cancelling steps still running after the "
                        f"graceful stop timeout ({channel.qsize()} items never started)"
                    )
        finally:
            for consumer in consumers:
                consumer.cancel()
            await asyncio.gather(*consumers, return_exceptions=True)
            logger.info(f"Worker '{self.name}' has completed load testing")

    async def _schedule(self, channel: asyncio.Queue, start: float, deadline: float) -> None:
        """
        Enqueue one batch per interval until the deadline.

        With a bounded channel a put waits for room, but never past the
        deadline; a batch cut short there is not counted as scheduled.
        """
        settings = self.plan.settings
        loop = asyncio.get_running_loop()
        batch_number = 0
        scheduled = 0

        while loop.time() < deadline:
            for _ in range(settings.concurrency):
                if not await self._put_before(channel, (batch_number, loop.time()), deadline):
                    logger.warning(
                        f"Worker '{self.name}' channel full at the deadline; "
                        f"batch {batch_number} only partly scheduled"
                    )
                    logger.info(f"Work scheduling completed. Total items scheduled: {scheduled}")
                    return
                scheduled += 1

            logger.debug(
                f"Batch {batch_number} scheduled with {settings.concurrency} items. "
                f"Total scheduled: {scheduled}"
            )
            self.collector.post(
                BatchCompletedMessage(batch_number=batch_number, items_processed=settings.concurrency)
            )
            batch_number += 1

            next_batch = min(start + batch_number * settings.interval, deadline)
            delay = next_batch - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)

        logger.info(f"Work scheduling completed. Total items scheduled: {scheduled}")

    async def _put_before(self, channel: asyncio.Queue, item, deadline: float) -> bool:
        """Put ``item`` on the channel, waiting for room until ``deadline`` at most."""
        try:
            channel.put_nowait(item)
            return True
        except asyncio.QueueFull:
            pass

        remaining = deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            return False
        try:
            await asyncio.wait_for(channel.put(item), timeout=remaining)
        except asyncio.TimeoutError:
            return False
        return True

    async def _consume(self, worker_id: int, channel: asyncio.Queue) -> None:
        """Execute work items until cancelled."""
        processed = 0
        try:
            while True:
                batch_number, scheduled_at = await channel.get()
                try:
                    await self._execute_step(scheduled_at=scheduled_at, batch_number=batch_number)
                    processed += 1
                finally:
                    channel.task_done()
        finally:
            logger.debug(f"Consumer {worker_id} stopped. Processed {processed} items")


WORKER_TYPES: dict[WorkerMode, type[LoadWorker]] = {
    WorkerMode.TASK_BASED: TaskBasedWorker,
    WorkerMode.HYBRID: HybridWorker,
}


def create_worker(
    plan: LoadExecutionPlan,
    collector: ResultCollector,
    configuration: Optional[LoadWorkerConfiguration] = None,
) -> LoadWorker:
    """Create the worker for the configured mode."""
    configuration = configuration or LoadWorkerConfiguration()
    worker_type = WORKER_TYPES.get(WorkerMode(configuration.mode))
    if worker_type is None:
        raise ValueError(f"Worker mode {configuration.mode} is not implemented")
    return worker_type(plan, collector, configuration)
