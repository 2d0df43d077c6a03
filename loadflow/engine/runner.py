"""Load runner - the entry point for executing load tests."""

import asyncio
from typing import Any, Callable, Iterable, Optional
import logging

from ..config import LoadWorkerConfiguration
from ..errors import LoadConfigurationError, LoadRunnerTimeoutError
from ..models import LoadExecutionPlan, LoadResult, LoadSettings
from ..scenarios import LoadTagRegistry, default_registry, function_key
from .collector import ResultCollector
from .workers import create_worker

logger = logging.getLogger(__name__)

MIN_WORKER_TIMEOUT_SECONDS = 30.0
WORKER_TIMEOUT_BUFFER_SECONDS = 20.0


class LoadRunner:
    """
    Runs execution plans and returns their aggregated results.

    Each run gets its own collector and worker, so runs never share state.

    Usage:
        runner = LoadRunner(LoadWorkerConfiguration(mode=WorkerMode.HYBRID))
        result = await runner.run(plan)
        print(result.requests_per_second)
    """

    def __init__(self, configuration: Optional[LoadWorkerConfiguration] = None):
        self.configuration = configuration or LoadWorkerConfiguration()

    def worker_timeout(self, settings: LoadSettings) -> float:
        """Upper bound on how long a worker may take before the run is abandoned."""
        return (
            max(MIN_WORKER_TIMEOUT_SECONDS, settings.duration + WORKER_TIMEOUT_BUFFER_SECONDS)
            + settings.effective_graceful_stop_timeout
        )

    async def run(
        self,
        plan: LoadExecutionPlan,
        timeout: Optional[float] = None,
    ) -> LoadResult:
        """
        Execute a load test.

        Args:
            plan: The plan to execute
            timeout: Overrides the computed worker timeout

        Returns:
            Aggregated metrics of the run

        Raises:
            LoadRunnerTimeoutError: If the worker does not finish in time
        """
        if plan.action is None:
            raise LoadConfigurationError(f"Execution plan '{plan.name}' has no action")

        settings = plan.settings
        timeout = timeout if timeout is not None else self.worker_timeout(settings)

        logger.info(
            f"Running '{plan.name}': concurrency={settings.concurrency}, "
            f"duration={settings.duration}s, interval={settings.interval}s, "
            f"mode={self.configuration.mode.value}, "
            f"termination={settings.termination_mode.value}"
        )

        collector = ResultCollector(plan.name)
        async with collector:
            worker = create_worker(plan, collector, self.configuration)
            try:
                await asyncio.wait_for(worker.run(), timeout=timeout)
            except asyncio.TimeoutError as e:
                raise LoadRunnerTimeoutError(
                    f"Load test worker timed out after {timeout} seconds. "
                    f"Test duration was {settings.duration} seconds. "
                    f"Consider increasing test timeout or reducing test complexity."
                ) from e

        result = collector.get_result()

        threshold = self.configuration.worker_utilization_warning_threshold
        if result.worker_utilization > threshold:
            logger.warning(
                f"Scenario '{plan.name}' worker utilization {result.worker_utilization:.2f} "
                f"exceeds {threshold:.2f}; consider raising max_workers"
            )

        logger.info(
            f"Scenario '{plan.name}' finished: total={result.total}, "
            f"success={result.success}, failure={result.failure}, "
            f"p95={result.percentile_95_latency:.2f}ms"
        )
        return result

    def run_sync(self, plan: LoadExecutionPlan, timeout: Optional[float] = None) -> LoadResult:
        """Execute a load test from synchronous code."""
        return asyncio.run(self.run(plan, timeout=timeout))

    async def run_scenarios(
        self,
        funcs: Iterable[Callable[..., Any]],
        registry: Optional[LoadTagRegistry] = None,
        overrides: Optional[dict[str, LoadSettings]] = None,
    ) -> list[LoadResult]:
        """
        Run tagged scenario functions one after another, in tag order.

        Args:
            funcs: Functions tagged with ``load`` settings
            registry: Registry holding their tags
            overrides: Settings by scenario name, replacing the tagged ones

        Returns:
            One result per scenario, in execution order

        Raises:
            LoadConfigurationError: If a function is untagged or has no settings
        """
        registry = registry if registry is not None else default_registry
        overrides = overrides or {}

        ordered = registry.order(funcs)
        plans = []
        for func in ordered:
            tag = registry.get(func)
            if tag is None:
                raise LoadConfigurationError(f"'{function_key(func)}' has no load tag")
            plans.append(tag.to_plan(func, settings=overrides.get(func.__name__)))

        results = []
        for plan in plans:
            results.append(await self.run(plan))
        return results
