"""Load service - ties scenarios, the runner and result storage together."""

import asyncio
from pathlib import Path
from typing import Optional
import logging

from .actions import HttpAction
from .config import LoadFlowConfig, load_configuration
from .engine import LoadRunner
from .models import LoadExecutionPlan, LoadResult, LoadSettings
from .scenarios import LoadTagRegistry, ScenarioLoader
from .storage import Database, ResultStore

logger = logging.getLogger(__name__)


class LoadService:
    """
    Main orchestrator used by the API server.

    Manages:
    - Scenario discovery
    - Running scenarios and ad-hoc HTTP load tests
    - Persisting results

    Runs are serialized with a lock so concurrent requests do not skew each
    other's measurements.

    Usage:
        service = LoadService(db_path="loadflow.db", scenarios_dir="scenarios")
        await service.start()

        result = await service.run_scenario("http_probe")

        await service.stop()
    """

    def __init__(
        self,
        db_path: Path | str = "loadflow.db",
        scenarios_dir: Path | str = "scenarios",
        config_path: Optional[Path | str] = None,
    ):
        self.config_path = Path(config_path) if config_path else None
        self.config = LoadFlowConfig()

        self.database = Database(db_path)
        self.result_store: Optional[ResultStore] = None
        self.registry = LoadTagRegistry()
        self.loader = ScenarioLoader(scenarios_dir, self.registry)
        self.runner: Optional[LoadRunner] = None

        self._running = False
        self._run_lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Start the service."""
        if self._running:
            logger.warning("Load service already running")
            return

        logger.info("Starting load service...")

        if self.config_path is not None:
            self.config = load_configuration(self.config_path)

        await self.database.connect()
        self.result_store = ResultStore(self.database)

        self.loader.load_all()
        self.runner = LoadRunner(self.config.worker)

        self._running = True
        logger.info("Load service started")

    async def stop(self) -> None:
        """Stop the service."""
        if not self._running:
            return

        logger.info("Stopping load service...")
        self._running = False
        await self.database.close()
        logger.info("Load service stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    # -------------------------------------------------------------------------
    # Scenarios
    # -------------------------------------------------------------------------

    def list_scenarios(self) -> list[dict]:
        """Describe discovered scenarios, in execution order."""
        scenarios = []
        for key in self.registry.scenarios():
            tag = self.registry.get(key)
            func = self.registry.get_function(key)
            settings = self.config.scenarios.get(func.__name__, tag.settings)
            scenarios.append({
                "key": key,
                "name": func.__name__,
                "order": tag.order,
                "description": (func.__doc__ or "").strip(),
                "settings": settings.model_dump(mode="json"),
            })
        return scenarios

    async def run_scenario(self, name: str) -> LoadResult:
        """
        Run a discovered scenario and store its result.

        Raises:
            KeyError: If no scenario has that name
            LoadConfigurationError: If the name matches several scenarios
        """
        key = self.registry.find(name)
        if key is None or not self.registry.get(key).is_scenario:
            raise KeyError(name)

        func = self.registry.get_function(key)
        plan = self.registry.get(key).to_plan(
            func, settings=self.config.scenarios.get(func.__name__)
        )
        return await self._run_and_store(plan)

    async def run_http(
        self,
        name: str,
        url: str,
        settings: LoadSettings,
        method: str = "GET",
        expected_status: Optional[int] = None,
    ) -> LoadResult:
        """Load-test an HTTP endpoint and store the result."""
        async with HttpAction(url, method=method, expected_status=expected_status) as action:
            plan = LoadExecutionPlan(name=name, settings=settings, action=action)
            return await self._run_and_store(plan)

    async def _run_and_store(self, plan: LoadExecutionPlan) -> LoadResult:
        async with self._run_lock:
            result = await self.runner.run(plan)
        await self.result_store.save(result)
        return result

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    async def list_results(
        self,
        scenario: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[LoadResult]:
        return await self.result_store.list_all(limit=limit, offset=offset, scenario=scenario)

    async def get_result(self, result_id: str) -> Optional[LoadResult]:
        return await self.result_store.get(result_id)

    async def delete_result(self, result_id: str) -> bool:
        return await self.result_store.delete(result_id)

    async def get_stats(self) -> dict:
        """Service statistics."""
        return {
            "running": self._running,
            "scenarios_loaded": len(self.registry.scenarios()),
            "worker_mode": self.config.worker.mode.value,
            "results_by_scenario": await self.result_store.summary_by_scenario(),
        }
