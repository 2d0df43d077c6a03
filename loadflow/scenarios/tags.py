"""Load tag - ordering hint (and optional load settings) attached to a function."""

import asyncio
import functools
import inspect
from typing import Any, Callable, Optional
from pydantic import BaseModel, ConfigDict, StrictInt

from ..errors import LoadConfigurationError
from ..models import LoadExecutionPlan, LoadSettings


class LoadTag(BaseModel):
    """
    Metadata attached to a test or scenario function.

    ``order`` is a relative execution-order hint; lower runs first and ties
    keep their declaration order. When ``settings`` is present the tagged
    function is a load scenario that the runner can execute.
    """

    model_config = ConfigDict(frozen=True)

    order: StrictInt = 0
    """Relative execution order."""

    settings: Optional[LoadSettings] = None
    """Load settings, for functions that are load scenarios."""

    @property
    def is_scenario(self) -> bool:
        return self.settings is not None

    def to_plan(
        self,
        func: Callable[[], Any],
        settings: Optional[LoadSettings] = None,
        name: Optional[str] = None,
    ) -> LoadExecutionPlan:
        """
        Build an execution plan running ``func`` as the step action.

        Args:
            func: The tagged function (coroutine functions are awaited,
                plain functions run in a thread)
            settings: Overrides the tag's own settings
            name: Scenario name (defaults to the function name)

        Raises:
            LoadConfigurationError: If neither the tag nor the caller
                provides settings
        """
        settings = settings or self.settings
        if settings is None:
            raise LoadConfigurationError(
                f"'{func.__qualname__}' is tagged without concurrency, duration and interval"
            )

        if inspect.iscoroutinefunction(func):
            action = func
        else:
            @functools.wraps(func)
            async def action():
                return await asyncio.to_thread(func)

        return LoadExecutionPlan(name=name or func.__name__, settings=settings, action=action)
