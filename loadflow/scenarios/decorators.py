"""The ``load`` decorator."""

from typing import Any, Callable, Optional
from pydantic import ValidationError

from ..errors import LoadConfigurationError
from ..models import LoadSettings, TerminationMode
from .registry import LoadTagRegistry, active_registry
from .tags import LoadTag


def load(
    order: int | Callable[..., Any] = 0,
    *,
    concurrency: Optional[int] = None,
    duration: Optional[float] = None,
    interval: Optional[float] = None,
    graceful_stop_timeout: Optional[float] = None,
    termination_mode: TerminationMode = TerminationMode.DURATION,
    registry: Optional[LoadTagRegistry] = None,
):
    """
    Tag a function with an execution-order hint.

    The tag is registered when the decorated function is defined, so a
    duplicate tag fails at import time rather than when tests run.

    Example:
        @load(order=1)
        def test_warm_cache():
            ...

        @load(order=2, concurrency=10, duration=30, interval=1)
        async def checkout() -> bool:
            ...

    Args:
        order: Relative execution order (lower runs first)
        concurrency: Steps per batch; together with ``duration`` and
            ``interval`` this makes the function a load scenario
        duration: Seconds during which batches are scheduled
        interval: Seconds between batches
        graceful_stop_timeout: Seconds to wait for in-flight steps
        termination_mode: How the run stops
        registry: Registry to record the tag in (the active registry
            if omitted)

    Raises:
        LoadConfigurationError: If the arguments are invalid, or only some
            of ``concurrency``/``duration``/``interval`` are given
        DuplicateLoadTagError: If the function is already tagged
    """
    if callable(order):
        # Used bare: @load
        return load()(order)

    timing = (concurrency, duration, interval)
    settings = None
    if any(value is not None for value in timing):
        if not all(value is not None for value in timing):
            raise LoadConfigurationError(
                "concurrency, duration and interval must be given together"
            )
        try:
            settings = LoadSettings(
                concurrency=concurrency,
                duration=duration,
                interval=interval,
                graceful_stop_timeout=graceful_stop_timeout,
                termination_mode=termination_mode,
            )
        except ValidationError as e:
            raise LoadConfigurationError(f"Invalid load settings: {e}") from e

    try:
        tag = LoadTag(order=order, settings=settings)
    except ValidationError as e:
        raise LoadConfigurationError(f"Invalid load tag: {e}") from e

    target_registry = registry if registry is not None else active_registry()

    def decorator(func):
        target_registry.register(func, tag)
        return func

    return decorator
