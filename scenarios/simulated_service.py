"""
Simulated Service Scenarios

Scenarios that need no network, useful for checking a LoadFlow install and
for calibrating worker settings:
1. A fast, always-successful call
2. A slower call with jittered latency and a small failure rate
"""

import asyncio
import logging
import random

from loadflow.scenarios import load

logger = logging.getLogger(__name__)

FAILURE_RATE = 0.05


@load(order=1, concurrency=5, duration=3, interval=0.5)
async def fast_call() -> bool:
    """Always succeeds after a few milliseconds."""
    await asyncio.sleep(0.005)
    return True


@load(order=2, concurrency=10, duration=5, interval=1, termination_mode="complete_current_interval")
async def flaky_call() -> bool:
    """Jittered latency around 50ms, failing about 5% of the time."""
    await asyncio.sleep(random.uniform(0.02, 0.08))
    ok = random.random() >= FAILURE_RATE
    if not ok:
        logger.debug("flaky_call failed")
    return ok
