"""
HTTP Probe Scenario

Hits the URL in LOADFLOW_PROBE_URL (defaults to a local server's health
check) and succeeds on any non-error status.
"""

import os

import httpx

from loadflow.scenarios import load

PROBE_URL = os.environ.get("LOADFLOW_PROBE_URL", "http://127.0.0.1:8000/health")


@load(order=10, concurrency=20, duration=10, interval=1)
async def http_probe() -> bool:
    """GET the probe URL."""
    async with httpx.AsyncClient(timeout=5.0) as client:
        try:
            response = await client.get(PROBE_URL)
        except httpx.HTTPError:
            return False
    return response.status_code < 400
