"""HTTP actions - load-test an endpoint with httpx."""

from typing import Any, Optional
import logging

import httpx

logger = logging.getLogger(__name__)


class HttpAction:
    """
    Step action that sends one HTTP request.

    The step succeeds when the response status matches
    ``expected_status`` (or is below 400 when none is given). Transport
    errors count as failures rather than aborting the run.

    The client is shared across steps so connections are pooled; use the
    action as an async context manager, or call ``aclose()`` when done.
    """

    def __init__(
        self,
        url: str,
        method: str = "GET",
        expected_status: Optional[int] = None,
        timeout: float = 10.0,
        headers: Optional[dict[str, str]] = None,
        json: Any = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.method = method.upper()
        self.expected_status = expected_status
        self.headers = headers or {}
        self.json = json
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def __call__(self) -> bool:
        try:
            response = await self.client.request(
                self.method,
                self.url,
                headers=self.headers,
                json=self.json,
            )
        except httpx.HTTPError as e:
            logger.debug(f"{self.method} {self.url} failed: {e}")
            return False

        if self.expected_status is not None:
            return response.status_code == self.expected_status
        return response.status_code < 400

    async def aclose(self) -> None:
        """Close the underlying client if this action created it."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "HttpAction":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.aclose()
        return False
