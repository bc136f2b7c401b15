"""HTTP client for the MemOS product API.

This module provides the MemoryBackend implementation used in production:
- Bearer token authentication
- Per-request timeout
- Linear backoff retries (attempt * 500ms) for network errors, non-2xx
  responses and undecodable bodies
- Soft failure: an exhausted call returns BackendResult(code=500)
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from memos_relay.config import RelaySettings
from memos_relay.constants import (
    ADD_PATH,
    FEEDBACK_PATH,
    RETRY_BACKOFF_SECONDS,
    SEARCH_PATH,
)
from memos_relay.types import BackendResult

logger = logging.getLogger(__name__)


class MemosClient:
    """Async HTTP client implementing the MemoryBackend protocol.

    A fresh httpx.AsyncClient is opened per call, so the client holds no
    connection state between hooks.

    Args:
        settings: Relay settings (base URL, API key, timeout, retries)
        transport: Optional httpx transport (tests use httpx.MockTransport)
        sleep: Coroutine used between retries (default: asyncio.sleep)

    Example:
        >>> client = MemosClient(settings)
        >>> result = await client.search({"user_id": "u1", "query": "coffee"})
        >>> if result.ok:
        ...     print(result.data)
    """

    def __init__(
        self,
        settings: RelaySettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.base_url = settings.base_url.rstrip("/")
        self.api_key = settings.api_key
        self.timeout = settings.timeout_seconds
        self.retries = settings.retries
        self._transport = transport
        self._sleep = sleep

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _post(self, path: str, payload: dict[str, Any], label: str) -> BackendResult:
        """POST ``payload`` with retries.

        Args:
            path: Endpoint path under the base URL
            payload: JSON request body
            label: Operation name used in failure messages

        Returns:
            The decoded BackendResult, or a code-500 result after the last
            attempt failed
        """
        url = f"{self.base_url}{path}"
        attempts = self.retries + 1

        for attempt in range(1, attempts + 1):
            try:
                async with httpx.AsyncClient(
                    timeout=self.timeout, transport=self._transport
                ) as client:
                    response = await client.post(url, json=payload, headers=self._headers())
                    if response.is_error:
                        logger.debug(
                            f"{label} HTTP {response.status_code}: {response.text[:200]}"
                        )
                    response.raise_for_status()
                    return BackendResult.model_validate(response.json())
            except (httpx.HTTPError, ValidationError, ValueError) as e:
                if attempt == attempts:
                    logger.error(f"{label} failed after {self.retries} retries: {e}")
                    return BackendResult.failure(f"{label} failed: {e}")
                logger.debug(f"{label} attempt {attempt}/{attempts} failed: {e}")
                await self._sleep(RETRY_BACKOFF_SECONDS * attempt)

        # Only reachable with a negative retry count
        return BackendResult.failure(f"{label} failed: no attempts made")

    async def search(self, payload: dict[str, Any]) -> BackendResult:
        return await self._post(SEARCH_PATH, payload, "Search")

    async def add(self, payload: dict[str, Any]) -> BackendResult:
        return await self._post(ADD_PATH, payload, "Add")

    async def submit_feedback(self, payload: dict[str, Any]) -> BackendResult:
        return await self._post(FEEDBACK_PATH, payload, "MemFeedback")
