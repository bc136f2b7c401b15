"""Pytest configuration and shared fixtures for memos-relay tests.

This module provides reusable fixtures for testing:
- env_setup: (autouse) Clears MEMOS_* variables and isolates .env lookup
- settings: RelaySettings with an API key configured
- mock_backend: AsyncMock implementing the MemoryBackend protocol
- conversation: A small raw host conversation

Usage:
    def test_something(settings, mock_backend):
        plugin = MemosPlugin(settings, backend=mock_backend)
"""

import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from memos_relay.config import RelaySettings
from memos_relay.types import BackendResult

# Configure pytest-asyncio
pytest_plugins = ["pytest_asyncio"]


@pytest.fixture(autouse=True)
def env_setup(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Run every test without MEMOS_* variables and outside any .env file."""
    for key in list(os.environ):
        if key.upper().startswith("MEMOS_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    yield


@pytest.fixture
def settings() -> RelaySettings:
    """Settings with an API key so network hooks are not skipped."""
    return RelaySettings(api_key="test-token", base_url="http://memos.test")


def search_response(*memories: dict[str, Any], cube_id: str = "cube_1") -> dict[str, Any]:
    """Build a /product/search response body."""
    return {
        "code": 200,
        "message": "ok",
        "data": {"text_mem": [{"cube_id": cube_id, "memories": list(memories)}]},
    }


@pytest.fixture
def mock_backend() -> MagicMock:
    """Create a mock MemoryBackend.

    Defaults:
    - search returns one memory ("User drinks oat milk latte")
    - add returns a stored memory of the same length as typical input
    - submit_feedback returns success
    """
    backend = MagicMock()
    backend.search = AsyncMock(
        return_value=BackendResult.model_validate(
            search_response(
                {
                    "id": "mem_1",
                    "memory": "User drinks oat milk latte",
                    "metadata": {"confidence": 0.87, "tags": ["preference"]},
                }
            )
        )
    )
    backend.add = AsyncMock(
        return_value=BackendResult(code=200, message="ok", data=[{"memory": "x" * 100}])
    )
    backend.submit_feedback = AsyncMock(return_value=BackendResult(code=200, message="ok"))
    return backend


@pytest.fixture
def conversation() -> list[dict[str, Any]]:
    """Raw host conversation ending with an assistant reply."""
    return [
        {"role": "system", "content": "You are helpful."},
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "ok"},
        {"role": "user", "content": "bye"},
        {"role": "assistant", "content": [{"type": "text", "text": "see you"}]},
    ]


@pytest.fixture
def make_search_response() -> Callable[..., dict[str, Any]]:
    """Factory for /product/search response bodies."""
    return search_response
