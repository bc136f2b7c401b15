"""Memory backend protocol.

The lifecycle hooks depend only on this protocol, so the HTTP client can
be swapped for a fake in tests or for another transport.

API Contract:
    - search(payload) -> BackendResult
    - add(payload) -> BackendResult
    - submit_feedback(payload) -> BackendResult

Implementations never raise for transport failures; they return a
BackendResult with a non-200 code instead.
"""

from typing import Any, Protocol, runtime_checkable

from memos_relay.types import BackendResult

__all__ = ["MemoryBackend"]


@runtime_checkable
class MemoryBackend(Protocol):
    """Protocol for long-term memory backends.

    Example:
        >>> class FakeBackend:
        ...     async def search(self, payload): ...
        ...     async def add(self, payload): ...
        ...     async def submit_feedback(self, payload): ...
        >>> isinstance(FakeBackend(), MemoryBackend)
        True
    """

    async def search(self, payload: dict[str, Any]) -> BackendResult:
        """Search memories relevant to ``payload["query"]``."""
        ...

    async def add(self, payload: dict[str, Any]) -> BackendResult:
        """Store conversation messages."""
        ...

    async def submit_feedback(self, payload: dict[str, Any]) -> BackendResult:
        """Report a user correction against retrieved memories."""
        ...
