"""Memory backend clients.

- MemoryBackend: protocol the lifecycle hooks depend on
- MemosClient: httpx implementation for the MemOS product API
"""

from memos_relay.client.backend import MemoryBackend
from memos_relay.client.memos_client import MemosClient

__all__ = ["MemoryBackend", "MemosClient"]
