"""Message types for the capture pipeline.

A Message is the normalized, canonical-role form of a raw host message.
It is created by the capture engine and never mutated afterwards; the
session dedup registry tracks it by ``original_id``.
"""

from dataclasses import dataclass
from typing import Literal, Optional

Role = Literal["system", "user", "assistant", "tool"]


@dataclass(frozen=True, slots=True)
class PreparedContent:
    """Normalizer output before an identity is attached.

    Attributes:
        role: Canonical role
        content: Sanitized (and possibly truncated) text
    """

    role: Role
    content: str


@dataclass(frozen=True, slots=True)
class Message:
    """A captured conversation message.

    Attributes:
        role: Canonical role (system, user, assistant, tool)
        content: Sanitized text content
        original_id: Identity key used for session deduplication
        host_id: Identifier supplied by the host, if any
        tool_call_id: Tool call identifier supplied by the host, if any
    """

    role: Role
    content: str
    original_id: str
    host_id: Optional[str] = None
    tool_call_id: Optional[str] = None

    @property
    def char_count(self) -> int:
        """Length of the content in characters."""
        return len(self.content)
