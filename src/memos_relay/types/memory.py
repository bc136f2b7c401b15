"""Memory-side types: what the backend returns and what feedback carries.

- RetrievedMemory: one memory flattened out of a search response
- CorrectionInfo: output of the correction detector
- HookContext: the per-turn host context shared by the lifecycle hooks
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class RetrievedMemory(BaseModel):
    """A memory returned by the search endpoint.

    Attributes:
        text: Memory text
        confidence: Backend confidence score from 0.0 to 1.0
        tags: Backend tags for the memory
        id: Backend memory identifier
        cube_id: Identifier of the cube that holds the memory
    """

    model_config = ConfigDict(frozen=True)

    text: str
    confidence: float = Field(default=0.99, ge=0.0, le=1.0)
    tags: list[str] = Field(default_factory=list)
    id: Optional[str] = None
    cube_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class CorrectionInfo:
    """Correction intent found in a user message.

    Attributes:
        matched_keywords: Keywords found, in keyword-table order
        confidence: Detection confidence, capped at 0.95
    """

    matched_keywords: tuple[str, ...]
    confidence: float


@dataclass
class HookContext:
    """Per-turn context handed to every lifecycle hook.

    The recall hook attaches ``retrieved_memories`` and the feedback hook
    reads them back within the same turn. The list is either None or
    non-empty.

    Attributes:
        session_key: Identifier grouping messages of one conversation
        agent_id: Identifier of the host agent
        retrieved_memories: Memories found by the recall hook this turn
    """

    session_key: Optional[str] = None
    agent_id: Optional[str] = None
    retrieved_memories: Optional[list[RetrievedMemory]] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HookContext":
        """Create a HookContext from a host context mapping.

        Args:
            data: Host context with camelCase or snake_case keys

        Returns:
            Parsed HookContext
        """
        raw_memories = data.get("retrieved_memories") or data.get("retrievedMemories")
        memories: Optional[list[RetrievedMemory]] = None
        if isinstance(raw_memories, (list, tuple)):
            memories = []
            for item in raw_memories:
                if isinstance(item, RetrievedMemory):
                    memories.append(item)
                    continue
                try:
                    memories.append(RetrievedMemory.model_validate(item))
                except ValidationError as e:
                    logger.debug(f"Dropping invalid retrieved memory: {e}")
            memories = memories or None
        elif raw_memories:
            logger.debug(f"Ignoring retrieved memories of type {type(raw_memories).__name__}")
        return cls(
            session_key=data.get("session_key") or data.get("sessionKey"),
            agent_id=data.get("agent_id") or data.get("agentId"),
            retrieved_memories=memories,
        )
