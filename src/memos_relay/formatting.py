"""Search result handling and prompt-block formatting.

transform_search_results flattens the cube/memory tree of a search
response; format_prompt_block renders memories as the block the recall
hook prepends to the prompt.
"""

import logging
from collections.abc import Sequence
from typing import Any, Optional

from memos_relay.constants import (
    DEFAULT_MEMORY_CONFIDENCE,
    DEFAULT_MEMORY_TAGS,
    MEMORY_BLOCK_END,
    MEMORY_BLOCK_START,
)
from memos_relay.types import BackendResult, RetrievedMemory

logger = logging.getLogger(__name__)

PROMPT_BLOCK_HEADER = "# 相关记忆 Retrieved user memories"


def _clamp_confidence(value: Any) -> float:
    try:
        confidence = float(value) if value else DEFAULT_MEMORY_CONFIDENCE
    except (TypeError, ValueError):
        confidence = DEFAULT_MEMORY_CONFIDENCE
    return max(0.0, min(1.0, confidence))


def transform_search_results(result: Optional[BackendResult]) -> list[RetrievedMemory]:
    """Flatten ``data.text_mem[*].memories[*]`` into RetrievedMemory objects.

    Entries without memory text are skipped. Missing confidence defaults to
    0.99 and missing tags to ["未分类"].

    Args:
        result: Backend search result

    Returns:
        Retrieved memories in response order (possibly empty)
    """
    if result is None or not isinstance(result.data, dict):
        return []

    cubes = result.data.get("text_mem")
    if not isinstance(cubes, list):
        return []

    memories: list[RetrievedMemory] = []
    for cube in cubes:
        if not isinstance(cube, dict) or not isinstance(cube.get("memories"), list):
            continue
        for item in cube["memories"]:
            if not isinstance(item, dict) or not item.get("memory"):
                continue
            metadata = item.get("metadata") or {}
            tags = metadata.get("tags") or list(DEFAULT_MEMORY_TAGS)
            memory_id = item.get("id")
            cube_id = cube.get("cube_id")
            memories.append(
                RetrievedMemory(
                    text=str(item["memory"]),
                    confidence=_clamp_confidence(metadata.get("confidence")),
                    tags=[str(tag) for tag in tags],
                    id=str(memory_id) if memory_id is not None else None,
                    cube_id=str(cube_id) if cube_id is not None else None,
                )
            )
    return memories


def format_prompt_block(
    memories: Optional[Sequence[RetrievedMemory]],
    wrap_tag_blocks: bool = True,
    include_headers: bool = True,
) -> Optional[str]:
    """Render retrieved memories as a prompt block.

    Args:
        memories: Memories to render
        wrap_tag_blocks: Render bold text with confidence and tags
        include_headers: Wrap the block in memory markers with a title

    Returns:
        The block text, or None when there are no memories
    """
    if not memories:
        return None

    lines: list[str] = []
    if include_headers:
        lines.append(f"{MEMORY_BLOCK_START}\n\n{PROMPT_BLOCK_HEADER}\n\n")

    for memory in memories:
        if wrap_tag_blocks:
            entry = f"**{memory.text}**\n*置信度: {memory.confidence:.2f}*"
            if memory.tags:
                entry += f" *标签: {', '.join(memory.tags)}*"
            lines.append(entry + "\n\n")
        else:
            lines.append(f"{memory.text}\n\n")

    if include_headers:
        lines.append(f"{MEMORY_BLOCK_END}\n")

    return "".join(lines)
