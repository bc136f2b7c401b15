"""Payload builders for the MemOS product API.

One pure builder per endpoint:
- build_search_payload: POST /product/search
- build_add_payload: POST /product/add
- build_feedback_payload: POST /product/feedback

Add and feedback share the same message record shape (build_message_records).
"""

import logging
import uuid
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any, Optional

from memos_relay import __version__
from memos_relay.capture.normalizer import sanitize_content
from memos_relay.config import RelaySettings
from memos_relay.constants import (
    DEFAULT_FEEDBACK_CONFIDENCE,
    DEFAULT_SESSION_ID,
    MEMOS_SOURCE,
)
from memos_relay.types import CorrectionInfo, HookContext, Message, RetrievedMemory

logger = logging.getLogger(__name__)

GENERIC_FEEDBACK_CONTENT = "User provided feedback on previous memories"


def _timestamp() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


def build_search_payload(settings: RelaySettings, query: str) -> dict[str, Any]:
    """Build the /product/search request body."""
    payload: dict[str, Any] = {
        "user_id": settings.user_id,
        "query": query,
        "mode": settings.search_mode or "fast",
        "top_k": settings.top_k,
        "pref_top_k": settings.pref_top_k,
        "include_preference": settings.include_preference,
        "search_tool_memory": settings.search_tool_memory,
        "tool_mem_top_k": settings.tool_mem_top_k,
    }
    if settings.session_id:
        payload["session_id"] = settings.session_id
    return payload


def build_message_records(messages: Sequence[Message]) -> list[dict[str, Any]]:
    """Shape captured messages into backend wire records.

    System records carry ``name="system"``; tool records carry a
    ``tool_call_id`` (host value or ``call_<index>``). Records whose content
    is empty after sanitization are dropped.

    Args:
        messages: Captured messages in conversation order

    Returns:
        List of wire records
    """
    records: list[dict[str, Any]] = []
    for index, msg in enumerate(messages):
        content = sanitize_content(msg.content)
        if not content:
            continue
        record: dict[str, Any] = {
            "role": msg.role,
            "content": content,
            "chat_time": _timestamp(),
            "message_id": msg.host_id or str(uuid.uuid4()),
        }
        if msg.role == "system":
            record["name"] = "system"
        elif msg.role == "tool":
            record["tool_call_id"] = msg.tool_call_id or f"call_{index}"
        records.append(record)
    return records


def build_add_payload(
    settings: RelaySettings,
    messages: Sequence[Message],
    ctx: Optional[HookContext] = None,
) -> dict[str, Any]:
    """Build the /product/add request body.

    Args:
        settings: Relay settings (user, tags, extra info, session override)
        messages: Captured messages to store
        ctx: Turn context supplying session key and agent id

    Returns:
        Request body ready for JSON encoding
    """
    session_key = ctx.session_key if ctx else None
    info: dict[str, Any] = {
        "source": MEMOS_SOURCE,
        "sessionKey": session_key,
        "agentId": ctx.agent_id if ctx else None,
        "pluginVersion": __version__,
        "timestamp": _timestamp(),
    }
    if settings.info:
        info.update(settings.info)

    payload: dict[str, Any] = {
        "user_id": settings.user_id,
        "messages": build_message_records(messages),
        "async_mode": settings.async_mode or "async",
        "info": info,
    }

    session_id = settings.session_id or session_key
    if session_id:
        payload["session_id"] = session_id

    if settings.custom_tags:
        payload["custom_tags"] = list(settings.custom_tags)

    total_chars = sum(m.char_count for m in messages)
    logger.debug(f"Built add payload with {len(messages)} messages, {total_chars} total chars")
    return payload


def build_feedback_content(
    correction_message: Optional[str], related_memory: Optional[str]
) -> str:
    """Human-readable description of the correction for the backend."""
    parts = []
    if correction_message:
        parts.append(f'User correction: "{correction_message}".')
    if related_memory:
        parts.append(f'Related memory to correct: "{related_memory}"')
    return " ".join(parts) or GENERIC_FEEDBACK_CONTENT


def build_feedback_payload(
    settings: RelaySettings,
    messages: Sequence[Message],
    retrieved_memories: Optional[Sequence[RetrievedMemory]],
    ctx: Optional[HookContext],
    correction: Optional[CorrectionInfo],
    correction_message: Optional[str] = None,
    related_memory: Optional[str] = None,
) -> dict[str, Any]:
    """Build the /product/feedback request body.

    Args:
        settings: Relay settings
        messages: Captured messages for the ``history`` field
        retrieved_memories: Memories retrieved this turn
        ctx: Turn context supplying the session key
        correction: Detector output (None when no correction was found)
        correction_message: The user's correcting message
        related_memory: Text of the memory most likely being corrected

    Returns:
        Request body ready for JSON encoding
    """
    memory_ids = [m.id for m in retrieved_memories or () if m.id]
    session_key = ctx.session_key if ctx else None

    return {
        "user_id": settings.user_id,
        "session_id": session_key or DEFAULT_SESSION_ID,
        "history": build_message_records(messages),
        "retrieved_memory_ids": memory_ids or None,
        "feedback_content": build_feedback_content(correction_message, related_memory),
        "async_mode": settings.async_mode or "async",
        "corrected_answer": correction is not None,
        "info": {
            "source": MEMOS_SOURCE,
            "pluginVersion": __version__,
            "correction_keywords": list(correction.matched_keywords) if correction else [],
            "confidence": correction.confidence if correction else DEFAULT_FEEDBACK_CONFIDENCE,
            "timestamp": _timestamp(),
        },
    }
