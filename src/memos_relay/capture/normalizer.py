"""Content normalization for raw host messages.

Turns a raw host message (a JSON-like mapping) into canonical role and
sanitized text, or rejects it. Rejected messages never reach the backend:

- messages without a role or without text
- echoed memory blocks previously injected by the recall hook
- host commands such as ``/new`` or ``/reset``
- roles outside system/user/assistant/tool after mapping
"""

import logging
from collections.abc import Mapping
from typing import Any, Optional

from memos_relay.config import RelaySettings
from memos_relay.constants import (
    CONTROL_CHARS_RE,
    HOST_COMMAND_PATTERNS,
    MAX_CONTENT_CHARS,
    MEMORY_BLOCK_END,
    MEMORY_BLOCK_START,
    NONCHARACTER_RE,
    ROLE_MAPPING,
    TRUNCATION_SUFFIX,
    USER_QUERY_MARKER,
    VALID_ROLES,
    ZERO_WIDTH_RE,
)
from memos_relay.types import PreparedContent

logger = logging.getLogger(__name__)


def extract_text(content: Any) -> str:
    """Extract plain text from a message content field.

    Args:
        content: A string, a list of typed blocks, or anything else

    Returns:
        The text; blocks of type "text" are joined with a single space.
        Any other shape yields an empty string.
    """
    if isinstance(content, str):
        return content
    if isinstance(content, (list, tuple)):
        return " ".join(
            str(block.get("text", ""))
            for block in content
            if isinstance(block, Mapping) and block.get("type") == "text"
        )
    return ""


def sanitize_content(content: str) -> str:
    """Strip control, zero-width and noncharacter code points."""
    if not content:
        return content
    content = CONTROL_CHARS_RE.sub("", content)
    content = ZERO_WIDTH_RE.sub("", content)
    return NONCHARACTER_RE.sub("", content)


def contains_echoed_memory(content: Optional[str]) -> bool:
    """True when the text carries both memory block markers."""
    if not content:
        return False
    return MEMORY_BLOCK_START in content and MEMORY_BLOCK_END in content


def is_host_command(content: Optional[str]) -> bool:
    """True when the text is a host command or a session-reset notice."""
    if not content:
        return False
    trimmed = content.strip()
    return any(pattern.search(trimmed) for pattern in HOST_COMMAND_PATTERNS)


def strip_prepended_prompt(content: str) -> str:
    """Drop host-prepended context that precedes the raw user query."""
    if not content:
        return content
    idx = content.rfind(USER_QUERY_MARKER)
    if idx == -1:
        return content
    return content[idx + len(USER_QUERY_MARKER) :].lstrip()


def map_role(role: str) -> Optional[str]:
    """Map a host role onto the canonical set, or None if unsupported."""
    mapped = ROLE_MAPPING.get(role, role)
    if mapped not in VALID_ROLES:
        return None
    return mapped


def prepare_message(
    raw: Mapping[str, Any], settings: RelaySettings
) -> Optional[PreparedContent]:
    """Normalize a raw host message.

    Pure: the same input always yields an equal result.

    Args:
        raw: Host message mapping with ``role`` and ``content``
        settings: Relay settings (controls truncation)

    Returns:
        PreparedContent, or None when the message is rejected
    """
    if not isinstance(raw, Mapping):
        return None

    role = raw.get("role")
    if not role:
        return None

    # Filters see sanitized text
    content = sanitize_content(extract_text(raw.get("content")))
    if not content:
        return None

    if contains_echoed_memory(content):
        logger.debug("Rejected message: contains echoed memory block")
        return None

    if is_host_command(content):
        logger.debug("Rejected message: host command")
        return None

    canonical = map_role(str(role))
    if canonical is None:
        logger.debug(f"Rejected message: unsupported role '{role}'")
        return None

    if not settings.preserve_full_content and len(content) > MAX_CONTENT_CHARS:
        content = content[:MAX_CONTENT_CHARS] + TRUNCATION_SUFFIX

    return PreparedContent(role=canonical, content=content)  # type: ignore[arg-type]
