"""Message capture for memos-relay.

- normalizer: raw host message -> canonical role and sanitized text
- strategy: which messages of a conversation to forward, with session dedup
"""

from memos_relay.capture.normalizer import (
    contains_echoed_memory,
    extract_text,
    is_host_command,
    map_role,
    prepare_message,
    sanitize_content,
    strip_prepended_prompt,
)
from memos_relay.capture.strategy import (
    CaptureEngine,
    find_last_user_index,
    message_identity,
)

__all__ = [
    "CaptureEngine",
    "contains_echoed_memory",
    "extract_text",
    "find_last_user_index",
    "is_host_command",
    "map_role",
    "message_identity",
    "prepare_message",
    "sanitize_content",
    "strip_prepended_prompt",
]
