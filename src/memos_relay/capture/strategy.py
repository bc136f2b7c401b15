"""Capture strategies: which conversation messages to forward.

Two strategies are supported:

- ``last_turn`` (default): the last user message and everything after it,
  optionally without assistant messages
- ``full_session``: every message in the conversation

Both skip messages whose identity is already recorded as sent for the
session. Capturing is read-only; delivery is recorded by ``mark_sent``
after the backend accepts the write.

Identity:
    A message's identity is its host ``id`` when present, otherwise
    ``"{role}_{index}"`` where ``index`` is the position in the full
    conversation. Both strategies use the same rule so a message keeps its
    identity whichever path sees it.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Optional

from memos_relay.capture.normalizer import prepare_message
from memos_relay.config import RelaySettings
from memos_relay.state import SessionDedupRegistry
from memos_relay.types import Message

logger = logging.getLogger(__name__)


def message_identity(raw: Mapping[str, Any], index: int) -> str:
    """Identity key for dedup: host id, else ``role_index``."""
    host_id = raw.get("id") if isinstance(raw, Mapping) else None
    if host_id:
        return str(host_id)
    role = raw.get("role") if isinstance(raw, Mapping) else None
    return f"{role}_{index}"


def _tool_call_id(raw: Mapping[str, Any]) -> Optional[str]:
    value = raw.get("toolCallId") or raw.get("tool_call_id")
    return str(value) if value else None


def find_last_user_index(messages: Sequence[Mapping[str, Any]]) -> Optional[int]:
    """Index of the last message with role ``user``, or None."""
    for idx in range(len(messages) - 1, -1, -1):
        msg = messages[idx]
        if isinstance(msg, Mapping) and msg.get("role") == "user":
            return idx
    return None


class CaptureEngine:
    """Selects and deduplicates messages for delivery.

    Args:
        settings: Relay settings (strategy, assistant inclusion, truncation)
        registry: Session dedup registry shared with the add hook

    Example:
        >>> engine = CaptureEngine(settings, registry)
        >>> messages = engine.capture(event_messages, "session-1")
        >>> # ... backend accepted the write ...
        >>> engine.mark_sent("session-1", messages)
    """

    def __init__(self, settings: RelaySettings, registry: SessionDedupRegistry) -> None:
        self._settings = settings
        self._registry = registry

    def capture(
        self,
        messages: Sequence[Mapping[str, Any]],
        session_key: Optional[str],
    ) -> list[Message]:
        """Select the messages to forward for this turn.

        Args:
            messages: Full conversation in host order
            session_key: Session used for dedup; None disables dedup

        Returns:
            Captured messages in conversation order
        """
        if not messages:
            return []

        sent = self._registry.sent_ids(session_key)

        if self._settings.capture_strategy == "full_session":
            candidates = list(enumerate(messages))
            skip_assistant = False
        else:
            last_user = find_last_user_index(messages)
            if last_user is None:
                logger.debug("No user message in conversation, nothing to capture")
                return []
            candidates = [(idx, messages[idx]) for idx in range(last_user, len(messages))]
            skip_assistant = not self._settings.include_assistant

        results: list[Message] = []
        for idx, raw in candidates:
            if not isinstance(raw, Mapping):
                continue
            identity = message_identity(raw, idx)
            if identity in sent:
                continue
            if skip_assistant and raw.get("role") == "assistant":
                continue
            prepared = prepare_message(raw, self._settings)
            if prepared is None:
                continue
            host_id = raw.get("id")
            results.append(
                Message(
                    role=prepared.role,
                    content=prepared.content,
                    original_id=identity,
                    host_id=str(host_id) if host_id else None,
                    tool_call_id=_tool_call_id(raw),
                )
            )

        logger.debug(
            f"Captured {len(results)}/{len(messages)} messages "
            f"({self._settings.capture_strategy}, session={session_key})"
        )
        return results

    def mark_sent(self, session_key: Optional[str], messages: Iterable[Message]) -> int:
        """Record captured messages as delivered. See SessionDedupRegistry."""
        return self._registry.mark_sent(session_key, messages)
