"""Lifecycle hooks that connect a chat-agent host to MemOS.

Three handlers:

- on_before_turn (recall): search memories for the prompt and return a
  ``[[user.memory]]`` block to prepend
- on_turn_end_add (add): forward the turn's new messages for storage
- on_turn_end_feedback (feedback): when the user corrects the assistant,
  report it against the memories retrieved this turn

Every handler returns a HookOutcome and never raises into the host: a
failed memory operation degrades to "no memory this turn".

Host integration:
    The host object passed to ``register`` must provide ``on(event,
    handler)`` and may provide ``plugin_config``. Events used:

    - before_agent_start: event {"prompt": str}; returns
      {"prependContext": str} or None
    - agent_end: event {"success": bool, "messages": [...]}

    Contexts may be HookContext objects or mappings such as
    {"sessionKey": "...", "agentId": "..."}.
"""

import logging
from collections.abc import Callable, Mapping, MutableMapping
from typing import Any, Optional, Union

from memos_relay.audit import audit_add_result
from memos_relay.capture import (
    CaptureEngine,
    contains_echoed_memory,
    is_host_command,
    strip_prepended_prompt,
)
from memos_relay.client import MemoryBackend, MemosClient
from memos_relay.config import RelaySettings
from memos_relay.constants import MIN_PROMPT_CHARS
from memos_relay.feedback import detect_correction
from memos_relay.formatting import format_prompt_block, transform_search_results
from memos_relay.payloads import (
    build_add_payload,
    build_feedback_payload,
    build_search_payload,
)
from memos_relay.state import RelayState, ThrottleKind, now_ms
from memos_relay.types import ErrorKind, HookContext, HookOutcome

logger = logging.getLogger(__name__)

PLUGIN_ID = "memos-official-api-plugin"
PLUGIN_NAME = "MemOS Official API Plugin"

HostContext = Union[HookContext, MutableMapping[str, Any], None]


def missing_api_key_message(operation: str) -> str:
    """Setup instructions logged when no API key is configured."""
    return "\n".join(
        [
            f"Missing MEMOS_API_KEY (Token auth); {operation} skipped. Configure it with:",
            "echo 'export MEMOS_API_KEY=\"your-token-here\"' >> ~/.zshrc",
            "source ~/.zshrc",
            "or add apiKey to the plugin config",
            "Get an API key from the MemOS dashboard",
        ]
    )


class MemosPlugin:
    """MemOS lifecycle hooks bound to one settings object and one state.

    Args:
        settings: Relay settings
        backend: Memory backend (default: MemosClient for ``settings``)
        state: Shared relay state (default: fresh state for ``settings``)
        clock: Millisecond clock used by the throttle gate
    """

    def __init__(
        self,
        settings: RelaySettings,
        backend: Optional[MemoryBackend] = None,
        state: Optional[RelayState] = None,
        clock: Callable[[], float] = now_ms,
    ) -> None:
        self.settings = settings
        self.backend = backend if backend is not None else MemosClient(settings)
        self.state = state if state is not None else RelayState.from_settings(settings)
        self.capture = CaptureEngine(settings, self.state.dedup)
        self._clock = clock

    # =========================================================================
    # Helpers
    # =========================================================================

    def _check_api_key(self, operation: str) -> bool:
        """True when a key is configured; warns once per operation otherwise."""
        if self.settings.api_key:
            return True
        if self.state.first_missing_key_warning(operation):
            logger.warning(missing_api_key_message(operation))
        else:
            logger.debug(f"No API key, {operation} skipped")
        return False

    @staticmethod
    def _turn_messages(event: Optional[Mapping[str, Any]]) -> Optional[list[Any]]:
        """Messages of a successful turn, or None when there is nothing to do."""
        if not event or not event.get("success"):
            return None
        messages = event.get("messages")
        if not messages:
            return None
        return list(messages)

    # =========================================================================
    # Recall
    # =========================================================================

    async def on_before_turn(
        self, event: Optional[Mapping[str, Any]], ctx: HookContext
    ) -> HookOutcome:
        """Search memories for the prompt and build the prepend block."""
        try:
            return await self._recall(event, ctx)
        except Exception as e:
            logger.warning(f"Recall failed: {e}")
            return HookOutcome.failed(f"recall error: {e}", ErrorKind.UNEXPECTED)

    async def _recall(
        self, event: Optional[Mapping[str, Any]], ctx: HookContext
    ) -> HookOutcome:
        if not self.settings.recall_enabled:
            logger.debug("Memory recall disabled")
            return HookOutcome.skipped("recall disabled")

        prompt = (event or {}).get("prompt")
        if not isinstance(prompt, str) or len(prompt) < MIN_PROMPT_CHARS:
            logger.debug("Prompt too short for recall")
            return HookOutcome.skipped("prompt too short")

        if is_host_command(prompt):
            logger.debug("Skipping recall, prompt is a host command")
            return HookOutcome.skipped("host command")

        if not self._check_api_key("recall"):
            return HookOutcome.skipped("missing api key")

        query = strip_prepended_prompt(prompt) or prompt
        logger.debug(f"Searching memories for: {query[:50]}...")

        result = await self.backend.search(build_search_payload(self.settings, query))
        if not result.ok:
            logger.warning(f"Search failed: {result.message or 'Unknown error'}")
            ctx.retrieved_memories = None
            return HookOutcome.failed(
                f"search failed: {result.message}", ErrorKind.BACKEND
            )

        memories = transform_search_results(result)
        ctx.retrieved_memories = memories or None
        if not memories:
            logger.debug("No relevant memories found")
            return HookOutcome.skipped("no memories")

        logger.debug(f"Found {len(memories)} relevant memories")

        if not self.settings.show_retrieved_memories:
            return HookOutcome.ok(f"retrieved {len(memories)} memories")

        block = format_prompt_block(memories, wrap_tag_blocks=True, include_headers=True)
        return HookOutcome.ok(f"retrieved {len(memories)} memories", prepend_context=block)

    # =========================================================================
    # Add
    # =========================================================================

    async def on_turn_end_add(
        self, event: Optional[Mapping[str, Any]], ctx: HookContext
    ) -> HookOutcome:
        """Forward the turn's new messages to the backend."""
        try:
            return await self._add(event, ctx)
        except Exception as e:
            logger.warning(f"Add failed: {e}")
            return HookOutcome.failed(f"add error: {e}", ErrorKind.UNEXPECTED)

    async def _add(self, event: Optional[Mapping[str, Any]], ctx: HookContext) -> HookOutcome:
        if not self.settings.add_enabled:
            return HookOutcome.skipped("add disabled")

        raw_messages = self._turn_messages(event)
        if raw_messages is None:
            return HookOutcome.skipped("no successful turn")

        if not self._check_api_key("add"):
            return HookOutcome.skipped("missing api key")

        if not self.state.throttle.claim(ThrottleKind.ADD, self._clock()):
            logger.debug("Throttled memory addition")
            return HookOutcome.skipped("throttled")

        session_key = ctx.session_key
        messages = self.capture.capture(raw_messages, session_key)
        if not messages:
            logger.debug("No messages to capture")
            return HookOutcome.skipped("nothing to capture")

        logger.debug(f"Adding {len(messages)} messages to memory")
        result = await self.backend.add(build_add_payload(self.settings, messages, ctx))

        if not result.ok:
            logger.warning(f"Add failed: {result.message or 'Unknown error'}")
            return HookOutcome.failed(f"add failed: {result.message}", ErrorKind.BACKEND)

        logger.debug("Successfully added to memory")
        self.capture.mark_sent(session_key, messages)
        audit_add_result(messages, result)
        return HookOutcome.ok(f"added {len(messages)} messages")

    # =========================================================================
    # Feedback
    # =========================================================================

    async def on_turn_end_feedback(
        self, event: Optional[Mapping[str, Any]], ctx: HookContext
    ) -> HookOutcome:
        """Report a user correction against this turn's retrieved memories."""
        try:
            return await self._feedback(event, ctx)
        except Exception as e:
            logger.warning(f"MemFeedback failed: {e}")
            return HookOutcome.failed(f"feedback error: {e}", ErrorKind.UNEXPECTED)

    async def _feedback(
        self, event: Optional[Mapping[str, Any]], ctx: HookContext
    ) -> HookOutcome:
        if not self.settings.mem_feedback_enabled:
            return HookOutcome.skipped("feedback disabled")

        raw_messages = self._turn_messages(event)
        if raw_messages is None:
            return HookOutcome.skipped("no successful turn")

        if not self._check_api_key("memfeedback"):
            return HookOutcome.skipped("missing api key")

        now = self._clock()
        if not self.state.throttle.claim(ThrottleKind.FEEDBACK, now):
            elapsed = self.state.throttle.elapsed(ThrottleKind.FEEDBACK, now)
            logger.debug(f"MemFeedback throttled ({elapsed:.0f}ms ago)")
            return HookOutcome.skipped("throttled")

        messages = self.capture.capture(raw_messages, ctx.session_key)
        if not messages:
            logger.debug("No messages for memfeedback")
            return HookOutcome.skipped("nothing to capture")

        last_user = next((m for m in reversed(messages) if m.role == "user"), None)
        if last_user is None:
            logger.debug("No user message to analyze for feedback")
            return HookOutcome.skipped("no user message")

        if contains_echoed_memory(last_user.content) or is_host_command(last_user.content):
            logger.debug("Skipping feedback, message is echoed memory or a host command")
            return HookOutcome.skipped("filtered user message")

        correction = detect_correction(
            last_user.content, self.settings.require_explicit_memory_reference
        )
        if correction is None:
            logger.debug("No correction intent detected, skipping feedback")
            return HookOutcome.skipped("no correction intent")

        logger.info(f'Correction detected: "{", ".join(correction.matched_keywords)}"')

        if not ctx.retrieved_memories:
            logger.debug("No retrieved memories for feedback")
            return HookOutcome.skipped("no retrieved memories")

        payload = build_feedback_payload(
            self.settings,
            messages,
            ctx.retrieved_memories,
            ctx,
            correction,
            correction_message=last_user.content,
            related_memory=ctx.retrieved_memories[0].text,
        )
        result = await self.backend.submit_feedback(payload)

        if not result.ok:
            logger.warning(f"MemFeedback failed: {result.message or 'Unknown error'}")
            return HookOutcome.failed(
                f"feedback failed: {result.message}", ErrorKind.BACKEND
            )

        logger.info("MemFeedback submitted for correction")
        return HookOutcome.ok("feedback submitted")

    # =========================================================================
    # Host adapter
    # =========================================================================

    async def handle_before_agent_start(
        self, event: Optional[Mapping[str, Any]], ctx: HostContext = None
    ) -> Optional[dict[str, str]]:
        """Host-facing recall handler."""
        try:
            context = coerce_context(ctx)
            outcome = await self.on_before_turn(event, context)
            write_back_context(ctx, context)
        except Exception as e:
            logger.warning(f"Recall failed: {e}")
            return None
        if outcome.prepend_context:
            return {"prependContext": outcome.prepend_context}
        return None

    async def handle_agent_end_add(
        self, event: Optional[Mapping[str, Any]], ctx: HostContext = None
    ) -> None:
        """Host-facing add handler."""
        try:
            await self.on_turn_end_add(event, coerce_context(ctx))
        except Exception as e:
            logger.warning(f"Add failed: {e}")

    async def handle_agent_end_feedback(
        self, event: Optional[Mapping[str, Any]], ctx: HostContext = None
    ) -> None:
        """Host-facing feedback handler."""
        try:
            await self.on_turn_end_feedback(event, coerce_context(ctx))
        except Exception as e:
            logger.warning(f"MemFeedback failed: {e}")


def coerce_context(ctx: HostContext) -> HookContext:
    """Return ``ctx`` as a HookContext, parsing host mappings."""
    if isinstance(ctx, HookContext):
        return ctx
    if isinstance(ctx, Mapping):
        return HookContext.from_dict(ctx)
    return HookContext()


def write_back_context(original: HostContext, context: HookContext) -> None:
    """Copy retrieved memories back onto a host mapping context."""
    if isinstance(original, MutableMapping):
        original["retrievedMemories"] = context.retrieved_memories


def register(api: Any, backend: Optional[MemoryBackend] = None) -> MemosPlugin:
    """Register the MemOS hooks on a host plugin API.

    The feedback handler is registered before the add handler so it reads
    the turn's messages before the add handler marks them as sent.

    Args:
        api: Host API providing ``on(event, handler)`` and ``plugin_config``
        backend: Optional backend override

    Returns:
        The registered MemosPlugin
    """
    settings = RelaySettings.from_plugin_config(getattr(api, "plugin_config", None))
    plugin = MemosPlugin(settings, backend=backend)

    logger.info(f"{PLUGIN_NAME} ({PLUGIN_ID}) registered")
    logger.info(f"Base URL: {settings.base_url}, User: {settings.user_id}")

    api.on("before_agent_start", plugin.handle_before_agent_start)
    api.on("agent_end", plugin.handle_agent_end_feedback)
    api.on("agent_end", plugin.handle_agent_end_add)
    return plugin
