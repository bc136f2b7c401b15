"""Configuration settings for memos-relay.

This module provides Pydantic Settings for configuration management.
Settings are loaded from environment variables with the MEMOS_ prefix
(and an optional .env file), or from a host plugin-config mapping that
uses the host's camelCase option names.
"""

from collections.abc import Mapping
from typing import Any, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from memos_relay.constants import DEFAULT_BASE_URL, DEFAULT_USER_ID

# Type alias for capture strategy selection
CaptureStrategy = Literal["full_session", "last_turn"]

# Host plugin-config names -> settings field names
PLUGIN_CONFIG_FIELDS: dict[str, str] = {
    "baseUrl": "base_url",
    "apiKey": "api_key",
    "userId": "user_id",
    "recallEnabled": "recall_enabled",
    "addEnabled": "add_enabled",
    "memFeedbackEnabled": "mem_feedback_enabled",
    "captureStrategy": "capture_strategy",
    "includeAssistant": "include_assistant",
    "preserveFullContent": "preserve_full_content",
    "throttleMs": "throttle_ms",
    "searchMode": "search_mode",
    "topK": "top_k",
    "prefTopK": "pref_top_k",
    "includePreference": "include_preference",
    "searchToolMemory": "search_tool_memory",
    "toolMemTopK": "tool_mem_top_k",
    "sessionId": "session_id",
    "customTags": "custom_tags",
    "info": "info",
    "asyncMode": "async_mode",
    "showRetrievedMemories": "show_retrieved_memories",
    "requireExplicitMemoryReference": "require_explicit_memory_reference",
    "timeoutMs": "timeout_ms",
    "retries": "retries",
    "logLevel": "log_level",
}


class RelaySettings(BaseSettings):
    """Configuration settings for the memory relay.

    Attributes:
        base_url: MemOS server base URL
        api_key: Bearer token; every network operation is skipped without it
        user_id: User identifier sent with every payload
        recall_enabled: Gate for the before-turn recall hook
        add_enabled: Gate for the turn-end add hook
        mem_feedback_enabled: Gate for the turn-end feedback hook
        capture_strategy: 'last_turn' or 'full_session'
        include_assistant: Forward assistant messages under 'last_turn'
        preserve_full_content: Disable the 10,000 character truncation
        throttle_ms: Minimum interval between add operations (None disables)
        timeout_ms: Per-request timeout
        retries: Retries after the first failed attempt
    """

    model_config = SettingsConfigDict(
        env_prefix="MEMOS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Allow extra env vars without error
    )

    # Connection
    base_url: str = Field(default=DEFAULT_BASE_URL, description="MemOS server base URL")
    api_key: str = Field(default="", description="Bearer token for the MemOS API")
    user_id: str = Field(default=DEFAULT_USER_ID, description="MemOS user identifier")
    timeout_ms: int = Field(default=10_000, gt=0, description="Request timeout in ms")
    retries: int = Field(default=2, ge=0, description="Retries after a failed attempt")

    # Hook gates
    recall_enabled: bool = True
    add_enabled: bool = True
    mem_feedback_enabled: bool = True

    # Capture
    capture_strategy: CaptureStrategy = "last_turn"
    include_assistant: bool = False
    preserve_full_content: bool = True
    throttle_ms: Optional[int] = Field(
        default=None, ge=0, description="Add cooldown in ms (unset disables)"
    )

    # Search
    search_mode: str = "fast"
    top_k: int = Field(default=10, gt=0)
    pref_top_k: int = Field(default=6, gt=0)
    include_preference: bool = True
    search_tool_memory: bool = True
    tool_mem_top_k: int = Field(default=6, gt=0)
    show_retrieved_memories: bool = True

    # Add / feedback payload extras
    session_id: Optional[str] = None
    custom_tags: list[str] = Field(default_factory=list)
    info: dict[str, Any] = Field(default_factory=dict)
    async_mode: str = "async"
    require_explicit_memory_reference: bool = False

    # Logging
    log_level: str = Field(
        default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    @classmethod
    def from_plugin_config(
        cls, plugin_config: Optional[Mapping[str, Any]] = None
    ) -> "RelaySettings":
        """Build settings from a host plugin-config mapping.

        Keys may use the host's camelCase names or the field names. Values
        given here override environment variables; unknown keys are ignored.

        Args:
            plugin_config: Mapping from the host's plugin configuration

        Returns:
            Validated RelaySettings
        """
        values: dict[str, Any] = {}
        for key, value in (plugin_config or {}).items():
            field_name = PLUGIN_CONFIG_FIELDS.get(key, key)
            if field_name in cls.model_fields and value is not None:
                values[field_name] = value
        return cls(**values)

    @property
    def timeout_seconds(self) -> float:
        """Request timeout in seconds for the HTTP client."""
        return self.timeout_ms / 1000.0

    def masked(self) -> dict[str, Any]:
        """Dump settings with the API key masked, for display."""
        data = self.model_dump()
        if self.api_key:
            data["api_key"] = f"{self.api_key[:4]}***"
        return data
