"""Tests for memos_relay.config."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from memos_relay.config import RelaySettings
from memos_relay.constants import DEFAULT_BASE_URL, DEFAULT_USER_ID


class TestRelaySettings:
    """Test settings defaults and sources."""

    def test_defaults(self) -> None:
        settings = RelaySettings()
        assert settings.base_url == DEFAULT_BASE_URL
        assert settings.user_id == DEFAULT_USER_ID
        assert settings.api_key == ""
        assert settings.capture_strategy == "last_turn"
        assert settings.include_assistant is False
        assert settings.recall_enabled is True
        assert settings.add_enabled is True
        assert settings.mem_feedback_enabled is True
        assert settings.throttle_ms is None
        assert settings.retries == 2
        assert settings.timeout_seconds == 10.0

    def test_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MEMOS_API_KEY", "env-token")
        monkeypatch.setenv("MEMOS_CAPTURE_STRATEGY", "full_session")
        monkeypatch.setenv("MEMOS_CUSTOM_TAGS", '["chat", "cli"]')
        settings = RelaySettings()
        assert settings.api_key == "env-token"
        assert settings.capture_strategy == "full_session"
        assert settings.custom_tags == ["chat", "cli"]

    def test_dotenv_file(self, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("MEMOS_USER_ID=from-file\n", encoding="utf-8")
        assert RelaySettings().user_id == "from-file"

    def test_invalid_values(self) -> None:
        with pytest.raises(ValidationError):
            RelaySettings(capture_strategy="everything")
        with pytest.raises(ValidationError):
            RelaySettings(retries=-1)
        with pytest.raises(ValidationError):
            RelaySettings(timeout_ms=0)


class TestFromPluginConfig:
    """Test host plugin-config mapping."""

    def test_camel_case_keys(self) -> None:
        settings = RelaySettings.from_plugin_config(
            {
                "apiKey": "k",
                "baseUrl": "http://memos.test",
                "captureStrategy": "full_session",
                "includeAssistant": True,
                "throttleMs": 5000,
                "requireExplicitMemoryReference": True,
            }
        )
        assert settings.api_key == "k"
        assert settings.base_url == "http://memos.test"
        assert settings.capture_strategy == "full_session"
        assert settings.include_assistant is True
        assert settings.throttle_ms == 5000
        assert settings.require_explicit_memory_reference is True

    def test_unknown_and_none_ignored(self) -> None:
        settings = RelaySettings.from_plugin_config(
            {"somethingElse": 1, "userId": None, "top_k": 4}
        )
        assert settings.user_id == DEFAULT_USER_ID
        assert settings.top_k == 4

    def test_overrides_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MEMOS_API_KEY", "env-token")
        assert RelaySettings.from_plugin_config({"apiKey": "cfg"}).api_key == "cfg"
        assert RelaySettings.from_plugin_config(None).api_key == "env-token"


def test_masked() -> None:
    assert RelaySettings(api_key="secret-token").masked()["api_key"] == "secr***"
    assert RelaySettings().masked()["api_key"] == ""
