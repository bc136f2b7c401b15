"""Tests for memos_relay.payloads and memos_relay.audit.

Covers:
- Search payload defaults and session override
- Add payload record shaping, info block, session id fallback, tags
- Feedback payload ids, content fallback, info block
- Content-loss audit threshold
"""

import uuid
from datetime import datetime

import pytest

from memos_relay import __version__
from memos_relay.audit import audit, audit_add_result
from memos_relay.config import RelaySettings
from memos_relay.constants import MEMOS_SOURCE
from memos_relay.payloads import (
    GENERIC_FEEDBACK_CONTENT,
    build_add_payload,
    build_feedback_content,
    build_feedback_payload,
    build_message_records,
    build_search_payload,
)
from memos_relay.types import BackendResult, CorrectionInfo, HookContext, Message, RetrievedMemory


def msg(role: str, content: str, original_id: str = "x", **kwargs) -> Message:
    return Message(role=role, content=content, original_id=original_id, **kwargs)


class TestSearchPayload:
    def test_defaults(self) -> None:
        payload = build_search_payload(RelaySettings(user_id="u1"), "coffee")
        assert payload == {
            "user_id": "u1",
            "query": "coffee",
            "mode": "fast",
            "top_k": 10,
            "pref_top_k": 6,
            "include_preference": True,
            "search_tool_memory": True,
            "tool_mem_top_k": 6,
        }

    def test_overrides_and_session(self) -> None:
        settings = RelaySettings(
            search_mode="fine", top_k=3, include_preference=False, session_id="sess"
        )
        payload = build_search_payload(settings, "q")
        assert payload["mode"] == "fine"
        assert payload["top_k"] == 3
        assert payload["include_preference"] is False
        assert payload["session_id"] == "sess"


class TestMessageRecords:
    def test_record_shape(self) -> None:
        records = build_message_records(
            [
                msg("system", "be nice"),
                msg("user", "hello", host_id="host-1"),
                msg("tool", "42"),
                msg("tool", "43", tool_call_id="call_real"),
            ]
        )
        assert records[0]["name"] == "system"
        assert records[1]["message_id"] == "host-1"
        assert records[2]["tool_call_id"] == "call_2"
        assert records[3]["tool_call_id"] == "call_real"
        assert "name" not in records[1]
        assert "tool_call_id" not in records[1]
        uuid.UUID(records[0]["message_id"])
        datetime.fromisoformat(records[0]["chat_time"])

    def test_drops_empty_after_sanitize(self) -> None:
        records = build_message_records([msg("user", "\x00\x01"), msg("user", "ok")])
        assert [r["content"] for r in records] == ["ok"]


class TestAddPayload:
    def test_full_payload(self) -> None:
        settings = RelaySettings(user_id="u1", custom_tags=["chat"], info={"env": "test"})
        ctx = HookContext(session_key="s1", agent_id="main")
        payload = build_add_payload(settings, [msg("user", "hello")], ctx)

        assert payload["user_id"] == "u1"
        assert payload["async_mode"] == "async"
        assert payload["session_id"] == "s1"
        assert payload["custom_tags"] == ["chat"]
        assert payload["messages"][0]["content"] == "hello"
        info = payload["info"]
        assert info["source"] == MEMOS_SOURCE
        assert info["sessionKey"] == "s1"
        assert info["agentId"] == "main"
        assert info["pluginVersion"] == __version__
        assert info["env"] == "test"

    def test_configured_session_id_wins(self) -> None:
        settings = RelaySettings(session_id="fixed")
        payload = build_add_payload(settings, [msg("user", "x")], HookContext(session_key="s1"))
        assert payload["session_id"] == "fixed"

    def test_optional_fields_omitted(self) -> None:
        payload = build_add_payload(RelaySettings(), [msg("user", "x")], None)
        assert "session_id" not in payload
        assert "custom_tags" not in payload


class TestFeedbackPayload:
    def test_full_payload(self) -> None:
        memories = [
            RetrievedMemory(text="Meeting is Monday", id="mem_1"),
            RetrievedMemory(text="no id"),
        ]
        correction = CorrectionInfo(matched_keywords=("不对", "应该是"), confidence=0.95)
        payload = build_feedback_payload(
            RelaySettings(user_id="u1"),
            [msg("user", "不对，应该是周二")],
            memories,
            HookContext(session_key="s1"),
            correction,
            correction_message="不对，应该是周二",
            related_memory="Meeting is Monday",
        )
        assert payload["session_id"] == "s1"
        assert payload["retrieved_memory_ids"] == ["mem_1"]
        assert payload["corrected_answer"] is True
        assert payload["history"][0]["content"] == "不对，应该是周二"
        assert payload["feedback_content"] == (
            'User correction: "不对，应该是周二". Related memory to correct: "Meeting is Monday"'
        )
        assert payload["info"]["correction_keywords"] == ["不对", "应该是"]
        assert payload["info"]["confidence"] == 0.95
        assert payload["info"]["pluginVersion"] == __version__

    def test_fallbacks(self) -> None:
        payload = build_feedback_payload(RelaySettings(), [], None, None, None)
        assert payload["session_id"] == "default_session"
        assert payload["retrieved_memory_ids"] is None
        assert payload["feedback_content"] == GENERIC_FEEDBACK_CONTENT
        assert payload["corrected_answer"] is False
        assert payload["info"]["confidence"] == 0.5
        assert payload["info"]["correction_keywords"] == []

    def test_feedback_content_with_memory_only(self) -> None:
        assert build_feedback_content(None, "m") == 'Related memory to correct: "m"'


class TestAudit:
    def test_threshold(self) -> None:
        assert audit(1000, 750).ok is False
        assert audit(1000, 850).ok is True
        assert audit(1000, 800).ok is True

    def test_audit_add_result(self, caplog: pytest.LogCaptureFixture) -> None:
        messages = [msg("user", "a" * 600), msg("assistant", "b" * 400)]
        result = BackendResult(code=200, data=[{"memory": "c" * 100}])
        with caplog.at_level("WARNING"):
            report = audit_add_result(messages, result)
        assert report is not None
        assert report.ok is False
        assert (report.sent_chars, report.received_chars) == (1000, 100)
        assert "Possible content loss" in caplog.text

    def test_audit_skipped_without_data(self) -> None:
        assert audit_add_result([msg("user", "a")], BackendResult(code=200, data=None)) is None
        assert audit_add_result([msg("user", "a")], BackendResult(code=200, data={"x": 1})) is None
