"""Tests for the memos-relay command line."""

import io
import json

import pytest

from memos_relay.__main__ import main, parse_arguments


class TestParseArguments:
    def test_subcommands(self) -> None:
        assert parse_arguments(["search", "tea"]).query == "tea"
        assert parse_arguments(["hook", "turn-end"]).phase == "turn-end"
        assert parse_arguments(["--log-level", "DEBUG", "config"]).log_level == "DEBUG"

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            parse_arguments([])


class TestMain:
    def test_config_masks_key(self, monkeypatch, capsys) -> None:
        monkeypatch.setenv("MEMOS_API_KEY", "secret-token")
        assert main(["config"]) == 0
        shown = json.loads(capsys.readouterr().out)
        assert shown["api_key"] == "secr***"

    def test_invalid_configuration(self, monkeypatch, capsys) -> None:
        monkeypatch.setenv("MEMOS_CAPTURE_STRATEGY", "everything")
        assert main(["config"]) == 1
        assert "invalid configuration" in capsys.readouterr().err

    def test_detect(self, capsys) -> None:
        assert main(["detect", "不对，应该是周二"]) == 0
        result = json.loads(capsys.readouterr().out)
        assert result["keywords"] == ["不对", "应该是"]
        assert result["confidence"] == pytest.approx(0.95)

    def test_detect_nothing(self, capsys) -> None:
        assert main(["detect", "sounds good"]) == 0
        assert capsys.readouterr().out.strip() == "null"

    def test_search_without_key(self, capsys) -> None:
        assert main(["search", "tea"]) == 1
        assert "MEMOS_API_KEY" in capsys.readouterr().err

    def test_hook_without_key(self, monkeypatch, capsys) -> None:
        payload = {"event": {"prompt": "what do I drink?"}, "context": {"sessionKey": "s1"}}
        monkeypatch.setattr("sys.stdin", io.StringIO(json.dumps(payload)))
        assert main(["hook", "before-turn"]) == 0
        outcomes = json.loads(capsys.readouterr().out)
        assert outcomes["recall"]["status"] == "skipped"
        assert outcomes["recall"]["reason"] == "missing api key"

    def test_hook_turn_end_runs_both(self, monkeypatch, capsys) -> None:
        monkeypatch.setattr("sys.stdin", io.StringIO(""))
        assert main(["hook", "turn-end"]) == 0
        outcomes = json.loads(capsys.readouterr().out)
        assert set(outcomes) == {"feedback", "add"}
        assert outcomes["add"]["reason"] == "no successful turn"

    def test_hook_rejects_non_object(self, monkeypatch, capsys) -> None:
        monkeypatch.setattr("sys.stdin", io.StringIO("[1, 2]"))
        assert main(["hook", "turn-end"]) == 1
        assert "invalid hook input" in capsys.readouterr().err
