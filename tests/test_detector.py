"""Tests for memos_relay.feedback.detector."""

import pytest

from memos_relay.feedback import correction_confidence, detect_correction, references_memory


class TestDetectCorrection:
    """Test keyword-based correction detection."""

    def test_chinese_correction(self) -> None:
        info = detect_correction("你说的不对，应该是周二")
        assert info is not None
        assert "不对" in info.matched_keywords
        assert "应该是" in info.matched_keywords
        assert info.confidence == pytest.approx(0.95)

    def test_no_intent(self) -> None:
        assert detect_correction("let's meet tomorrow") is None

    def test_empty_and_non_string(self) -> None:
        assert detect_correction("") is None
        assert detect_correction(None) is None

    def test_single_keyword_confidence(self) -> None:
        info = detect_correction("That is WRONG.")
        assert info is not None
        assert info.matched_keywords == ("wrong",)
        assert info.confidence == pytest.approx(0.7)

    def test_keywords_reported_in_table_order(self) -> None:
        info = detect_correction("actually that was a mistake")
        assert info is not None
        assert info.matched_keywords == ("mistake", "actually")

    def test_substring_matches_count(self) -> None:
        info = detect_correction("add a prefix to the name")
        assert info is not None
        assert info.matched_keywords == ("fix",)

    def test_overlapping_chinese_keywords_all_match(self) -> None:
        info = detect_correction("不对哦")
        assert info is not None
        assert info.matched_keywords == ("不对", "不对哦")

    def test_require_explicit_reference(self) -> None:
        assert detect_correction("that's wrong", require_explicit_reference=True) is None
        info = detect_correction(
            "you said Tuesday but that's wrong", require_explicit_reference=True
        )
        assert info is not None
        assert info.matched_keywords == ("wrong",)


class TestHelpers:
    @pytest.mark.parametrize("count,expected", [(1, 0.7), (2, 0.95), (5, 0.95)])
    def test_confidence_is_capped(self, count: int, expected: float) -> None:
        assert correction_confidence(count) == pytest.approx(expected)

    def test_references_memory(self) -> None:
        assert references_memory("Do you REMEMBER my birthday?")
        assert references_memory("你记得吗")
        assert not references_memory("hello")
