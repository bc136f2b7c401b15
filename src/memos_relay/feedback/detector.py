"""Correction intent detection.

Keyword matching over a fixed bilingual (Chinese/English) vocabulary.
Matching is substring containment on the lower-cased text, not a word
match: "fix" also matches inside "prefix". Recall is preferred over
precision here because a false positive costs one feedback call.
"""

import logging
from typing import Optional

from memos_relay.constants import (
    CORRECTION_BASE_CONFIDENCE,
    CORRECTION_KEYWORDS,
    CORRECTION_MAX_CONFIDENCE,
    CORRECTION_STEP_CONFIDENCE,
    MEMORY_REFERENCE_TERMS,
)
from memos_relay.types import CorrectionInfo

logger = logging.getLogger(__name__)


def correction_confidence(match_count: int) -> float:
    """Confidence for ``match_count`` keyword hits, capped at 0.95."""
    return min(
        CORRECTION_BASE_CONFIDENCE + CORRECTION_STEP_CONFIDENCE * match_count,
        CORRECTION_MAX_CONFIDENCE,
    )


def references_memory(text: str) -> bool:
    """True when the text explicitly points at something remembered."""
    lowered = text.lower()
    return any(term in lowered for term in MEMORY_REFERENCE_TERMS)


def detect_correction(
    text: Optional[str], require_explicit_reference: bool = False
) -> Optional[CorrectionInfo]:
    """Scan a user message for correction intent.

    Args:
        text: User message text
        require_explicit_reference: Also require a memory reference term
            (e.g. "you said", "记得") before reporting a correction

    Returns:
        CorrectionInfo with keywords in table order, or None

    Example:
        >>> info = detect_correction("你说的不对，应该是周二")
        >>> info.matched_keywords
        ('不对', '应该是')
        >>> detect_correction("let's meet tomorrow") is None
        True
    """
    if not text or not isinstance(text, str):
        return None

    lowered = text.lower()
    matched = tuple(kw for kw in CORRECTION_KEYWORDS if kw.lower() in lowered)
    if not matched:
        return None

    if require_explicit_reference and not references_memory(lowered):
        logger.debug("Correction keywords found without an explicit memory reference")
        return None

    return CorrectionInfo(
        matched_keywords=matched,
        confidence=correction_confidence(len(matched)),
    )
