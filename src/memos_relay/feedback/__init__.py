"""Feedback signals for memos-relay.

Detects user corrections so the turn-end feedback hook can tell the
backend which retrieved memories were wrong.
"""

from memos_relay.feedback.detector import (
    correction_confidence,
    detect_correction,
    references_memory,
)

__all__ = [
    "correction_confidence",
    "detect_correction",
    "references_memory",
]
