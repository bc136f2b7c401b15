"""Process-lifetime relay state: session dedup and throttle windows.

State is owned by a RelayState instance and injected into the plugin, so
tests and hosts control its lifetime. Nothing here is persisted; a process
restart starts from empty state.

Thread safety:
    Hooks normally run as coroutines on one event loop, which already makes
    each handler atomic between awaits. Locks are still held per session
    and per throttle kind so hosts that drive hooks from threads keep the
    at-most-once-per-message and at-most-once-per-window guarantees.
"""

import logging
import threading
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from memos_relay.config import RelaySettings
from memos_relay.constants import FEEDBACK_THROTTLE_MS
from memos_relay.types import Message

logger = logging.getLogger(__name__)


def now_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000.0


class ThrottleKind(str, Enum):
    """Operations with independent cooldown windows."""

    ADD = "add"
    FEEDBACK = "feedback"


# =============================================================================
# Session Dedup Registry
# =============================================================================


class SessionDedupRegistry:
    """Tracks which message identities were delivered, per session.

    A session's set is created on the first successful add and only ever
    grows. Sets are never pruned for the lifetime of the process.
    """

    def __init__(self) -> None:
        self._sent: dict[str, set[str]] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, session_key: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(session_key)
            if lock is None:
                lock = self._locks[session_key] = threading.Lock()
            return lock

    def sent_ids(self, session_key: Optional[str]) -> frozenset[str]:
        """Snapshot of delivered identities (empty without a session key)."""
        if not session_key:
            return frozenset()
        with self._lock_for(session_key):
            return frozenset(self._sent.get(session_key, ()))

    def is_sent(self, session_key: Optional[str], original_id: str) -> bool:
        return original_id in self.sent_ids(session_key)

    def mark_sent(self, session_key: Optional[str], messages: Iterable[Message]) -> int:
        """Record messages as delivered for a session.

        Args:
            session_key: Session to update; None is a no-op
            messages: Messages that the backend accepted

        Returns:
            Number of identities newly added
        """
        messages = list(messages)
        if not session_key or not messages:
            return 0
        with self._lock_for(session_key):
            sent = self._sent.setdefault(session_key, set())
            before = len(sent)
            sent.update(m.original_id for m in messages if m.original_id)
            added = len(sent) - before
        logger.info(f"Marked {len(messages)} messages as sent for session {session_key}")
        return added

    def session_count(self) -> int:
        """Number of sessions with at least one delivered message."""
        with self._registry_lock:
            return len(self._sent)


# =============================================================================
# Throttle Gate
# =============================================================================


class ThrottleGate:
    """Independent cooldown windows for add and feedback operations.

    ``allow`` only reads; ``record`` only writes. Callers record exactly
    when they proceed. ``claim`` does both under the kind's lock.

    Args:
        add_interval_ms: Add cooldown; None or 0 disables throttling
        feedback_interval_ms: Feedback cooldown (default: 30,000)

    Example:
        >>> gate = ThrottleGate(feedback_interval_ms=30_000)
        >>> gate.record(ThrottleKind.FEEDBACK, 0)
        >>> gate.allow(ThrottleKind.FEEDBACK, 15_000)
        False
        >>> gate.allow(ThrottleKind.FEEDBACK, 30_001)
        True
    """

    def __init__(
        self,
        add_interval_ms: Optional[float] = None,
        feedback_interval_ms: float = FEEDBACK_THROTTLE_MS,
    ) -> None:
        self._intervals: dict[ThrottleKind, Optional[float]] = {
            ThrottleKind.ADD: add_interval_ms,
            ThrottleKind.FEEDBACK: feedback_interval_ms,
        }
        self._last_fired: dict[ThrottleKind, Optional[float]] = {
            kind: None for kind in ThrottleKind
        }
        self._locks = {kind: threading.Lock() for kind in ThrottleKind}

    @classmethod
    def from_settings(cls, settings: RelaySettings) -> "ThrottleGate":
        return cls(add_interval_ms=settings.throttle_ms)

    def interval(self, kind: ThrottleKind) -> Optional[float]:
        return self._intervals[kind]

    def last_fired(self, kind: ThrottleKind) -> Optional[float]:
        return self._last_fired[kind]

    def _allow_unlocked(self, kind: ThrottleKind, now: float) -> bool:
        interval = self._intervals[kind]
        last = self._last_fired[kind]
        if not interval or last is None:
            return True
        return now - last >= interval

    def allow(self, kind: ThrottleKind, now: float) -> bool:
        """Check whether ``kind`` may fire at ``now`` (ms). Never mutates."""
        with self._locks[kind]:
            return self._allow_unlocked(kind, now)

    def record(self, kind: ThrottleKind, now: float) -> None:
        """Record that ``kind`` fired at ``now`` (ms)."""
        with self._locks[kind]:
            self._last_fired[kind] = now

    def claim(self, kind: ThrottleKind, now: float) -> bool:
        """Atomically check and record. Returns False when throttled."""
        with self._locks[kind]:
            if not self._allow_unlocked(kind, now):
                return False
            self._last_fired[kind] = now
            return True

    def elapsed(self, kind: ThrottleKind, now: float) -> Optional[float]:
        """Milliseconds since ``kind`` last fired, or None if it never has."""
        last = self._last_fired[kind]
        return None if last is None else now - last


# =============================================================================
# Relay State
# =============================================================================


@dataclass
class RelayState:
    """All mutable state shared by the lifecycle hooks.

    Attributes:
        dedup: Per-session delivered message identities
        throttle: Add and feedback cooldown windows
        warned_missing_key: Operation kinds already warned about a missing key
    """

    dedup: SessionDedupRegistry = field(default_factory=SessionDedupRegistry)
    throttle: ThrottleGate = field(default_factory=ThrottleGate)
    warned_missing_key: set[str] = field(default_factory=set)
    _warn_lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    @classmethod
    def from_settings(cls, settings: RelaySettings) -> "RelayState":
        return cls(throttle=ThrottleGate.from_settings(settings))

    def first_missing_key_warning(self, operation: str) -> bool:
        """Record a missing-key warning for ``operation``.

        Returns:
            True only for the first call per operation kind
        """
        with self._warn_lock:
            if operation in self.warned_missing_key:
                return False
            self.warned_missing_key.add(operation)
            return True
