"""Result types for backend calls, hook runs and content audits."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from memos_relay.constants import FAILURE_CODE, SUCCESS_CODE


class BackendResult(BaseModel):
    """Envelope returned by every MemOS product endpoint.

    Transport failures are folded into this shape (code 500) so callers
    branch on ``code`` rather than on exceptions.

    Attributes:
        code: Application result code (200 on success)
        message: Backend or transport message
        data: Endpoint-specific payload
    """

    model_config = ConfigDict(extra="allow")

    code: int
    message: Optional[str] = None
    data: Any = None

    @property
    def ok(self) -> bool:
        """True when the backend reported success."""
        return self.code == SUCCESS_CODE

    @classmethod
    def failure(cls, message: str) -> "BackendResult":
        """Build the soft-failure result for an exhausted call."""
        return cls(code=FAILURE_CODE, message=message, data=None)


class HookStatus(str, Enum):
    """How a lifecycle hook run ended.

    - OK: the hook performed its side effect
    - SKIPPED: a gate, throttle or empty input stopped it early
    - FAILED: the backend or the hook itself failed
    """

    OK = "ok"
    SKIPPED = "skipped"
    FAILED = "failed"


class ErrorKind(str, Enum):
    """Failure categories reported by hooks."""

    CONFIGURATION = "configuration"
    TRANSPORT = "transport"
    BACKEND = "backend"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class HookOutcome:
    """Result of a single lifecycle hook run.

    Attributes:
        status: OK, SKIPPED or FAILED
        reason: Short description of what happened
        prepend_context: Prompt block to inject (recall hook only)
        error_kind: Failure category when status is FAILED
    """

    status: HookStatus
    reason: str
    prepend_context: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, reason: str, prepend_context: Optional[str] = None) -> "HookOutcome":
        return cls(HookStatus.OK, reason, prepend_context=prepend_context)

    @classmethod
    def skipped(cls, reason: str) -> "HookOutcome":
        return cls(HookStatus.SKIPPED, reason)

    @classmethod
    def failed(cls, reason: str, error_kind: ErrorKind) -> "HookOutcome":
        return cls(HookStatus.FAILED, reason, error_kind=error_kind)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for CLI output."""
        return {
            "status": self.status.value,
            "reason": self.reason,
            "prepend_context": self.prepend_context,
            "error_kind": self.error_kind.value if self.error_kind else None,
        }


@dataclass(frozen=True)
class AuditReport:
    """Outcome of comparing sent and stored character counts.

    Attributes:
        ok: False when the stored text looks truncated
        sent_chars: Characters sent to the backend
        received_chars: Characters the backend reported storing
    """

    ok: bool
    sent_chars: int
    received_chars: int
