"""Type system for memos-relay.

The key types are:
- Message: normalized conversation message with a dedup identity
- RetrievedMemory: memory flattened out of a search response
- CorrectionInfo: correction intent found in a user message
- HookContext: per-turn host context shared by the lifecycle hooks
- BackendResult: envelope returned by every backend call
- HookOutcome: discriminated result of a hook run
- AuditReport: content-loss audit result

Example:
    >>> from memos_relay.types import HookContext
    >>> ctx = HookContext.from_dict({"sessionKey": "s1", "agentId": "main"})
    >>> ctx.session_key
    's1'
"""

from memos_relay.types.memory import CorrectionInfo, HookContext, RetrievedMemory
from memos_relay.types.message import Message, PreparedContent, Role
from memos_relay.types.results import (
    AuditReport,
    BackendResult,
    ErrorKind,
    HookOutcome,
    HookStatus,
)

__all__ = [
    # Capture
    "Message",
    "PreparedContent",
    "Role",
    # Memory
    "RetrievedMemory",
    "CorrectionInfo",
    "HookContext",
    # Results
    "BackendResult",
    "HookOutcome",
    "HookStatus",
    "ErrorKind",
    "AuditReport",
]
