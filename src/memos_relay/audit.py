"""Content-loss auditing for add operations.

After a successful add, the backend reports the memory text it stored.
If that is much shorter than what was sent, content was probably dropped
or summarized away. The audit only logs; it never blocks or retries.
"""

import logging
from collections.abc import Sequence
from typing import Optional

from memos_relay.constants import CONTENT_LOSS_THRESHOLD
from memos_relay.types import AuditReport, BackendResult, Message

logger = logging.getLogger(__name__)


def audit(sent_chars: int, received_chars: int) -> AuditReport:
    """Flag a possible loss when received < sent * 0.8."""
    ok = received_chars >= sent_chars * CONTENT_LOSS_THRESHOLD
    return AuditReport(ok=ok, sent_chars=sent_chars, received_chars=received_chars)


def audit_add_result(
    messages: Sequence[Message], result: BackendResult
) -> Optional[AuditReport]:
    """Audit a successful add result against the messages sent.

    Args:
        messages: Messages included in the add payload
        result: Backend result whose ``data`` lists stored memories

    Returns:
        AuditReport, or None when the backend reported no stored memory
    """
    data = result.data
    if not isinstance(data, list) or not data:
        return None

    first = data[0]
    stored = first.get("memory") if isinstance(first, dict) else None
    sent_chars = sum(m.char_count for m in messages)
    report = audit(sent_chars, len(stored or ""))

    if not report.ok:
        logger.warning(
            f"Possible content loss: sent {report.sent_chars} chars, "
            f"received {report.received_chars} chars"
        )
    else:
        logger.debug(f"Content preserved: {report.received_chars}/{report.sent_chars} chars")
    return report
