"""Sync gate: decides whether an accounting quote may be overwritten.

Only quotes in an update-permitted status (DRAFT unless configured
otherwise) are eligible. Accepted, declined and any other status block the
update, as does a deal with no accounting quote at all. A blocked gate is
terminal for the reconciliation pass: no diff is computed.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

import structlog

from quote_reconciliation.config import get_settings
from quote_reconciliation.models import QuoteDocumentStatus

logger = structlog.get_logger(__name__)

MISSING_QUOTE_MESSAGE = "No Xero quotation found for this deal"


class GateState(str, Enum):
    ELIGIBLE = "eligible"
    BLOCKED = "blocked"


class BlockReason(str, Enum):
    MISSING_QUOTE = "missing_quote"
    STATUS_BLOCKED = "status_blocked"


@dataclass(frozen=True)
class GateDecision:
    """Outcome of the sync gate for one quote."""

    state: GateState
    status: QuoteDocumentStatus | None = None
    raw_status: str | None = None
    reason: BlockReason | None = None
    message: str | None = None

    @property
    def can_update(self) -> bool:
        return self.state is GateState.ELIGIBLE


def _permitted(statuses: Iterable[str] | None) -> set[str]:
    if statuses is None:
        statuses = get_settings().updatable_statuses
    return {status.strip().upper() for status in statuses}


def blocked_status_message(raw_status: str, permitted: set[str]) -> str:
    shown = raw_status.strip().upper() or "UNKNOWN"
    if not permitted:
        return f"Quote status is {shown}. No quote status is configured as updatable."
    allowed = " or ".join(sorted(permitted))
    return (
        f"Quote status is {shown}. Only {allowed} quotes can be updated; "
        "this quote can no longer be changed."
    )


def evaluate_sync_gate(
    status: str | None,
    *,
    status_warning: str | None = None,
    permitted_statuses: Iterable[str] | None = None,
) -> GateDecision:
    """Decide whether the accounting quote with ``status`` may be updated.

    Args:
        status: Raw status string from the accounting system, or None when
            the deal has no accounting quote.
        status_warning: Warning supplied upstream for a blocked status. Used
            verbatim as the message when present.
        permitted_statuses: Update-permitted statuses. Defaults to settings.

    Returns:
        The gate decision; ``message`` is set whenever the gate is blocked.
    """
    if status is None:
        logger.info("sync_gate_blocked", reason=BlockReason.MISSING_QUOTE.value)
        return GateDecision(
            state=GateState.BLOCKED,
            reason=BlockReason.MISSING_QUOTE,
            message=status_warning or MISSING_QUOTE_MESSAGE,
        )

    permitted = _permitted(permitted_statuses)
    parsed = QuoteDocumentStatus.parse(status)
    if status.strip().upper() in permitted:
        return GateDecision(state=GateState.ELIGIBLE, status=parsed, raw_status=status)

    logger.info(
        "sync_gate_blocked",
        reason=BlockReason.STATUS_BLOCKED.value,
        status=status,
    )
    return GateDecision(
        state=GateState.BLOCKED,
        status=parsed,
        raw_status=status,
        reason=BlockReason.STATUS_BLOCKED,
        message=status_warning or blocked_status_message(status, permitted),
    )
