"""Tests for the sync gate."""

import pytest

from quote_reconciliation.gate import (
    MISSING_QUOTE_MESSAGE,
    BlockReason,
    GateState,
    evaluate_sync_gate,
)
from quote_reconciliation.models import QuoteDocumentStatus


@pytest.mark.parametrize("status", ["DRAFT", "draft", "  Draft "])
def test_draft_quotes_are_eligible(status):
    decision = evaluate_sync_gate(status)

    assert decision.state is GateState.ELIGIBLE
    assert decision.can_update
    assert decision.status is QuoteDocumentStatus.DRAFT
    assert decision.message is None


@pytest.mark.parametrize(
    ("status", "parsed"),
    [
        ("ACCEPTED", QuoteDocumentStatus.ACCEPTED),
        ("DECLINED", QuoteDocumentStatus.DECLINED),
        ("SENT", QuoteDocumentStatus.OTHER),
        ("INVOICED", QuoteDocumentStatus.OTHER),
        ("", QuoteDocumentStatus.OTHER),
    ],
)
def test_non_draft_quotes_are_blocked(status, parsed):
    decision = evaluate_sync_gate(status)

    assert decision.state is GateState.BLOCKED
    assert not decision.can_update
    assert decision.reason is BlockReason.STATUS_BLOCKED
    assert decision.status is parsed
    assert "Only DRAFT quotes can be updated" in decision.message


def test_blocked_message_names_the_status():
    decision = evaluate_sync_gate("accepted")

    assert decision.message.startswith("Quote status is ACCEPTED.")


def test_upstream_warning_is_used_verbatim():
    warning = "Quote QU-0042 has been ACCEPTED and cannot be modified."

    decision = evaluate_sync_gate("ACCEPTED", status_warning=warning)

    assert decision.message == warning


def test_warning_is_ignored_for_eligible_quotes():
    decision = evaluate_sync_gate("DRAFT", status_warning="stale warning")

    assert decision.can_update
    assert decision.message is None


def test_missing_quote_is_a_distinct_block_reason():
    decision = evaluate_sync_gate(None)

    assert decision.state is GateState.BLOCKED
    assert decision.reason is BlockReason.MISSING_QUOTE
    assert decision.message == MISSING_QUOTE_MESSAGE
    assert decision.status is None


def test_permitted_statuses_can_be_overridden():
    decision = evaluate_sync_gate("SENT", permitted_statuses=["draft", "sent"])

    assert decision.can_update
    assert decision.status is QuoteDocumentStatus.OTHER


def test_permitted_statuses_default_to_settings(monkeypatch):
    from quote_reconciliation.config import get_settings

    monkeypatch.setenv("QUOTE_UPDATABLE_STATUSES", '["DRAFT", "SENT"]')
    get_settings.cache_clear()

    assert evaluate_sync_gate("SENT").can_update
    assert not evaluate_sync_gate("ACCEPTED").can_update


def test_empty_permitted_set_blocks_everything():
    decision = evaluate_sync_gate("DRAFT", permitted_statuses=[])

    assert not decision.can_update
    assert "Only no quotes" not in decision.message
