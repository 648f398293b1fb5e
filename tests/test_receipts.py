"""Tests for the decision receipt ledger."""

from dataclasses import replace

import pytest

from config.constants import GATE_GREEN, GATE_RED, GATE_YELLOW
from recorder.core import StopRule, load_receipts
from recorder.receipts import (
    HASHED_FIELDS,
    ReceiptEvent,
    ReceiptLedger,
    format_timestamp,
    gate_for_confidence,
    hashable_fields,
    recompute_hash,
)

EPOCH_MS = 1_767_600_000_000


def _event(action="NAVIGATE", confidence=0.92, reason=None, accountable="AI"):
    return ReceiptEvent(
        action=action,
        confidence=confidence,
        responsible_party="AI",
        accountable_party=accountable,
        reason=reason,
    )


class TestGate:
    """Tests for the three-tier confidence gate."""

    @pytest.mark.parametrize("confidence,gate", [
        (1.0, GATE_GREEN),
        (0.80, GATE_GREEN),
        (0.7999, GATE_YELLOW),
        (0.62, GATE_YELLOW),
        (0.60, GATE_YELLOW),
        (0.5999, GATE_RED),
        (0.0, GATE_RED),
    ])
    def test_thresholds(self, confidence, gate):
        assert gate_for_confidence(confidence) == gate


class TestTimestamp:
    """Tests for display timestamps."""

    def test_epoch(self):
        assert format_timestamp(0) == "00:00:00.000"

    def test_millisecond_precision(self):
        assert format_timestamp(3_723_045) == "01:02:03.045"


class TestAppend:
    """Tests for ReceiptLedger.append."""

    def test_first_receipt(self):
        ledger = ReceiptLedger()
        receipt = ledger.append(_event(), now=EPOCH_MS)

        assert receipt.id == "RCP-000001"
        assert receipt.sequence_index == 0
        assert receipt.timestamp_ms == EPOCH_MS
        assert receipt.timestamp == format_timestamp(EPOCH_MS)
        assert receipt.gate == GATE_GREEN
        assert len(ledger) == 1

    def test_sequence_is_dense(self):
        ledger = ReceiptLedger()
        receipts = [ledger.append(_event(), now=EPOCH_MS + i) for i in range(5)]
        assert [r.sequence_index for r in receipts] == [0, 1, 2, 3, 4]
        assert receipts[-1].id == "RCP-000005"

    def test_content_hash_matches_fields(self):
        ledger = ReceiptLedger()
        receipt = ledger.append(_event(), now=EPOCH_MS)
        assert receipt.content_hash == recompute_hash(receipt)

    def test_hash_covers_only_hashed_fields(self):
        ledger = ReceiptLedger()
        receipt = ledger.append(_event(), now=EPOCH_MS)

        assert set(hashable_fields(receipt)) == set(HASHED_FIELDS)
        # merkle_depth and timestamp_ms are outside the hash
        assert recompute_hash(replace(receipt, merkle_depth=7)) == receipt.content_hash
        assert recompute_hash(replace(receipt, timestamp_ms=0)) == receipt.content_hash
        assert recompute_hash(replace(receipt, gate=GATE_RED)) != receipt.content_hash

    def test_clock_used_when_no_time_given(self):
        ledger = ReceiptLedger(clock=lambda: EPOCH_MS + 42)
        assert ledger.append(_event()).timestamp_ms == EPOCH_MS + 42

    def test_timestamps_never_decrease(self):
        ledger = ReceiptLedger()
        ledger.append(_event(), now=EPOCH_MS + 1000)
        late = ledger.append(_event(), now=EPOCH_MS)
        assert late.timestamp_ms == EPOCH_MS + 1000

    def test_emits_telemetry(self):
        ReceiptLedger().append(_event(), now=EPOCH_MS)
        records = [r for r in load_receipts() if r["receipt_type"] == "decision_receipt"]
        assert records[0]["receipt_id"] == "RCP-000001"


class TestContract:
    """Tests for rejected events."""

    def test_unknown_action(self):
        with pytest.raises(StopRule):
            ReceiptLedger().append(_event(action="LOITER"))

    @pytest.mark.parametrize("confidence", [-0.01, 1.01])
    def test_confidence_out_of_range(self, confidence):
        with pytest.raises(StopRule):
            ReceiptLedger().append(_event(confidence=confidence))

    def test_escalate_needs_reason(self):
        with pytest.raises(StopRule):
            ReceiptLedger().append(_event(action="ESCALATE", accountable="PENDING"))

    def test_rejection_leaves_ledger_unchanged(self):
        ledger = ReceiptLedger()
        with pytest.raises(StopRule):
            ledger.append(_event(action="APPROVE", accountable="OPR-01"))
        assert len(ledger) == 0
        assert load_receipts()[-1]["receipt_type"] == "anomaly"


class TestSnapshot:
    """Tests for snapshots and forks."""

    def test_snapshot_is_a_copy(self):
        ledger = ReceiptLedger()
        ledger.append(_event(), now=EPOCH_MS)
        snapshot = ledger.snapshot()
        ledger.append(_event(), now=EPOCH_MS + 1)
        assert len(snapshot) == 1

    def test_snapshot_depths_follow_tree_shape(self, five_receipts):
        assert [r.merkle_depth for r in five_receipts] == [3, 3, 3, 3, 1]

    def test_single_receipt_depth_zero(self):
        ledger = ReceiptLedger()
        ledger.append(_event(), now=EPOCH_MS)
        assert ledger.snapshot()[0].merkle_depth == 0

    def test_fork_is_independent(self):
        ledger = ReceiptLedger()
        ledger.append(_event(), now=EPOCH_MS)
        forked = ledger.fork()
        forked.append(_event(), now=EPOCH_MS + 1)

        assert len(ledger) == 1
        assert len(forked) == 2
        assert ledger.last.id == "RCP-000001"
        assert forked.last.id == "RCP-000002"

    def test_empty_ledger(self):
        ledger = ReceiptLedger()
        assert ledger.snapshot() == ()
        assert ledger.last is None
