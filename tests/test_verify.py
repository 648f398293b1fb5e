"""Tests for the verification engine."""

from dataclasses import replace

import pytest

from config.constants import (
    ATTACK_BACKDATE_APPROVAL,
    ATTACK_CHANGE_GATE,
    ATTACK_REMOVE_APPROVAL,
    CHECK_HASH,
    CHECK_MERKLE,
    CHECK_RACI,
    CHECK_TEMPORAL,
    STATUS_FAIL,
    STATUS_NOT_APPLICABLE,
    STATUS_PASS,
)
from recorder.anchor import anchor_ledger
from recorder.core import load_receipts, short_hash
from recorder.receipts import recompute_hash
from recorder.tamper import apply_attack
from recorder.verify import (
    check_accountability,
    check_hashes,
    check_merkle,
    check_temporal,
    format_verification_report,
    verification_summary,
    verify_ledger,
)


def _statuses(results):
    return {r.name: r.status for r in results}


def _attacked(receipts, kind):
    anchor = anchor_ledger(receipts)
    return verify_ledger(apply_attack(receipts, kind).receipts, anchor)


class TestCleanLedger:
    """Untampered ledgers pass every check."""

    def test_four_of_four(self, five_receipts):
        results = verify_ledger(five_receipts, anchor_ledger(five_receipts))

        assert [r.name for r in results] == [CHECK_HASH, CHECK_RACI, CHECK_MERKLE, CHECK_TEMPORAL]
        assert all(r.passed for r in results)
        assert verification_summary(results)["all_passed"]

    @pytest.mark.parametrize("n", [1, 2, 3, 4, 5])
    def test_every_prefix_passes(self, five_receipts, n):
        prefix = five_receipts[:n]
        results = verify_ledger(prefix, anchor_ledger(prefix))
        assert all(r.status == STATUS_PASS for r in results)

    def test_empty_ledger_not_applicable(self):
        results = verify_ledger(())
        assert all(r.status == STATUS_NOT_APPLICABLE for r in results)
        assert not verification_summary(results)["all_passed"]

    def test_missing_anchor(self, five_receipts):
        results = verify_ledger(five_receipts)
        assert _statuses(results)[CHECK_MERKLE] == STATUS_NOT_APPLICABLE
        assert _statuses(results)[CHECK_HASH] == STATUS_PASS


class TestRemoveApproval:
    """Removing the approval orphans the ENGAGE sign-off."""

    def test_statuses(self, five_receipts):
        assert _statuses(_attacked(five_receipts, ATTACK_REMOVE_APPROVAL)) == {
            CHECK_HASH: STATUS_FAIL,
            CHECK_RACI: STATUS_FAIL,
            CHECK_MERKLE: STATUS_FAIL,
            CHECK_TEMPORAL: STATUS_PASS,
        }

    def test_accountability_names_engage(self, five_receipts):
        raci = _attacked(five_receipts, ATTACK_REMOVE_APPROVAL)[1]
        assert raci.details.startswith(
            "Accountable party missing for ENGAGE decision at receipt #3: "
            "no upstream APPROVE signed by OPR-01"
        )

    def test_affected_nodes(self, five_receipts):
        merkle = _attacked(five_receipts, ATTACK_REMOVE_APPROVAL)[2]
        assert merkle.affected_nodes == ["root", "node-1-1", "leaf-3"]
        assert merkle.details == "Root mismatch detected. Affected nodes: 3"


class TestChangeGate:
    """Rewriting a gate breaks content checks only."""

    def test_statuses(self, five_receipts):
        assert _statuses(_attacked(five_receipts, ATTACK_CHANGE_GATE)) == {
            CHECK_HASH: STATUS_FAIL,
            CHECK_RACI: STATUS_PASS,
            CHECK_MERKLE: STATUS_FAIL,
            CHECK_TEMPORAL: STATUS_PASS,
        }

    def test_hash_evidence(self, five_receipts):
        tampered = apply_attack(five_receipts, ATTACK_CHANGE_GATE).receipts
        result = check_hashes(tampered)

        assert "receipt #1" in result.details
        assert result.expected == short_hash(five_receipts[1].content_hash)
        assert result.computed == short_hash(recompute_hash(tampered[1]))
        assert result.expected != result.computed

    def test_affected_path(self, five_receipts):
        merkle = _attacked(five_receipts, ATTACK_CHANGE_GATE)[2]
        assert merkle.affected_nodes == ["root", "node-2-0", "node-1-0", "leaf-1"]


class TestBackdateApproval:
    """Backdating shows up as an ordering violation."""

    def test_statuses(self, five_receipts):
        assert _statuses(_attacked(five_receipts, ATTACK_BACKDATE_APPROVAL)) == {
            CHECK_HASH: STATUS_FAIL,
            CHECK_RACI: STATUS_PASS,
            CHECK_MERKLE: STATUS_FAIL,
            CHECK_TEMPORAL: STATUS_FAIL,
        }

    def test_temporal_names_both_receipts(self, five_receipts):
        temporal = _attacked(five_receipts, ATTACK_BACKDATE_APPROVAL)[3]
        assert temporal.details.startswith("Timestamp ordering violation: receipt #3 (APPROVE at ")
        assert "precedes receipt #2 (ESCALATE at " in temporal.details

    def test_affected_nodes_on_target_path(self, five_receipts):
        merkle = _attacked(five_receipts, ATTACK_BACKDATE_APPROVAL)[2]
        assert "leaf-3" in merkle.affected_nodes
        assert merkle.affected_nodes[0] == "root"


class TestIndividualChecks:
    """Edge cases of single checks."""

    def test_missing_reason_fails_accountability(self, five_receipts):
        ledger = list(five_receipts)
        ledger[2] = replace(ledger[2], reason=None)
        result = check_accountability(ledger)
        assert result.status == STATUS_FAIL
        assert "ESCALATE receipt #2 carries no reason" in result.details

    def test_pending_engage(self, five_receipts):
        ledger = list(five_receipts)
        ledger[4] = replace(ledger[4], accountable_party="PENDING")
        result = check_accountability(ledger)
        assert "Accountable party missing for ENGAGE decision at receipt #4" in result.details

    def test_equal_timestamps_are_ordered(self, five_receipts):
        ledger = list(five_receipts)
        ledger[1] = replace(ledger[1], timestamp_ms=ledger[0].timestamp_ms)
        assert check_temporal(ledger).status == STATUS_PASS

    def test_truncated_ledger_detected(self, five_receipts):
        anchor = anchor_ledger(five_receipts)
        result = check_merkle(five_receipts[:4], anchor)
        assert result.status == STATUS_FAIL
        assert "leaf-3" in result.affected_nodes

    def test_appended_receipt_detected(self, five_receipts):
        anchor = anchor_ledger(five_receipts[:4])
        result = check_merkle(five_receipts, anchor)
        assert result.status == STATUS_FAIL
        assert "leaf-4" in result.affected_nodes


class TestReporting:
    """Tests for result summaries and telemetry."""

    def test_summary_counts(self, five_receipts):
        summary = verification_summary(_attacked(five_receipts, ATTACK_REMOVE_APPROVAL))
        assert summary == {"passed": 1, "failed": 3, "not_applicable": 0, "all_passed": False}

    def test_report_text(self, five_receipts):
        text = format_verification_report(_attacked(five_receipts, ATTACK_CHANGE_GATE), title="Change gate")
        assert "INTEGRITY FAILURE" in text
        assert "Change gate" in text
        assert "2/4 checks passed" in text

    def test_verified_banner(self, five_receipts):
        text = format_verification_report(verify_ledger(five_receipts, anchor_ledger(five_receipts)))
        assert "CHAIN VERIFIED" in text

    def test_to_dict(self, five_receipts):
        result = verify_ledger(five_receipts, anchor_ledger(five_receipts))[0]
        assert result.to_dict()["passed"] is True

    def test_emits_verification_record(self, five_receipts):
        verify_ledger(five_receipts, anchor_ledger(five_receipts))
        record = load_receipts()[-1]
        assert record["receipt_type"] == "verification"
        assert record["result"] == "VERIFIED"
