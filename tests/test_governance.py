"""Tests for governance modules."""

from dataclasses import FrozenInstanceError, replace

import pytest

from config.constants import OPERATOR_ID, PARTY_PENDING
from recorder.governance import (
    AUTHORITY_ACTIONS,
    RACIAssignment,
    default_raci,
    extract_authority_chain,
    find_upstream_approval,
    missing_roles,
    raci_coverage,
    validate_reason_code,
    get_reason_code_info,
)
from recorder.governance.raci import has_accountable_party, requires_reason, requires_signoff


class TestRACIAssignment:
    """Tests for default RACI roles per action."""

    def test_escalate_is_pending(self):
        raci = default_raci("ESCALATE")
        assert raci.responsible == "AI"
        assert raci.accountable == PARTY_PENDING
        assert raci.consulted == OPERATOR_ID

    def test_approve_is_operator(self):
        raci = default_raci("APPROVE")
        assert raci.responsible == "HUMAN"
        assert raci.accountable == OPERATOR_ID

    def test_engage_accountable_to_operator(self):
        raci = default_raci("ENGAGE")
        assert raci.responsible == "AI"
        assert raci.accountable == OPERATOR_ID

    def test_unknown_action(self):
        with pytest.raises(ValueError):
            default_raci("LOITER")

    def test_assignment_is_frozen(self):
        raci = RACIAssignment("AI", "AI")
        with pytest.raises(FrozenInstanceError):
            raci.accountable = "HUMAN"

    def test_policy_sets(self):
        assert requires_signoff("ENGAGE")
        assert not requires_signoff("NAVIGATE")
        assert requires_reason("ESCALATE")
        assert requires_reason("APPROVE")
        assert not requires_reason("DETECT")


class TestAuthorityChain:
    """Tests for authority chain extraction."""

    def test_filters_authority_actions(self, five_receipts):
        chain = extract_authority_chain(five_receipts)
        assert [r.action for r in chain] == ["ESCALATE", "APPROVE", "ENGAGE"]
        assert all(r.action in AUTHORITY_ACTIONS for r in chain)

    def test_preserves_ledger_order(self, five_receipts):
        chain = extract_authority_chain(five_receipts)
        assert [r.sequence_index for r in chain] == [2, 3, 4]

    def test_empty(self):
        assert extract_authority_chain([]) == []

    def test_upstream_approval_found(self, five_receipts):
        approval = find_upstream_approval(five_receipts, 4, OPERATOR_ID)
        assert approval is five_receipts[3]

    def test_no_approval_before_it(self, five_receipts):
        assert find_upstream_approval(five_receipts, 3, OPERATOR_ID) is None

    def test_other_signer_not_accepted(self, five_receipts):
        assert find_upstream_approval(five_receipts, 4, "OPR-99") is None


class TestCoverage:
    """Tests for accountability field coverage."""

    def test_full_coverage(self, five_receipts):
        assert raci_coverage(five_receipts) == 1.0
        assert all(missing_roles(r) == [] for r in five_receipts)

    def test_empty_ledger_covered(self):
        assert raci_coverage([]) == 1.0

    def test_pending_engage_not_accountable(self, five_receipts):
        engage = replace(five_receipts[4], accountable_party=PARTY_PENDING)
        assert not has_accountable_party(engage)
        assert missing_roles(engage) == ["accountable"]

    def test_missing_reason(self, five_receipts):
        approve = replace(five_receipts[3], reason=None)
        assert missing_roles(approve) == ["reason"]
        assert raci_coverage([*five_receipts[:3], approve, five_receipts[4]]) == 0.8


class TestReasonCodes:
    """Tests for reason code catalogue."""

    @pytest.mark.parametrize("code", [
        "RC001_FACTUAL_ERROR",
        "RC003_SAFETY_CONCERN",
        "RC006_CONTEXT_MISSING",
        "RC009_TIMING_ERROR",
    ])
    def test_known_codes(self, code):
        assert validate_reason_code(code)
        info = get_reason_code_info(code)
        assert info["reason_code"] == code
        assert info["code"] == code.split("_")[0]

    def test_none_allowed(self):
        assert validate_reason_code(None)

    def test_unknown_code(self):
        assert not validate_reason_code("RC999_MADE_UP")
        with pytest.raises(ValueError):
            get_reason_code_info("RC999_MADE_UP")
