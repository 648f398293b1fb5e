"""RACI Accountability and Authority Chain

Assigns Responsible / Accountable / Consulted / Informed roles to each
decision action and extracts the receipts that accountability review
cares about.
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from config.constants import (
    ACTION_APPROVE,
    ACTION_DETECT,
    ACTION_ENGAGE,
    ACTION_ESCALATE,
    ACTION_NAVIGATE,
    GROUND_CONTROL_ID,
    OPERATOR_ID,
    PARTY_AI,
    PARTY_HUMAN,
    PARTY_PENDING,
)

# Actions reviewed for accountability, in policy order
AUTHORITY_ACTIONS = (ACTION_ESCALATE, ACTION_APPROVE, ACTION_ENGAGE)

# Actions that need a human sign-off upstream
SIGNOFF_ACTIONS = (ACTION_ENGAGE,)

# Actions that must carry a justification
REASON_REQUIRED_ACTIONS = (ACTION_ESCALATE, ACTION_APPROVE)


@dataclass(frozen=True)
class RACIAssignment:
    """RACI roles for one action."""
    responsible: str                  # Who does the work
    accountable: str                  # Who approves/owns
    consulted: Optional[str] = None   # Who provides input
    informed: Optional[str] = None    # Who needs to know


DEFAULT_RACI = {
    ACTION_NAVIGATE: RACIAssignment(PARTY_AI, PARTY_AI),
    ACTION_DETECT: RACIAssignment(PARTY_AI, PARTY_AI),
    ACTION_ESCALATE: RACIAssignment(PARTY_AI, PARTY_PENDING, consulted=OPERATOR_ID),
    ACTION_APPROVE: RACIAssignment(PARTY_HUMAN, OPERATOR_ID, consulted=GROUND_CONTROL_ID),
    ACTION_ENGAGE: RACIAssignment(PARTY_AI, OPERATOR_ID, informed=GROUND_CONTROL_ID),
}


def default_raci(action: str) -> RACIAssignment:
    """RACI roles for an action.

    Raises:
        ValueError: If the action is not in the catalogue
    """
    if action not in DEFAULT_RACI:
        raise ValueError(f"No RACI assignment for action '{action}'")
    return DEFAULT_RACI[action]


def is_authority_action(action: str) -> bool:
    return action in AUTHORITY_ACTIONS


def requires_signoff(action: str) -> bool:
    return action in SIGNOFF_ACTIONS


def requires_reason(action: str) -> bool:
    return action in REASON_REQUIRED_ACTIONS


def extract_authority_chain(receipts: Sequence[Any]) -> list:
    """Receipts relevant to accountability review, in ledger order.

    Args:
        receipts: Ledger snapshot

    Returns:
        ESCALATE, APPROVE and ENGAGE receipts, original order preserved
    """
    return [r for r in receipts if is_authority_action(r.action)]


def find_upstream_approval(receipts: Sequence[Any], position: int,
                           accountable: str) -> Optional[Any]:
    """Latest APPROVE before position signed by the accountable party.

    Args:
        receipts: Ledger snapshot
        position: Ledger position of the receipt needing sign-off
        accountable: Party whose approval is required

    Returns:
        The approval receipt, or None if the chain has no such link
    """
    upstream = extract_authority_chain(receipts[:position])
    for receipt in reversed(upstream):
        if receipt.action == ACTION_APPROVE and receipt.accountable_party == accountable:
            return receipt
    return None


def has_accountable_party(receipt: Any) -> bool:
    return bool(receipt.accountable_party) and receipt.accountable_party != PARTY_PENDING


def missing_roles(receipt: Any) -> list[str]:
    """Accountability fields a receipt lacks.

    Args:
        receipt: Receipt to check

    Returns:
        Names of missing roles ("responsible", "accountable", "reason")
    """
    missing = []

    if not receipt.responsible_party:
        missing.append("responsible")
    if requires_signoff(receipt.action) and not has_accountable_party(receipt):
        missing.append("accountable")
    if requires_reason(receipt.action) and not receipt.reason:
        missing.append("reason")

    return missing


def raci_coverage(receipts: Sequence[Any]) -> float:
    """Fraction of receipts with complete accountability fields.

    Returns:
        Coverage in [0, 1]; 1.0 for an empty ledger
    """
    if not receipts:
        return 1.0
    covered = sum(1 for r in receipts if not missing_roles(r))
    return covered / len(receipts)
