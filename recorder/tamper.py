"""Tamper Simulator

Applies one of a fixed catalogue of edits to a ledger snapshot. No attack
regenerates content hashes or the Merkle tree; catching the resulting
inconsistency is left entirely to the verifier.
"""

from dataclasses import dataclass, replace
from typing import Optional, Sequence

from config.constants import (
    ACTION_APPROVE,
    ATTACK_BACKDATE_APPROVAL,
    ATTACK_CHANGE_GATE,
    ATTACK_REMOVE_APPROVAL,
    BACKDATE_OFFSET_MS,
    GATE_GREEN,
    GATE_YELLOW,
)
from .core import emit_receipt
from .governance.raci import extract_authority_chain, requires_signoff
from .receipts import Receipt, format_timestamp


@dataclass(frozen=True)
class Attack:
    """Catalogue entry for an attack."""
    id: str
    name: str
    description: str


@dataclass(frozen=True)
class TamperResult:
    """Outcome of one attack on a ledger snapshot."""
    attack_kind: str
    receipts: tuple[Receipt, ...]
    touched_indices: tuple[int, ...]
    applicable: bool
    detail: str


ATTACKS = [
    Attack(
        id=ATTACK_REMOVE_APPROVAL,
        name="Remove human approval",
        description="Claim unauthorized autonomous engagement",
    ),
    Attack(
        id=ATTACK_CHANGE_GATE,
        name="Change YELLOW to GREEN",
        description="Hide required escalation",
    ),
    Attack(
        id=ATTACK_BACKDATE_APPROVAL,
        name="Backdate approval",
        description="Claim earlier authorization",
    ),
]


def get_attack(attack_kind: str) -> Attack:
    """Look up an attack by id.

    Raises:
        ValueError: If the attack is not in the catalogue
    """
    for attack in ATTACKS:
        if attack.id == attack_kind:
            return attack
    raise ValueError(f"Attack '{attack_kind}' not found")


def list_attacks() -> list[str]:
    return [a.id for a in ATTACKS]


def _first_approval(receipts: Sequence[Receipt]) -> Optional[int]:
    chain = extract_authority_chain(receipts)
    approval = next((r for r in chain if r.action == ACTION_APPROVE), None)
    if approval is None:
        return None
    return next(i for i, r in enumerate(receipts) if r is approval)


def target_index(receipts: Sequence[Receipt], attack_kind: str) -> Optional[int]:
    """Ledger position an attack would edit, or None if it has no target.

    Args:
        receipts: Ledger snapshot
        attack_kind: Attack id

    Returns:
        Index into receipts
    """
    get_attack(attack_kind)

    if attack_kind == ATTACK_REMOVE_APPROVAL:
        index = _first_approval(receipts)
        # Removal only shows once a sign-off depends on the approval
        if index is None or not any(requires_signoff(r.action) for r in receipts[index + 1:]):
            return None
        return index

    if attack_kind == ATTACK_BACKDATE_APPROVAL:
        index = _first_approval(receipts)
        # Needs a predecessor to move before
        if index is None or index == 0:
            return None
        return index

    return next((i for i, r in enumerate(receipts) if r.gate == GATE_YELLOW), None)


def _remove_approval(receipts: list[Receipt], index: int) -> str:
    removed = receipts.pop(index)
    # Later receipts close the gap; their stored hashes still cover the old index
    for i in range(index, len(receipts)):
        receipts[i] = replace(receipts[i], sequence_index=receipts[i].sequence_index - 1)
    return f"Removed {removed.action} receipt {removed.id} at index {index}"


def _change_gate(receipts: list[Receipt], index: int) -> str:
    original = receipts[index]
    receipts[index] = replace(original, gate=GATE_GREEN)
    return f"Rewrote gate of {original.action} receipt {original.id} from {original.gate} to {GATE_GREEN}"


def _backdate_approval(receipts: list[Receipt], index: int) -> str:
    original = receipts[index]
    backdated_ms = receipts[index - 1].timestamp_ms - BACKDATE_OFFSET_MS
    receipts[index] = replace(
        original,
        timestamp_ms=backdated_ms,
        timestamp=format_timestamp(backdated_ms),
    )
    return f"Backdated {original.action} receipt {original.id} from {original.timestamp} to {format_timestamp(backdated_ms)}"


_ATTACK_HANDLERS = {
    ATTACK_REMOVE_APPROVAL: _remove_approval,
    ATTACK_CHANGE_GATE: _change_gate,
    ATTACK_BACKDATE_APPROVAL: _backdate_approval,
}


def apply_attack(receipts: Sequence[Receipt], attack_kind: str) -> TamperResult:
    """Apply an attack to a copy of the ledger.

    Args:
        receipts: Ledger snapshot; never modified
        attack_kind: Attack id

    Returns:
        TamperResult with the corrupted copy and the directly edited
        indices. When nothing matches the attack, applicable is False and
        the copy is unchanged.
    """
    corrupted = list(receipts)
    index = target_index(corrupted, attack_kind)

    if index is None:
        result = TamperResult(
            attack_kind=attack_kind,
            receipts=tuple(corrupted),
            touched_indices=(),
            applicable=False,
            detail=f"No receipt matches {attack_kind}",
        )
    else:
        detail = _ATTACK_HANDLERS[attack_kind](corrupted, index)
        result = TamperResult(
            attack_kind=attack_kind,
            receipts=tuple(corrupted),
            touched_indices=(index,),
            applicable=True,
            detail=detail,
        )

    emit_tamper_receipt(result, len(receipts))
    return result


def emit_tamper_receipt(result: TamperResult, original_size: int) -> dict:
    """Emit a tamper simulation receipt."""
    return emit_receipt("tamper", {
        "attack_kind": result.attack_kind,
        "applicable": result.applicable,
        "touched_indices": list(result.touched_indices),
        "original_size": original_size,
        "tampered_size": len(result.receipts),
        "detail": result.detail
    }, silent=True)
