"""Decision Receipt Ledger

Append-only, ordered list of decision receipts. Each receipt carries a
dual content hash over its own fields, so any later edit that does not
also regenerate the hash is visible to the verifier.
"""

import json
import time
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Optional

from config.constants import (
    ACTION_TYPES,
    GATE_GREEN,
    GATE_GREEN_THRESHOLD,
    GATE_RED,
    GATE_YELLOW,
    GATE_YELLOW_THRESHOLD,
)
from .anchor import leaf_depths
from .core import StopRule, dual_hash, emit_receipt, emit_stoprule
from .governance.raci import requires_reason

# Fields covered by content_hash, in canonical order
HASHED_FIELDS = (
    "sequence_index",
    "timestamp",
    "action",
    "confidence",
    "gate",
    "responsible_party",
    "accountable_party",
    "reason",
)


@dataclass(frozen=True)
class ReceiptEvent:
    """Candidate event handed to the ledger for recording."""
    action: str
    confidence: float
    responsible_party: str
    accountable_party: str
    reason: Optional[str] = None
    consulted: Optional[str] = None
    informed: Optional[str] = None


@dataclass(frozen=True)
class Receipt:
    """One recorded decision event."""
    id: str
    sequence_index: int
    timestamp: str
    timestamp_ms: int
    action: str
    confidence: float
    gate: str
    responsible_party: str
    accountable_party: str
    content_hash: str
    merkle_depth: int = 0
    reason: Optional[str] = None
    consulted: Optional[str] = None
    informed: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


def default_clock() -> int:
    """Wall clock in milliseconds."""
    return int(time.time() * 1000)


def format_timestamp(timestamp_ms: int) -> str:
    """Display form of an absolute timestamp: HH:MM:SS.mmm (UTC)."""
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return moment.strftime("%H:%M:%S.%f")[:-3]


def gate_for_confidence(confidence: float) -> str:
    """Three-tier gate for a confidence score.

    Args:
        confidence: Self-reported certainty (0-1)

    Returns:
        GREEN, YELLOW or RED
    """
    if confidence >= GATE_GREEN_THRESHOLD:
        return GATE_GREEN
    if confidence >= GATE_YELLOW_THRESHOLD:
        return GATE_YELLOW
    return GATE_RED


def hashable_fields(receipt: Receipt) -> dict:
    """The subset of a receipt covered by its content hash."""
    return {name: getattr(receipt, name) for name in HASHED_FIELDS}


def compute_content_hash(fields: dict) -> str:
    """Dual hash over the canonical JSON form of the hashed fields."""
    return dual_hash(json.dumps(fields, sort_keys=True))


def recompute_hash(receipt: Receipt) -> str:
    """Hash a receipt from its current field values."""
    return compute_content_hash(hashable_fields(receipt))


def validate_event(event: ReceiptEvent) -> None:
    """Reject events that break the ledger's input contract.

    Raises:
        StopRule: On unknown action, confidence outside [0, 1], or a
            missing reason where one is required
    """
    problem = None
    if event.action not in ACTION_TYPES:
        problem = f"Unknown action {event.action!r}"
    elif not 0.0 <= event.confidence <= 1.0:
        problem = f"Confidence {event.confidence} outside [0, 1]"
    elif requires_reason(event.action) and not event.reason:
        problem = f"{event.action} receipt requires a reason"

    if problem:
        error = StopRule(problem, metric="receipt_contract")
        emit_stoprule(error, "receipt_contract")
        raise error


class ReceiptLedger:
    """Ordered, append-only ledger of decision receipts.

    There is no deletion; a scenario restart replaces the whole ledger.
    """

    def __init__(self, clock: Optional[Callable[[], int]] = None):
        """Initialize an empty ledger.

        Args:
            clock: Millisecond clock used when append() is not given a time
        """
        self._clock = clock or default_clock
        self._receipts: list[Receipt] = []

    def append(self, event: ReceiptEvent, now: Optional[int] = None) -> Receipt:
        """Record an event as the next receipt.

        Args:
            event: Candidate event
            now: Append time in ms, defaults to the ledger clock

        Returns:
            The stored receipt
        """
        validate_event(event)

        timestamp_ms = int(self._clock() if now is None else now)
        if self._receipts:
            timestamp_ms = max(timestamp_ms, self._receipts[-1].timestamp_ms)

        sequence_index = len(self._receipts)
        fields = {
            "sequence_index": sequence_index,
            "timestamp": format_timestamp(timestamp_ms),
            "action": event.action,
            "confidence": event.confidence,
            "gate": gate_for_confidence(event.confidence),
            "responsible_party": event.responsible_party,
            "accountable_party": event.accountable_party,
            "reason": event.reason,
        }

        receipt = Receipt(
            id=f"RCP-{sequence_index + 1:06d}",
            timestamp_ms=timestamp_ms,
            content_hash=compute_content_hash(fields),
            merkle_depth=leaf_depths(sequence_index + 1)[sequence_index],
            consulted=event.consulted,
            informed=event.informed,
            **fields
        )
        self._receipts.append(receipt)

        emit_receipt("decision_receipt", {
            "receipt_id": receipt.id,
            "sequence_index": receipt.sequence_index,
            "action": receipt.action,
            "confidence": receipt.confidence,
            "gate": receipt.gate,
            "accountable_party": receipt.accountable_party,
            "content_hash": receipt.content_hash
        }, silent=True)

        return receipt

    def snapshot(self) -> tuple[Receipt, ...]:
        """Immutable copy with merkle_depth set for the current tree shape."""
        depths = leaf_depths(len(self._receipts))
        return tuple(
            replace(receipt, merkle_depth=depth)
            for receipt, depth in zip(self._receipts, depths)
        )

    def fork(self) -> 'ReceiptLedger':
        """Independent ledger holding the same receipts."""
        forked = ReceiptLedger(self._clock)
        forked._receipts = list(self._receipts)
        return forked

    @property
    def last(self) -> Optional[Receipt]:
        return self._receipts[-1] if self._receipts else None

    def __len__(self) -> int:
        return len(self._receipts)
