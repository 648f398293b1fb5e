"""Decision Recorder - Tamper-Evident Provenance for Autonomous Missions

Records every decision an autonomous vehicle makes during a mission as a
hashed receipt, aggregates the ledger into a Merkle tree, and proves after
the fact whether the record was altered.

Core Components:
- core: Foundation functions (dual_hash, emit_receipt, StopRule)
- receipts: Append-only decision receipt ledger
- anchor: Merkle tree with affected-node propagation
- governance: RACI roles, authority chain, reason codes
- tamper: Fixed catalogue of ledger attacks
- verify: Four-check verification engine
- timeline: Mission phase state machine
- scheduler: Tick driver and manual clock
"""

__version__ = "1.0.0"
__author__ = "Decision Recorder Team"

from .core import dual_hash, emit_receipt, short_hash, StopRule
from .receipts import Receipt, ReceiptEvent, ReceiptLedger
from .anchor import LedgerAnchor, MerkleNode, anchor_ledger, build_merkle_tree, tree_depth
from .tamper import TamperResult, apply_attack, list_attacks
from .verify import VerificationResult, verify_ledger, format_verification_report
from .timeline import ScenarioState, TimelineEngine
from .scheduler import ManualClock, TickScheduler, drive

__all__ = [
    "dual_hash",
    "emit_receipt",
    "short_hash",
    "StopRule",
    "Receipt",
    "ReceiptEvent",
    "ReceiptLedger",
    "LedgerAnchor",
    "MerkleNode",
    "anchor_ledger",
    "build_merkle_tree",
    "tree_depth",
    "TamperResult",
    "apply_attack",
    "list_attacks",
    "VerificationResult",
    "verify_ledger",
    "format_verification_report",
    "ScenarioState",
    "TimelineEngine",
    "ManualClock",
    "TickScheduler",
    "drive",
]
