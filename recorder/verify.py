"""Verification Engine

Four independent checks over a possibly corrupted ledger. Every check
always runs and always reports; a failure is a result value carrying its
evidence, never an exception.
"""

import time
from dataclasses import asdict, dataclass, field
from typing import Optional, Sequence

from config.constants import (
    CHECK_HASH,
    CHECK_MERKLE,
    CHECK_RACI,
    CHECK_TEMPORAL,
    STATUS_FAIL,
    STATUS_NOT_APPLICABLE,
    STATUS_PASS,
)
from .anchor import LedgerAnchor, build_merkle_tree, collect_affected
from .core import emit_receipt, short_hash
from .governance.raci import (
    find_upstream_approval,
    has_accountable_party,
    requires_reason,
    requires_signoff,
)
from .receipts import Receipt, recompute_hash


@dataclass
class VerificationResult:
    """Outcome of one check category."""
    name: str
    status: str
    details: str
    expected: Optional[str] = None
    computed: Optional[str] = None
    affected_nodes: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.status == STATUS_PASS

    def to_dict(self) -> dict:
        return {**asdict(self), "passed": self.passed}


def _not_applicable(name: str, details: str) -> VerificationResult:
    return VerificationResult(name=name, status=STATUS_NOT_APPLICABLE, details=details)


def check_hashes(receipts: Sequence[Receipt]) -> VerificationResult:
    """Recompute every content hash and compare with the stored one.

    Reports the first mismatch with its stored (expected) and recomputed
    (computed) dual hash.
    """
    for position, receipt in enumerate(receipts):
        computed = recompute_hash(receipt)
        if computed != receipt.content_hash:
            return VerificationResult(
                name=CHECK_HASH,
                status=STATUS_FAIL,
                details=f"Dual-hash mismatch detected at receipt #{position} ({receipt.action} {receipt.id})",
                expected=short_hash(receipt.content_hash),
                computed=short_hash(computed),
            )

    return VerificationResult(
        name=CHECK_HASH,
        status=STATUS_PASS,
        details=f"All {len(receipts)} content hashes match",
    )


def check_accountability(receipts: Sequence[Receipt]) -> VerificationResult:
    """Confirm sign-off linkage and justifications across the ledger.

    Every sign-off receipt needs an accountable party and an upstream
    APPROVE in the authority chain signed by that party. ESCALATE and
    APPROVE receipts need a reason.
    """
    problems = []

    for position, receipt in enumerate(receipts):
        if requires_signoff(receipt.action):
            if not has_accountable_party(receipt):
                problems.append(
                    f"Accountable party missing for {receipt.action} decision at receipt #{position}"
                )
            elif find_upstream_approval(receipts, position, receipt.accountable_party) is None:
                problems.append(
                    f"Accountable party missing for {receipt.action} decision at receipt #{position}: "
                    f"no upstream APPROVE signed by {receipt.accountable_party}"
                )

        if requires_reason(receipt.action) and not receipt.reason:
            problems.append(f"{receipt.action} receipt #{position} carries no reason")

    if problems:
        return VerificationResult(
            name=CHECK_RACI,
            status=STATUS_FAIL,
            details="; ".join(problems),
        )

    return VerificationResult(
        name=CHECK_RACI,
        status=STATUS_PASS,
        details="Every sign-off decision links to an upstream approval",
    )


def _affected_leaves(receipts: Sequence[Receipt], computed: list[str],
                     anchor: LedgerAnchor) -> set[int]:
    affected = set()

    for i, receipt in enumerate(receipts):
        if computed[i] != receipt.content_hash:
            affected.add(i)
        if i >= anchor.size or computed[i] != anchor.leaf_hashes[i]:
            affected.add(i)

    # A truncated ledger that matches the anchored prefix breaks at its end
    if not affected and len(receipts) != anchor.size:
        affected.add(len(receipts) - 1)

    return affected


def check_merkle(receipts: Sequence[Receipt],
                 anchor: Optional[LedgerAnchor]) -> VerificationResult:
    """Rebuild the tree from recomputed hashes and compare roots.

    On mismatch the affected leaves (and every ancestor) are reported.
    """
    if anchor is None:
        return _not_applicable(CHECK_MERKLE, "No anchored root recorded")

    computed = [recompute_hash(r) for r in receipts]
    affected = _affected_leaves(receipts, computed, anchor)
    root = build_merkle_tree(receipts, sorted(affected), leaf_hashes=computed)

    if root.hash == anchor.root and len(receipts) == anchor.size:
        return VerificationResult(
            name=CHECK_MERKLE,
            status=STATUS_PASS,
            details=f"Root matches anchored root ({anchor.size} leaves, depth {anchor.depth})",
        )

    nodes = collect_affected(root)
    return VerificationResult(
        name=CHECK_MERKLE,
        status=STATUS_FAIL,
        details=f"Root mismatch detected. Affected nodes: {len(nodes)}",
        expected=short_hash(anchor.root),
        computed=short_hash(root.hash),
        affected_nodes=nodes,
    )


def check_temporal(receipts: Sequence[Receipt]) -> VerificationResult:
    """Confirm timestamp_ms never decreases along the ledger."""
    for position in range(1, len(receipts)):
        current, previous = receipts[position], receipts[position - 1]
        if current.timestamp_ms < previous.timestamp_ms:
            return VerificationResult(
                name=CHECK_TEMPORAL,
                status=STATUS_FAIL,
                details=(
                    f"Timestamp ordering violation: receipt #{position} ({current.action} at "
                    f"{current.timestamp}) precedes receipt #{position - 1} ({previous.action} at "
                    f"{previous.timestamp})"
                ),
                expected=f">= {previous.timestamp_ms}",
                computed=str(current.timestamp_ms),
            )

    return VerificationResult(
        name=CHECK_TEMPORAL,
        status=STATUS_PASS,
        details="Timestamps are non-decreasing",
    )


def verify_ledger(receipts: Sequence[Receipt],
                  anchor: Optional[LedgerAnchor] = None) -> list[VerificationResult]:
    """Run all four checks, in order, without short-circuiting.

    Args:
        receipts: Ledger snapshot, possibly corrupted
        anchor: Recorded commitment of the original ledger

    Returns:
        Hash, RACI, Merkle and Temporal results
    """
    start_time = time.perf_counter()

    if not receipts:
        results = [
            _not_applicable(name, "No receipts to verify")
            for name in (CHECK_HASH, CHECK_RACI, CHECK_MERKLE, CHECK_TEMPORAL)
        ]
    else:
        results = [
            check_hashes(receipts),
            check_accountability(receipts),
            check_merkle(receipts, anchor),
            check_temporal(receipts),
        ]

    verification_time_ms = (time.perf_counter() - start_time) * 1000
    emit_verification_receipt(results, len(receipts), verification_time_ms)

    return results


def verification_summary(results: Sequence[VerificationResult]) -> dict:
    """Counts per status for a verification run."""
    return {
        "passed": sum(1 for r in results if r.status == STATUS_PASS),
        "failed": sum(1 for r in results if r.status == STATUS_FAIL),
        "not_applicable": sum(1 for r in results if r.status == STATUS_NOT_APPLICABLE),
        "all_passed": bool(results) and all(r.passed for r in results),
    }


def emit_verification_receipt(results: Sequence[VerificationResult], receipts_checked: int,
                              verification_time_ms: float) -> dict:
    summary = verification_summary(results)
    return emit_receipt("verification", {
        "result": "VERIFIED" if summary["all_passed"] else "INTEGRITY_FAILURE",
        "receipts_checked": receipts_checked,
        "checks": {r.name: r.status for r in results},
        "verification_time_ms": verification_time_ms
    }, silent=True)


def format_verification_report(results: Sequence[VerificationResult],
                               title: Optional[str] = None) -> str:
    """Format verification results for terminal display.

    Args:
        results: Results from verify_ledger
        title: Optional heading, e.g. the attack attempted

    Returns:
        Formatted string
    """
    summary = verification_summary(results)
    banner = "✓ ✓ ✓  CHAIN VERIFIED  ✓ ✓ ✓" if summary["all_passed"] else "INTEGRITY FAILURE"

    lines = [
        "",
        "═" * 60,
        f"  {banner}",
        "═" * 60,
    ]
    if title:
        lines.extend(["", f"  {title}"])
    lines.append("")

    for result in results:
        mark = {STATUS_PASS: "✓", STATUS_FAIL: "✗"}.get(result.status, "–")
        lines.append(f"  {mark} {result.name}: {result.status}")
        lines.append(f"      {result.details}")
        if result.expected:
            lines.append(f"      Expected: {result.expected}")
        if result.computed:
            lines.append(f"      Computed: {result.computed}")
        lines.append("")

    lines.extend([
        f"  {summary['passed']}/{len(results)} checks passed",
        "",
        "═" * 60,
        ""
    ])
    return "\n".join(lines)
