#!/usr/bin/env python3
"""Decision Recorder CLI

Main entry point for flying, attacking and verifying a mission ledger.
All runs use a simulated millisecond clock, so they finish immediately
and are reproducible.

Commands:
    python cli.py --test                      # Run smoke test
    python cli.py --run                       # Fly the mission, print ledger
    python cli.py --attack REMOVE_APPROVAL    # Fly, attack, verify
    python cli.py --validate                  # Run validation scenarios
    python cli.py --demo                      # Run tamper demo
    python cli.py --report                    # Summarize receipts.jsonl
"""

import argparse
import json
import sys
from collections import Counter
from pathlib import Path

# Ensure recorder and config are importable
sys.path.insert(0, str(Path(__file__).parent))

from config.constants import PHASE_SEALED
from recorder.core import dual_hash, emit_receipt, reset_receipt_counter, load_receipts, short_hash
from recorder.scheduler import ManualClock, drive
from recorder.tamper import list_attacks
from recorder.timeline import TimelineEngine
from recorder.verify import format_verification_report, verification_summary


def fly_mission(start_ms: int = 0) -> tuple[TimelineEngine, list]:
    """Run a fresh engine to the sealed phase on a manual clock."""
    clock = ManualClock(start_ms)
    engine = TimelineEngine(clock=clock)
    visited = drive(engine, clock, until_phase=PHASE_SEALED)
    return engine, visited


def run_test():
    """Run smoke test - fly once and verify the sealed ledger."""
    reset_receipt_counter()

    h = dual_hash(b"test")
    assert ":" in h, "dual_hash must return SHA256:BLAKE3 format"

    receipt = emit_receipt("test", {
        "message": "Smoke test receipt",
        "status": "ok"
    })
    assert "payload_hash" in receipt

    engine, visited = fly_mission()
    assert visited[-1][0] == PHASE_SEALED, "Mission should reach SEALED"
    assert len(engine.receipts) == 6, "Mission should record 6 receipts"

    results = engine.verify()
    summary = verification_summary(results)

    emit_receipt("test_complete", {
        "receipts": len(engine.receipts),
        "merkle_root": engine.anchor.root,
        "checks_passed": summary["passed"]
    })

    if not summary["all_passed"]:
        print(format_verification_report(results), file=sys.stderr)
        return False

    print("\n✓ All smoke tests passed\n", file=sys.stderr)
    return True


def run_mission(start_ms: int = 0):
    """Fly the whole mission and print the phases and the ledger."""
    reset_receipt_counter()

    engine, visited = fly_mission(start_ms)

    for phase, at_ms in visited:
        print(f"  {at_ms - start_ms:>6}ms  {phase}", file=sys.stderr)

    print("", file=sys.stderr)
    for r in engine.receipts:
        print(f"  {r.id}  {r.timestamp}  {r.action:8} {r.confidence:.2f} {r.gate:6} "
              f"R:{r.responsible_party:5} A:{r.accountable_party:7} {short_hash(r.content_hash)}",
              file=sys.stderr)

    anchor = engine.anchor
    emit_receipt("run_complete", {
        "phases": len(visited),
        "receipts": anchor.size,
        "merkle_root": anchor.root,
        "tree_depth": anchor.depth,
        "affidavit": engine.affidavit
    })

    print(f"\n✓ Mission sealed", file=sys.stderr)
    print(f"  Merkle root: {short_hash(anchor.root, 32)}...", file=sys.stderr)


def run_attack(attack_kind: str, start_ms: int = 0) -> bool:
    """Fly, apply one attack to the sealed ledger and verify it.

    Returns:
        True if the attack was detected
    """
    reset_receipt_counter()

    engine, _ = fly_mission(start_ms)
    engine.select_attack(attack_kind)
    result = engine.run_attack()

    print(f"\n  {result.detail}", file=sys.stderr)
    results = engine.verify()
    print(format_verification_report(results, title=f"Attack attempted: {attack_kind}"),
          file=sys.stderr)

    return result.applicable and not verification_summary(results)["all_passed"]


def run_validation():
    """Run all validation scenarios."""
    from sim.sim import run_all_scenarios
    from sim.scenarios import ALL_SCENARIOS
    from sim.reporting import format_all_results

    print("Running validation scenarios...\n", file=sys.stderr)

    results = run_all_scenarios(ALL_SCENARIOS)

    print(format_all_results(results), file=sys.stderr)

    emit_receipt("validation", {
        "status": "passed" if results["all_passed"] else "failed",
        "scenarios": len(results["scenarios"])
    })

    return results["all_passed"]


def run_demo():
    from demo.tamper_demo import run_demo as tamper_demo
    return tamper_demo()


def run_report():
    """Count telemetry records in receipts.jsonl by type."""
    receipts = load_receipts()
    counts = Counter(r.get("receipt_type") for r in receipts)
    print(json.dumps({"total": len(receipts), "by_type": dict(counts)}, indent=2))


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Decision Recorder - Tamper-Evident Provenance for Autonomous Missions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python cli.py --test                      Run smoke test
  python cli.py --run                       Fly the mission and print the ledger
  python cli.py --attack BACKDATE_APPROVAL  Attack the sealed ledger and verify
  python cli.py --validate                  Run validation scenarios
  python cli.py --demo                      Run tamper detection demo
        """
    )

    parser.add_argument(
        "--test", "-t",
        action="store_true",
        help="Run smoke test"
    )

    parser.add_argument(
        "--run", "-r",
        action="store_true",
        help="Fly the full mission"
    )

    parser.add_argument(
        "--attack", "-a",
        choices=list_attacks(),
        help="Fly the mission, then apply this attack and verify"
    )

    parser.add_argument(
        "--start-ms",
        type=int,
        default=0,
        help="Simulated clock start in epoch ms (default: 0)"
    )

    parser.add_argument(
        "--demo", "-d",
        action="store_true",
        help="Run tamper detection demo"
    )

    parser.add_argument(
        "--validate", "-v",
        action="store_true",
        help="Run validation scenarios"
    )

    parser.add_argument(
        "--report",
        action="store_true",
        help="Summarize telemetry in receipts.jsonl"
    )

    args = parser.parse_args()

    if args.test:
        success = run_test()
        sys.exit(0 if success else 1)

    elif args.run:
        run_mission(args.start_ms)

    elif args.attack:
        detected = run_attack(args.attack, args.start_ms)
        sys.exit(0 if detected else 1)

    elif args.demo:
        success = run_demo()
        sys.exit(0 if success else 1)

    elif args.validate:
        success = run_validation()
        sys.exit(0 if success else 1)

    elif args.report:
        run_report()

    else:
        parser.print_help()


if __name__ == "__main__":
    main()
