"""Pytest configuration and fixtures for Decision Recorder tests."""

import os
import sys
import tempfile
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment
os.environ["RECEIPTS_FILE"] = str(Path(tempfile.gettempdir()) / "test_decision_receipts.jsonl")

# Arbitrary fixed epoch for deterministic timestamps
EPOCH_MS = 1_767_600_000_000


@pytest.fixture(autouse=True)
def reset_state():
    """Reset global state before each test."""
    from recorder.core import reset_receipt_counter

    reset_receipt_counter()

    # Clear receipts file
    receipts_path = Path(os.environ.get("RECEIPTS_FILE", "receipts.jsonl"))
    if receipts_path.exists():
        receipts_path.unlink()

    yield

    # Cleanup after test
    if receipts_path.exists():
        receipts_path.unlink()


@pytest.fixture
def manual_clock():
    """Manual millisecond clock starting at 0."""
    from recorder.scheduler import ManualClock
    return ManualClock(0)


@pytest.fixture
def five_receipts():
    """NAVIGATE, DETECT, ESCALATE, APPROVE, ENGAGE one second apart."""
    from config.constants import RC006_CONTEXT_MISSING
    from recorder.governance.raci import default_raci
    from recorder.receipts import ReceiptEvent, ReceiptLedger

    script = [
        ("NAVIGATE", 0.92, None),
        ("DETECT", 0.62, RC006_CONTEXT_MISSING),
        ("ESCALATE", 0.62, "HUMAN_APPROVAL_REQUIRED"),
        ("APPROVE", 0.94, "GPS_RESTORED"),
        ("ENGAGE", 0.98, None),
    ]

    ledger = ReceiptLedger()
    for i, (action, confidence, reason) in enumerate(script):
        raci = default_raci(action)
        ledger.append(ReceiptEvent(
            action=action,
            confidence=confidence,
            responsible_party=raci.responsible,
            accountable_party=raci.accountable,
            reason=reason,
            consulted=raci.consulted,
            informed=raci.informed,
        ), now=EPOCH_MS + (i + 1) * 1000)

    return ledger.snapshot()


@pytest.fixture
def sealed_engine(manual_clock):
    """Engine driven through the whole mission to SEALED."""
    from recorder.scheduler import drive
    from recorder.timeline import TimelineEngine

    engine = TimelineEngine(clock=manual_clock)
    drive(engine, manual_clock)
    return engine
