"""Mandatory Validation Scenarios

No release without ALL scenarios passing. Each one runs the whole mission,
then either verifies the sealed ledger as recorded or after one attack.
"""

from config.constants import (
    ATTACK_BACKDATE_APPROVAL,
    ATTACK_CHANGE_GATE,
    ATTACK_REMOVE_APPROVAL,
    CHECK_HASH,
    CHECK_MERKLE,
    CHECK_RACI,
    CHECK_TEMPORAL,
    STATUS_FAIL,
    STATUS_PASS,
)
from .sim import MISSION_DURATION_MS, SimConfig

# SCENARIO 1: BASELINE
# Untouched mission, every check passes
BASELINE = SimConfig(
    name="BASELINE",
    success_criteria={
        "phase_order": True,
        "total_duration_ms": MISSION_DURATION_MS,
        "min_receipts": 6,
        "expected_checks": {
            CHECK_HASH: STATUS_PASS,
            CHECK_RACI: STATUS_PASS,
            CHECK_MERKLE: STATUS_PASS,
            CHECK_TEMPORAL: STATUS_PASS,
        }
    },
    description="Full mission, sealed ledger verifies 4/4"
)

# SCENARIO 2: REMOVE_APPROVAL
# Deleting the operator approval orphans the ENGAGE sign-off
REMOVE_APPROVAL = SimConfig(
    name="REMOVE_APPROVAL",
    attack_kind=ATTACK_REMOVE_APPROVAL,
    success_criteria={
        "phase_order": True,
        "tamper_applicable": True,
        "expected_checks": {
            CHECK_HASH: STATUS_FAIL,
            CHECK_RACI: STATUS_FAIL,
            CHECK_MERKLE: STATUS_FAIL,
            CHECK_TEMPORAL: STATUS_PASS,
        },
        "min_affected_nodes": 1
    },
    description="Claim unauthorized autonomous engagement"
)

# SCENARIO 3: CHANGE_GATE
# YELLOW rewritten to GREEN; only content checks notice
CHANGE_GATE = SimConfig(
    name="CHANGE_GATE",
    attack_kind=ATTACK_CHANGE_GATE,
    success_criteria={
        "phase_order": True,
        "tamper_applicable": True,
        "expected_checks": {
            CHECK_HASH: STATUS_FAIL,
            CHECK_RACI: STATUS_PASS,
            CHECK_MERKLE: STATUS_FAIL,
            CHECK_TEMPORAL: STATUS_PASS,
        },
        "min_affected_nodes": 1
    },
    description="Hide required escalation"
)

# SCENARIO 4: BACKDATE_APPROVAL
# Approval moved before the escalation it answers
BACKDATE_APPROVAL = SimConfig(
    name="BACKDATE_APPROVAL",
    attack_kind=ATTACK_BACKDATE_APPROVAL,
    success_criteria={
        "phase_order": True,
        "tamper_applicable": True,
        "expected_checks": {
            CHECK_HASH: STATUS_FAIL,
            CHECK_RACI: STATUS_PASS,
            CHECK_MERKLE: STATUS_FAIL,
            CHECK_TEMPORAL: STATUS_FAIL,
        },
        "min_affected_nodes": 1
    },
    description="Claim earlier authorization"
)

ALL_SCENARIOS = [
    BASELINE,
    REMOVE_APPROVAL,
    CHANGE_GATE,
    BACKDATE_APPROVAL
]


def get_scenario_by_name(name: str) -> SimConfig:
    """Get scenario by name.

    Args:
        name: Scenario name

    Returns:
        SimConfig for the scenario

    Raises:
        ValueError: If scenario not found
    """
    for scenario in ALL_SCENARIOS:
        if scenario.name == name:
            return scenario
    raise ValueError(f"Scenario '{name}' not found")


def list_scenarios() -> list[str]:
    return [s.name for s in ALL_SCENARIOS]
