"""Mission Simulation Harness for the Decision Recorder

Validation framework with 4 mandatory scenarios:
1. BASELINE - Untampered mission verifies 4/4
2. REMOVE_APPROVAL - Deleted operator approval
3. CHANGE_GATE - YELLOW rewritten to GREEN
4. BACKDATE_APPROVAL - Approval moved before its escalation
"""

from .sim import SimConfig, SimState, SimResult, run_simulation, run_all_scenarios, quick_test
from .scenarios import BASELINE, REMOVE_APPROVAL, CHANGE_GATE, BACKDATE_APPROVAL, ALL_SCENARIOS
