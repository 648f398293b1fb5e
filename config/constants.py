"""Decision Recorder Constants

Single source of truth for all thresholds, timings and scenario data.
No magic numbers in module code.
"""

# =============================================================================
# CONFIDENCE GATE THRESHOLDS
# =============================================================================

GATE_GREEN_THRESHOLD = 0.80   # Confidence >= 0.80 → GREEN (permissive)
GATE_YELLOW_THRESHOLD = 0.60  # Confidence >= 0.60 and < 0.80 → YELLOW (caution)
                               # Confidence < 0.60 → RED (blocking)

GATE_GREEN = "GREEN"
GATE_YELLOW = "YELLOW"
GATE_RED = "RED"

# =============================================================================
# DECISION ACTIONS
# =============================================================================

ACTION_NAVIGATE = "NAVIGATE"
ACTION_DETECT = "DETECT"
ACTION_ESCALATE = "ESCALATE"
ACTION_APPROVE = "APPROVE"
ACTION_ENGAGE = "ENGAGE"

ACTION_TYPES = [
    ACTION_NAVIGATE,
    ACTION_DETECT,
    ACTION_ESCALATE,
    ACTION_APPROVE,
    ACTION_ENGAGE,
]

# =============================================================================
# ACCOUNTABILITY
# =============================================================================

PARTY_AI = "AI"
PARTY_HUMAN = "HUMAN"
PARTY_PENDING = "PENDING"

OPERATOR_ID = "OPR-01"
GROUND_CONTROL_ID = "GROUND_CONTROL"

# RACI display states
RACI_AI_SYSTEM = "AI_SYSTEM"
RACI_HUMAN_IN_LOOP = "HUMAN_IN_LOOP"

# Autonomy modes
MODE_AUTONOMOUS = "AUTONOMOUS"
MODE_SUPERVISED = "SUPERVISED"

# Corrective fallback (CRAG) states
CRAG_STANDBY = "STANDBY"
CRAG_ACTIVE = "ACTIVE"
CRAG_QUERYING = "QUERYING"

FALLBACK_NONE = "NONE"
FALLBACK_TRIGGERED = "TRIGGERED"

# =============================================================================
# REASON CODES
# =============================================================================

RC001_FACTUAL_ERROR = "RC001_FACTUAL_ERROR"
RC003_SAFETY_CONCERN = "RC003_SAFETY_CONCERN"
RC006_CONTEXT_MISSING = "RC006_CONTEXT_MISSING"
RC009_TIMING_ERROR = "RC009_TIMING_ERROR"

# =============================================================================
# TIMELINE
# =============================================================================

TICK_INTERVAL_MS = 50         # One scheduler tick

PHASE_TAKEOFF = "TAKEOFF"
PHASE_NORMAL_OPS = "NORMAL_OPS"
PHASE_UNCERTAINTY_DETECTED = "UNCERTAINTY_DETECTED"
PHASE_CRAG_TRIGGERED = "CRAG_TRIGGERED"
PHASE_HUMAN_QUERY = "HUMAN_QUERY"
PHASE_HUMAN_RESPONSE = "HUMAN_RESPONSE"
PHASE_RACI_HANDOFF_BACK = "RACI_HANDOFF_BACK"
PHASE_ROUTE_RESUMED = "ROUTE_RESUMED"
PHASE_MISSION_COMPLETE = "MISSION_COMPLETE"
PHASE_SEALED = "SEALED"

PHASE_ORDER = [
    PHASE_TAKEOFF,
    PHASE_NORMAL_OPS,
    PHASE_UNCERTAINTY_DETECTED,
    PHASE_CRAG_TRIGGERED,
    PHASE_HUMAN_QUERY,
    PHASE_HUMAN_RESPONSE,
    PHASE_RACI_HANDOFF_BACK,
    PHASE_ROUTE_RESUMED,
    PHASE_MISSION_COMPLETE,
    PHASE_SEALED,
]

# Phase durations (ms). The terminal phase has none.
PHASE_DURATIONS_MS = {
    PHASE_TAKEOFF: 2000,
    PHASE_NORMAL_OPS: 10000,
    PHASE_UNCERTAINTY_DETECTED: 2000,
    PHASE_CRAG_TRIGGERED: 1000,
    PHASE_HUMAN_QUERY: 2000,          # System waiting on ground control
    PHASE_HUMAN_RESPONSE: 1500,
    PHASE_RACI_HANDOFF_BACK: 1000,
    PHASE_ROUTE_RESUMED: 3000,
    PHASE_MISSION_COMPLETE: 2000,
    PHASE_SEALED: None,
}

# =============================================================================
# CONFIDENCE SCRIPT
# =============================================================================

CONFIDENCE_INITIAL = 0.99
CONFIDENCE_NOMINAL = 0.92
CONFIDENCE_DROP = 0.62        # Corrective fallback is triggered here
CONFIDENCE_RESTORED = 0.94    # After ground control confirmation
CONFIDENCE_ENGAGE = 0.98
CONFIDENCE_ARRIVAL = 0.97

# =============================================================================
# FLIGHT PATH
# =============================================================================

# (x, y, label) in map units
FLIGHT_PATH = [
    (80.0, 200.0, "TAKEOFF"),
    (130.0, 170.0, "WPT_1"),
    (180.0, 160.0, "WPT_2"),
    (240.0, 150.0, "WPT_3"),
    (300.0, 145.0, "WPT_4"),
    (350.0, 140.0, "WPT_5"),
    (420.0, 145.0, "DEST"),
]

INITIAL_ROTATION_DEG = 45.0

# Route segment flown during each phase: (from waypoint, to waypoint)
PHASE_ROUTE = {
    PHASE_TAKEOFF: (0, 1),
    PHASE_NORMAL_OPS: (1, 3),
    PHASE_UNCERTAINTY_DETECTED: (3, 3),
    PHASE_CRAG_TRIGGERED: (3, 3),
    PHASE_HUMAN_QUERY: (3, 3),
    PHASE_HUMAN_RESPONSE: (3, 3),
    PHASE_RACI_HANDOFF_BACK: (3, 4),
    PHASE_ROUTE_RESUMED: (4, 5),
    PHASE_MISSION_COMPLETE: (5, 6),
    PHASE_SEALED: (6, 6),
}

# GPS drift zone that triggers the corrective fallback
UNKNOWN_OBJECT = {
    "id": "GPS_DRIFT_01",
    "label": "GPS DRIFT ZONE",
    "x": 270.0,
    "y": 145.0,
}

# =============================================================================
# TAMPER SIMULATION
# =============================================================================

ATTACK_REMOVE_APPROVAL = "REMOVE_APPROVAL"
ATTACK_CHANGE_GATE = "CHANGE_GATE"
ATTACK_BACKDATE_APPROVAL = "BACKDATE_APPROVAL"

BACKDATE_OFFSET_MS = 1000     # Backdated approval lands 1s before its predecessor

# =============================================================================
# VERIFICATION
# =============================================================================

CHECK_HASH = "Hash verification"
CHECK_RACI = "RACI verification"
CHECK_MERKLE = "Merkle verification"
CHECK_TEMPORAL = "Temporal verification"

STATUS_PASS = "PASS"
STATUS_FAIL = "FAIL"
STATUS_NOT_APPLICABLE = "N/A"

# =============================================================================
# AFFIDAVIT
# =============================================================================

AFFIDAVIT_DATA = {
    "mission_id": "FLT-2026-0105-0847",
    "aircraft": "UAV-ALPHA-7",
    "operator": "Northstar AO",
    "liability_status": "SHARED",
}
