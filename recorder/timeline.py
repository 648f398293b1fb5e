"""Timeline Engine - the mission state machine

Walks a fixed, ordered list of phases with fixed durations. Entering a
phase runs that phase's side effects: decision receipts are appended to
the ledger, governance events are logged, and the governance display
state is updated. Every tick also moves the drone along the flight path.

The engine is the only writer of ScenarioState and of its ledger. Callers
get deep copies and snapshots; tamper simulation and verification work on
copies taken under the engine lock, so they never see a ledger mid-append.
"""

import copy
import json
import math
from dataclasses import dataclass, field
from threading import Lock
from typing import Callable, Optional

from config.constants import (
    ACTION_APPROVE,
    ACTION_DETECT,
    ACTION_ENGAGE,
    ACTION_ESCALATE,
    ACTION_NAVIGATE,
    AFFIDAVIT_DATA,
    ATTACK_REMOVE_APPROVAL,
    CONFIDENCE_ARRIVAL,
    CONFIDENCE_DROP,
    CONFIDENCE_ENGAGE,
    CONFIDENCE_INITIAL,
    CONFIDENCE_NOMINAL,
    CONFIDENCE_RESTORED,
    CRAG_ACTIVE,
    CRAG_QUERYING,
    CRAG_STANDBY,
    FALLBACK_NONE,
    FALLBACK_TRIGGERED,
    FLIGHT_PATH,
    INITIAL_ROTATION_DEG,
    MODE_AUTONOMOUS,
    MODE_SUPERVISED,
    PARTY_HUMAN,
    PHASE_CRAG_TRIGGERED,
    PHASE_DURATIONS_MS,
    PHASE_HUMAN_QUERY,
    PHASE_HUMAN_RESPONSE,
    PHASE_MISSION_COMPLETE,
    PHASE_NORMAL_OPS,
    PHASE_ORDER,
    PHASE_RACI_HANDOFF_BACK,
    PHASE_ROUTE,
    PHASE_ROUTE_RESUMED,
    PHASE_SEALED,
    PHASE_UNCERTAINTY_DETECTED,
    RACI_AI_SYSTEM,
    RACI_HUMAN_IN_LOOP,
    RC003_SAFETY_CONCERN,
    RC006_CONTEXT_MISSING,
    TICK_INTERVAL_MS,
    UNKNOWN_OBJECT,
)
from config.features import is_feature_enabled
from .anchor import LedgerAnchor, MerkleNode, anchor_ledger, build_merkle_tree, emit_anchor_receipt
from .core import dual_hash, emit_receipt, emit_stoprule, short_hash
from .governance.raci import default_raci, extract_authority_chain, raci_coverage
from .governance.reason_codes import validate_reason_code
from .receipts import Receipt, ReceiptEvent, ReceiptLedger, default_clock, format_timestamp
from .scheduler import TickScheduler
from .tamper import TamperResult, apply_attack, get_attack
from .verify import VerificationResult, verification_summary, verify_ledger

# Governance event types
EVENT_WAYPOINT_LOCKED = "WAYPOINT_LOCKED"
EVENT_WAYPOINT_ACHIEVED = "WAYPOINT_ACHIEVED"
EVENT_CONFIDENCE_UPDATE = "CONFIDENCE_UPDATE"
EVENT_UNCERTAINTY_DETECTED = "UNCERTAINTY_DETECTED"
EVENT_CRAG_FALLBACK_TRIGGERED = "CRAG_FALLBACK_TRIGGERED"
EVENT_EXTERNAL_QUERY = "EXTERNAL_QUERY"
EVENT_GROUND_CONTROL_RESPONSE = "GROUND_CONTROL_RESPONSE"
EVENT_RACI_HANDOFF = "RACI_HANDOFF"
EVENT_MODE_SWITCH = "MODE_SWITCH"
EVENT_ROUTE_RESUMED = "ROUTE_RESUMED"
EVENT_MISSION_COMPLETE = "MISSION_COMPLETE"
EVENT_CHAIN_VERIFY = "CHAIN_VERIFY"

SEVERITY_INFO = "INFO"
SEVERITY_WARN = "WARN"
SEVERITY_CRITICAL = "CRITICAL"
SEVERITY_SUCCESS = "SUCCESS"


@dataclass
class GovernanceState:
    """Governance panel state; mirrors the latest receipt."""
    responsible_party: str = RACI_AI_SYSTEM
    confidence: float = CONFIDENCE_INITIAL
    mode: str = MODE_AUTONOMOUS
    fallback_state: str = FALLBACK_NONE
    reason_code: Optional[str] = None
    crag_state: str = CRAG_STANDBY


@dataclass(frozen=True)
class GovernanceLogEntry:
    """One governance event, numbered by block."""
    block_id: int
    timestamp: str
    event_type: str
    detail: str
    reason_code: Optional[str]
    severity: str
    hash: str


@dataclass
class DronePosition:
    x: float
    y: float
    rotation: float


@dataclass
class UnknownObject:
    """The GPS drift zone the mission runs into."""
    id: str
    label: str
    x: float
    y: float
    detected: bool = False
    identified: bool = False
    identified_as: Optional[str] = None


@dataclass
class ScenarioState:
    """Complete timeline state at a given moment."""
    phase: str
    phase_start_time: int
    started_at: int
    elapsed_time: int = 0
    governance: GovernanceState = field(default_factory=GovernanceState)
    log: tuple[GovernanceLogEntry, ...] = ()
    drone_position: DronePosition = field(
        default_factory=lambda: DronePosition(FLIGHT_PATH[0][0], FLIGHT_PATH[0][1], INITIAL_ROTATION_DEG)
    )
    current_waypoint: int = 0
    total_waypoints: int = len(FLIGHT_PATH) - 1
    unknown_object: Optional[UnknownObject] = None


def create_initial_state(now: int) -> ScenarioState:
    """State of a freshly started scenario."""
    return ScenarioState(phase=PHASE_ORDER[0], phase_start_time=now, started_at=now)


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def interpolate_route(start: int, end: int,
                      progress: float) -> tuple[float, float, Optional[float], int]:
    """Position along the flight path between two waypoints.

    Args:
        start: Waypoint index at progress 0
        end: Waypoint index at progress 1
        progress: Fraction of the route flown, clamped to [0, 1]

    Returns:
        (x, y, heading in degrees or None when hovering, last waypoint reached)
    """
    progress = min(max(progress, 0.0), 1.0)

    if start == end:
        x, y, _ = FLIGHT_PATH[start]
        return x, y, None, start

    segments = end - start
    scaled = progress * segments
    k = min(int(scaled), segments - 1)
    local = scaled - k

    ax, ay, _ = FLIGHT_PATH[start + k]
    bx, by, _ = FLIGHT_PATH[start + k + 1]
    heading = math.degrees(math.atan2(by - ay, bx - ax))

    return lerp(ax, bx, local), lerp(ay, by, local), heading, start + int(scaled)


def build_affidavit(receipts: tuple[Receipt, ...], anchor: LedgerAnchor, now: int) -> dict:
    """Mission affidavit issued when the ledger is sealed."""
    return {
        **AFFIDAVIT_DATA,
        "sealed_at": format_timestamp(now),
        "receipt_count": len(receipts),
        "authority_chain": [r.id for r in extract_authority_chain(receipts)],
        "raci_compliance": round(raci_coverage(receipts) * 100),
        "merkle_root": anchor.root,
        "tree_depth": anchor.depth
    }


class TimelineEngine:
    """Deterministic mission timeline driving the receipt ledger.

    Time enters only through tick(now) (or the injected clock), so a
    ManualClock makes every run reproducible.
    """

    def __init__(self, clock: Optional[Callable[[], int]] = None,
                 tick_interval_ms: int = TICK_INTERVAL_MS):
        """Initialize the engine in the first phase.

        Args:
            clock: Millisecond clock, defaults to wall time
            tick_interval_ms: Period used by start()
        """
        self._clock = clock or default_clock
        self._tick_interval_ms = tick_interval_ms
        self._lock = Lock()
        self._scheduler: Optional[TickScheduler] = None
        self._generation = 0

        self._entry_routines = {
            PHASE_NORMAL_OPS: self._enter_normal_ops,
            PHASE_UNCERTAINTY_DETECTED: self._enter_uncertainty_detected,
            PHASE_CRAG_TRIGGERED: self._enter_crag_triggered,
            PHASE_HUMAN_QUERY: self._enter_human_query,
            PHASE_HUMAN_RESPONSE: self._enter_human_response,
            PHASE_RACI_HANDOFF_BACK: self._enter_raci_handoff_back,
            PHASE_ROUTE_RESUMED: self._enter_route_resumed,
            PHASE_MISSION_COMPLETE: self._enter_mission_complete,
            PHASE_SEALED: self._enter_sealed,
        }

        self._reset()

    def _reset(self):
        self._state = create_initial_state(int(self._clock()))
        self._ledger = ReceiptLedger(self._clock)
        self._anchor: Optional[LedgerAnchor] = None
        self._affidavit: Optional[dict] = None
        self._selected_attack = ATTACK_REMOVE_APPROVAL
        self._original_receipts: tuple[Receipt, ...] = ()
        self._attack_anchor: Optional[LedgerAnchor] = None
        self._tamper_result: Optional[TamperResult] = None
        self._verification: Optional[list[VerificationResult]] = None

    # =========================================================================
    # READ-ONLY ACCESSORS
    # =========================================================================

    @property
    def state(self) -> ScenarioState:
        """Deep copy of the current scenario state."""
        with self._lock:
            return copy.deepcopy(self._state)

    @property
    def phase(self) -> str:
        return self._state.phase

    @property
    def is_sealed(self) -> bool:
        return self._state.phase == PHASE_SEALED

    @property
    def receipts(self) -> tuple[Receipt, ...]:
        """Snapshot of the live ledger."""
        with self._lock:
            return self._ledger.snapshot()

    @property
    def anchor(self) -> Optional[LedgerAnchor]:
        return self._anchor

    @property
    def affidavit(self) -> Optional[dict]:
        with self._lock:
            return copy.deepcopy(self._affidavit)

    @property
    def selected_attack(self) -> str:
        return self._selected_attack

    @property
    def tampered_receipts(self) -> Optional[tuple[Receipt, ...]]:
        result = self._tamper_result
        return result.receipts if result is not None else None

    @property
    def touched_indices(self) -> tuple[int, ...]:
        result = self._tamper_result
        return result.touched_indices if result is not None else ()

    @property
    def verification_results(self) -> Optional[list[VerificationResult]]:
        with self._lock:
            return copy.deepcopy(self._verification)

    def authority_chain(self) -> list[Receipt]:
        """Authority chain of the active (possibly tampered) ledger."""
        with self._lock:
            return extract_authority_chain(self._active_receipts())

    def merkle_tree(self) -> MerkleNode:
        """Tree over the recorded ledger with the tampered path flagged."""
        with self._lock:
            if self._tamper_result is not None:
                return build_merkle_tree(self._original_receipts, self._tamper_result.touched_indices)
            return build_merkle_tree(self._ledger.snapshot())

    def _active_receipts(self) -> tuple[Receipt, ...]:
        if self._tamper_result is not None:
            return self._tamper_result.receipts
        return self._ledger.snapshot()

    # =========================================================================
    # SCHEDULING
    # =========================================================================

    def start(self):
        """Start the periodic tick driver."""
        with self._lock:
            if self._scheduler is not None and self._scheduler.running:
                return
            generation = self._generation
            self._scheduler = TickScheduler(
                lambda: self.tick(generation=generation), self._tick_interval_ms
            )
            scheduler = self._scheduler
        scheduler.start()

    def stop(self):
        """Cancel the tick driver. Ticks scheduled before this are dropped."""
        with self._lock:
            scheduler, self._scheduler = self._scheduler, None
            self._generation += 1
        if scheduler is not None:
            scheduler.cancel()

    def restart(self):
        """Cancel ticking and return to the state of a fresh engine."""
        self.stop()
        with self._lock:
            self._reset()
            emit_receipt("scenario_restart", {
                "phase": self._state.phase,
                "generation": self._generation
            }, silent=True)

    # =========================================================================
    # TIME
    # =========================================================================

    def tick(self, now: Optional[int] = None, generation: Optional[int] = None) -> bool:
        """Advance time. Never raises; a faulty tick leaves the phase unchanged.

        Args:
            now: Current time in ms, defaults to the engine clock
            generation: Scheduler generation; stale ticks are ignored

        Returns:
            True if a phase transition happened
        """
        with self._lock:
            if generation is not None and generation != self._generation:
                return False

            try:
                return self._step(int(self._clock() if now is None else now))
            except Exception as e:
                emit_stoprule(e, "timeline_tick", action="skip_tick")
                return False

    def advance(self, now: Optional[int] = None) -> bool:
        """Enter the next phase immediately.

        Returns:
            True if a transition happened, False in the terminal phase
        """
        with self._lock:
            if PHASE_DURATIONS_MS[self._state.phase] is None:
                return False

            now = int(self._clock() if now is None else now)
            try:
                self._transition(now, now)
                self._state.elapsed_time = now - self._state.started_at
                self._update_position(now)
            except Exception as e:
                emit_stoprule(e, "timeline_advance", action="skip_tick")
                return False
            return True

    def _step(self, now: int) -> bool:
        state = self._state
        duration = PHASE_DURATIONS_MS[state.phase]
        transitioned = False

        if duration is not None and now - state.phase_start_time >= duration:
            # Next phase starts where this one was due to end, not at the tick
            boundary = state.phase_start_time + duration
            self._update_position(boundary)
            self._transition(now, boundary)
            transitioned = True

        self._state.elapsed_time = now - self._state.started_at
        self._update_position(now)
        return transitioned

    def _transition(self, now: int, start_time: int):
        previous_state, previous_ledger = self._state, self._ledger
        self._state = copy.deepcopy(previous_state)
        self._ledger = previous_ledger.fork()

        from_phase = previous_state.phase
        try:
            to_phase = PHASE_ORDER[PHASE_ORDER.index(from_phase) + 1]
            self._state.phase = to_phase
            self._state.phase_start_time = start_time

            routine = self._entry_routines.get(to_phase)
            if routine is not None:
                routine(now)
        except Exception:
            self._state, self._ledger = previous_state, previous_ledger
            raise

        emit_receipt("phase_transition", {
            "from_phase": from_phase,
            "to_phase": to_phase,
            "phase_start_time": start_time,
            "ledger_size": len(self._ledger)
        }, silent=True)

    def _update_position(self, now: int):
        state = self._state
        start, end = PHASE_ROUTE[state.phase]
        duration = PHASE_DURATIONS_MS[state.phase]
        progress = (now - state.phase_start_time) / duration if duration else 1.0

        x, y, heading, reached = interpolate_route(start, end, progress)
        rotation = heading if heading is not None else state.drone_position.rotation
        state.drone_position = DronePosition(x, y, rotation)

        for index in range(state.current_waypoint + 1, reached + 1):
            self._log(EVENT_WAYPOINT_ACHIEVED, FLIGHT_PATH[index][2], SEVERITY_INFO, now)
        state.current_waypoint = max(state.current_waypoint, reached)

    # =========================================================================
    # PHASE SIDE EFFECTS
    # =========================================================================

    def _log(self, event_type: str, detail: str, severity: str, now: int,
             reason_code: Optional[str] = None) -> GovernanceLogEntry:
        if not validate_reason_code(reason_code):
            raise ValueError(f"Unknown reason code '{reason_code}'")

        body = {
            "block_id": len(self._state.log) + 1,
            "timestamp": format_timestamp(now),
            "event_type": event_type,
            "detail": detail,
            "reason_code": reason_code,
            "severity": severity,
        }
        entry = GovernanceLogEntry(hash=dual_hash(json.dumps(body, sort_keys=True)), **body)
        self._state.log = self._state.log + (entry,)
        return entry

    def _record(self, action: str, confidence: float, now: int,
                reason: Optional[str] = None) -> Receipt:
        raci = default_raci(action)
        receipt = self._ledger.append(ReceiptEvent(
            action=action,
            confidence=confidence,
            responsible_party=raci.responsible,
            accountable_party=raci.accountable,
            reason=reason,
            consulted=raci.consulted,
            informed=raci.informed,
        ), now)

        governance = self._state.governance
        governance.confidence = receipt.confidence
        governance.responsible_party = (
            RACI_HUMAN_IN_LOOP if receipt.responsible_party == PARTY_HUMAN else RACI_AI_SYSTEM
        )
        return receipt

    def _enter_normal_ops(self, now: int):
        self._record(ACTION_NAVIGATE, CONFIDENCE_NOMINAL, now)
        self._log(EVENT_WAYPOINT_LOCKED, FLIGHT_PATH[1][2], SEVERITY_INFO, now)
        self._log(EVENT_CONFIDENCE_UPDATE, f"{CONFIDENCE_NOMINAL:.2f}", SEVERITY_INFO, now)

    def _enter_uncertainty_detected(self, now: int):
        self._record(ACTION_DETECT, CONFIDENCE_DROP, now, reason=RC006_CONTEXT_MISSING)
        self._state.unknown_object = UnknownObject(detected=True, **UNKNOWN_OBJECT)
        self._state.governance.reason_code = RC006_CONTEXT_MISSING
        self._log(EVENT_UNCERTAINTY_DETECTED, "GPS signal degradation detected",
                  SEVERITY_WARN, now, reason_code=RC006_CONTEXT_MISSING)

    def _enter_crag_triggered(self, now: int):
        self._record(ACTION_ESCALATE, CONFIDENCE_DROP, now, reason="HUMAN_APPROVAL_REQUIRED")
        governance = self._state.governance
        governance.fallback_state = FALLBACK_TRIGGERED
        governance.crag_state = CRAG_ACTIVE
        governance.mode = MODE_SUPERVISED
        self._log(EVENT_CRAG_FALLBACK_TRIGGERED, f"Confidence {CONFIDENCE_DROP:.2f} below autonomous gate",
                  SEVERITY_CRITICAL, now, reason_code=RC006_CONTEXT_MISSING)
        self._log(EVENT_MODE_SWITCH, f"{MODE_AUTONOMOUS} -> {MODE_SUPERVISED}", SEVERITY_WARN, now)

    def _enter_human_query(self, now: int):
        governance = self._state.governance
        governance.crag_state = CRAG_QUERYING
        governance.responsible_party = RACI_HUMAN_IN_LOOP
        self._log(EVENT_EXTERNAL_QUERY, "Ground Control - GPS recalibration requested", SEVERITY_WARN, now)
        self._log(EVENT_RACI_HANDOFF, f"{RACI_AI_SYSTEM} -> {RACI_HUMAN_IN_LOOP}", SEVERITY_WARN, now)

    def _enter_human_response(self, now: int):
        self._record(ACTION_APPROVE, CONFIDENCE_RESTORED, now, reason="GPS_RESTORED")
        if self._state.unknown_object is not None:
            self._state.unknown_object.identified = True
            self._state.unknown_object.identified_as = "GPS_RESTORED"
        self._log(EVENT_GROUND_CONTROL_RESPONSE, "Proceed - GPS recalibrated, signal restored",
                  SEVERITY_SUCCESS, now)

    def _enter_raci_handoff_back(self, now: int):
        governance = self._state.governance
        governance.responsible_party = RACI_AI_SYSTEM
        governance.mode = MODE_AUTONOMOUS
        governance.fallback_state = FALLBACK_NONE
        governance.crag_state = CRAG_STANDBY
        governance.reason_code = None
        self._log(EVENT_RACI_HANDOFF, f"{RACI_HUMAN_IN_LOOP} -> {RACI_AI_SYSTEM}", SEVERITY_INFO, now)
        self._log(EVENT_MODE_SWITCH, f"{MODE_SUPERVISED} -> {MODE_AUTONOMOUS}", SEVERITY_INFO, now)

    def _enter_route_resumed(self, now: int):
        self._record(ACTION_ENGAGE, CONFIDENCE_ENGAGE, now)
        self._log(EVENT_ROUTE_RESUMED, FLIGHT_PATH[4][2], SEVERITY_SUCCESS, now)

    def _enter_mission_complete(self, now: int):
        self._record(ACTION_NAVIGATE, CONFIDENCE_ARRIVAL, now, reason="DEST_REACHED")
        self._log(EVENT_MISSION_COMPLETE, FLIGHT_PATH[-1][2], SEVERITY_SUCCESS, now)

    def _enter_sealed(self, now: int):
        receipts = self._ledger.snapshot()
        anchor = anchor_ledger(receipts)
        emit_anchor_receipt(anchor)
        self._log(EVENT_CHAIN_VERIFY, f"Merkle root {short_hash(anchor.root)} over {anchor.size} receipts",
                  SEVERITY_SUCCESS, now)

        verification = None
        if is_feature_enabled("FEATURE_AUTO_VERIFY_ON_SEAL"):
            verification = verify_ledger(receipts, anchor)
            summary = verification_summary(verification)
            self._log(
                EVENT_CHAIN_VERIFY,
                f"{summary['passed']}/{len(verification)} checks passed",
                SEVERITY_SUCCESS if summary["all_passed"] else SEVERITY_CRITICAL,
                now,
                reason_code=None if summary["all_passed"] else RC003_SAFETY_CONCERN,
            )

        self._anchor = anchor
        self._affidavit = build_affidavit(receipts, anchor, now)
        if verification is not None:
            self._verification = verification

    # =========================================================================
    # TAMPER SIMULATION AND VERIFICATION
    # =========================================================================

    def select_attack(self, attack_kind: str):
        """Choose the attack run_attack() will apply.

        Raises:
            ValueError: If the attack is not in the catalogue
        """
        get_attack(attack_kind)
        with self._lock:
            self._selected_attack = attack_kind

    def run_attack(self) -> TamperResult:
        """Apply the selected attack to a snapshot of the ledger.

        The original snapshot and its anchor are kept for comparison; the
        live ledger is never touched.
        """
        with self._lock:
            original = self._ledger.snapshot()
            anchor = self._anchor if self._anchor is not None else anchor_ledger(original)
            result = apply_attack(original, self._selected_attack)

            self._original_receipts = original
            self._attack_anchor = anchor
            self._tamper_result = result
            self._verification = None
            return result

    def clear_attack(self):
        """Drop the tampered copy; verify() goes back to the live ledger."""
        with self._lock:
            self._original_receipts = ()
            self._attack_anchor = None
            self._tamper_result = None
            self._verification = None

    def verify(self) -> list[VerificationResult]:
        """Verify the active ledger: the tampered copy if any, else the live one."""
        with self._lock:
            if self._tamper_result is not None:
                receipts = self._tamper_result.receipts
                anchor = self._attack_anchor
            else:
                receipts = self._ledger.snapshot()
                anchor = self._anchor
                if anchor is None and receipts:
                    anchor = anchor_ledger(receipts)

            self._verification = verify_ledger(receipts, anchor)
            return copy.deepcopy(self._verification)
