"""Tick Scheduling

One periodic driver calls the timeline's tick function. The next tick is
only scheduled once the current one has returned, so ticks never overlap.
ManualClock and drive() replace real timers for deterministic runs.
"""

from threading import Lock, Timer
from typing import Callable, Optional

from config.constants import PHASE_ORDER, TICK_INTERVAL_MS


class TickScheduler:
    """Cancellable periodic driver on a threading.Timer chain."""

    def __init__(self, callback: Callable[[], object], interval_ms: int = TICK_INTERVAL_MS):
        """Initialize a stopped scheduler.

        Args:
            callback: Called once per tick, with no arguments
            interval_ms: Delay between the end of one tick and the next
        """
        self._callback = callback
        self._interval_s = interval_ms / 1000
        self._lock = Lock()
        self._timer: Optional[Timer] = None
        self._running = False

    def start(self):
        with self._lock:
            if self._running:
                return
            self._running = True
            self._schedule()

    def cancel(self):
        """Stop ticking. A tick already in flight finishes; none follows."""
        with self._lock:
            self._running = False
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    @property
    def running(self) -> bool:
        return self._running

    def _schedule(self):
        self._timer = Timer(self._interval_s, self._run)
        self._timer.daemon = True
        self._timer.start()

    def _run(self):
        with self._lock:
            if not self._running:
                return
        try:
            self._callback()
        finally:
            with self._lock:
                if self._running:
                    self._schedule()


class ManualClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms: int = 0):
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> int:
        self.now_ms += ms
        return self.now_ms

    def set(self, ms: int):
        self.now_ms = ms


def drive(engine, clock: ManualClock, until_phase: str = PHASE_ORDER[-1],
          interval_ms: int = TICK_INTERVAL_MS, max_ms: int = 120_000) -> list[tuple[str, int]]:
    """Tick an engine on a manual clock until it reaches a phase.

    Args:
        engine: TimelineEngine built on the same clock
        clock: The manual clock
        until_phase: Stop once this phase is entered
        interval_ms: Clock step per tick
        max_ms: Give up after this much simulated time

    Returns:
        (phase, clock time) for the starting phase and every phase entered
    """
    visited = [(engine.phase, clock())]
    deadline = clock() + max_ms

    while visited[-1][0] != until_phase and clock() < deadline:
        clock.advance(interval_ms)
        engine.tick()
        phase = engine.phase
        if phase != visited[-1][0]:
            visited.append((phase, clock()))

    return visited
