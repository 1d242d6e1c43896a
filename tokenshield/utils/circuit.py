# tokenshield/utils/circuit.py
"""
Per-endpoint circuit breaker.

closed --(N consecutive failures)--> open --(cooldown elapsed)--> half-open
half-open lets exactly one trial call through: success closes, failure re-opens.
Keys look like "provider:method"; each key has its own record and lock.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from tokenshield.utils.log import dbg

CLOSED = "closed"
OPEN = "open"
HALF_OPEN = "half-open"

DEFAULT_FAILURE_THRESHOLD = 5
DEFAULT_COOLDOWN_SECONDS = 60.0


@dataclass
class CircuitRecord:
    failures: int = 0
    opened_at: float = 0.0
    state: str = CLOSED
    trial_in_flight: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)


class CircuitBreaker:
    def __init__(
        self,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        cooldown: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = max(1, int(failure_threshold))
        self.cooldown = float(cooldown)
        self.clock = clock
        self._records: Dict[str, CircuitRecord] = {}
        self._lock = threading.Lock()

    def _record(self, key: str) -> CircuitRecord:
        with self._lock:
            rec = self._records.get(key)
            if rec is None:
                rec = CircuitRecord()
                self._records[key] = rec
            return rec

    def allow(self, key: str) -> bool:
        """True if a call may go out now. Callers must check before every request."""
        rec = self._record(key)
        with rec.lock:
            if rec.state == CLOSED:
                return True
            if rec.state == OPEN:
                if self.clock() - rec.opened_at < self.cooldown:
                    return False
                rec.state = HALF_OPEN
                rec.trial_in_flight = True
                dbg("CIRCUIT", f"{key} half-open: one trial call allowed")
                return True
            # half-open: the single trial is already out
            if rec.trial_in_flight:
                return False
            rec.trial_in_flight = True
            return True

    def record_success(self, key: str) -> None:
        rec = self._record(key)
        with rec.lock:
            if rec.state != CLOSED:
                dbg("CIRCUIT", f"{key} closed after successful call")
            rec.failures = 0
            rec.state = CLOSED
            rec.trial_in_flight = False

    def record_failure(self, key: str) -> None:
        rec = self._record(key)
        with rec.lock:
            rec.failures += 1
            if rec.state == HALF_OPEN:
                rec.state = OPEN
                rec.opened_at = self.clock()
                rec.trial_in_flight = False
                dbg("CIRCUIT", f"{key} trial failed, re-opened for {self.cooldown:.0f}s")
                return
            if rec.state == CLOSED and rec.failures >= self.failure_threshold:
                rec.state = OPEN
                rec.opened_at = self.clock()
                dbg("CIRCUIT", f"{key} opened after {rec.failures} consecutive failures")

    def state(self, key: str) -> Optional[str]:
        with self._lock:
            rec = self._records.get(key)
        if rec is None:
            return None
        with rec.lock:
            return rec.state

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._records.clear()
            else:
                self._records.pop(key, None)
