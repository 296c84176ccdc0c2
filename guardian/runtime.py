from __future__ import annotations

import time
from dataclasses import dataclass, replace
from threading import Lock

from .events import timestamp


@dataclass
class ServiceRuntimeState:
    name: str
    uptime_s: float = 0
    downtime_s: float = 0
    ticks_observed: int = 0
    last_healthy: bool | None = None
    last_checked: str | None = None
    restarts_attempted: int = 0
    restarts_failed: int = 0

    @property
    def total_s(self) -> float:
        return self.uptime_s + self.downtime_s

    @property
    def availability(self) -> float | None:
        total = self.total_s
        if total <= 0:
            return None
        return round(self.uptime_s / total * 100.0, 2)


class GuardianState:
    """In-memory uptime/downtime accounting.

    Only the control loop writes; the reporter and the status API read
    through ``snapshot()``, which copies under the lock.
    """

    def __init__(self, check_interval_s: float, start_time: float | None = None) -> None:
        self.lock = Lock()
        self.check_interval_s = check_interval_s
        self.start_time = time.time() if start_time is None else start_time
        self.runtime_states: dict[str, ServiceRuntimeState] = {}

    def ensure(self, name: str) -> ServiceRuntimeState:
        with self.lock:
            st = self.runtime_states.get(name)
            if st is None:
                st = ServiceRuntimeState(name=name)
                self.runtime_states[name] = st
            return st

    def record_tick(self, name: str, healthy: bool) -> ServiceRuntimeState:
        """Attribute exactly one check interval to uptime or downtime.

        Time spent probing or restarting is not measured: accounting is
        quantized to ticks.
        """
        st = self.ensure(name)
        with self.lock:
            if healthy:
                st.uptime_s += self.check_interval_s
            else:
                st.downtime_s += self.check_interval_s
            st.ticks_observed += 1
            st.last_healthy = healthy
            st.last_checked = timestamp()
        return st

    def record_restart(self, name: str, ok: bool) -> None:
        st = self.ensure(name)
        with self.lock:
            st.restarts_attempted += 1
            if not ok:
                st.restarts_failed += 1

    def compute_availability(self, name: str) -> float | None:
        with self.lock:
            st = self.runtime_states.get(name)
            return st.availability if st else None

    def snapshot(self) -> list[ServiceRuntimeState]:
        with self.lock:
            return [replace(st) for st in self.runtime_states.values()]

    def elapsed_s(self, now: float | None = None) -> float:
        return max(0.0, (time.time() if now is None else now) - self.start_time)
