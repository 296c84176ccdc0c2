from __future__ import annotations

import time
from typing import Callable, Iterable

from .events import EventLog
from .settings import Settings, settings
from .specs import ServiceSpec, index_by_name
from .supervisor import Supervisor


def backoff_delays(max_retries: int, base_delay_s: float) -> list[float]:
    """Delays slept after each failed attempt, e.g. 4 retries at base 2 -> [2, 4, 8, 16]."""
    return [base_delay_s * (2**retry) for retry in range(max(0, int(max_retries)))]


def _fmt_s(value: float) -> str:
    return f"{int(value)}" if float(value).is_integer() else f"{value:g}"


class RestartOrchestrator:
    """Restarts an unhealthy service, its dependencies first.

    Dependencies are restarted best-effort: a dependency that cannot be
    brought up is reported, and the dependent's own restart is still
    attempted. Retry counters live only for the duration of one call, so
    every tick that finds the service down starts a fresh backoff sequence.

    All waiting is done with plain blocking sleeps; the control loop is
    held for the whole sequence.
    """

    def __init__(
        self,
        supervisor: Supervisor,
        events: EventLog,
        s: Settings | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.supervisor = supervisor
        self.events = events
        self.s = s or settings
        self.sleep = sleep

    def _attempt(self, name: str) -> bool:
        """Restart, wait for the service to settle, recheck."""
        try:
            self.supervisor.restart(name)
        except Exception as e:
            self.events.incident(f"{name} restart command error: {type(e).__name__}: {e}")
        self.sleep(self.s.settle_delay_s)
        try:
            return self.supervisor.is_active(name)
        except Exception as e:
            self.events.incident(f"{name} status check error: {type(e).__name__}: {e}")
            return False

    def restart_with_backoff(self, name: str) -> bool:
        retry = 0
        while retry < self.s.max_retries:
            if self._attempt(name):
                self.events.health(f"{name} restarted successfully")
                return True

            delay = self.s.base_delay_s * (2**retry)
            self.events.incident(f"{name} restart failed, retry {retry + 1} in {_fmt_s(delay)}s")
            self.sleep(delay)
            retry += 1

        self.events.incident(f"{name} FAILED after {self.s.max_retries} retries")
        return False

    def _dependency_active(self, name: str) -> bool:
        try:
            return self.supervisor.is_active(name)
        except Exception:
            return False

    def restart_with_dependencies(self, spec: ServiceSpec, all_specs: Iterable[ServiceSpec] = ()) -> bool:
        """Returns the outcome of the service's own restart."""
        known = index_by_name(all_specs)
        for dep in spec.depends_on:
            if self._dependency_active(dep):
                continue
            if known and dep not in known:
                self.events.incident(f"{spec.name} depends on {dep}, which has no service definition")
            if not self.restart_with_backoff(dep):
                self.events.incident(f"{spec.name} dependency {dep} could not be restarted")
        return self.restart_with_backoff(spec.name)
