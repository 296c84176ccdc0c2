from __future__ import annotations

import signal
import threading
import time
from typing import Callable

from .events import HEALTH, INCIDENT, EventLog
from .health import HealthEvaluator
from .logwatch import LogWatcher, is_watchable
from .report import PeriodicReporter, emit_report
from .restarts import RestartOrchestrator, backoff_delays
from .runtime import GuardianState
from .settings import Settings, settings
from .specs import ServiceSpec, SpecSource
from .supervisor import Supervisor

STOPPED = "stopped"
RUNNING = "running"
SHUTTING_DOWN = "shutting_down"


class Guardian:
    """Periodically checks every enabled service and heals the broken ones.

    One thread runs the tick loop and is the only writer of the uptime and
    downtime counters. Log watchers and the periodic reporter run as
    background threads and are stopped at shutdown.
    """

    def __init__(
        self,
        source: SpecSource,
        supervisor: Supervisor,
        events: EventLog,
        s: Settings | None = None,
        evaluator: HealthEvaluator | None = None,
        orchestrator: RestartOrchestrator | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.s = s or settings
        self.source = source
        self.supervisor = supervisor
        self.events = events
        self.evaluator = evaluator or HealthEvaluator(supervisor, s=self.s)
        self.orchestrator = orchestrator or RestartOrchestrator(supervisor, events, s=self.s, sleep=sleep)
        self.state = GuardianState(self.s.check_interval_s)
        self.status = STOPPED
        self.ticks = 0
        self.watchers: list[LogWatcher] = []
        self.reporter: PeriodicReporter | None = None
        self._stop = threading.Event()
        self._prev_handlers: dict[int, object] = {}
        self._final_report: str | None = None

    # ------------------------------------------------------------------ lifecycle

    def start(self) -> list[ServiceSpec]:
        """Enter the running state: init counters, start background tasks."""
        self.events.health("Service Guardian started")
        try:
            specs = self.source()
        except Exception as e:
            self.events.incident(f"Configuration unavailable at startup: {e}")
            specs = []

        for spec in specs:
            self.state.ensure(spec.name)

        for spec in specs:
            if spec.enabled and is_watchable(spec.log_file):
                w = LogWatcher(spec.name, spec.log_file, self.events, self.s.log_poll_interval_s)
                w.start()
                self.watchers.append(w)

        self.reporter = PeriodicReporter(self.state, self.events, self.s.report_interval_s)
        self.reporter.start()
        self.status = RUNNING
        return specs

    def run(self, install_signals: bool = True) -> int:
        specs = self.start()
        print(self.banner(specs), flush=True)
        if install_signals:
            self._install_signal_handlers()
        try:
            while not self._stop.is_set():
                self.tick()
                if self._stop.wait(self.s.check_interval_s):
                    break
        finally:
            self.shutdown()
            self._restore_signal_handlers()
        return 0

    def request_stop(self, signum: int | None = None, frame=None) -> None:
        # Checked between ticks; a restart sequence in progress runs to completion.
        self._stop.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    def shutdown(self) -> str | None:
        """Stop background tasks, final report, close sinks. Runs once."""
        if self._final_report is not None:
            return None
        self.status = SHUTTING_DOWN
        self._stop.set()

        tasks = [*self.watchers, *([self.reporter] if self.reporter else [])]
        for t in tasks:
            t.stop()
        # A periodic report already in flight lands before the final one.
        for t in tasks:
            t.join(timeout=max(1.0, self.s.log_poll_interval_s * 4))
        self._final_report = emit_report(self.state, self.events, to_stdout=True)

        self.events.health("Service Guardian stopped")
        self.events.close()
        self.status = STOPPED
        return self._final_report

    def _install_signal_handlers(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return
        for sig in (signal.SIGINT, signal.SIGTERM):
            self._prev_handlers[sig] = signal.signal(sig, self.request_stop)

    def _restore_signal_handlers(self) -> None:
        for sig, handler in self._prev_handlers.items():
            signal.signal(sig, handler)
        self._prev_handlers.clear()

    # ------------------------------------------------------------------ ticks

    def tick(self) -> bool:
        """One pass over the current service definitions.

        Returns False when the definitions could not be loaded; in that case
        no service is evaluated or accounted for on this tick.
        """
        try:
            specs = self.source()
        except Exception as e:
            self.events.incident(f"Configuration unavailable, skipping tick: {e}")
            return False

        for spec in specs:
            if not spec.enabled:
                continue
            try:
                self.check_service(spec, specs)
            except Exception as e:
                self.events.incident(f"{spec.name} check aborted: {type(e).__name__}: {e}")
        self.ticks += 1
        return True

    def check_service(self, spec: ServiceSpec, all_specs: list[ServiceSpec]) -> bool:
        healthy, reason = self.evaluator.evaluate(spec)
        if healthy:
            self.state.record_tick(spec.name, True)
            self.events.health(f"{spec.name} healthy")
            return True

        self.events.incident(f"{spec.name} unhealthy ({reason})")
        # Downtime reflects what was observed, whatever the restart achieves.
        self.state.record_tick(spec.name, False)
        ok = self.orchestrator.restart_with_dependencies(spec, all_specs)
        self.state.record_restart(spec.name, ok)
        return False

    # ------------------------------------------------------------------ console

    def banner(self, specs: list[ServiceSpec]) -> str:
        enabled = [sp.name for sp in specs if sp.enabled]
        disabled = [sp.name for sp in specs if not sp.enabled]
        delays = ", ".join(f"{d:g}s" for d in backoff_delays(self.s.max_retries, self.s.base_delay_s))
        lines = [
            "=" * 50,
            " Service Guardian",
            f" Services: {', '.join(enabled) if enabled else '(none)'}",
        ]
        if disabled:
            lines.append(f" Disabled: {', '.join(disabled)}")
        lines += [
            f" Check interval: {self.s.check_interval_s}s",
            f" Restart backoff: {self.s.max_retries} attempts ({delays or 'none'})",
            f" Health log: {self.events.paths[HEALTH]}",
            f" Incident log: {self.events.paths[INCIDENT]}",
        ]
        for w in self.watchers:
            lines.append(f" Watching {w.path} for {w.service}")
        lines.append("=" * 50)
        return "\n".join(lines)
