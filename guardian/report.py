from __future__ import annotations

from threading import Event, Thread

from .events import EventLog, timestamp
from .runtime import GuardianState, ServiceRuntimeState


def format_duration(seconds: float) -> str:
    total = int(seconds)
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    return f"{h}h {m}m {s}s"


def _fmt_counter(value: float) -> str:
    return f"{int(value)}s" if float(value).is_integer() else f"{value:.1f}s"


def report_rows(state: GuardianState) -> list[ServiceRuntimeState]:
    """Services with observed time, in the order they were first seen."""
    return [st for st in state.snapshot() if st.total_s > 0]


def build_report(state: GuardianState, now: float | None = None) -> str:
    lines = [
        "===== Service Availability Report =====",
        f"Generated: {timestamp()}",
        f"Total runtime: {format_duration(state.elapsed_s(now))}",
    ]
    rows = report_rows(state)
    if not rows:
        lines.append("No service has been observed yet.")
    for st in rows:
        lines.append(
            f"{st.name}: uptime={_fmt_counter(st.uptime_s)} "
            f"downtime={_fmt_counter(st.downtime_s)} "
            f"availability={st.availability:.2f}%"
        )
    lines.append("=" * 39)
    return "\n".join(lines)


def emit_report(state: GuardianState, events: EventLog, to_stdout: bool = False) -> str:
    text = build_report(state)
    events.health_block(text.splitlines())
    if to_stdout:
        print(text, flush=True)
    return text


class PeriodicReporter:
    """Appends an availability report to the health log every ``interval_s``."""

    def __init__(self, state: GuardianState, events: EventLog, interval_s: float):
        self.state = state
        self.events = events
        self.interval_s = max(0.01, float(interval_s))
        self._stop = Event()
        self._thr: Thread | None = None

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._stop.clear()
        self._thr = Thread(target=self._loop, name="guardian-reporter", daemon=True)
        self._thr.start()

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thr:
            self._thr.join(timeout)

    def is_alive(self) -> bool:
        return bool(self._thr and self._thr.is_alive())

    def _loop(self) -> None:
        # Event.wait returns True once stop() is called.
        while not self._stop.wait(self.interval_s):
            emit_report(self.state, self.events)
