from __future__ import annotations

import os
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from threading import Lock

from .settings import Settings

HEALTH = "health"
INCIDENT = "incident"


def timestamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def _ensure_parent(path: str) -> str:
    p = os.path.abspath(path)
    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)
    return p


@dataclass(frozen=True)
class Event:
    ts: str
    kind: str  # health|incident
    message: str

    def line(self) -> str:
        return f"{self.ts} | {self.message}"


class EventLog:
    """Append-only health and incident sinks.

    Every event is one line, ``<timestamp> | <message>``, appended to the
    health log or the incident log. The control loop, the log watchers and
    the periodic reporter all write here from different threads; a single
    lock keeps each line whole.

    After ``close()`` writes are dropped, so nothing lands in the files once
    the guardian has announced its shutdown.
    """

    def __init__(self, health_path: str, incident_path: str, echo: bool = False, keep: int = 500):
        self.paths = {HEALTH: _ensure_parent(health_path), INCIDENT: _ensure_parent(incident_path)}
        self.echo = echo
        self._lock = Lock()
        self._recent: deque[Event] = deque(maxlen=max(1, int(keep)))
        self._closed = False
        for p in self.paths.values():
            # Create both files up front so operators can tail them immediately.
            with open(p, "a", encoding="utf-8"):
                pass

    @classmethod
    def from_settings(cls, s: Settings) -> "EventLog":
        return cls(s.health_log, s.incident_log, echo=s.echo_events)

    def health(self, message: str) -> bool:
        return self._write(HEALTH, message)

    def incident(self, message: str) -> bool:
        return self._write(INCIDENT, message)

    def health_block(self, messages: list[str]) -> bool:
        """Append several health lines in one go; other writers cannot interleave."""
        return self._write(HEALTH, *messages)

    def _write(self, kind: str, *messages: str) -> bool:
        ts = timestamp()
        evs = [Event(ts=ts, kind=kind, message=m) for m in messages]
        with self._lock:
            if self._closed:
                return False
            try:
                with open(self.paths[kind], "a", encoding="utf-8") as f:
                    f.write("".join(ev.line() + "\n" for ev in evs))
            except OSError:
                # Disk full or permissions: the event is dropped.
                return False
            self._recent.extend(evs)
        if self.echo:
            for ev in evs:
                print(f"[{kind}] {ev.line()}", flush=True)
        return True

    def recent(self, kind: str | None = None, limit: int = 20) -> list[Event]:
        """Most recent events first."""
        with self._lock:
            items = [e for e in reversed(self._recent) if kind is None or e.kind == kind]
        return items[: max(0, int(limit))]

    def close(self) -> None:
        with self._lock:
            self._closed = True

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed
