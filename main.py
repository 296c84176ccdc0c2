from __future__ import annotations

import argparse
import dataclasses
import sys
from threading import Thread

import uvicorn

from guardian.api import create_app
from guardian.control import Guardian
from guardian.events import EventLog
from guardian.settings import Settings, settings
from guardian.specs import FileSpecSource
from guardian.supervisor import get_supervisor


def build_guardian(s: Settings) -> Guardian:
    return Guardian(
        source=FileSpecSource(s.conf_path),
        supervisor=get_supervisor(s),
        events=EventLog.from_settings(s),
        s=s,
    )


def start_api(guardian: Guardian, host: str, port: int) -> uvicorn.Server:
    """Serve the read-only status API from a daemon thread."""
    config = uvicorn.Config(create_app(guardian), host=host, port=port, log_level="warning")
    server = uvicorn.Server(config)
    # Off the main thread uvicorn leaves SIGINT/SIGTERM to the guardian.
    Thread(target=server.run, name="guardian-api", daemon=True).start()
    return server


def parse_settings(argv: list[str] | None = None) -> Settings:
    p = argparse.ArgumentParser(description="Service Guardian: self-healing service watchdog")
    p.add_argument("--config", dest="conf_path", help="services.conf path")
    p.add_argument("--interval", dest="check_interval_s", type=int, help="Seconds between ticks")
    p.add_argument("--supervisor", choices=["systemd", "docker"], help="Service supervisor to use")
    p.add_argument("--health-log", dest="health_log")
    p.add_argument("--incident-log", dest="incident_log")
    p.add_argument("--api-port", dest="api_port", type=int, help="Serve the status API on this port (0 = off)")
    p.add_argument("--echo", dest="echo_events", action="store_true", default=None, help="Echo events to stdout")
    args = p.parse_args(argv)
    overrides = {k: v for k, v in vars(args).items() if v is not None}
    return dataclasses.replace(settings, **overrides)


def main(argv: list[str] | None = None) -> int:
    s = parse_settings(argv)
    guardian = build_guardian(s)
    server = start_api(guardian, s.api_host, s.api_port) if s.api_port else None
    try:
        return guardian.run()
    finally:
        if server is not None:
            server.should_exit = True


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
