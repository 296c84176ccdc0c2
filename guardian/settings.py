from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Files
    conf_path: str = os.getenv("GUARDIAN_CONF", "services.conf")
    health_log: str = os.getenv("GUARDIAN_HEALTH_LOG", "service_health.log")
    incident_log: str = os.getenv("GUARDIAN_INCIDENT_LOG", "incidents.txt")

    # Control loop
    check_interval_s: int = _env_int("GUARDIAN_CHECK_INTERVAL_S", 5)
    report_interval_s: int = _env_int("GUARDIAN_REPORT_INTERVAL_S", 300)

    # Restart backoff: BASE * 2**retry between attempts, at most MAX attempts.
    max_retries: int = _env_int("GUARDIAN_MAX_RETRIES", 4)
    base_delay_s: float = _env_float("GUARDIAN_BASE_DELAY_S", 2.0)
    settle_delay_s: float = _env_float("GUARDIAN_SETTLE_DELAY_S", 2.0)

    # Probes
    probe_timeout_s: float = _env_float("GUARDIAN_PROBE_TIMEOUT_S", 10.0)
    log_poll_interval_s: float = _env_float("GUARDIAN_LOG_POLL_INTERVAL_S", 0.5)

    # systemd | docker
    supervisor: str = os.getenv("GUARDIAN_SUPERVISOR", "systemd")

    # Read-only status API (0 disables it)
    api_host: str = os.getenv("GUARDIAN_API_HOST", "127.0.0.1")
    api_port: int = _env_int("GUARDIAN_API_PORT", 0)

    # Echo health/incident lines on stdout as well as the log files
    echo_events: bool = _env_bool("GUARDIAN_ECHO_EVENTS", False)


settings = Settings()
