from __future__ import annotations

import subprocess
from typing import Callable

import httpx

from .settings import Settings, settings
from .specs import ServiceSpec
from .supervisor import Supervisor, listening_ports


def check_http(url: str, timeout_s: float = 10.0) -> bool:
    """GET a URL; any 2xx response is a success. The body is ignored."""
    try:
        with httpx.Client(timeout=timeout_s, follow_redirects=False) as client:
            resp = client.get(url)
        return 200 <= resp.status_code < 300
    except httpx.HTTPError:
        return False


def check_shell(command: str, timeout_s: float = 10.0) -> bool:
    """Run a shell command; exit status 0 is a success. Output is discarded."""
    try:
        p = subprocess.run(
            command,
            shell=True,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=timeout_s,
        )
    except subprocess.TimeoutExpired:
        return False
    return p.returncode == 0


def run_probe(command: str, timeout_s: float = 10.0) -> bool:
    if command.startswith(("http://", "https://")):
        return check_http(command, timeout_s)
    return check_shell(command, timeout_s)


class HealthEvaluator:
    """Binary healthy/unhealthy verdict for one service.

    Stages run in a fixed order and stop at the first failure:
      1) the supervisor reports the service active
      2) the configured port (if any) is in the listening set
      3) the check command (if any) succeeds

    ``evaluate`` returns (healthy, reason). An exception raised by a stage
    counts as that stage failing.
    """

    def __init__(
        self,
        supervisor: Supervisor,
        probe: Callable[[str], bool] | None = None,
        ports: Callable[[], set[int]] = listening_ports,
        s: Settings | None = None,
    ):
        self.s = s or settings
        self.supervisor = supervisor
        self.probe = probe or (lambda cmd: run_probe(cmd, self.s.probe_timeout_s))
        self.ports = ports

    def evaluate(self, spec: ServiceSpec) -> tuple[bool, str]:
        try:
            if not self.supervisor.is_active(spec.name):
                return False, "inactive"
        except Exception as e:
            return False, f"supervisor error: {type(e).__name__}: {e}"

        if spec.port is not None:
            try:
                if spec.port not in self.ports():
                    return False, f"port {spec.port} not listening"
            except Exception as e:
                return False, f"port check error: {type(e).__name__}: {e}"

        if spec.check_command:
            try:
                if not self.probe(spec.check_command):
                    return False, "check command failed"
            except Exception as e:
                return False, f"check command error: {type(e).__name__}: {e}"

        return True, "healthy"
