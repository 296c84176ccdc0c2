from __future__ import annotations

import shutil
import subprocess

import docker
import psutil
from docker.errors import DockerException, NotFound

from .settings import Settings, settings


class SupervisorError(Exception):
    """The supervisor itself could not be reached (not the same as 'service down')."""


class Supervisor:
    """Capability used by the guardian to query and restart a named service."""

    kind = "abstract"

    def is_active(self, name: str) -> bool:
        raise NotImplementedError

    def restart(self, name: str) -> bool:
        raise NotImplementedError


class SystemdSupervisor(Supervisor):
    kind = "systemd"

    def __init__(self, systemctl: str = "systemctl", timeout_s: float = 60.0):
        self.systemctl = systemctl
        self.timeout_s = timeout_s

    def _run(self, *args: str) -> int:
        if shutil.which(self.systemctl) is None:
            raise SupervisorError(f"{self.systemctl} not found on PATH")
        try:
            p = subprocess.run(
                [self.systemctl, *args],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=self.timeout_s,
            )
        except subprocess.TimeoutExpired as e:
            raise SupervisorError(f"{self.systemctl} {' '.join(args)} timed out") from e
        return p.returncode

    def is_active(self, name: str) -> bool:
        return self._run("is-active", "--quiet", name) == 0

    def restart(self, name: str) -> bool:
        return self._run("restart", name) == 0


class DockerSupervisor(Supervisor):
    """Treats each service name as a container name."""

    kind = "docker"

    def __init__(self, client: docker.DockerClient | None = None, stop_timeout_s: int = 10):
        self._client_obj = client
        self.stop_timeout_s = stop_timeout_s

    def _client(self) -> docker.DockerClient:
        if self._client_obj is None:
            try:
                self._client_obj = docker.from_env()
            except DockerException as e:
                raise SupervisorError(f"Docker is not available: {e}") from e
        return self._client_obj

    def is_active(self, name: str) -> bool:
        c = self._client()
        try:
            cont = c.containers.get(name)
            cont.reload()
            return cont.status == "running"
        except NotFound:
            return False
        except DockerException as e:
            raise SupervisorError(f"Docker error while inspecting {name}: {e}") from e

    def restart(self, name: str) -> bool:
        c = self._client()
        try:
            c.containers.get(name).restart(timeout=self.stop_timeout_s)
            return True
        except NotFound:
            return False
        except DockerException as e:
            raise SupervisorError(f"Docker error while restarting {name}: {e}") from e


def get_supervisor(s: Settings | None = None) -> Supervisor:
    s = s or settings
    kind = s.supervisor.strip().lower()
    if kind == "systemd":
        return SystemdSupervisor()
    if kind == "docker":
        return DockerSupervisor()
    raise ValueError(f"Unknown supervisor '{s.supervisor}'. Use 'systemd' or 'docker'.")


def listening_ports() -> set[int]:
    """Local ports with a TCP socket in LISTEN state."""
    ports: set[int] = set()
    for conn in psutil.net_connections(kind="inet"):
        if conn.status == psutil.CONN_LISTEN and conn.laddr:
            ports.add(conn.laddr.port)
    return ports
