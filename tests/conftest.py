import time

import pytest

from guardian.control import Guardian
from guardian.events import EventLog
from guardian.health import HealthEvaluator
from guardian.restarts import RestartOrchestrator
from guardian.settings import Settings
from guardian.specs import ServiceSpec
from guardian.supervisor import Supervisor


class FakeSupervisor(Supervisor):
    """In-memory supervisor.

    ``active`` holds the current state per service. ``heal_after`` gives the
    number of restart commands a service needs before it comes up; services
    not listed there never come up.
    """

    kind = "fake"

    def __init__(self, active=None, heal_after=None):
        self.active = dict(active or {})
        self.heal_after = dict(heal_after or {})
        self.calls = []

    def is_active(self, name):
        self.calls.append(("is_active", name))
        return self.active.get(name, False)

    def restart(self, name):
        self.calls.append(("restart", name))
        left = self.heal_after.get(name)
        if left is not None:
            left -= 1
            self.heal_after[name] = left
            if left <= 0:
                self.active[name] = True
        return True

    def restarts(self, name=None):
        return [n for op, n in self.calls if op == "restart" and (name is None or n == name)]


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


def read_messages(path):
    """Messages of an event log file, without the timestamp column."""
    with open(path, encoding="utf-8") as f:
        return [line.rstrip("\n").split(" | ", 1)[1] for line in f if line.strip()]


def wait_for(predicate, timeout=3.0, interval=0.02):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def make_settings(tmp_path):
    def _make(**overrides):
        base = dict(
            conf_path=str(tmp_path / "services.conf"),
            health_log=str(tmp_path / "service_health.log"),
            incident_log=str(tmp_path / "incidents.txt"),
            check_interval_s=5,
            report_interval_s=300,
            max_retries=4,
            base_delay_s=2.0,
            settle_delay_s=2.0,
            probe_timeout_s=5.0,
            log_poll_interval_s=0.02,
            supervisor="systemd",
            api_port=0,
            echo_events=False,
        )
        base.update(overrides)
        return Settings(**base)

    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def events(settings):
    log = EventLog.from_settings(settings)
    yield log
    log.close()


@pytest.fixture
def make_guardian(make_settings):
    """Build a guardian over fakes. ``specs`` may be a list or a callable source."""

    def _make(specs, supervisor, probe=None, ports=None, **overrides):
        s = make_settings(**overrides)
        source = specs if callable(specs) else (lambda: list(specs))
        sleeper = SleepRecorder()
        events = EventLog.from_settings(s)
        evaluator = HealthEvaluator(
            supervisor,
            probe=probe or (lambda cmd: True),
            ports=ports or (lambda: set()),
            s=s,
        )
        orchestrator = RestartOrchestrator(supervisor, events, s=s, sleep=sleeper)
        g = Guardian(source, supervisor, events, s=s, evaluator=evaluator, orchestrator=orchestrator)
        g.sleeper = sleeper
        return g

    return _make


@pytest.fixture
def spec():
    def _spec(name, **kw):
        return ServiceSpec(name=name, **kw)

    return _spec
