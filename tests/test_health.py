from conftest import FakeSupervisor

from guardian import health
from guardian.health import HealthEvaluator, check_shell, run_probe


class Recorder:
    def __init__(self, result):
        self.result = result
        self.calls = 0

    def __call__(self, *args):
        self.calls += 1
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def test_inactive_short_circuits(spec, settings):
    ports, probe = Recorder({80}), Recorder(True)
    ev = HealthEvaluator(FakeSupervisor(), probe=probe, ports=ports, s=settings)

    ok, reason = ev.evaluate(spec("web", port=80, check_command="x"))

    assert (ok, reason) == (False, "inactive")
    assert ports.calls == 0
    assert probe.calls == 0


def test_port_must_match_exactly(spec, settings):
    probe = Recorder(True)
    ev = HealthEvaluator(FakeSupervisor({"web": True}), probe=probe, ports=lambda: {8080, 443}, s=settings)

    ok, reason = ev.evaluate(spec("web", port=80, check_command="x"))

    assert not ok
    assert reason == "port 80 not listening"
    assert probe.calls == 0


def test_failing_probe_is_unhealthy(spec, settings):
    ev = HealthEvaluator(FakeSupervisor({"web": True}), probe=Recorder(False), ports=lambda: {80}, s=settings)
    assert ev.evaluate(spec("web", port=80, check_command="x")) == (False, "check command failed")


def test_absent_checks_are_satisfied(spec, settings):
    ports, probe = Recorder(set()), Recorder(False)
    ev = HealthEvaluator(FakeSupervisor({"db": True}), probe=probe, ports=ports, s=settings)

    assert ev.evaluate(spec("db")) == (True, "healthy")
    assert ports.calls == 0
    assert probe.calls == 0


def test_all_stages_pass(spec, settings):
    ev = HealthEvaluator(FakeSupervisor({"web": True}), probe=Recorder(True), ports=lambda: {80}, s=settings)
    assert ev.evaluate(spec("web", port=80, check_command="x")) == (True, "healthy")


def test_stage_exceptions_count_as_failures(spec, settings):
    class Broken(FakeSupervisor):
        def is_active(self, name):
            raise RuntimeError("dbus down")

    ok, reason = HealthEvaluator(Broken(), s=settings).evaluate(spec("web"))
    assert not ok
    assert "dbus down" in reason

    ev = HealthEvaluator(FakeSupervisor({"web": True}), probe=Recorder(OSError("boom")), s=settings)
    ok, reason = ev.evaluate(spec("web", check_command="x"))
    assert not ok
    assert reason.startswith("check command error")


def test_check_shell_uses_exit_status():
    assert check_shell("exit 0") is True
    assert check_shell("exit 3") is False
    assert check_shell("echo noisy output; exit 0") is True


def test_run_probe_dispatches_urls_to_http(monkeypatch):
    seen = []
    monkeypatch.setattr(health, "check_http", lambda url, timeout_s=10.0: seen.append(url) or True)

    assert run_probe("http://localhost:8080/health") is True
    assert run_probe("exit 1") is False
    assert seen == ["http://localhost:8080/health"]
