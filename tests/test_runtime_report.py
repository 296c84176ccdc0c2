import pytest
from conftest import read_messages, wait_for

from guardian.report import PeriodicReporter, build_report, format_duration
from guardian.runtime import GuardianState


def test_record_tick_adds_one_interval():
    state = GuardianState(check_interval_s=5)
    state.record_tick("db", True)
    state.record_tick("db", False)
    state.record_tick("db", True)

    (st,) = state.snapshot()
    assert (st.uptime_s, st.downtime_s, st.ticks_observed) == (10, 5, 3)
    assert st.uptime_s + st.downtime_s == st.ticks_observed * 5
    assert st.last_healthy is True


def test_availability_bounds_and_rounding():
    state = GuardianState(check_interval_s=5)
    state.ensure("idle")
    assert state.compute_availability("idle") is None
    assert state.compute_availability("unknown") is None

    state.record_tick("up", True)
    assert state.compute_availability("up") == 100.00

    state.record_tick("down", False)
    assert state.compute_availability("down") == 0.0

    for healthy in (True, True, False):
        state.record_tick("mixed", healthy)
    assert state.compute_availability("mixed") == 66.67


def test_snapshot_is_a_copy():
    state = GuardianState(check_interval_s=5)
    state.record_tick("db", True)
    snap = state.snapshot()
    state.record_tick("db", True)
    assert snap[0].uptime_s == 5


def test_report_lists_only_observed_services():
    state = GuardianState(check_interval_s=5, start_time=1000.0)
    state.ensure("never")
    state.record_tick("db", True)
    state.record_tick("db", False)

    text = build_report(state, now=1000.0 + 3725)

    assert "Total runtime: 1h 2m 5s" in text
    assert "db: uptime=5s downtime=5s availability=50.00%" in text
    assert "never" not in text


def test_report_without_observations():
    text = build_report(GuardianState(check_interval_s=5))
    assert "No service has been observed yet." in text


@pytest.mark.parametrize("seconds,expected", [(0, "0h 0m 0s"), (59.9, "0h 0m 59s"), (86400, "24h 0m 0s")])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_periodic_reporter_appends_to_health_log(events, settings):
    state = GuardianState(check_interval_s=5)
    state.record_tick("db", True)
    reporter = PeriodicReporter(state, events, interval_s=0.05)
    reporter.start()
    try:
        assert wait_for(lambda: "db: uptime=5s downtime=0s availability=100.00%" in read_messages(settings.health_log))
    finally:
        reporter.stop()
        reporter.join(1)
    assert not reporter.is_alive()
