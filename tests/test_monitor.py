import pytest

from health_monitor_api.alerts import AlertDeriver, AlertType, CooldownTracker, RedisCooldownTracker, Severity
from health_monitor_api.classifier import ConditionTag, HealthStatus
from health_monitor_api.config import MonitorConfig
from health_monitor_api.exceptions import UpstreamUnavailable, ValidationError
from health_monitor_api.monitor import VitalSignMonitor, build_cooldown, build_monitor
from health_monitor_api.window import RollingStatsStore

from .factories import make_reading


@pytest.fixture
def sink():
    return []


@pytest.fixture
def monitor(sink):
    return VitalSignMonitor(
        store=RollingStatsStore(capacity=20),
        deriver=AlertDeriver(cooldown_seconds=60),
        alert_sink=sink.append,
    )


def test_end_to_end_heart_rate_sequence(monitor, sink):
    results = [
        monitor.ingest('X', make_reading(hr, subject_id='X', seconds=i))
        for i, hr in enumerate([72, 75, 130, 76])
    ]

    third = results[2]
    assert third.classification.status is HealthStatus.CRITICAL
    assert ConditionTag.HEART_RATE_CRITICAL in third.classification.tags
    critical = [a for a in third.alerts if a.condition is ConditionTag.HEART_RATE_CRITICAL]
    assert len(critical) == 1
    assert critical[0].severity is Severity.CRITICAL
    assert critical[0].alert_type is AlertType.AUTO

    stats = monitor.stats('X')
    assert stats.max == 130
    assert stats.min == 72
    assert stats.count == 4
    assert all(draft in sink for draft in third.alerts)


def test_ingest_accepts_raw_payload(monitor):
    result = monitor.ingest('X', {'bpm': '64', 'spo2': 97})
    assert result.reading.heart_rate == 64
    assert result.classification.status is HealthStatus.NORMAL
    assert result.summary()['status'] == 'Normal'


def test_invalid_payload_never_enters_the_window(monitor):
    with pytest.raises(ValidationError):
        monitor.ingest('X', {'heart_rate': 'abc'})
    assert monitor.stats('X').count == 0


@pytest.mark.parametrize('heart_rate', [-50, float('nan'), 400])
def test_invalid_prebuilt_reading_never_enters_the_window(monitor, sink, heart_rate):
    with pytest.raises(ValidationError):
        monitor.ingest('X', make_reading(heart_rate, subject_id='X'))
    assert monitor.stats('X').count == 0
    assert sink == []


def test_future_stamped_reading_is_rejected(monitor, sink):
    with pytest.raises(ValidationError) as excinfo:
        monitor.ingest('X', make_reading(130, subject_id='X', seconds=365 * 24 * 3600 * 10))
    assert excinfo.value.field == 'timestamp'
    assert monitor.stats('X').count == 0

    for minute in range(3):
        monitor.ingest('X', make_reading(150, subject_id='X', seconds=minute * 60))
    assert len(sink) >= 1


def test_reading_for_another_subject_is_rejected(monitor):
    with pytest.raises(ValidationError):
        monitor.ingest('X', make_reading(70, subject_id='Y'))


def test_failing_sink_does_not_break_ingest():
    def sink(draft):
        raise UpstreamUnavailable("broker down")

    monitor = VitalSignMonitor(RollingStatsStore(), AlertDeriver(), alert_sink=sink)
    result = monitor.ingest('X', make_reading(150, subject_id='X'))
    assert result.classification.status is HealthStatus.CRITICAL
    assert len(result.alerts) == 1


def test_manual_alert_reports_sink_failure():
    def sink(draft):
        raise UpstreamUnavailable("database down")

    monitor = VitalSignMonitor(RollingStatsStore(), AlertDeriver(), alert_sink=sink)
    with pytest.raises(UpstreamUnavailable):
        monitor.raise_manual_alert('X')


def test_status_of_unknown_subject(monitor):
    assert monitor.status('nobody') is None


def test_build_monitor_uses_config():
    monitor = build_monitor(MonitorConfig(window_capacity=3, irregular_variability=5.0))
    for i, hr in enumerate([70, 80, 90, 100]):
        monitor.ingest('X', make_reading(hr, subject_id='X', seconds=i))
    assert monitor.stats('X').count == 3
    assert ConditionTag.IRREGULAR_RHYTHM in monitor.status('X').tags


def test_build_cooldown_shares_state_through_redis_when_configured():
    shared = build_cooldown(MonitorConfig(cooldown_redis_url='redis://localhost:6379/3'))
    assert isinstance(shared, RedisCooldownTracker)
    assert shared.cooldown_seconds == 60.0
    local = build_cooldown(MonitorConfig())
    assert type(local) is CooldownTracker
