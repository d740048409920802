import pytest

from health_monitor_api.exceptions import UpstreamUnavailable
from health_monitor_api.window import (
    HeartRateStats,
    RollingStatsStore,
    RollingWindow,
    compute_stats,
    successive_difference_rms,
)

from .factories import make_reading


def test_window_never_exceeds_capacity_and_keeps_arrival_order():
    window = RollingWindow(capacity=3)
    readings = [make_reading(60 + i, seconds=i) for i in range(7)]
    evicted = [window.push(r) for r in readings]

    assert len(window) == 3
    assert list(window) == readings[-3:]
    assert evicted[:3] == [None, None, None]
    assert evicted[3:] == readings[:4]


def test_window_rejects_zero_capacity():
    with pytest.raises(ValueError):
        RollingWindow(capacity=0)


def test_recent_limit():
    window = RollingWindow(capacity=10)
    for i in range(5):
        window.push(make_reading(70 + i, seconds=i))
    assert [r.heart_rate for r in window.recent(2)] == [73, 74]
    assert window.latest().heart_rate == 74


def test_successive_difference_rms():
    assert successive_difference_rms([72, 75, 130, 76]) == 44.5
    assert successive_difference_rms([72]) == 0.0
    assert successive_difference_rms([]) == 0.0
    # Only the newest samples count.
    assert successive_difference_rms([200, 70, 70, 70], samples=3) == 0.0


def test_stats_skip_readings_without_heart_rate():
    stats = compute_stats([make_reading(60), make_reading(None), make_reading(80)])
    assert stats.count == 2
    assert stats.mean == 70
    assert stats.min == 60
    assert stats.max == 80


def test_empty_stats():
    assert compute_stats([]) == HeartRateStats()
    assert HeartRateStats().summary()['mean'] is None


def test_stats_are_idempotent():
    store = RollingStatsStore(capacity=20)
    for i, hr in enumerate([72, 75, 130, 76]):
        store.push('s1', make_reading(hr, subject_id='s1', seconds=i))
    assert store.stats('s1') == store.stats('s1')


def test_stats_limit_uses_most_recent_readings():
    store = RollingStatsStore(capacity=100)
    for i, hr in enumerate([50, 60, 70, 80]):
        store.push('s1', make_reading(hr, subject_id='s1', seconds=i))
    stats = store.stats('s1', limit=2)
    assert (stats.min, stats.max, stats.count) == (70, 80, 2)


def test_subjects_are_isolated():
    store = RollingStatsStore(capacity=5)
    store.push('a', make_reading(60, subject_id='a'))
    store.push('b', make_reading(90, subject_id='b'))
    assert store.stats('a').max == 60
    assert sorted(store.subjects()) == ['a', 'b']
    store.forget('a')
    assert store.stats('a').count == 0


def test_store_hydrates_from_loader_once():
    calls = []

    def loader(subject_id, limit):
        calls.append((subject_id, limit))
        return [make_reading(65, subject_id=subject_id), make_reading(70, subject_id=subject_id, seconds=1)]

    store = RollingStatsStore(capacity=10, loader=loader)
    store.push('s1', make_reading(75, subject_id='s1', seconds=2))
    store.push('s1', make_reading(80, subject_id='s1', seconds=3))

    assert calls == [('s1', 10)]
    assert [r.heart_rate for r in store.readings('s1')] == [65, 70, 75, 80]


def test_store_starts_empty_when_loader_is_down():
    def loader(subject_id, limit):
        raise UpstreamUnavailable("database down")

    store = RollingStatsStore(capacity=10, loader=loader)
    store.push('s1', make_reading(75, subject_id='s1'))
    assert store.stats('s1').count == 1


def test_store_retries_hydration_after_loader_failure():
    persisted = [make_reading(60, subject_id='s1'), make_reading(62, subject_id='s1', seconds=1)]
    calls = []

    def loader(subject_id, limit):
        calls.append(subject_id)
        if len(calls) == 1:
            raise UpstreamUnavailable("database down")
        # The reading ingested during the outage was persisted meanwhile.
        return persisted + [make_reading(75, subject_id='s1', seconds=2)]

    store = RollingStatsStore(capacity=10, loader=loader)
    store.push('s1', make_reading(75, subject_id='s1', seconds=2))
    assert store.stats('s1').count == 3
    assert len(calls) == 2
    assert [r.heart_rate for r in store.readings('s1')] == [60, 62, 75]

    store.readings('s1')
    assert len(calls) == 2
