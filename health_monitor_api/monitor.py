"""
Vital-sign monitor: the ingest boundary of the analytics/alerting engine.

    reading -> RollingStatsStore -> classify -> AlertDeriver -> alert sink

Ingest and classification are synchronous in-memory work. The alert sink
(persistence, notification) is fire-and-forget: a failing sink is logged and
never undoes the classification that triggered it.
"""

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable, List, Optional

import redis

from .alerts import AlertDeriver, AlertDraft, CooldownTracker, RedisCooldownTracker, manual_alert
from .classifier import Classification, ClassifierThresholds, classify
from .config import MonitorConfig
from .exceptions import HealthMonitorError, ValidationError
from .readings import Reading, parse_reading
from .window import HeartRateStats, RollingStatsStore

logger = logging.getLogger(__name__)

AlertSink = Callable[[AlertDraft], object]


@dataclass(frozen=True)
class IngestResult:
    reading: Reading
    stats: HeartRateStats
    classification: Classification
    alerts: List[AlertDraft] = field(default_factory=list)

    def summary(self):
        status = self.classification.status
        return {
            "status": status.value if status else None,
            "conditions": sorted(tag.value for tag in self.classification.tags),
            "stats": self.stats.summary(),
            "alerts": [a.to_payload() for a in self.alerts],
        }


class VitalSignMonitor:
    def __init__(
        self,
        store: RollingStatsStore,
        deriver: AlertDeriver,
        thresholds: Optional[ClassifierThresholds] = None,
        alert_sink: Optional[AlertSink] = None,
    ):
        self.store = store
        self.deriver = deriver
        self.thresholds = thresholds or ClassifierThresholds()
        self.alert_sink = alert_sink

    def ingest(self, subject_id, data) -> IngestResult:
        """Validate, append and classify one reading (exactly once)."""
        subject_id = str(subject_id)
        reading = data.validate() if isinstance(data, Reading) else parse_reading(subject_id, data)
        if reading.subject_id != subject_id:
            raise ValidationError("subject_id", "reading belongs to another subject")

        self.store.push(subject_id, reading)
        stats = self.store.stats(subject_id)
        classification = classify(reading, stats, self.thresholds)
        drafts = self.deriver.derive(reading, classification)

        for draft in drafts:
            self._emit(draft)

        if drafts:
            logger.info(
                "Subject %s: %d alert(s) derived (%s)",
                subject_id, len(drafts), ", ".join(d.condition.value for d in drafts),
            )
        return IngestResult(reading=reading, stats=stats, classification=classification, alerts=drafts)

    def raise_manual_alert(self, subject_id, location=None, guardian_ids=()) -> AlertDraft:
        """SOS: no classification, no cooldown, always Critical.

        Unlike automatic alerts, a failing sink is reported to the caller.
        """
        draft = manual_alert(subject_id, location=location, guardian_ids=guardian_ids)
        if self.alert_sink is not None:
            self.alert_sink(draft)
        logger.warning("Manual SOS raised for subject %s", subject_id)
        return draft

    def stats(self, subject_id, limit=None) -> HeartRateStats:
        return self.store.stats(str(subject_id), limit)

    def status(self, subject_id):
        latest = self.store.latest(str(subject_id))
        if latest is None:
            return None
        return classify(latest, self.stats(subject_id), self.thresholds)

    def _emit(self, draft):
        if self.alert_sink is None:
            return
        try:
            self.alert_sink(draft)
        except HealthMonitorError as exc:
            logger.error("Alert for subject %s not persisted: %s", draft.subject_id, exc)


def build_cooldown(config: MonitorConfig) -> CooldownTracker:
    if config.cooldown_redis_url:
        client = redis.Redis.from_url(config.cooldown_redis_url)
        return RedisCooldownTracker(client, config.alert_cooldown_seconds)
    return CooldownTracker(config.alert_cooldown_seconds)


def build_monitor(config: MonitorConfig, loader=None, alert_sink=None) -> VitalSignMonitor:
    store = RollingStatsStore(
        capacity=config.window_capacity,
        loader=loader,
        variability_samples=config.variability_samples,
    )
    thresholds = ClassifierThresholds(irregular_variability=config.irregular_variability)
    return VitalSignMonitor(
        store=store,
        deriver=AlertDeriver(cooldown=build_cooldown(config)),
        thresholds=thresholds,
        alert_sink=alert_sink,
    )


@lru_cache(maxsize=None)
def get_monitor() -> VitalSignMonitor:
    """Process-wide monitor wired to the database and the Celery alert sink."""
    from .repository import DjangoRepository
    from .tasks import enqueue_alert

    repository = DjangoRepository()
    return build_monitor(
        MonitorConfig.from_settings(),
        loader=repository.query_recent_readings,
        alert_sink=enqueue_alert,
    )
