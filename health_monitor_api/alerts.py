"""
Alert derivation and deduplication.

Every condition raised by the classifier becomes an alert draft, unless the
same (subject, condition) pair already produced an automatic alert within
the cooldown window. Manual SOS alerts skip classification and cooldown.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

import redis

from .classifier import Classification, ConditionTag
from .readings import Reading

logger = logging.getLogger(__name__)


class AlertType(Enum):
    MANUAL = "Manual"
    AUTO = "Auto"
    SENSOR_FAULT = "Sensor_Fault"


class Severity(Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


SEVERITY_BY_CONDITION = {
    ConditionTag.HEART_RATE_CRITICAL: Severity.CRITICAL,
    ConditionTag.HEART_RATE_HIGH: Severity.HIGH,
    ConditionTag.HEART_RATE_LOW: Severity.MEDIUM,
    ConditionTag.LOW_OXYGEN: Severity.CRITICAL,
    ConditionTag.FEVER: Severity.MEDIUM,
    ConditionTag.SENSOR_FAULT: Severity.MEDIUM,
    ConditionTag.IRREGULAR_RHYTHM: Severity.MEDIUM,
}

MESSAGES = {
    ConditionTag.HEART_RATE_CRITICAL: "Critical heart rate detected: {heart_rate:g} BPM",
    ConditionTag.HEART_RATE_HIGH: "Elevated heart rate: {heart_rate:g} BPM",
    ConditionTag.HEART_RATE_LOW: "Low heart rate: {heart_rate:g} BPM",
    ConditionTag.LOW_OXYGEN: "Low Blood Oxygen Level: {spo2:g}%",
    ConditionTag.FEVER: "Fever detected: {temperature:g}°C",
    ConditionTag.SENSOR_FAULT: "Sensor Fault Detected",
    ConditionTag.IRREGULAR_RHYTHM: "Irregular heart rhythm detected",
}

# Stable order so derived alerts come out most severe first.
CONDITION_ORDER = [
    ConditionTag.HEART_RATE_CRITICAL,
    ConditionTag.LOW_OXYGEN,
    ConditionTag.HEART_RATE_HIGH,
    ConditionTag.HEART_RATE_LOW,
    ConditionTag.FEVER,
    ConditionTag.IRREGULAR_RHYTHM,
    ConditionTag.SENSOR_FAULT,
]

SOS_MESSAGE = "EMERGENCY SOS - Patient needs immediate assistance!"


@dataclass(frozen=True)
class AlertDraft:
    """An alert ready to be persisted. Content is immutable once created."""

    subject_id: str
    alert_type: AlertType
    severity: Severity
    message: str
    condition: Optional[ConditionTag] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    guardian_ids: Tuple[str, ...] = ()

    @property
    def is_manual(self) -> bool:
        return self.alert_type is AlertType.MANUAL

    def to_payload(self):
        return {
            "subject_id": self.subject_id,
            "alert_type": self.alert_type.value,
            "severity": self.severity.value,
            "message": self.message,
            "condition": self.condition.value if self.condition else None,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "created_at": self.created_at.isoformat(),
            "guardian_ids": list(self.guardian_ids),
        }

    @classmethod
    def from_payload(cls, payload):
        condition = payload.get("condition")
        return cls(
            subject_id=payload["subject_id"],
            alert_type=AlertType(payload["alert_type"]),
            severity=Severity(payload["severity"]),
            message=payload["message"],
            condition=ConditionTag(condition) if condition else None,
            latitude=payload.get("latitude"),
            longitude=payload.get("longitude"),
            created_at=datetime.fromisoformat(payload["created_at"]),
            guardian_ids=tuple(payload.get("guardian_ids") or ()),
        )


class CooldownTracker:
    """Remembers when each (subject, condition) pair last produced an alert."""

    def __init__(self, cooldown_seconds: float = 60.0):
        self.cooldown_seconds = cooldown_seconds
        self._last_emitted: Dict[Tuple[str, ConditionTag], datetime] = {}
        self._lock = threading.Lock()

    def check_cooldown(self, subject_id, condition, now: datetime) -> Tuple[bool, float]:
        """
        Check if cooldown is active.

        A stamp up to one cooldown earlier than the last emission counts as
        the same burst; anything further back means the stored stamp came
        from a clock running ahead, and it no longer holds the pair.

        Returns:
            (is_active, seconds_remaining)
        """
        return self._check_local(subject_id, condition, now)

    def _check_local(self, subject_id, condition, now):
        last = self._last_emitted.get((subject_id, condition))
        if last is None:
            return False, 0.0
        elapsed = (now - last).total_seconds()
        if abs(elapsed) < self.cooldown_seconds:
            return True, self.cooldown_seconds - max(elapsed, 0.0)
        return False, 0.0

    def try_acquire(self, subject_id, condition, now: datetime) -> bool:
        """Record an emission and return True unless the pair is cooling down."""
        with self._lock:
            active, _ = self._check_local(subject_id, condition, now)
            if active:
                return False
            self._last_emitted[(subject_id, condition)] = now
            return True

    def reset(self, subject_id=None):
        with self._lock:
            if subject_id is None:
                self._last_emitted.clear()
                return
            for key in [k for k in self._last_emitted if k[0] == subject_id]:
                del self._last_emitted[key]


class RedisCooldownTracker(CooldownTracker):
    """Cooldown shared by every worker process through Redis.

    Each (subject, condition) pair is a key written with ``NX`` and an expiry
    of one cooldown, so the cooldown runs on the Redis clock rather than on
    reading timestamps. While Redis is unreachable the process-local
    tracker is used.
    """

    key_prefix = "health_monitor:cooldown"

    def __init__(self, client, cooldown_seconds: float = 60.0):
        super().__init__(cooldown_seconds)
        self.client = client

    def _key(self, subject_id, condition):
        return f"{self.key_prefix}:{subject_id}:{condition.value}"

    def check_cooldown(self, subject_id, condition, now: datetime) -> Tuple[bool, float]:
        try:
            remaining = self.client.pttl(self._key(subject_id, condition))
        except redis.RedisError as exc:
            logger.warning("Cooldown store unavailable, using local state: %s", exc)
            return self._check_local(subject_id, condition, now)
        if remaining is None or remaining < 0:
            return False, 0.0
        return True, remaining / 1000.0

    def try_acquire(self, subject_id, condition, now: datetime) -> bool:
        if self.cooldown_seconds <= 0:
            return True
        try:
            acquired = self.client.set(
                self._key(subject_id, condition),
                now.isoformat(),
                nx=True,
                px=int(self.cooldown_seconds * 1000),
            )
        except redis.RedisError as exc:
            logger.warning("Cooldown store unavailable, using local state: %s", exc)
            return super().try_acquire(subject_id, condition, now)
        return bool(acquired)

    def reset(self, subject_id=None):
        super().reset(subject_id)
        pattern = f"{self.key_prefix}:{'*' if subject_id is None else subject_id}:*"
        keys = list(self.client.scan_iter(match=pattern))
        if keys:
            self.client.delete(*keys)


def _message_for(condition: ConditionTag, reading: Reading) -> str:
    return MESSAGES[condition].format(
        heart_rate=reading.heart_rate or 0,
        spo2=reading.spo2 or 0,
        temperature=reading.temperature or 0,
    )


class AlertDeriver:
    def __init__(self, cooldown: Optional[CooldownTracker] = None, cooldown_seconds: float = 60.0):
        self.cooldown = cooldown or CooldownTracker(cooldown_seconds)

    def derive(
        self,
        reading: Reading,
        classification: Classification,
        now: Optional[datetime] = None,
    ) -> List[AlertDraft]:
        """Turn triggered conditions into alert drafts, applying the cooldown."""
        now = now or reading.timestamp
        drafts = []
        for condition in CONDITION_ORDER:
            if condition not in classification.tags:
                continue
            if not self.cooldown.try_acquire(reading.subject_id, condition, now):
                continue
            alert_type = AlertType.SENSOR_FAULT if condition is ConditionTag.SENSOR_FAULT else AlertType.AUTO
            drafts.append(
                AlertDraft(
                    subject_id=reading.subject_id,
                    alert_type=alert_type,
                    severity=SEVERITY_BY_CONDITION[condition],
                    message=_message_for(condition, reading),
                    condition=condition,
                    latitude=reading.latitude,
                    longitude=reading.longitude,
                    created_at=reading.timestamp,
                )
            )
        return drafts


def manual_alert(subject_id, location=None, guardian_ids=(), message=SOS_MESSAGE) -> AlertDraft:
    """Build a user-triggered SOS alert. Missing location never blocks it."""
    return AlertDraft(
        subject_id=str(subject_id),
        alert_type=AlertType.MANUAL,
        severity=Severity.CRITICAL,
        message=message,
        latitude=location.latitude if location else None,
        longitude=location.longitude if location else None,
        guardian_ids=tuple(str(g) for g in guardian_ids),
    )
