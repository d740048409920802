"""Threshold-based health status and condition classification."""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional

from .readings import Reading
from .window import HeartRateStats


class HealthStatus(Enum):
    NORMAL = "Normal"
    LOW = "Low"
    HIGH = "High"
    CRITICAL = "Critical"


class ConditionTag(Enum):
    HEART_RATE_CRITICAL = "HeartRate:Critical"
    HEART_RATE_HIGH = "HeartRate:High"
    HEART_RATE_LOW = "HeartRate:Low"
    LOW_OXYGEN = "LowOxygen"
    FEVER = "Fever"
    SENSOR_FAULT = "SensorFault"
    IRREGULAR_RHYTHM = "IrregularRhythm"


HEART_RATE_TAGS = {
    HealthStatus.CRITICAL: ConditionTag.HEART_RATE_CRITICAL,
    HealthStatus.HIGH: ConditionTag.HEART_RATE_HIGH,
    HealthStatus.LOW: ConditionTag.HEART_RATE_LOW,
}


@dataclass(frozen=True)
class ClassifierThresholds:
    critical_high: float = 120.0
    critical_low: float = 40.0
    high: float = 100.0
    low: float = 60.0
    low_spo2: float = 90.0
    fever_celsius: float = 38.0
    irregular_variability: float = 20.0


DEFAULT_THRESHOLDS = ClassifierThresholds()


@dataclass(frozen=True)
class Classification:
    status: Optional[HealthStatus]
    tags: FrozenSet[ConditionTag]

    @property
    def is_abnormal(self) -> bool:
        return bool(self.tags)


def classify_heart_rate(heart_rate: float, thresholds: ClassifierThresholds = DEFAULT_THRESHOLDS) -> HealthStatus:
    """Map a heart rate to a status. Boundaries are exclusive: 100 is Normal, 120 is High."""
    if heart_rate > thresholds.critical_high or heart_rate < thresholds.critical_low:
        return HealthStatus.CRITICAL
    if heart_rate > thresholds.high:
        return HealthStatus.HIGH
    if heart_rate < thresholds.low:
        return HealthStatus.LOW
    return HealthStatus.NORMAL


def classify(
    reading: Reading,
    stats: Optional[HeartRateStats] = None,
    thresholds: ClassifierThresholds = DEFAULT_THRESHOLDS,
) -> Classification:
    """Classify the latest reading, raising every condition it triggers.

    Missing optional fields never raise; they just contribute no tag.
    """
    tags = set()
    status = None

    if reading.heart_rate is not None:
        status = classify_heart_rate(reading.heart_rate, thresholds)
        if status in HEART_RATE_TAGS:
            tags.add(HEART_RATE_TAGS[status])

    if reading.spo2 is not None and reading.spo2 < thresholds.low_spo2:
        tags.add(ConditionTag.LOW_OXYGEN)

    if reading.temperature is not None and reading.temperature > thresholds.fever_celsius:
        tags.add(ConditionTag.FEVER)

    if reading.sensor_fault:
        tags.add(ConditionTag.SENSOR_FAULT)

    if stats is not None and stats.variability > thresholds.irregular_variability:
        tags.add(ConditionTag.IRREGULAR_RHYTHM)

    return Classification(status=status, tags=frozenset(tags))
