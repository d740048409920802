"""Reading records and ingest-boundary validation."""

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from .exceptions import ValidationError

MAX_HEART_RATE = 300.0

# Device clocks may run slightly ahead; anything further out is rejected.
MAX_FUTURE_SKEW = timedelta(minutes=5)

# (minimum, maximum) per numeric field; None means unbounded.
RANGES = {
    "heart_rate": (0, MAX_HEART_RATE),
    "spo2": (0, 100),
    "temperature": (None, None),
    "rr_interval": (0, None),
    "accel_x": (None, None),
    "accel_y": (None, None),
    "accel_z": (None, None),
    "latitude": (-90, 90),
    "longitude": (-180, 180),
}


@dataclass(frozen=True)
class Reading:
    """One observed sensor sample for a subject. Immutable once created."""

    subject_id: str
    timestamp: datetime
    heart_rate: Optional[float] = None
    spo2: Optional[float] = None
    temperature: Optional[float] = None
    rr_interval: Optional[float] = None
    accel_x: Optional[float] = None
    accel_y: Optional[float] = None
    accel_z: Optional[float] = None
    raw_values: Tuple[float, ...] = field(default_factory=tuple)
    sensor_fault: bool = False
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def with_timestamp(self, timestamp: datetime) -> "Reading":
        return replace(self, timestamp=timestamp)

    def validate(self, now: Optional[datetime] = None) -> "Reading":
        """Raise ``ValidationError`` unless every present field is in range.

        Applies to readings built in code as well as parsed payloads, so
        nothing out of range reaches a rolling window.
        """
        if not self.subject_id:
            raise ValidationError("subject_id", "is required")
        for name, (minimum, maximum) in RANGES.items():
            _check_number(name, getattr(self, name), minimum, maximum)
        if not all(isinstance(v, (int, float)) and math.isfinite(v) for v in self.raw_values):
            raise ValidationError("raw_values", "must contain finite numbers")
        if self.timestamp.tzinfo is None:
            raise ValidationError("timestamp", "must be timezone-aware")
        now = now or datetime.now(timezone.utc)
        if self.timestamp > now + MAX_FUTURE_SKEW:
            raise ValidationError("timestamp", "is too far in the future")
        return self

    def to_payload(self) -> Dict[str, Any]:
        return {
            "subject_id": self.subject_id,
            "timestamp": self.timestamp.isoformat(),
            "heart_rate": self.heart_rate,
            "spo2": self.spo2,
            "temperature": self.temperature,
            "rr_interval": self.rr_interval,
            "accel_x": self.accel_x,
            "accel_y": self.accel_y,
            "accel_z": self.accel_z,
            "raw_values": list(self.raw_values),
            "sensor_fault": self.sensor_fault,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }


def _check_number(name, number, minimum=None, maximum=None):
    if number is None:
        return
    if isinstance(number, bool) or not isinstance(number, (int, float)):
        raise ValidationError(name, "must be a number")
    if not math.isfinite(number):
        raise ValidationError(name, "must be a finite number")
    if minimum is not None and number < minimum:
        raise ValidationError(name, f"must be >= {minimum}")
    if maximum is not None and number > maximum:
        raise ValidationError(name, f"must be <= {maximum}")


def optional_number(data, name, minimum=None, maximum=None):
    value = data.get(name)
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(name, "must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(name, "must be a number")
    _check_number(name, number, minimum, maximum)
    return number


def _raw_values(value):
    if value is None or value == "":
        return ()
    if isinstance(value, str):
        # Firmware sends the waveform as "0.12,0.15,..."
        value = [part for part in value.split(",") if part.strip()]
    try:
        samples = tuple(float(v) for v in value)
    except (TypeError, ValueError):
        raise ValidationError("raw_values", "must be a list of numbers")
    if not all(math.isfinite(v) for v in samples):
        raise ValidationError("raw_values", "must contain finite numbers")
    return samples


def _flag(value):
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


def _timestamp(value):
    if value is None or value == "":
        return datetime.now(timezone.utc)
    if isinstance(value, datetime):
        moment = value
    else:
        try:
            moment = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError("timestamp", f"invalid datetime: {value}")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def parse_reading(subject_id, data: Mapping[str, Any]) -> Reading:
    """Build a :class:`Reading` from a raw payload.

    Every field except the subject is optional. Present fields must be
    numeric and inside their physical range, otherwise ``ValidationError`` is
    raised and the sample never reaches the rolling window.
    """
    if not subject_id:
        raise ValidationError("subject_id", "is required")

    heart_rate_key = "heart_rate" if data.get("heart_rate") is not None else "bpm"
    heart_rate = optional_number(data, heart_rate_key, *RANGES["heart_rate"])

    reading = Reading(
        subject_id=str(subject_id),
        timestamp=_timestamp(data.get("timestamp")),
        heart_rate=heart_rate,
        spo2=optional_number(data, "spo2", *RANGES["spo2"]),
        temperature=optional_number(data, "temperature"),
        rr_interval=optional_number(data, "rr_interval", *RANGES["rr_interval"]),
        accel_x=optional_number(data, "accel_x"),
        accel_y=optional_number(data, "accel_y"),
        accel_z=optional_number(data, "accel_z"),
        raw_values=_raw_values(data.get("raw_values")),
        sensor_fault=_flag(data.get("sensor_fault")),
        latitude=optional_number(data, "latitude", *RANGES["latitude"]),
        longitude=optional_number(data, "longitude", *RANGES["longitude"]),
    )
    return reading.validate()
