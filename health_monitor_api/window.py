"""Per-subject rolling windows of recent readings and heart-rate statistics."""

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set

import numpy as np

from .exceptions import UpstreamUnavailable
from .readings import Reading

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100
VARIABILITY_SAMPLES = 10


@dataclass(frozen=True)
class HeartRateStats:
    """Aggregate over the heart-rate values currently held in a window.

    ``variability`` is a simplified HRV proxy: the root mean square of
    successive differences of the most recent spot heart-rate samples. It is
    not clinical HRV, which needs beat-to-beat R-R intervals.
    """

    count: int = 0
    mean: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    variability: float = 0.0

    def summary(self):
        return {
            "count": self.count,
            "mean": round(self.mean) if self.mean is not None else None,
            "min": self.min,
            "max": self.max,
            "variability": self.variability,
        }


def successive_difference_rms(values, samples=VARIABILITY_SAMPLES) -> float:
    """RMS of successive differences over the last ``samples`` values, 0 if < 2."""
    recent = np.asarray(list(values)[-samples:], dtype=float)
    if recent.size < 2:
        return 0.0
    diff = np.diff(recent)
    return round(float(np.sqrt(np.mean(diff * diff))), 1)


def compute_stats(readings: Iterable[Reading], variability_samples=VARIABILITY_SAMPLES) -> HeartRateStats:
    heart_rates = [r.heart_rate for r in readings if r.heart_rate is not None]
    if not heart_rates:
        return HeartRateStats()
    values = np.asarray(heart_rates, dtype=float)
    return HeartRateStats(
        count=int(values.size),
        mean=float(values.mean()),
        min=float(values.min()),
        max=float(values.max()),
        variability=successive_difference_rms(heart_rates, variability_samples),
    )


class RollingWindow:
    """Bounded FIFO of readings; insertion order is arrival order."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._readings = deque(maxlen=capacity)

    def push(self, reading: Reading) -> Optional[Reading]:
        """Append ``reading``; return the evicted oldest reading, if any."""
        evicted = None
        if len(self._readings) == self.capacity:
            evicted = self._readings[0]
        self._readings.append(reading)
        return evicted

    def latest(self) -> Optional[Reading]:
        return self._readings[-1] if self._readings else None

    def recent(self, limit: Optional[int] = None) -> List[Reading]:
        readings = list(self._readings)
        if limit is not None:
            readings = readings[-limit:] if limit > 0 else []
        return readings

    def heart_rates(self) -> List[float]:
        return [r.heart_rate for r in self._readings if r.heart_rate is not None]

    def __iter__(self) -> Iterator[Reading]:
        return iter(list(self._readings))

    def __len__(self) -> int:
        return len(self._readings)


Loader = Callable[[str, int], Iterable[Reading]]


class RollingStatsStore:
    """Holds one :class:`RollingWindow` per subject.

    A window is owned by its subject's ingest pipeline; readers only get
    copies. When ``loader`` is given, a subject's window is hydrated from
    persistence the first time the subject is seen. A failed hydration is
    retried on the next access until it succeeds.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        loader: Optional[Loader] = None,
        variability_samples: int = VARIABILITY_SAMPLES,
    ):
        self.capacity = capacity
        self.loader = loader
        self.variability_samples = variability_samples
        self._windows: Dict[str, RollingWindow] = {}
        self._unhydrated: Set[str] = set()
        self._lock = threading.Lock()

    def _window(self, subject_id: str) -> RollingWindow:
        # Caller holds self._lock.
        window = self._windows.get(subject_id)
        if window is None:
            window = RollingWindow(self.capacity)
            self._windows[subject_id] = window
            if self.loader is not None:
                self._unhydrated.add(subject_id)
        if subject_id in self._unhydrated:
            window = self._hydrate(subject_id, window)
        return window

    def _hydrate(self, subject_id, window):
        try:
            loaded = list(self.loader(subject_id, self.capacity))
        except UpstreamUnavailable:
            logger.warning("Could not hydrate window for subject %s, will retry", subject_id)
            return window
        self._unhydrated.discard(subject_id)

        held = window.recent()
        if held:
            # Readings ingested while the loader was down may already be persisted.
            loaded = [r for r in loaded if r.timestamp < held[0].timestamp]
        hydrated = RollingWindow(self.capacity)
        for reading in loaded + held:
            hydrated.push(reading)
        self._windows[subject_id] = hydrated
        return hydrated

    def push(self, subject_id: str, reading: Reading) -> RollingWindow:
        with self._lock:
            window = self._window(subject_id)
            window.push(reading)
        return window

    def readings(self, subject_id: str, limit: Optional[int] = None) -> List[Reading]:
        with self._lock:
            return self._window(subject_id).recent(limit)

    def stats(self, subject_id: str, limit: Optional[int] = None) -> HeartRateStats:
        return compute_stats(self.readings(subject_id, limit), self.variability_samples)

    def latest(self, subject_id: str) -> Optional[Reading]:
        with self._lock:
            return self._window(subject_id).latest()

    def forget(self, subject_id: str):
        with self._lock:
            self._windows.pop(subject_id, None)
            self._unhydrated.discard(subject_id)

    def subjects(self) -> List[str]:
        with self._lock:
            return list(self._windows)
