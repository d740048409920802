# geolocation.py
"""Best-effort location lookup for alerts.

Providers are tried in order; the first one that yields a position wins. A
provider signals "no position" by raising ``LocationUnavailable``. The chain
never blocks alert creation: ``resolve_location`` returns ``None`` instead.
"""

import logging
from dataclasses import dataclass

from .exceptions import LocationUnavailable, UpstreamUnavailable, ValidationError
from .readings import optional_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float


class ReportedLocation:
    """Coordinates the client sent with the request, if any."""

    def __init__(self, data):
        self.data = data or {}

    def get_current_position(self):
        try:
            latitude = optional_number(self.data, "latitude", minimum=-90, maximum=90)
            longitude = optional_number(self.data, "longitude", minimum=-180, maximum=180)
        except ValidationError as exc:
            raise LocationUnavailable(str(exc)) from exc
        if latitude is None or longitude is None:
            raise LocationUnavailable("No coordinates in request")
        return Location(latitude, longitude)


class LastKnownLocation:
    """Location of the subject's most recent reading that carried one."""

    def __init__(self, repository, subject_id):
        self.repository = repository
        self.subject_id = subject_id

    def get_current_position(self):
        try:
            position = self.repository.last_known_location(self.subject_id)
        except UpstreamUnavailable as exc:
            raise LocationUnavailable(str(exc)) from exc
        if position is None:
            raise LocationUnavailable("No reading with a location")
        return Location(*position)


def resolve_location(*providers):
    for provider in providers:
        try:
            return provider.get_current_position()
        except LocationUnavailable as exc:
            logger.info("%s: %s", type(provider).__name__, exc)
    return None
