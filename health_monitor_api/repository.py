# repository.py
"""Django ORM implementation of the persistence collaborator."""

import logging
from contextlib import contextmanager
from dataclasses import dataclass

from django.db import DatabaseError, IntegrityError, transaction

from .exceptions import ConflictError, UpstreamUnavailable
from .models import Alert, Assignment, EmergencyBroadcast, Guardian, Profile, Vital
from .readings import Reading
from . import realtime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuardianContact:
    id: str
    subject_id: str
    name: str
    email: str


@contextmanager
def _database(operation):
    try:
        yield
    except IntegrityError as exc:
        raise ConflictError(f"{operation}: {exc}") from exc
    except DatabaseError as exc:
        logger.error("Database unavailable during %s: %s", operation, exc)
        raise UpstreamUnavailable(f"{operation} failed: {exc}") from exc


def vital_to_reading(vital: Vital) -> Reading:
    return Reading(
        subject_id=str(vital.subject_id),
        timestamp=vital.created_at,
        heart_rate=vital.heart_rate,
        spo2=vital.spo2,
        temperature=vital.temperature,
        rr_interval=vital.rr_interval,
        accel_x=vital.accel_x,
        accel_y=vital.accel_y,
        accel_z=vital.accel_z,
        raw_values=tuple(vital.raw_values or ()),
        sensor_fault=vital.sensor_fault,
        latitude=vital.latitude,
        longitude=vital.longitude,
    )


def alert_to_row(alert: Alert):
    return {
        "id": str(alert.id),
        "subject_id": str(alert.subject_id),
        "alert_type": alert.alert_type,
        "severity": alert.severity,
        "message": alert.message,
        "is_read": alert.is_read,
        "latitude": alert.latitude,
        "longitude": alert.longitude,
        "created_at": alert.created_at.isoformat(),
    }


class DjangoRepository:

    # Readings

    def insert_reading(self, subject_id, reading: Reading) -> Vital:
        with _database("insert_reading"), transaction.atomic():
            vital = Vital.objects.create(
                subject_id=subject_id,
                created_at=reading.timestamp,
                heart_rate=reading.heart_rate,
                spo2=reading.spo2,
                temperature=reading.temperature,
                rr_interval=reading.rr_interval,
                accel_x=reading.accel_x,
                accel_y=reading.accel_y,
                accel_z=reading.accel_z,
                raw_values=list(reading.raw_values),
                sensor_fault=reading.sensor_fault,
                latitude=reading.latitude,
                longitude=reading.longitude,
            )
        realtime.publish_insert("readings", subject_id, reading.to_payload())
        return vital

    def query_recent_readings(self, subject_id, limit):
        """Most recent ``limit`` readings, oldest first."""
        with _database("query_recent_readings"):
            vitals = list(Vital.objects.filter(subject_id=subject_id).order_by('-created_at', '-id')[:limit])
        return [vital_to_reading(v) for v in reversed(vitals)]

    def last_known_location(self, subject_id):
        with _database("last_known_location"):
            return (
                Vital.objects.filter(subject_id=subject_id, latitude__isnull=False, longitude__isnull=False)
                .values_list('latitude', 'longitude')
                .first()
            )

    # Alerts

    def insert_alert(self, draft) -> Alert:
        with _database("insert_alert"), transaction.atomic():
            alert = Alert.objects.create(
                subject_id=draft.subject_id,
                alert_type=draft.alert_type.value,
                severity=draft.severity.value,
                message=draft.message,
                latitude=draft.latitude,
                longitude=draft.longitude,
                created_at=draft.created_at,
            )
        realtime.publish_insert("alerts", draft.subject_id, alert_to_row(alert))
        return alert

    def query_alerts(self, subject_id, limit):
        with _database("query_alerts"):
            return list(Alert.objects.filter(subject_id=subject_id).order_by('-created_at')[:limit])

    def get_alert(self, alert_id):
        with _database("get_alert"):
            return Alert.objects.select_related('subject').get(id=alert_id)

    def mark_alerts_read(self, subject_id) -> int:
        # A single UPDATE; concurrent flips of the same boolean are last-writer-wins.
        with _database("mark_alerts_read"):
            return Alert.objects.filter(subject_id=subject_id, is_read=False).update(is_read=True)

    def count_unread_alerts(self, subject_ids) -> int:
        with _database("count_unread_alerts"):
            return Alert.objects.filter(subject_id__in=list(subject_ids), is_read=False).count()

    # Assignments

    def insert_assignment(self, caretaker_id, subject_id) -> Assignment:
        with _database("insert_assignment"), transaction.atomic():
            return Assignment.objects.create(caretaker_id=caretaker_id, subject_id=subject_id)

    def delete_assignment(self, caretaker_id, subject_id) -> bool:
        with _database("delete_assignment"):
            deleted, _ = Assignment.objects.filter(caretaker_id=caretaker_id, subject_id=subject_id).delete()
        return deleted > 0

    def query_assignments(self, caretaker_id):
        with _database("query_assignments"):
            return list(Assignment.objects.filter(caretaker_id=caretaker_id).select_related('subject'))

    def query_caretakers(self, subject_id):
        with _database("query_caretakers"):
            return list(
                Profile.objects.filter(assignments__subject_id=subject_id).order_by('name')
            )

    def assignment_exists(self, caretaker_id, subject_id) -> bool:
        with _database("assignment_exists"):
            return Assignment.objects.filter(caretaker_id=caretaker_id, subject_id=subject_id).exists()

    # Guardians

    def insert_guardian(self, subject_id, name, email) -> Guardian:
        with _database("insert_guardian"), transaction.atomic():
            return Guardian.objects.create(subject_id=subject_id, name=name, email=email)

    def delete_guardian(self, guardian_id) -> bool:
        with _database("delete_guardian"):
            deleted, _ = Guardian.objects.filter(id=guardian_id).delete()
        return deleted > 0

    def query_guardians(self, subject_id):
        with _database("query_guardians"):
            guardians = list(Guardian.objects.filter(subject_id=subject_id))
        return [
            GuardianContact(id=str(g.id), subject_id=str(g.subject_id), name=g.name, email=g.email)
            for g in guardians
        ]

    # Profiles

    def query_profiles(self, role=None):
        with _database("query_profiles"):
            profiles = Profile.objects.order_by('name')
            if role:
                profiles = profiles.filter(role=role)
            return list(profiles)

    def get_profile(self, profile_id, role=None):
        with _database("get_profile"):
            profiles = Profile.objects.filter(id=profile_id)
            if role:
                profiles = profiles.filter(role=role)
            return profiles.first()

    # Emergency broadcasts

    def log_broadcast(self, subject_id, recipient, message, provider=None, success=False, alert_id=None,
                      guardian_id=None) -> EmergencyBroadcast:
        with _database("log_broadcast"):
            return EmergencyBroadcast.objects.create(
                subject_id=subject_id,
                alert_id=alert_id,
                guardian_id=guardian_id,
                recipient=recipient,
                message=message,
                provider=provider or "",
                success=success,
            )
