from datetime import datetime, timedelta, timezone

from health_monitor_api.models import Profile
from health_monitor_api.readings import Reading

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_reading(heart_rate=None, subject_id='subject-1', seconds=0, **fields):
    return Reading(subject_id=subject_id, timestamp=T0 + timedelta(seconds=seconds), heart_rate=heart_rate, **fields)


def make_profile(role='Patient', name='Jane Doe', email=None, **fields):
    email = email or f"{name.lower().replace(' ', '.')}@example.com"
    return Profile.objects.create(name=name, age=fields.pop('age', 40), email=email,
                                  gender=fields.pop('gender', 'Female'), role=role, **fields)
