import uuid

import pytest
from kombu.exceptions import OperationalError

from health_monitor_api import tasks
from health_monitor_api.alerts import AlertDeriver, manual_alert
from health_monitor_api.classifier import classify
from health_monitor_api.exceptions import UpstreamUnavailable
from health_monitor_api.models import Alert, EmergencyBroadcast, Guardian

from .factories import make_reading

pytestmark = pytest.mark.django_db


def broker_down(*args, **kwargs):
    raise OperationalError('connection refused')


def test_auto_alert_is_recorded_by_worker(patient):
    reading = make_reading(35, subject_id=str(patient.id))
    draft = AlertDeriver().derive(reading, classify(reading))[0]

    tasks.enqueue_alert(draft)

    alert = Alert.objects.get(subject=patient)
    assert alert.severity == 'Critical'
    assert alert.created_at == reading.timestamp


def test_broker_outage_is_reported(patient, monkeypatch):
    monkeypatch.setattr(tasks.record_alert, 'delay', broker_down)
    reading = make_reading(35, subject_id=str(patient.id))
    draft = AlertDeriver().derive(reading, classify(reading))[0]

    with pytest.raises(UpstreamUnavailable):
        tasks.enqueue_alert(draft)
    assert not Alert.objects.exists()


def test_sos_broadcast_runs_in_process_without_broker(patient, outbox, monkeypatch):
    monkeypatch.setattr(tasks.dispatch_emergency_alert, 'delay', broker_down)
    Guardian.objects.create(subject=patient, name='Mum', email='mum@example.com')

    alert = tasks.enqueue_alert(manual_alert(patient.id))

    assert alert.alert_type == 'Manual'
    assert [mail['to'] for mail in outbox] == [['mum@example.com']]
    assert EmergencyBroadcast.objects.filter(alert=alert, success=True).count() == 1


def test_failed_delivery_is_logged(patient, outbox):
    Guardian.objects.create(subject=patient, name='Mum', email='mum@example.com')
    outbox.failing.update({'resend', 'sendgrid', 'mailgun'})
    alert = tasks.persist_alert(manual_alert(patient.id))

    result = tasks.dispatch_emergency_alert(str(alert.id))

    assert result == {'sent': 0, 'failed': 1}
    broadcast = EmergencyBroadcast.objects.get()
    assert not broadcast.success
    assert broadcast.provider == ''


def test_missing_alert_is_skipped(db):
    assert tasks.dispatch_emergency_alert(str(uuid.uuid4())) == {'sent': 0, 'failed': 0}
