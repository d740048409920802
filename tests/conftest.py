import pytest

from health_monitor_api.monitor import get_monitor

from .factories import make_profile


@pytest.fixture(autouse=True)
def fresh_monitor():
    # The process-wide monitor keeps windows and cooldowns between requests.
    get_monitor.cache_clear()
    yield
    get_monitor.cache_clear()


@pytest.fixture
def patient(db):
    return make_profile(role='Patient', name='Jane Doe')


@pytest.fixture
def caretaker(db):
    return make_profile(role='Caretaker', name='Carl Taker')


@pytest.fixture
def assigned(patient, caretaker):
    from health_monitor_api.models import Assignment
    Assignment.objects.create(caretaker=caretaker, subject=patient)
    return caretaker


@pytest.fixture
def outbox(monkeypatch):
    """Capture e-mails instead of calling providers. Providers named in ``failing`` raise."""
    from health_monitor_api import tasks
    from health_monitor_api.exceptions import DeliveryError

    class Outbox(list):
        failing = set()

    box = Outbox()

    def fake_send(provider, recipients, subject, html, session=None):
        if provider.name in box.failing:
            raise DeliveryError(f"{provider.name} down", provider=provider.name)
        box.append({'provider': provider.name, 'to': list(recipients), 'subject': subject, 'html': html})

    monkeypatch.setattr(tasks, 'send_email', fake_send)
    return box
