import pytest
from channels.db import database_sync_to_async
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator

from health_monitor_api.alerts import manual_alert
from health_monitor_api.models import Alert, Assignment
from health_monitor_api.realtime import InsertSubscription, group_name, insert_event
from health_monitor_api.repository import DjangoRepository
from health_monitor_api.routing import websocket_urlpatterns

from .factories import make_profile, make_reading

application = URLRouter(websocket_urlpatterns)


async def connect(path):
    communicator = WebsocketCommunicator(application, path)
    connected, _ = await communicator.connect()
    return communicator, connected


class FakeLayer:
    def __init__(self):
        self.added = []
        self.discarded = []

    async def group_add(self, group, channel):
        self.added.append(group)

    async def group_discard(self, group, channel):
        self.discarded.append(group)


async def test_subscription_is_released_exactly_once():
    layer = FakeLayer()
    subscription = InsertSubscription(layer, 'chan', 'alerts', ['a', 'b'])
    async with subscription:
        assert layer.added == ['alerts.a', 'alerts.b']
        with pytest.raises(RuntimeError):
            await subscription.acquire()
    await subscription.release()
    assert layer.discarded == ['alerts.a', 'alerts.b']


def test_group_names_and_events():
    assert group_name('readings', 'abc') == 'readings.abc'
    assert insert_event('alerts', {'id': 1}) == {'type': 'row.insert', 'table': 'alerts', 'row': {'id': 1}}
    with pytest.raises(ValueError):
        group_name('vitals', 'abc')


@pytest.mark.django_db(transaction=True)
async def test_unknown_subject_is_refused():
    communicator, connected = await connect('/ws/subjects/00000000-0000-0000-0000-000000000000/readings/')
    assert not connected


@pytest.mark.django_db(transaction=True)
async def test_reading_inserts_are_streamed():
    patient = await database_sync_to_async(make_profile)()
    communicator, connected = await connect(f'/ws/subjects/{patient.id}/readings/')
    assert connected
    assert (await communicator.receive_json_from())['type'] == 'connection_established'

    sid = str(patient.id)
    await database_sync_to_async(DjangoRepository().insert_reading)(sid, make_reading(88, subject_id=sid))

    message = await communicator.receive_json_from()
    assert message['type'] == 'row_insert'
    assert message['table'] == 'readings'
    assert message['row']['heart_rate'] == 88
    await communicator.disconnect()


@pytest.mark.django_db(transaction=True)
async def test_caretaker_receives_alerts_with_unread_count():
    patient = await database_sync_to_async(make_profile)()
    caretaker = await database_sync_to_async(make_profile)(role='Caretaker', name='Carl Taker')
    await database_sync_to_async(Assignment.objects.create)(caretaker=caretaker, subject=patient)

    communicator, connected = await connect(f'/ws/caretakers/{caretaker.id}/alerts/')
    assert connected
    await communicator.receive_json_from()

    await database_sync_to_async(DjangoRepository().insert_alert)(manual_alert(patient.id))

    message = await communicator.receive_json_from()
    assert message['row']['alert_type'] == 'Manual'
    assert message['unread'] == 1
    await communicator.disconnect()


@pytest.mark.django_db(transaction=True)
async def test_voice_emergency_raises_sos(outbox):
    patient = await database_sync_to_async(make_profile)()
    communicator, connected = await connect(f'/ws/subjects/{patient.id}/voice/')
    assert connected
    assert (await communicator.receive_json_from())['state'] == 'idle'

    await communicator.send_json_to({'event': 'start'})
    assert (await communicator.receive_json_from())['state'] == 'listening'

    await communicator.send_json_to({'event': 'result', 'transcript': 'Hey health assistant'})
    greeting = await communicator.receive_json_from()
    assert greeting['type'] == 'speak'
    assert 'Jane Doe' in greeting['text']
    assert (await communicator.receive_json_from())['state'] == 'speaking'

    await communicator.send_json_to({'event': 'speech_done'})
    assert (await communicator.receive_json_from())['state'] == 'listening'

    await communicator.send_json_to({'event': 'result', 'transcript': 'send alert now'})
    emergency = await communicator.receive_json_from()
    assert emergency['type'] == 'emergency'
    assert emergency['alert']['alert_type'] == 'Manual'
    assert (await communicator.receive_json_from())['type'] == 'speak'
    assert (await communicator.receive_json_from())['state'] == 'speaking'

    alerts = await database_sync_to_async(lambda: list(Alert.objects.filter(subject=patient)))()
    assert [a.severity for a in alerts] == ['Critical']
    await communicator.disconnect()


@pytest.mark.django_db(transaction=True)
async def test_voice_rejects_unknown_events():
    patient = await database_sync_to_async(make_profile)()
    communicator, _ = await connect(f'/ws/subjects/{patient.id}/voice/')
    await communicator.receive_json_from()

    await communicator.send_json_to({'event': 'dance'})
    assert (await communicator.receive_json_from())['type'] == 'error'
    await communicator.disconnect()
