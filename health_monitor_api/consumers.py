# consumers.py
import json
import logging

from asgiref.sync import sync_to_async
from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

from .assistant import AssistantConfig, chat_with_doctor
from .exceptions import AssistantError, HealthMonitorError
from .realtime import InsertSubscription
from .speech import EMERGENCY_SENT, CommandKind, VoiceCommandSession

logger = logging.getLogger(__name__)

NOT_UNDERSTOOD = "I'm having trouble understanding that. Could you please rephrase your question?"
EMERGENCY_FAILED = "I could not send the emergency alert. Please call emergency services directly."


class InsertConsumer(AsyncWebsocketConsumer):
    """Streams rows inserted into ``table`` for the subjects this socket may watch."""

    table = None
    greeting = 'Connected'

    async def connect(self):
        self.subscription = None
        subject_ids = await self.get_subject_ids()
        if subject_ids is None:
            await self.close()
            return

        self.subscription = InsertSubscription(self.channel_layer, self.channel_name, self.table, subject_ids)
        await self.subscription.acquire()
        await self.accept()

        await self.send(text_data=json.dumps({
            'type': 'connection_established',
            'message': self.greeting,
        }))

    async def disconnect(self, close_code):
        if self.subscription is not None:
            await self.subscription.release()

    async def row_insert(self, event):
        await self.send(text_data=json.dumps({
            'type': 'row_insert',
            'table': event['table'],
            'row': event['row'],
        }))

    async def get_subject_ids(self):
        raise NotImplementedError


class SubjectInsertConsumer(InsertConsumer):
    async def get_subject_ids(self):
        self.subject_id = str(self.scope['url_route']['kwargs']['subject_id'])
        if not await self.subject_exists():
            return None
        return [self.subject_id]

    @database_sync_to_async
    def subject_exists(self):
        from .models import Profile
        return Profile.objects.filter(id=self.subject_id).exists()


class SubjectReadingsConsumer(SubjectInsertConsumer):
    table = 'readings'
    greeting = 'Connected to subject readings'


class SubjectAlertsConsumer(SubjectInsertConsumer):
    table = 'alerts'
    greeting = 'Connected to subject alerts'


class CaretakerAlertsConsumer(InsertConsumer):
    """One subscription per assigned subject; each new alert carries the unread badge count."""

    table = 'alerts'
    greeting = 'Connected to caretaker alerts'

    async def get_subject_ids(self):
        self.caretaker_id = str(self.scope['url_route']['kwargs']['caretaker_id'])
        return await self.assigned_subjects()

    async def row_insert(self, event):
        unread = await self.unread_count()
        await self.send(text_data=json.dumps({
            'type': 'row_insert',
            'table': event['table'],
            'row': event['row'],
            'unread': unread,
        }))

    @database_sync_to_async
    def assigned_subjects(self):
        from .models import Assignment, Profile
        if not Profile.objects.filter(id=self.caretaker_id, role='Caretaker').exists():
            return None
        return [str(s) for s in Assignment.objects.filter(caretaker_id=self.caretaker_id)
                .values_list('subject_id', flat=True)]

    @database_sync_to_async
    def unread_count(self):
        from .assignments import AssignmentRouter
        from .repository import DjangoRepository
        return AssignmentRouter(DjangoRepository()).unread_count(self.caretaker_id)


class VoiceCommandConsumer(AsyncWebsocketConsumer):
    """Drives a ``VoiceCommandSession`` from recognition events sent by the client.

    Client -> server: ``{"event": "start" | "result" | "error" | "end" | "speech_done" | "stop", ...}``
    Server -> client: ``state``, ``speak`` and ``emergency`` messages.
    """

    async def connect(self):
        self.subject_id = str(self.scope['url_route']['kwargs']['subject_id'])
        name = await self.subject_name()
        if name is None:
            await self.close()
            return
        self.session = VoiceCommandSession(user_name=name)
        await self.accept()
        await self.send_state()

    async def receive(self, text_data=None, bytes_data=None):
        try:
            message = json.loads(text_data or '{}')
        except json.JSONDecodeError:
            await self.send(text_data=json.dumps({'type': 'error', 'message': 'Invalid JSON'}))
            return

        event = message.get('event')
        if event == 'start':
            self.session.start()
        elif event == 'result':
            command = self.session.on_result(message.get('transcript', ''))
            if command is not None:
                await self.handle_command(command)
        elif event == 'error':
            self.session.on_error(message.get('error'))
        elif event == 'end':
            self.session.on_end()
        elif event == 'speech_done':
            self.session.on_speech_done()
        elif event == 'stop':
            self.session.stop()
        else:
            await self.send(text_data=json.dumps({'type': 'error', 'message': f'Unknown event: {event}'}))
            return
        await self.send_state()

    async def handle_command(self, command):
        if command.kind is CommandKind.EMERGENCY:
            try:
                draft = await self.raise_sos()
            except HealthMonitorError as exc:
                logger.error("Voice SOS for subject %s failed: %s", self.subject_id, exc)
                await self.speak(self.session.respond(EMERGENCY_FAILED))
                return
            await self.send(text_data=json.dumps({'type': 'emergency', 'alert': draft.to_payload()}))
            await self.speak(self.session.respond(EMERGENCY_SENT))
        elif command.kind is CommandKind.QUERY:
            try:
                reply = await sync_to_async(chat_with_doctor)(AssistantConfig.from_settings(), command.transcript)
            except AssistantError as exc:
                logger.warning("Voice query failed: %s", exc)
                reply = NOT_UNDERSTOOD
            await self.speak(self.session.respond(reply))
        else:
            await self.speak(command.reply)

    async def speak(self, text):
        await self.send(text_data=json.dumps({'type': 'speak', 'text': text}))

    async def send_state(self):
        await self.send(text_data=json.dumps({
            'type': 'state',
            'state': self.session.state.value,
            'activated': self.session.activated,
        }))

    @database_sync_to_async
    def subject_name(self):
        from .models import Profile
        return Profile.objects.filter(id=self.subject_id).values_list('name', flat=True).first()

    @database_sync_to_async
    def raise_sos(self):
        from .geolocation import LastKnownLocation, resolve_location
        from .monitor import get_monitor
        from .repository import DjangoRepository
        location = resolve_location(LastKnownLocation(DjangoRepository(), self.subject_id))
        return get_monitor().raise_manual_alert(self.subject_id, location=location)
