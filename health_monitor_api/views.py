# views.py
import logging

from rest_framework import status
from rest_framework.exceptions import NotFound
from rest_framework.response import Response
from rest_framework.views import APIView, exception_handler

from .assignments import AssignmentRouter
from .assistant import AssistantConfig, analyze_symptoms, chat_with_doctor
from .config import MonitorConfig
from .exceptions import (
    AssistantError,
    ConflictError,
    NotAssigned,
    UpstreamUnavailable,
    ValidationError,
)
from .geolocation import LastKnownLocation, ReportedLocation, resolve_location
from .monitor import get_monitor
from .repository import DjangoRepository
from .serializers import (
    AlertSerializer,
    AssignmentSerializer,
    AssignPatientSerializer,
    ChatSerializer,
    GuardianCreateSerializer,
    GuardianSerializer,
    ManualAlertSerializer,
    ProfileSerializer,
    ReadingUploadSerializer,
    SymptomSerializer,
)

logger = logging.getLogger(__name__)

repository = DjangoRepository()
router = AssignmentRouter(repository)

ERROR_STATUS = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotAssigned, status.HTTP_403_FORBIDDEN),
    (ConflictError, status.HTTP_409_CONFLICT),
    (UpstreamUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (AssistantError, status.HTTP_502_BAD_GATEWAY),
)


def api_exception_handler(exc, context):
    """DRF exception handler that also understands the engine's errors."""
    for error_class, code in ERROR_STATUS:
        if isinstance(exc, error_class):
            if isinstance(exc, ValidationError):
                return Response({exc.field: [exc.message]}, status=code)
            if code >= 500:
                logger.error("%s in %s: %s", type(exc).__name__, context['view'].__class__.__name__, exc)
            return Response({'status': 'error', 'message': str(exc)}, status=code)
    return exception_handler(exc, context)


def query_limit(request, name, default, maximum):
    value = request.query_params.get(name)
    if value in (None, ''):
        return default
    try:
        limit = int(value)
    except ValueError:
        raise ValidationError(name, "must be an integer")
    if limit < 1 or limit > maximum:
        raise ValidationError(name, f"must be between 1 and {maximum}")
    return limit


class SubjectView(APIView):
    """Base for views addressed by ``subject_id``, optionally through a caretaker.

    Caretaker-scoped routes pass ``caretaker_id`` and are rejected with 403
    unless the caretaker is assigned to the subject.
    """

    def get_subject(self, subject_id, caretaker_id=None):
        subject = repository.get_profile(subject_id, role='Patient')
        if subject is None:
            raise NotFound("Patient not found")
        if caretaker_id is not None:
            router.require_assignment(caretaker_id, subject_id)
        return subject


class ProfileListView(APIView):
    def get(self, request):
        profiles = repository.query_profiles(role=request.query_params.get('role'))
        serializer = ProfileSerializer(profiles, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)

    def post(self, request):
        serializer = ProfileSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


class SubjectReadingsView(SubjectView):
    def post(self, request, subject_id):
        self.get_subject(subject_id)
        serializer = ReadingUploadSerializer(data=request.data, context={'subject_id': str(subject_id)})
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        reading = serializer.validated_data['reading']

        # Ingest first: a cold window hydrates from the database and must not see this reading twice.
        result = get_monitor().ingest(subject_id, reading)

        persisted = True
        try:
            repository.insert_reading(subject_id, reading)
        except UpstreamUnavailable:
            persisted = False
        return Response(
            {
                'status': 'success',
                'message': 'Reading uploaded successfully',
                'persisted': persisted,
                'reading': reading.to_payload(),
                **result.summary(),
            },
            status=status.HTTP_201_CREATED,
        )

    def get(self, request, subject_id, caretaker_id=None):
        self.get_subject(subject_id, caretaker_id)
        config = MonitorConfig.from_settings()
        limit = query_limit(request, 'limit', config.detail_window, config.window_capacity)
        readings = repository.query_recent_readings(subject_id, limit)
        return Response([r.to_payload() for r in readings], status=status.HTTP_200_OK)


class SubjectStatsView(SubjectView):
    def get(self, request, subject_id, caretaker_id=None):
        self.get_subject(subject_id, caretaker_id)
        config = MonitorConfig.from_settings()
        window = query_limit(request, 'window', config.window_capacity, config.window_capacity)
        monitor = get_monitor()
        stats = monitor.stats(subject_id, window)
        classification = monitor.status(subject_id)
        latest = monitor.store.latest(str(subject_id))
        return Response(
            {
                'subject_id': str(subject_id),
                'window': window,
                'stats': stats.summary(),
                'status': classification.status.value if classification and classification.status else None,
                'conditions': sorted(t.value for t in classification.tags) if classification else [],
                'latest': latest.to_payload() if latest else None,
            },
            status=status.HTTP_200_OK,
        )


class SubjectAlertsView(SubjectView):
    def get(self, request, subject_id, caretaker_id=None):
        self.get_subject(subject_id, caretaker_id)
        limit = query_limit(request, 'limit', 50, 500)
        alerts = repository.query_alerts(subject_id, limit)
        return Response(
            {
                'unread': repository.count_unread_alerts([subject_id]),
                'alerts': AlertSerializer(alerts, many=True).data,
            },
            status=status.HTTP_200_OK,
        )


class AlertsReadView(SubjectView):
    def post(self, request, subject_id, caretaker_id=None):
        self.get_subject(subject_id, caretaker_id)
        updated = repository.mark_alerts_read(subject_id)
        return Response({'status': 'success', 'updated': updated}, status=status.HTTP_200_OK)


class ManualAlertView(SubjectView):
    def post(self, request, subject_id):
        self.get_subject(subject_id)
        serializer = ManualAlertSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        location = resolve_location(
            ReportedLocation(serializer.validated_data),
            LastKnownLocation(repository, subject_id),
        )
        draft = get_monitor().raise_manual_alert(
            subject_id,
            location=location,
            guardian_ids=serializer.validated_data['guardian_ids'],
        )
        return Response(
            {
                'status': 'success',
                'message': 'Emergency alert sent',
                'location_available': location is not None,
                'alert': draft.to_payload(),
            },
            status=status.HTTP_201_CREATED,
        )


class GuardianListView(SubjectView):
    def get(self, request, subject_id):
        subject = self.get_subject(subject_id)
        serializer = GuardianSerializer(subject.guardians.all(), many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)

    def post(self, request, subject_id):
        self.get_subject(subject_id)
        serializer = GuardianCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        outcome = router.add_guardian(subject_id, **serializer.validated_data)
        if not outcome.ok:
            return Response({'status': 'error', 'message': outcome.message}, status=status.HTTP_409_CONFLICT)
        return Response(
            {'status': 'success', 'message': outcome.message, 'guardian': GuardianSerializer(outcome.record).data},
            status=status.HTTP_201_CREATED,
        )


class GuardianDetailView(APIView):
    def delete(self, request, guardian_id):
        if not repository.delete_guardian(guardian_id):
            raise NotFound("Contact not found")
        return Response(status=status.HTTP_204_NO_CONTENT)


class CaretakerAssignmentsView(APIView):
    def get(self, request, caretaker_id):
        assignments = repository.query_assignments(caretaker_id)
        return Response(AssignmentSerializer(assignments, many=True).data, status=status.HTTP_200_OK)

    def post(self, request, caretaker_id):
        serializer = AssignPatientSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        outcome = router.assign(caretaker_id, serializer.validated_data['patient_id'])
        if not outcome.ok:
            return Response({'status': 'error', 'message': outcome.message}, status=status.HTTP_409_CONFLICT)
        return Response(
            {'status': 'success', 'message': outcome.message, 'assignment': AssignmentSerializer(outcome.record).data},
            status=status.HTTP_201_CREATED,
        )


class CaretakerAssignmentDetailView(APIView):
    def delete(self, request, caretaker_id, subject_id):
        outcome = router.unassign(caretaker_id, subject_id)
        if not outcome.ok:
            raise NotFound(outcome.message)
        return Response(status=status.HTTP_204_NO_CONTENT)


class CaretakerUnreadView(APIView):
    def get(self, request, caretaker_id):
        return Response({'unread': router.unread_count(caretaker_id)}, status=status.HTTP_200_OK)


class AssistantChatView(APIView):
    def post(self, request):
        serializer = ChatSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        reply = chat_with_doctor(AssistantConfig.from_settings(), **serializer.validated_data)
        return Response({'reply': reply}, status=status.HTTP_200_OK)


class SymptomCheckView(APIView):
    def post(self, request):
        serializer = SymptomSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        analysis = analyze_symptoms(AssistantConfig.from_settings(), **serializer.validated_data)
        return Response(analysis.to_dict(), status=status.HTTP_200_OK)
