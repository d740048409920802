# serializers.py
from rest_framework import serializers

from .assistant import LANGUAGE_PROMPTS
from .exceptions import ValidationError
from .models import Alert, Assignment, Guardian, Profile
from .readings import parse_reading


class ReadingUploadSerializer(serializers.Serializer):
    """Wraps ingest-boundary validation so errors come back in DRF's shape.

    Field-level parsing is done by ``parse_reading``; the subject id comes from
    the URL and is passed through ``context``.
    """

    heart_rate = serializers.JSONField(required=False, allow_null=True)
    bpm = serializers.JSONField(required=False, allow_null=True)
    spo2 = serializers.JSONField(required=False, allow_null=True)
    temperature = serializers.JSONField(required=False, allow_null=True)
    rr_interval = serializers.JSONField(required=False, allow_null=True)
    accel_x = serializers.JSONField(required=False, allow_null=True)
    accel_y = serializers.JSONField(required=False, allow_null=True)
    accel_z = serializers.JSONField(required=False, allow_null=True)
    raw_values = serializers.JSONField(required=False, allow_null=True)
    sensor_fault = serializers.JSONField(required=False, allow_null=True)
    latitude = serializers.JSONField(required=False, allow_null=True)
    longitude = serializers.JSONField(required=False, allow_null=True)
    timestamp = serializers.CharField(required=False, allow_null=True, allow_blank=True)

    def validate(self, data):
        try:
            reading = parse_reading(self.context['subject_id'], data)
        except ValidationError as exc:
            raise serializers.ValidationError({exc.field: [exc.message]})
        return {'reading': reading}


class ProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = Profile
        fields = ['id', 'name', 'age', 'email', 'gender', 'phone', 'role', 'created_at']
        read_only_fields = ['id', 'created_at']


class AlertSerializer(serializers.ModelSerializer):
    class Meta:
        model = Alert
        fields = ['id', 'subject', 'alert_type', 'severity', 'message', 'is_read', 'latitude', 'longitude', 'created_at']


class AssignmentSerializer(serializers.ModelSerializer):
    subject = ProfileSerializer(read_only=True)

    class Meta:
        model = Assignment
        fields = ['id', 'caretaker', 'subject', 'assigned_at']


class AssignPatientSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField()


class GuardianSerializer(serializers.ModelSerializer):
    class Meta:
        model = Guardian
        fields = ['id', 'subject', 'name', 'email', 'created_at']
        read_only_fields = ['id', 'subject', 'created_at']


class GuardianCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    email = serializers.EmailField()


class ManualAlertSerializer(serializers.Serializer):
    # Bad coordinates fall back to the last known location instead of failing the SOS.
    latitude = serializers.JSONField(required=False, allow_null=True)
    longitude = serializers.JSONField(required=False, allow_null=True)
    guardian_ids = serializers.ListField(child=serializers.UUIDField(), required=False, default=list)


class ChatSerializer(serializers.Serializer):
    message = serializers.CharField()
    language = serializers.ChoiceField(choices=sorted(LANGUAGE_PROMPTS), default='en')


class SymptomSerializer(serializers.Serializer):
    symptoms = serializers.CharField()
    language = serializers.ChoiceField(choices=sorted(LANGUAGE_PROMPTS), default='en')
