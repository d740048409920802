import uuid

from django.db import models
from django.utils import timezone


class Profile(models.Model):

    ROLE_CHOICES = (
        ('Patient', 'Patient'),
        ('Caretaker', 'Caretaker'),
    )
    GENDER_CHOICES = (
        ('Male', 'Male'),
        ('Female', 'Female'),
        ('Other', 'Other'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100)
    age = models.PositiveIntegerField()
    email = models.EmailField(unique=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES)
    phone = models.CharField(max_length=30, blank=True)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, help_text="Fixed at registration")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.role})"


class Vital(models.Model):
    subject = models.ForeignKey(Profile, on_delete=models.CASCADE, related_name="vitals")
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    heart_rate = models.FloatField(null=True, blank=True, help_text="Heart rate in BPM")
    spo2 = models.FloatField(null=True, blank=True, help_text="SpO2 percentage")
    temperature = models.FloatField(null=True, blank=True, help_text="Body temperature in °C")
    rr_interval = models.FloatField(null=True, blank=True, help_text="R-R interval in ms")
    accel_x = models.FloatField(null=True, blank=True)
    accel_y = models.FloatField(null=True, blank=True)
    accel_z = models.FloatField(null=True, blank=True)
    raw_values = models.JSONField(default=list, blank=True, help_text="ECG waveform samples")
    sensor_fault = models.BooleanField(default=False)
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"Vital for {self.subject_id} at {self.created_at}"


class Alert(models.Model):
    TYPE_CHOICES = (
        ('Manual', 'Manual'),
        ('Auto', 'Auto'),
        ('Sensor_Fault', 'Sensor Fault'),
    )
    SEVERITY_CHOICES = (
        ('Low', 'Low'),
        ('Medium', 'Medium'),
        ('High', 'High'),
        ('Critical', 'Critical'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    subject = models.ForeignKey(Profile, on_delete=models.CASCADE, related_name="alerts")
    alert_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    severity = models.CharField(max_length=10, choices=SEVERITY_CHOICES)
    message = models.TextField()
    is_read = models.BooleanField(default=False)
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [models.Index(fields=['subject', 'is_read'], name='alert_subject_unread_idx')]

    def __str__(self):
        return f"{self.severity} {self.alert_type} alert for {self.subject_id}"


class Assignment(models.Model):
    caretaker = models.ForeignKey(Profile, on_delete=models.CASCADE, related_name="assignments")
    subject = models.ForeignKey(Profile, on_delete=models.CASCADE, related_name="caretaker_assignments")
    assigned_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-assigned_at']
        constraints = [
            models.UniqueConstraint(fields=['caretaker', 'subject'], name='unique_caretaker_subject'),
        ]

    def __str__(self):
        return f"{self.caretaker_id} monitors {self.subject_id}"


class Guardian(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    subject = models.ForeignKey(Profile, on_delete=models.CASCADE, related_name="guardians")
    name = models.CharField(max_length=100)
    email = models.EmailField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['subject', 'email'], name='unique_subject_guardian_email'),
        ]

    def __str__(self):
        return f"{self.name} <{self.email}>"


class EmergencyBroadcast(models.Model):
    subject = models.ForeignKey(Profile, on_delete=models.CASCADE, related_name="broadcasts")
    alert = models.ForeignKey(Alert, on_delete=models.SET_NULL, null=True, blank=True, related_name="broadcasts")
    guardian = models.ForeignKey(Guardian, on_delete=models.SET_NULL, null=True, blank=True)
    recipient = models.EmailField()
    message = models.TextField()
    provider = models.CharField(max_length=20, blank=True)
    success = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Broadcast to {self.recipient} for {self.subject_id}"
