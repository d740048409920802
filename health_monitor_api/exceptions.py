# exceptions.py
class HealthMonitorError(Exception):
    """Base class for errors raised by the monitoring engine."""


class ValidationError(HealthMonitorError, ValueError):
    """A reading (or request) field is malformed or out of range."""

    def __init__(self, field, message):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class ConflictError(HealthMonitorError):
    """Uniqueness violation, e.g. a caretaker already assigned to a patient."""


class NotAssigned(HealthMonitorError):
    """The caretaker has no assignment for the requested subject."""


class DeliveryError(HealthMonitorError):
    """A notification provider (or the whole fallback chain) failed."""

    def __init__(self, message, provider=None, failures=None):
        self.provider = provider
        self.failures = failures or []
        super().__init__(message)


class UpstreamUnavailable(HealthMonitorError):
    """Persistence or realtime collaborator could not be reached."""


class LocationUnavailable(HealthMonitorError):
    """No location could be acquired for the subject."""


class AssistantError(HealthMonitorError):
    """Generative-AI call failed; the message is safe to show to the user."""


class AssistantUnavailable(AssistantError):
    """The model provider failed on its side (server error, rejected request)."""
