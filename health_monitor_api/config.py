# config.py
from dataclasses import dataclass, field
from typing import Optional, Tuple

from django.conf import settings

DEFAULT_ASSISTANT_MODELS = ("gpt-4o", "gpt-4o-mini")


@dataclass(frozen=True)
class MonitorConfig:
    """Tunables for the analytics/alerting engine.

    Read once from ``settings.HEALTH_MONITOR``; every value has a default so
    the engine can be built outside of Django (tests, the simulator).
    """

    window_capacity: int = 100
    detail_window: int = 20
    alert_cooldown_seconds: float = 60.0
    variability_samples: int = 10
    irregular_variability: float = 20.0
    cooldown_redis_url: Optional[str] = None

    email_providers: Tuple[str, ...] = ("resend", "sendgrid", "mailgun")
    email_timeout_seconds: float = 10.0
    from_email: str = "alerts@healthmonitor.local"

    assistant_models: Tuple[str, ...] = field(default=DEFAULT_ASSISTANT_MODELS)
    openai_api_key: Optional[str] = None

    @classmethod
    def from_settings(cls):
        options = getattr(settings, "HEALTH_MONITOR", {})
        defaults = cls()
        return cls(
            window_capacity=int(options.get("WINDOW_CAPACITY", defaults.window_capacity)),
            detail_window=int(options.get("DETAIL_WINDOW", defaults.detail_window)),
            alert_cooldown_seconds=float(
                options.get("ALERT_COOLDOWN_SECONDS", defaults.alert_cooldown_seconds)
            ),
            variability_samples=int(options.get("VARIABILITY_SAMPLES", defaults.variability_samples)),
            irregular_variability=float(
                options.get("IRREGULAR_VARIABILITY", defaults.irregular_variability)
            ),
            cooldown_redis_url=options.get("COOLDOWN_REDIS_URL"),
            email_providers=tuple(options.get("EMAIL_PROVIDERS", defaults.email_providers)),
            email_timeout_seconds=float(
                options.get("EMAIL_TIMEOUT_SECONDS", defaults.email_timeout_seconds)
            ),
            from_email=options.get("FROM_EMAIL", defaults.from_email),
            assistant_models=tuple(options.get("ASSISTANT_MODELS", defaults.assistant_models)),
            openai_api_key=options.get("OPENAI_API_KEY"),
        )


def provider_credentials():
    """Credentials for each e-mail provider, keyed by provider name."""
    options = getattr(settings, "HEALTH_MONITOR", {})
    return {
        "resend": {"api_key": options.get("RESEND_API_KEY")},
        "sendgrid": {"api_key": options.get("SENDGRID_API_KEY")},
        "mailgun": {
            "api_key": options.get("MAILGUN_API_KEY"),
            "domain": options.get("MAILGUN_DOMAIN"),
        },
    }
