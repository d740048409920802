import logging

from celery import shared_task
from kombu.exceptions import OperationalError

from .alerts import AlertDraft
from .assignments import AssignmentRouter
from .config import MonitorConfig, provider_credentials
from .exceptions import UpstreamUnavailable
from .models import Alert
from .notifications import NotificationDispatcher, build_providers, emergency_message, render_html, send_email
from .repository import DjangoRepository

logger = logging.getLogger(__name__)


def build_dispatcher(config=None):
    config = config or MonitorConfig.from_settings()
    providers = build_providers(
        config.email_providers,
        provider_credentials(),
        from_email=config.from_email,
        timeout=config.email_timeout_seconds,
    )
    return NotificationDispatcher(providers, sender=send_email)


def persist_alert(draft: AlertDraft, repository=None) -> Alert:
    repository = repository or DjangoRepository()
    alert = repository.insert_alert(draft)
    logger.info("Stored %s %s alert %s for subject %s",
                draft.severity.value, draft.alert_type.value, alert.id, draft.subject_id)
    return alert


def enqueue_alert(draft: AlertDraft):
    """Alert sink used by the monitor.

    Automatic alerts are persisted by a worker. Manual SOS alerts are stored
    right away and only the e-mail broadcast is queued; if the broker is down
    the broadcast runs in-process instead.
    """
    if draft.is_manual:
        alert = persist_alert(draft)
        args = (str(alert.id), list(draft.guardian_ids))
        try:
            dispatch_emergency_alert.delay(*args)
        except OperationalError as exc:
            logger.warning("Broker unavailable, broadcasting alert %s in-process: %s", alert.id, exc)
            dispatch_emergency_alert.apply(args=args)
        return alert

    try:
        return record_alert.delay(draft.to_payload())
    except OperationalError as exc:
        raise UpstreamUnavailable(f"Could not queue alert: {exc}") from exc


@shared_task()
def record_alert(payload):
    alert = persist_alert(AlertDraft.from_payload(payload))
    return str(alert.id)


@shared_task()
def dispatch_emergency_alert(alert_id, guardian_ids=None):
    """E-mail an SOS to the selected guardians (all when none selected) and assigned caretakers.

    Each recipient is attempted once through the provider chain; every
    attempt is logged as an EmergencyBroadcast row. No retries.
    """
    repository = DjangoRepository()
    try:
        alert = repository.get_alert(alert_id)
    except Alert.DoesNotExist:
        logger.error("Emergency broadcast skipped: alert %s not found", alert_id)
        return {"sent": 0, "failed": 0}

    router = AssignmentRouter(repository)
    guardians = router.guardians_for(alert.subject_id)
    if guardian_ids:
        selected = {str(g) for g in guardian_ids}
        guardians = [g for g in guardians if g.id in selected]

    recipients = [(g.email, g.id) for g in guardians]
    known = {email for email, _ in recipients}
    recipients += [(email, None) for email in router.caretaker_emails_for(alert.subject_id) if email not in known]

    subject, body = emergency_message(alert.subject.name, alert.latitude, alert.longitude)
    html = render_html(body)
    dispatcher = build_dispatcher()

    sent = failed = 0
    for email, guardian_id in recipients:
        result = dispatcher.send([email], subject, html)
        repository.log_broadcast(
            subject_id=alert.subject_id,
            recipient=email,
            message=body,
            provider=result.provider,
            success=result.success,
            alert_id=alert.id,
            guardian_id=guardian_id,
        )
        if result.success:
            sent += 1
        else:
            failed += 1

    if failed:
        logger.error("Emergency alert %s: %d of %d e-mails failed", alert_id, failed, len(recipients))
    else:
        logger.info("Emergency alert %s sent to %d recipient(s)", alert_id, sent)
    return {"sent": sent, "failed": failed}
