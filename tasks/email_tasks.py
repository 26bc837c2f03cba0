import logging

from celery import shared_task
from core.config import settings

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3)
def send_email_task(self, to_email: str, subject: str, body: str):
    """
    Send email asynchronously with Celery.
    Retries up to 3 times on failure.
    """
    # Imported here so the task module stays importable from services.email
    from services.email import deliver

    # Skip email sending in testing mode or without credentials
    if settings.TESTING or not settings.SMTP_PASSWORD:
        logger.info("Email to %s skipped (subject: %s)", to_email, subject)
        return {"status": "skipped", "to": to_email}

    try:
        deliver(to_email, subject, body)
        return {"status": "sent", "to": to_email, "subject": subject}
    except Exception as exc:
        logger.warning("Failed to send email to %s: %s", to_email, exc)
        # Retry with exponential backoff
        countdown = min(2 ** self.request.retries, 60)  # Max 60 seconds
        raise self.retry(exc=exc, countdown=countdown)
