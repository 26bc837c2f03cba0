import logging
import os
import smtplib
from email.message import EmailMessage
from typing import Dict, Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from core.config import settings
from tasks.email_tasks import send_email_task

logger = logging.getLogger(__name__)

# Jinja2 environment for email templates
_templates_env = Environment(
    loader=FileSystemLoader(searchpath=os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")),
    autoescape=select_autoescape(["html", "xml"]),
)


def send_email(to_email: str, subject: str, body: str) -> None:
    """
    Send email through the Celery queue when enabled, otherwise directly.
    Queueing returns immediately and doesn't block the request.
    """
    if settings.EMAIL_VIA_CELERY:
        try:
            send_email_task.delay(to_email, subject, body)
            logger.info("Email to %s queued", to_email)
            return
        except Exception:
            logger.warning("Celery not available, falling back to direct email sending", exc_info=True)

    # Fallback: send email directly (synchronously)
    _send_email_direct(to_email, subject, body)


def render_template(template_path: str, context: Dict[str, Any]) -> str:
    """Render a text template from templates/ directory with provided context."""
    template = _templates_env.get_template(template_path)
    return template.render(**context)


def send_templated_email(to_email: str, subject: str, template_path: str, context: Dict[str, Any]) -> None:
    """Render a template and send email via existing send_email path."""
    body = render_template(template_path, context)
    send_email(to_email, subject, body)


def deliver(to_email: str, subject: str, body: str) -> None:
    """Hand one message to the SMTP server. Raises on failure."""
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.SMTP_FROM or settings.SMTP_USERNAME
    msg["To"] = to_email
    msg.set_content(body)

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
        server.starttls()
        if settings.SMTP_USERNAME and settings.SMTP_PASSWORD:
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.send_message(msg)


def _send_email_direct(to_email: str, subject: str, body: str) -> None:
    """Direct email sending fallback"""
    if not settings.SMTP_PASSWORD:
        logger.info("SMTP not configured; email to %s not sent (subject: %s)", to_email, subject)
        logger.debug("Email body: %s", body)
        return

    try:
        deliver(to_email, subject, body)
        logger.info("Email sent to %s", to_email)
    except Exception:
        logger.exception("Email sending to %s failed", to_email)
