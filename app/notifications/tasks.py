"""
Celery tasks for email delivery.

Tasks:
    send_email_notification: Send one plain-text email

Design:
    - SMTP and socket errors are transient and retried with backoff
    - Anything else is a bug and fails the task without retrying

Usage:
    from notifications.tasks import send_email_notification

    send_email_notification.delay(to="owner@example.com", subject="...", body="...")
"""

from __future__ import annotations

import logging
from smtplib import SMTPException

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(SMTPException, OSError),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
)
def send_email_notification(self, to: str, subject: str, body: str) -> bool:
    """
    Send a plain-text email through the configured email backend.

    Args:
        to: Recipient address
        subject: Rendered subject line
        body: Rendered plain-text body

    Returns:
        True once the backend accepted the message

    Raises:
        SMTPException, OSError: On transient failure (triggers retry)
    """
    logger.info(
        f"Sending email '{subject}' (attempt {self.request.retries + 1})",
        extra={"task_id": self.request.id},
    )
    sent = send_mail(
        subject=subject,
        message=body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[to],
        fail_silently=False,
    )
    logger.info(f"Email '{subject}' sent", extra={"task_id": self.request.id, "sent": sent})
    return bool(sent)
