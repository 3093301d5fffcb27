"""
Billing email notifications.

Renders plain-text billing emails and hands them to the
send_email_notification Celery task. Delivery is best effort: a failure to
enqueue is logged and reported through the return value, never raised, so
a mail outage cannot undo or block a plan change that already committed.

Services:
    BillingEmailService: Plan-upgraded and payment-received emails

Design Principles:
    - Services are stateless (use class methods)
    - Template rendering raises KeyError on missing placeholders
    - Emails are only enqueued; the task owns SMTP retries

Usage:
    from notifications.services import BillingEmailService

    BillingEmailService.send_plan_upgraded(
        to=user.email,
        name=user.name,
        listing_name=listing.name,
        previous_package_name="Basic",
        new_package_name="Premium",
    )
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.conf import settings

from notifications.tasks import send_email_notification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailTemplate:
    """Subject and body with str.format placeholders."""

    subject: str
    body: str

    def render(self, **context) -> tuple[str, str]:
        return self.subject.format(**context), self.body.format(**context)


PLAN_UPGRADED = EmailTemplate(
    subject="Your plan for {listing_name} has changed",
    body=(
        "Hi {name},\n\n"
        "{listing_name} is now on the {new_package_name} plan"
        "{previous_plan_clause}.\n\n"
        "Manage your plan at {billing_url}\n\n"
        "Thanks,\n{site_name}"
    ),
)

PAYMENT_RECEIVED = EmailTemplate(
    subject="Payment received for {package_name}",
    body=(
        "Hi {name},\n\n"
        "We received your {payment_description} of {amount_formatted} "
        "for the {package_name} plan.\n\n"
        "View your billing details at {billing_url}\n\n"
        "Thanks,\n{site_name}"
    ),
)

PAYMENT_DESCRIPTIONS = {
    "subscription": "subscription payment",
    "one_time": "one-time payment",
}


def format_amount(amount_minor: int, currency: str | None) -> str:
    """
    Format an amount in the smallest currency unit for display.

    Example:
        format_amount(2500, "gbp")  # "GBP 25.00"
    """
    code = (currency or settings.BILLING_CURRENCY).upper()
    return f"{code} {amount_minor / 100:.2f}"


class BillingEmailService:
    """
    Best-effort billing emails.

    Each method returns True when the email was queued and False when it
    was skipped or could not be queued.
    """

    @classmethod
    def send_plan_upgraded(
        cls,
        to: str | None,
        listing_name: str,
        new_package_name: str,
        previous_package_name: str | None = None,
        name: str | None = None,
    ) -> bool:
        previous_plan_clause = (
            f" (previously {previous_package_name})" if previous_package_name else ""
        )
        return cls._send(
            "plan_upgraded",
            to,
            PLAN_UPGRADED,
            name=name or "there",
            listing_name=listing_name,
            new_package_name=new_package_name,
            previous_plan_clause=previous_plan_clause,
        )

    @classmethod
    def send_payment_received(
        cls,
        to: str | None,
        package_name: str,
        amount_formatted: str,
        payment_mode: str,
        name: str | None = None,
    ) -> bool:
        return cls._send(
            "payment_received",
            to,
            PAYMENT_RECEIVED,
            name=name or "there",
            package_name=package_name,
            amount_formatted=amount_formatted,
            payment_description=PAYMENT_DESCRIPTIONS.get(payment_mode, "payment"),
        )

    @classmethod
    def _send(cls, kind: str, to: str | None, template: EmailTemplate, **context) -> bool:
        if not to:
            logger.info(f"Skipping {kind} email: no recipient address")
            return False

        subject, body = template.render(
            billing_url=f"{settings.SITE_URL.rstrip('/')}/dashboard/billing",
            site_name=settings.SITE_NAME,
            **context,
        )
        try:
            send_email_notification.delay(to=to, subject=subject, body=body)
        except Exception:
            logger.exception(f"Failed to enqueue {kind} email", extra={"email_kind": kind})
            return False

        logger.info(f"Queued {kind} email", extra={"email_kind": kind})
        return True
