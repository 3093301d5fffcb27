"""
Notifications app for transactional billing emails.

This app provides:
- BillingEmailService for rendering plan and payment emails
- A Celery task that delivers them through Django's email backend

Usage:
    from notifications.services import BillingEmailService

    queued = BillingEmailService.send_payment_received(
        to=user.email,
        package_name="Premium",
        amount_formatted="GBP 25.00",
        payment_mode="subscription",
    )
"""
