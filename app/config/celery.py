"""
Celery configuration for the directory billing service.

Celery runs the work that must not block a request:
- Billing email delivery (notifications.tasks.send_email_notification)
- The hourly expired-listing sweep (billing.tasks.apply_expired_listing_fallback),
  scheduled through django-celery-beat's DatabaseScheduler

Redis is both the message broker and result backend. Tasks are
auto-discovered from all installed Django apps.

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
