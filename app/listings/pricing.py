"""
Billing duration helpers for pricing packages.

A package's cycle length is its explicit duration_days when positive,
otherwise derived from the billing period (30 days monthly, 365 yearly).
Recurring checkout prices bill every N days, where N is the cycle length
clamped to the 1..365 range the payment gateway accepts for day intervals.
"""

from __future__ import annotations

import math
from datetime import timedelta
from typing import TYPE_CHECKING

from django.db import models

if TYPE_CHECKING:
    from datetime import datetime

MIN_RECURRING_INTERVAL_DAYS = 1
MAX_RECURRING_INTERVAL_DAYS = 365


class BillingPeriod(models.TextChoices):
    MONTHLY = "monthly", "Monthly"
    YEARLY = "yearly", "Yearly"


def billing_duration_days(
    billing_period: str | None = None,
    duration_days: int | float | None = None,
) -> int:
    """
    Number of days one billing cycle lasts.

    Returns 0 when neither an explicit duration nor a period is known.

    Example:
        billing_duration_days("monthly", 0)   # 30
        billing_duration_days("yearly", 0)    # 365
        billing_duration_days("monthly", 45)  # 45
    """
    if duration_days is not None and math.isfinite(duration_days) and duration_days > 0:
        return math.floor(duration_days)
    if not billing_period:
        return 0
    return 365 if billing_period == BillingPeriod.YEARLY else 30


def add_billing_duration(
    start: datetime,
    billing_period: str | None = None,
    duration_days: int | float | None = None,
) -> datetime:
    """Return start shifted by one billing cycle (unchanged for zero-length cycles)."""
    days = billing_duration_days(billing_period, duration_days)
    if days > 0:
        return start + timedelta(days=days)
    return start


def billing_period_for_duration(duration_days: int | float | None) -> str:
    """Closest billing period label for an explicit duration."""
    days = billing_duration_days(None, duration_days)
    return BillingPeriod.YEARLY if days >= 365 else BillingPeriod.MONTHLY


def recurring_interval_days(
    billing_period: str | None = None,
    duration_days: int | float | None = None,
) -> int:
    """Day interval for a recurring gateway price, clamped to 1..365."""
    days = billing_duration_days(billing_period, duration_days)
    return max(MIN_RECURRING_INTERVAL_DAYS, min(MAX_RECURRING_INTERVAL_DAYS, days))
