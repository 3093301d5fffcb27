"""
Celery tasks for billing maintenance.

Tasks:
    apply_expired_listing_fallback: Move approved listings with lapsed paid
        plans to the fallback package (scheduled hourly via celery-beat)
"""

from __future__ import annotations

import logging

from celery import shared_task

from billing.services.providers import get_expired_listing_service

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
    acks_late=True,
)
def apply_expired_listing_fallback(self) -> dict:
    """
    Sweep approved listings for expired paid plans.

    Idempotent: a listing already on the fallback package is skipped, so a
    retried or overlapping run moves nothing twice.

    Returns:
        Dict with the number of listings moved
    """
    moved = get_expired_listing_service().apply_for_approved_listings()
    logger.info(f"Expired listing sweep moved {moved} listing(s)")
    return {"moved": moved}
