"""
Core views providing infrastructure endpoints and shared view helpers.

This module contains views that are not part of the billing domain but are
essential for running the service, plus the translation of domain
exceptions into API responses used by every app's views.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.db import connection
from django.http import JsonResponse
from rest_framework.response import Response

if TYPE_CHECKING:
    from core.exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


def error_response(exc: BaseApplicationError) -> Response:
    """
    Build the JSON response for a domain error raised by a service.

    Server-side failures (5xx) are logged here so views don't have to.

    Example Response (HTTP 404):
        {
            "error": "Business not found.",
            "error_code": "LISTING_NOT_FOUND"
        }
    """
    if exc.http_status >= 500:
        logger.error(
            f"Request failed: {exc}",
            extra={"error_code": exc.error_code, "details": exc.details},
        )
    return Response(exc.to_dict(), status=exc.http_status)


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Returns:
        JsonResponse with status and component health:
        - status: "healthy" or "unhealthy"
        - database: "connected" or "disconnected"
        - cache: "connected" or "disconnected"

    HTTP Status Codes:
        200: Database reachable
        503: Database unreachable
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
    }
    is_healthy = True

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except Exception:
        logger.exception("Health check database query failed")
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    # Cache failures degrade locking but keep the service up
    try:
        from django.core.cache import cache

        cache.set("health_check", "ok", timeout=1)
        if cache.get("health_check") == "ok":
            health_status["cache"] = "connected"
        else:
            health_status["cache"] = "disconnected"
    except Exception:
        logger.warning("Health check cache round trip failed", exc_info=True)
        health_status["cache"] = "disconnected"

    status_code = 200 if is_healthy else 503
    return JsonResponse(health_status, status=status_code)
