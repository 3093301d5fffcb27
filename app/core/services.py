"""
Base service layer patterns for business logic encapsulation.

Services encapsulate business logic separate from views and models.
Views handle HTTP concerns, models handle data, services handle logic.

Pattern:
    - Expected failures (not found, policy violations) raise
      core.exceptions subclasses that views translate into responses.
    - Services that talk to external systems receive their collaborators
      through the constructor so tests can substitute fakes.

Usage:
    from core.services import BaseService

    class ListingSubmissionService(BaseService):
        def submit(self, owner, data):
            with self.atomic():
                listing = Listing.objects.create(...)
            self.get_logger().info("Created listing %s", listing.id)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Thin wrapper around Django's transaction.atomic() that makes
        transaction boundaries explicit in service code. Nested use creates
        a savepoint, so a failed inner block rolls back on its own.
        """
        with transaction.atomic():
            yield
