"""
Model mixins providing reusable functionality for Django models.

Available Mixins:
    UUIDPrimaryKeyMixin: Use UUID as primary key
    OrderableMixin: User-defined ordering (position field)
    VersionedMixin: Optimistic locking version, bumped on every update

Usage:
    from core.models import BaseModel
    from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin

    class DowngradeRequest(UUIDPrimaryKeyMixin, VersionedMixin, BaseModel):
        ...

Note:
    - Always list mixins before BaseModel in inheritance
    - Mixins are abstract and don't create database tables
"""

from __future__ import annotations

import uuid

from django.db import models
from django.db.models import F


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use UUID as primary key instead of auto-increment integer.

    Listing and request ids travel through checkout metadata and URLs,
    so they must not reveal record counts or be guessable.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True


class OrderableMixin(models.Model):
    """
    Support for user-defined ordering of records.

    Fields:
        position: Integer position for ordering (0-indexed)
    """

    position = models.PositiveIntegerField(
        default=0,
        help_text="Position for ordering (lower numbers appear first)",
    )

    class Meta:
        abstract = True
        ordering = ["position"]


class VersionedMixin(models.Model):
    """
    Optimistic locking support.

    The version column is incremented in the database on every update
    (F-expression, so concurrent writers cannot both produce the same
    version) and reloaded afterwards. Pair with
    billing.locks.check_version() when a caller edits a record it read
    earlier.

    Fields:
        version: Incremented on each save after creation
    """

    version = models.PositiveIntegerField(
        default=1,
        help_text="Version for optimistic locking - incremented on each save",
    )

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        """Save with version auto-increment for optimistic locking."""
        is_update = not self._state.adding and not kwargs.get("force_insert", False)
        if is_update:
            self.version = F("version") + 1
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])
