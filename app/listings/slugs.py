"""
Listing slug generation and allocation.

Slugs are globally unique. Checking for a free slug and then inserting is
racy under concurrent submissions, so allocation treats the database
unique constraint as the source of truth: it tries to create the listing,
and on a uniqueness violation inspects who holds the slug.

    - Held by the same owner, or the owner already holds a suffixed slug of
      the same base: a duplicate resubmission, return that listing
    - Held by someone else: back off, pick the next free suffix, retry
    - Attempts exhausted: ConflictError (HTTP 409)

Usage:
    allocator = SlugAllocator()
    allocation = allocator.allocate(
        slugify_listing_name(data["businessName"]),
        owner_id=user.id,
        create=lambda slug: create_listing(slug),
    )
    if allocation.replayed:
        ...
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Q

from core.exceptions import ConflictError
from core.helpers import backoff_delay
from listings.models import Listing

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

DEFAULT_SLUG_BASE = "business"

_INVALID_CHARS = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_REPEATED_DASHES = re.compile(r"-+")


def slugify_listing_name(value: str) -> str:
    """
    Turn a business name into a URL slug.

    Lower-cases, drops everything except ASCII letters, digits, whitespace
    and dashes, joins words with single dashes and trims dashes at the ends.

    Example:
        slugify_listing_name("  Café Olé & Sons ")  # "caf-ol-sons"
    """
    slug = _INVALID_CHARS.sub("", value.lower().strip())
    slug = _WHITESPACE.sub("-", slug)
    slug = _REPEATED_DASHES.sub("-", slug)
    return slug.strip("-")


@dataclass(frozen=True)
class SlugAllocation:
    """
    Outcome of SlugAllocator.allocate().

    Attributes:
        record: Listing that now holds the slug
        slug: The allocated slug
        replayed: True when an existing listing of the same owner was returned
        attempts: Number of create attempts made
    """

    record: Any
    slug: str
    replayed: bool
    attempts: int


class SlugAllocator:
    """
    Allocates unique listing slugs with a bounded create-and-retry loop.

    Each attempt runs create(slug) in its own savepoint, so a failed attempt
    leaves nothing behind.
    """

    def __init__(
        self,
        max_attempts: int | None = None,
        base_delay: float | None = None,
        max_delay: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.max_attempts = max_attempts or settings.SLUG_MAX_ATTEMPTS
        self.base_delay = (
            base_delay if base_delay is not None else settings.SLUG_RETRY_BASE_DELAY_SECONDS
        )
        self.max_delay = (
            max_delay if max_delay is not None else settings.SLUG_RETRY_MAX_DELAY_SECONDS
        )
        self._sleep = sleep

    def reserve(self, base_candidate: str) -> str:
        """
        Return the first slug among base, base-2, base-3, ... not yet taken.

        The answer can be stale by the time it is used; allocate() handles
        the resulting uniqueness violation.
        """
        base = slugify_listing_name(base_candidate) or DEFAULT_SLUG_BASE
        taken = set(
            Listing.objects.filter(
                Q(slug=base) | Q(slug__startswith=f"{base}-")
            ).values_list("slug", flat=True)
        )
        if base not in taken:
            return base

        suffix = 2
        while f"{base}-{suffix}" in taken:
            suffix += 1
        return f"{base}-{suffix}"

    @staticmethod
    def _owned_in_family(base: str, owner_id: Any) -> Listing | None:
        """Earliest listing of this owner slugged base or base-N."""
        return (
            Listing.objects.filter(owner_id=owner_id)
            .filter(Q(slug=base) | Q(slug__regex=rf"^{re.escape(base)}-[0-9]+$"))
            .order_by("created_at")
            .first()
        )

    def allocate(
        self,
        base_candidate: str,
        owner_id: Any,
        create: Callable[[str], Any],
    ) -> SlugAllocation:
        """
        Create a record under a unique slug derived from base_candidate.

        The first attempt uses the base slug itself, so a repeated submission
        by the same owner lands on its own earlier listing.

        Args:
            base_candidate: Preferred slug (normalised again here)
            owner_id: Owner of the record being created
            create: Callback that inserts the record with the given slug

        Returns:
            SlugAllocation for the created or replayed listing

        Raises:
            ConflictError: All attempts collided with other owners' listings
            IntegrityError: A constraint other than the slug was violated
        """
        base = slugify_listing_name(base_candidate) or DEFAULT_SLUG_BASE
        candidate = base

        for attempt in range(self.max_attempts):
            try:
                with transaction.atomic():
                    record = create(candidate)
                return SlugAllocation(
                    record=record, slug=candidate, replayed=False, attempts=attempt + 1
                )
            except IntegrityError:
                existing = Listing.objects.filter(slug=candidate).first()
                if existing is None:
                    raise

                if existing.owner_id != owner_id:
                    existing = self._owned_in_family(base, owner_id) or existing

                if existing.owner_id == owner_id:
                    logger.info(
                        f"Slug {candidate} already held by the same owner, replaying",
                        extra={"slug": candidate, "listing_id": str(existing.id)},
                    )
                    return SlugAllocation(
                        record=existing,
                        slug=existing.slug,
                        replayed=True,
                        attempts=attempt + 1,
                    )

                logger.warning(
                    f"Slug collision on {candidate} (attempt {attempt + 1}/{self.max_attempts})",
                    extra={"slug": candidate, "attempt": attempt + 1},
                )
                if attempt + 1 < self.max_attempts:
                    self._sleep(backoff_delay(attempt, self.base_delay, self.max_delay))
                    candidate = self.reserve(base)

        raise ConflictError(
            "Could not reserve a unique slug. Please try again.",
            error_code="SLUG_RETRIES_EXHAUSTED",
            details={"base_slug": base, "attempts": self.max_attempts},
        )
