"""
Expired paid listing fallback.

A paid plan lasts one billing duration from when it was applied
(package_assigned_at, or the listing's creation for listings that predate
that field). Once it lapses, the listing moves to the fallback package
configured in the downgrade policy and loses its featured flag.

Nothing happens when no fallback package is configured or the configured
package is inactive.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from django.utils import timezone

from core.services import BaseService
from listings.models import Listing, ListingStatus, PricingPackage

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from authentication.models import User
    from billing.services.governance import DowngradeGovernanceStore


class ExpiredListingFallbackService(BaseService):
    """
    Moves listings with lapsed paid plans to the fallback package.

    Usage:
        service = ExpiredListingFallbackService(governance=DowngradeGovernanceStore())
        moved = service.apply_for_approved_listings()
    """

    def __init__(self, governance: DowngradeGovernanceStore):
        self.governance = governance

    def apply_for_approved_listings(self) -> int:
        return self._apply(Listing.objects.filter(status=ListingStatus.APPROVED))

    def apply_for_owner(self, owner: User) -> int:
        return self._apply(Listing.objects.filter(owner=owner))

    def apply_for_owned_listing(self, owner: User, listing_id: Any) -> int:
        return self._apply(Listing.objects.filter(owner=owner, pk=listing_id))

    def resolve_fallback_package(self) -> PricingPackage | None:
        package_id = self.governance.get_expired_listing_package_id()
        if not package_id:
            return None
        return PricingPackage.objects.filter(pk=package_id, active=True).first()

    def _apply(self, listings: QuerySet[Listing]) -> int:
        fallback = self.resolve_fallback_package()
        if fallback is None:
            return 0

        now = timezone.now()
        candidates = (
            listings.filter(package__isnull=False, package__price__gt=0)
            .exclude(package=fallback)
            .select_related("package")
        )
        expired = [
            listing
            for listing in candidates
            if (expires_at := listing.plan_expires_at()) is not None and now > expires_at
        ]
        if not expired:
            return 0

        moved = 0
        with self.atomic():
            for listing in expired:
                # Skips listings whose plan changed since they were read
                moved += Listing.objects.filter(
                    pk=listing.pk,
                    package_id=listing.package_id,
                    package_assigned_at=listing.package_assigned_at,
                ).update(
                    package=fallback,
                    package_assigned_at=now,
                    featured=False,
                    updated_at=now,
                )
        if not moved:
            return 0

        self.get_logger().info(
            f"Moved {moved} expired listing(s) to fallback package {fallback.id}",
            extra={"fallback_package_id": str(fallback.id), "listing_count": moved},
        )
        return moved
