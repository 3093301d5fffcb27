"""
Listing submission service.

Submitting a listing creates, in one transaction, the listing itself, its
badges, products, menu items and services, and promotes a guest owner to
business owner. A paid package must have been paid for first: the checkout
session id sent with the submission is verified against the gateway, and a
session can create at most one listing.

Usage:
    service = get_listing_submission_service()
    result = service.submit(owner=request.user, data=serializer.validated_data)
    status = 200 if result.replayed else 201
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Any

from django.db import IntegrityError

from authentication.models import User, UserRole
from billing.checkout import PaymentMode
from billing.exceptions import PaymentRequiredError, PaymentVerificationError
from billing.services.providers import get_checkout_verifier
from core.exceptions import ConflictError, ValidationError
from core.services import BaseService
from listings.models import (
    Badge,
    Listing,
    ListingBadge,
    ListingStatus,
    MenuItem,
    PricingPackage,
    Product,
    Service,
)
from listings.slugs import SlugAllocator, slugify_listing_name

if TYPE_CHECKING:
    from billing.services.checkout_verifier import CheckoutVerifier

SUBMITTED_MESSAGE = "Listing submitted. Your account is now a business owner."
REPLAYED_MESSAGE = "Listing already submitted."


@dataclass
class SubmissionResult:
    listing: Listing
    replayed: bool = False

    def to_response(self) -> dict[str, Any]:
        return {
            "ok": True,
            "businessId": str(self.listing.id),
            "slug": self.listing.slug,
            "message": REPLAYED_MESSAGE if self.replayed else SUBMITTED_MESSAGE,
        }


def parse_legacy_location(raw_location: str) -> dict[str, str]:
    """
    Split a free-text "City, Postcode" location into address fields.

    Older clients send a single location string instead of separate fields.
    """
    raw = raw_location.strip()
    if not raw:
        return {"country": "", "city": "", "address": "", "postcode": ""}
    parts = [part.strip() for part in raw.split(",") if part.strip()]
    return {
        "country": "",
        "city": parts[0] if parts else raw,
        "address": raw,
        "postcode": parts[1] if len(parts) > 1 else "",
    }


class ListingSubmissionService(BaseService):
    """
    Creates listings submitted by owners.

    Expected data keys (snake_case, as produced by ListingSubmissionSerializer):
        business_name, slug, tagline, description, seo_keywords, country,
        city, address, postcode, location, email, phone, website, logo,
        cover_image, gallery, badge_ids, products, menu_items, services,
        selected_package, stripe_session_id, payment_mode
    """

    def __init__(self, verifier: CheckoutVerifier, allocator: SlugAllocator | None = None):
        self.verifier = verifier
        self.allocator = allocator or SlugAllocator()

    def submit(self, owner: User, data: dict[str, Any]) -> SubmissionResult:
        """
        Create a listing for the owner.

        Returns:
            SubmissionResult; replayed is True when this submission was
            already processed (same checkout session or same slug and owner)

        Raises:
            ValidationError: Selected package missing or inactive
            PaymentRequiredError: Paid package without a verified payment
            ConflictError: Checkout session used by another owner, or no
                unique slug could be reserved
        """
        logger = self.get_logger()
        package = self._selected_package(data.get("selected_package"))
        session_id = (data.get("stripe_session_id") or "").strip() or None

        if package is not None and not package.is_free:
            replay = self._verify_payment(owner, package, session_id, data)
            if replay is not None:
                return replay
        else:
            # Free listings never carry a checkout session
            session_id = None

        base_slug = slugify_listing_name(data.get("slug") or "") or slugify_listing_name(
            data["business_name"]
        )

        try:
            allocation = self.allocator.allocate(
                base_slug,
                owner_id=owner.id,
                create=lambda slug: self._create_listing(owner, data, slug, package, session_id),
            )
        except IntegrityError:
            # A concurrent request with the same checkout session won the insert
            existing = self._listing_for_session(session_id)
            if existing is None:
                raise
            return self._replay_for_session(owner, existing)

        logger.info(
            f"Listing {allocation.record.id} submitted"
            f"{' (replayed)' if allocation.replayed else ''}",
            extra={
                "listing_id": str(allocation.record.id),
                "slug": allocation.slug,
                "package_id": str(package.id) if package else None,
                "attempts": allocation.attempts,
            },
        )
        return SubmissionResult(listing=allocation.record, replayed=allocation.replayed)

    # =========================================================================
    # Payment
    # =========================================================================

    @staticmethod
    def _selected_package(package_id: Any) -> PricingPackage | None:
        if not package_id:
            return None
        package = PricingPackage.objects.filter(pk=package_id, active=True).first()
        if package is None:
            raise ValidationError(
                "Invalid pricing package.",
                error_code="PACKAGE_INVALID",
                details={"selectedPackage": str(package_id)},
            )
        return package

    def _verify_payment(self, owner, package, session_id, data) -> SubmissionResult | None:
        if not session_id:
            raise PaymentRequiredError(
                "Missing Stripe checkout session.",
                error_code="CHECKOUT_SESSION_MISSING",
            )

        existing = self._listing_for_session(session_id)
        if existing is not None:
            return self._replay_for_session(owner, existing)

        try:
            self.verifier.verify_listing_submission(
                session_id=session_id,
                user=owner,
                selected_package=str(package.id),
                payment_mode=data.get("payment_mode") or PaymentMode.SUBSCRIPTION,
            )
        except PaymentVerificationError as exc:
            raise PaymentRequiredError(
                "Payment verification failed.",
                error_code="PAYMENT_VERIFICATION_FAILED",
                details=exc.details,
            ) from exc
        return None

    @staticmethod
    def _listing_for_session(session_id: str | None) -> Listing | None:
        if not session_id:
            return None
        return Listing.objects.filter(checkout_session_id=session_id).first()

    def _replay_for_session(self, owner, listing: Listing) -> SubmissionResult:
        if listing.owner_id != owner.id:
            raise ConflictError(
                "This checkout session was already used for another listing.",
                error_code="CHECKOUT_SESSION_USED",
            )
        self.get_logger().info(
            f"Checkout session already produced listing {listing.id}, replaying",
            extra={"listing_id": str(listing.id)},
        )
        return SubmissionResult(listing=listing, replayed=True)

    # =========================================================================
    # Creation
    # =========================================================================

    def _create_listing(self, owner, data, slug, package, session_id) -> Listing:
        legacy = parse_legacy_location(data.get("location") or "")

        listing = Listing(
            owner=owner,
            name=data["business_name"],
            slug=slug,
            tagline=data.get("tagline", ""),
            description=data.get("description", ""),
            seo_keywords=data.get("seo_keywords", ""),
            country=data.get("country") or legacy["country"],
            city=data.get("city") or legacy["city"],
            address=data.get("address") or legacy["address"],
            postcode=data.get("postcode") or legacy["postcode"],
            email=data.get("email", ""),
            phone=data.get("phone", ""),
            website=data.get("website", ""),
            logo=data.get("logo", ""),
            cover_image=data.get("cover_image", ""),
            gallery=list(data.get("gallery") or []),
            status=ListingStatus.PENDING,
            featured=False,
            checkout_session_id=session_id,
        )
        if package is not None:
            listing.assign_package(package)
        listing.save()

        badge_ids = data.get("badge_ids") or []
        if badge_ids:
            badges = Badge.objects.filter(pk__in=badge_ids)
            ListingBadge.objects.bulk_create(
                [ListingBadge(listing=listing, badge=badge) for badge in badges]
            )

        Product.objects.bulk_create(
            [
                Product(listing=listing, position=index, **item)
                for index, item in enumerate(data.get("products") or [])
            ]
        )
        MenuItem.objects.bulk_create(
            [
                MenuItem(listing=listing, position=index, **item)
                for index, item in enumerate(data.get("menu_items") or [])
            ]
        )
        Service.objects.bulk_create(
            [
                Service(listing=listing, position=index, **item)
                for index, item in enumerate(data.get("services") or [])
            ]
        )

        User.objects.filter(pk=owner.pk, role=UserRole.GUEST).update(
            role=UserRole.BUSINESS_OWNER
        )
        return listing


@lru_cache(maxsize=1)
def get_listing_submission_service() -> ListingSubmissionService:
    return ListingSubmissionService(verifier=get_checkout_verifier())
