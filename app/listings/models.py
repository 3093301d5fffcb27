"""
Listing and pricing package models.

This module defines:
- PricingPackage: A purchasable plan (reference data, read-only here)
- Listing: A business listing published under at most one package
- Badge / ListingBadge: Reference badges attached to listings
- Product, MenuItem, Service: Listing children created on submission

Related files:
    - slugs.py: Slug generation and allocation
    - services.py: Listing submission
    - billing/services/: Plan transitions that change Listing.package

Invariants:
    - Listing.slug is globally unique (database constraint)
    - Listing.checkout_session_id is unique when set, so a paid checkout
      session can create at most one listing
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.model_mixins import OrderableMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel
from listings.features import normalize_package_features
from listings.pricing import BillingPeriod, add_billing_duration, billing_duration_days


class PricingPackage(UUIDPrimaryKeyMixin, BaseModel):
    """
    A pricing plan a listing can be published under.

    Fields:
        name: Display name shown on checkout and in emails
        description: Short marketing description
        price: Price per billing cycle in major currency units (0 = free)
        billing_period: monthly or yearly
        duration_days: Explicit cycle length, overrides billing_period when > 0
        features: Feature keys enabled by this plan (see listings.features)
        gallery_limit: Maximum number of gallery images
        active: Inactive packages cannot be purchased or assigned

    Note:
        Packages are managed by admins outside this service. Transitions
        only ever read them.
    """

    name = models.CharField(max_length=120)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Price per billing cycle in major currency units",
    )
    billing_period = models.CharField(
        max_length=10,
        choices=BillingPeriod.choices,
        default=BillingPeriod.MONTHLY,
    )
    duration_days = models.PositiveIntegerField(
        default=0,
        help_text="Cycle length in days; 0 derives it from the billing period",
    )
    features = models.JSONField(default=list, blank=True)
    gallery_limit = models.PositiveIntegerField(default=0)
    active = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ["price", "name"]

    def __str__(self) -> str:
        return f"{self.name} ({self.price})"

    @property
    def is_free(self) -> bool:
        return self.price <= 0

    @property
    def duration_in_days(self) -> int:
        return billing_duration_days(self.billing_period, self.duration_days)

    @property
    def enabled_features(self) -> list[str]:
        return normalize_package_features(self.features)


class ListingStatus(models.TextChoices):
    """Moderation status of a listing."""

    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class Listing(UUIDPrimaryKeyMixin, BaseModel):
    """
    A business listing owned by a user.

    Fields:
        name: Business name
        slug: Globally unique URL slug
        owner: User who submitted the listing
        package: Current pricing package (nullable)
        package_assigned_at: When the current package was applied; paid
            plans expire one billing duration after this
        status: Moderation status (new listings start pending)
        featured: Whether the listing is promoted
        checkout_session_id: Checkout session that paid for the listing

    Note:
        Package changes go through billing services, which lock the row
        with select_for_update() before writing.
    """

    # ==========================================================================
    # Identity
    # ==========================================================================

    name = models.CharField(max_length=160)
    slug = models.SlugField(max_length=200, unique=True)
    tagline = models.CharField(max_length=191, blank=True, default="")
    description = models.TextField(blank=True, default="")
    seo_keywords = models.CharField(max_length=255, blank=True, default="")

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="listings",
    )

    # ==========================================================================
    # Plan
    # ==========================================================================

    package = models.ForeignKey(
        PricingPackage,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="listings",
    )
    package_assigned_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the current package was applied",
    )
    checkout_session_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Checkout session that paid for this listing",
    )

    # ==========================================================================
    # Status
    # ==========================================================================

    status = models.CharField(
        max_length=10,
        choices=ListingStatus.choices,
        default=ListingStatus.PENDING,
        db_index=True,
    )
    featured = models.BooleanField(default=False)

    # ==========================================================================
    # Location & Contact
    # ==========================================================================

    country = models.CharField(max_length=100, blank=True, default="")
    city = models.CharField(max_length=100, blank=True, default="")
    address = models.CharField(max_length=255, blank=True, default="")
    postcode = models.CharField(max_length=20, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=40, blank=True, default="")
    website = models.URLField(max_length=255, blank=True, default="")

    # ==========================================================================
    # Media
    # ==========================================================================

    logo = models.CharField(max_length=500, blank=True, default="")
    cover_image = models.CharField(max_length=500, blank=True, default="")
    gallery = models.JSONField(default=list, blank=True)

    badges = models.ManyToManyField(
        "Badge",
        through="ListingBadge",
        related_name="listings",
        blank=True,
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["owner", "status"], name="listing_owner_status_idx"),
        ]

    def __str__(self) -> str:
        return self.name

    def assign_package(self, package: PricingPackage | None) -> None:
        """
        Point the listing at a new package and restart its billing cycle.

        Does not save; callers save inside their own transaction.
        """
        self.package = package
        self.package_assigned_at = timezone.now()

    def plan_expires_at(self):
        """
        When the current paid plan lapses, or None for free/unassigned plans.
        """
        if self.package is None or self.package.is_free:
            return None
        start = self.package_assigned_at or self.created_at
        return add_billing_duration(
            start, self.package.billing_period, self.package.duration_days
        )


class Badge(UUIDPrimaryKeyMixin, BaseModel):
    """Reference badge (e.g. "Family owned") listings can display."""

    name = models.CharField(max_length=80, unique=True)
    icon = models.CharField(max_length=80, blank=True, default="")

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class ListingBadge(BaseModel):
    """Attachment of a badge to a listing."""

    listing = models.ForeignKey(
        Listing, on_delete=models.CASCADE, related_name="listing_badges"
    )
    badge = models.ForeignKey(
        Badge, on_delete=models.CASCADE, related_name="listing_badges"
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["listing", "badge"], name="unique_listing_badge"
            ),
        ]


class Product(UUIDPrimaryKeyMixin, OrderableMixin, BaseModel):
    """A product sold by the business."""

    listing = models.ForeignKey(
        Listing, on_delete=models.CASCADE, related_name="products"
    )
    name = models.CharField(max_length=160)
    description = models.TextField()
    price = models.DecimalField(max_digits=10, decimal_places=2)
    image = models.CharField(max_length=500, blank=True, default="")
    in_stock = models.BooleanField(default=True)

    class Meta(OrderableMixin.Meta):
        pass


class MenuItem(UUIDPrimaryKeyMixin, OrderableMixin, BaseModel):
    """A menu entry for food and drink businesses."""

    listing = models.ForeignKey(
        Listing, on_delete=models.CASCADE, related_name="menu_items"
    )
    category = models.CharField(max_length=80)
    name = models.CharField(max_length=160)
    description = models.TextField()
    price = models.DecimalField(max_digits=10, decimal_places=2)
    dietary = models.JSONField(default=list, blank=True)

    class Meta(OrderableMixin.Meta):
        pass


class Service(UUIDPrimaryKeyMixin, OrderableMixin, BaseModel):
    """A service offered by the business, with free-text pricing."""

    listing = models.ForeignKey(
        Listing, on_delete=models.CASCADE, related_name="services"
    )
    name = models.CharField(max_length=160)
    description = models.TextField()
    pricing = models.CharField(max_length=160)

    class Meta(OrderableMixin.Meta):
        pass
