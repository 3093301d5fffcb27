"""
DRF serializers for listing endpoints.

Request fields are camelCase and map onto the snake_case keys
ListingSubmissionService expects through `source`.
"""

from __future__ import annotations

from rest_framework import serializers

from billing.checkout import PaymentMode
from listings.features import PlanContext
from listings.models import Listing, PricingPackage


# =============================================================================
# Submission
# =============================================================================


class ProductInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=160)
    description = serializers.CharField()
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    image = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
    inStock = serializers.BooleanField(source="in_stock", required=False, default=True)


class MenuItemInputSerializer(serializers.Serializer):
    category = serializers.CharField(max_length=80)
    name = serializers.CharField(max_length=160)
    description = serializers.CharField()
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    dietary = serializers.ListField(
        child=serializers.CharField(max_length=40), required=False, default=list
    )


class ServiceInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=160)
    description = serializers.CharField()
    pricing = serializers.CharField(max_length=160)


class ListingSubmissionSerializer(serializers.Serializer):
    """
    Body of POST /listings/.

    Either the structured address fields or a legacy free-text location
    may be sent. Paid packages need the stripeSessionId of a completed
    listing checkout.
    """

    businessName = serializers.CharField(source="business_name", max_length=160)
    slug = serializers.CharField(max_length=200, required=False, allow_blank=True)
    tagline = serializers.CharField(max_length=191, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)
    seoKeywords = serializers.CharField(
        source="seo_keywords", max_length=255, required=False, allow_blank=True
    )

    country = serializers.CharField(max_length=100, required=False, allow_blank=True)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    postcode = serializers.CharField(max_length=20, required=False, allow_blank=True)
    location = serializers.CharField(max_length=255, required=False, allow_blank=True)

    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=40, required=False, allow_blank=True)
    website = serializers.URLField(max_length=255, required=False, allow_blank=True)

    logo = serializers.CharField(max_length=500, required=False, allow_blank=True)
    coverImage = serializers.CharField(
        source="cover_image", max_length=500, required=False, allow_blank=True
    )
    gallery = serializers.ListField(
        child=serializers.CharField(max_length=500), required=False, default=list
    )

    badgeIds = serializers.ListField(
        source="badge_ids", child=serializers.UUIDField(), required=False, default=list
    )
    products = ProductInputSerializer(many=True, required=False)
    menuItems = MenuItemInputSerializer(source="menu_items", many=True, required=False)
    services = ServiceInputSerializer(many=True, required=False)

    selectedPackage = serializers.UUIDField(
        source="selected_package", required=False, allow_null=True
    )
    stripeSessionId = serializers.CharField(
        source="stripe_session_id", max_length=255, required=False, allow_blank=True
    )
    paymentMode = serializers.ChoiceField(
        source="payment_mode",
        choices=PaymentMode.choices,
        default=PaymentMode.SUBSCRIPTION,
    )

    def validate_businessName(self, value: str) -> str:
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Business name is required.")
        return value


# =============================================================================
# Owner dashboard
# =============================================================================


class PackageSummarySerializer(serializers.ModelSerializer):
    billingPeriod = serializers.CharField(source="billing_period", read_only=True)

    class Meta:
        model = PricingPackage
        fields = ["id", "name", "price", "billingPeriod"]
        read_only_fields = fields


class OwnedListingSerializer(serializers.ModelSerializer):
    """A listing as shown on its owner's dashboard, with plan entitlements."""

    package = PackageSummarySerializer(read_only=True)
    packageAssignedAt = serializers.DateTimeField(source="package_assigned_at", read_only=True)
    planExpiresAt = serializers.SerializerMethodField()
    enabledFeatures = serializers.SerializerMethodField()
    galleryLimit = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = Listing
        fields = [
            "id",
            "name",
            "slug",
            "status",
            "featured",
            "package",
            "packageAssignedAt",
            "planExpiresAt",
            "enabledFeatures",
            "galleryLimit",
            "createdAt",
        ]
        read_only_fields = fields

    def get_planExpiresAt(self, obj: Listing):
        expires_at = obj.plan_expires_at()
        return serializers.DateTimeField().to_representation(expires_at) if expires_at else None

    def get_enabledFeatures(self, obj: Listing) -> list[str]:
        return sorted(PlanContext.for_listing(obj).enabled_features)

    def get_galleryLimit(self, obj: Listing) -> int:
        return PlanContext.for_listing(obj).gallery_limit
