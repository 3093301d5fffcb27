"""
DRF serializers for billing endpoints.

Request and response bodies use camelCase keys; fields map them onto the
snake_case names the services take through `source`.

Related files:
    - views.py: Billing API views
    - services/: Plan transition, verification and governance services

Usage:
    serializer = PlanTransitionRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    engine.request_transition(owner=request.user, **serializer.validated_data)
"""

from __future__ import annotations

from rest_framework import serializers

from billing.checkout import PaymentMode
from billing.models import DowngradeRequest
from billing.state_machines import (
    DowngradeDecision,
    DowngradeDecisionMode,
    DowngradeRequestStatus,
)
from listings.models import PricingPackage


class PlanTransitionRequestSerializer(serializers.Serializer):
    """
    Body of POST /plan-transitions/.

    Fields:
        businessId: Listing to move
        selectedPackage: Target pricing package
        paymentMode: subscription (default) or one_time
    """

    businessId = serializers.UUIDField(source="listing_id")
    selectedPackage = serializers.UUIDField(source="package_id")
    paymentMode = serializers.ChoiceField(
        source="payment_mode",
        choices=PaymentMode.choices,
        default=PaymentMode.SUBSCRIPTION,
    )


class VerifyPlanTransitionSerializer(serializers.Serializer):
    """Body of POST /plan-transitions/verify/."""

    sessionId = serializers.CharField(source="session_id", max_length=255, trim_whitespace=True)
    businessId = serializers.UUIDField(source="business_id")
    selectedPackage = serializers.UUIDField(source="selected_package")
    paymentMode = serializers.ChoiceField(
        source="payment_mode",
        choices=PaymentMode.choices,
        default=PaymentMode.SUBSCRIPTION,
    )


class ListingCheckoutSessionSerializer(serializers.Serializer):
    """Body of POST /checkout-sessions/."""

    selectedPackage = serializers.UUIDField(source="package_id")
    paymentMode = serializers.ChoiceField(
        source="payment_mode",
        choices=PaymentMode.choices,
        default=PaymentMode.SUBSCRIPTION,
    )


class DowngradePolicyUpdateSerializer(serializers.Serializer):
    """
    Body of PUT /downgrade-policy/.

    At least one of mode and expiredListingPackageId must be present;
    expiredListingPackageId may be null to clear the fallback package.
    version, when sent, must match the stored policy version.
    """

    mode = serializers.ChoiceField(choices=DowngradeDecisionMode.choices, required=False)
    expiredListingPackageId = serializers.UUIDField(
        source="expired_listing_package_id",
        required=False,
        allow_null=True,
    )
    version = serializers.IntegerField(source="expected_version", required=False, min_value=1)

    def validate_expiredListingPackageId(self, value):
        if value is not None and not PricingPackage.objects.filter(pk=value).exists():
            raise serializers.ValidationError("Pricing package not found.")
        return value

    def validate(self, attrs):
        if "mode" not in attrs and "expired_listing_package_id" not in attrs:
            raise serializers.ValidationError("At least one field is required.")
        return attrs


class DowngradeDecisionSerializer(serializers.Serializer):
    """Body of POST /downgrade-requests/{id}/decision/."""

    decision = serializers.ChoiceField(choices=DowngradeDecision.choices)


class DowngradeRequestStatusFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=DowngradeRequestStatus.choices, required=False)


class DowngradeRequestSerializer(serializers.ModelSerializer):
    """
    Downgrade request as shown in the admin queue.

    Names are the snapshots taken when the request was filed.
    """

    ownerUserId = serializers.CharField(source="owner_id", read_only=True)
    ownerEmail = serializers.CharField(source="owner_email", read_only=True)
    ownerName = serializers.CharField(source="owner_name", read_only=True)
    businessId = serializers.UUIDField(source="listing_id", read_only=True)
    businessName = serializers.CharField(source="listing_name", read_only=True)
    currentPackageId = serializers.UUIDField(source="current_package_id", read_only=True)
    currentPackageName = serializers.CharField(source="current_package_name", read_only=True)
    targetPackageId = serializers.UUIDField(source="target_package_id", read_only=True)
    targetPackageName = serializers.CharField(source="target_package_name", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)
    decidedAt = serializers.DateTimeField(source="decided_at", read_only=True)
    decidedByUserId = serializers.CharField(source="decided_by_id", read_only=True)
    decidedByName = serializers.CharField(source="decided_by_name", read_only=True)

    class Meta:
        model = DowngradeRequest
        fields = [
            "id",
            "ownerUserId",
            "ownerEmail",
            "ownerName",
            "businessId",
            "businessName",
            "currentPackageId",
            "currentPackageName",
            "targetPackageId",
            "targetPackageName",
            "status",
            "version",
            "createdAt",
            "updatedAt",
            "decidedAt",
            "decidedByUserId",
            "decidedByName",
        ]
        read_only_fields = fields
