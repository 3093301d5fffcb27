"""
Checkout session metadata.

Checkout sessions carry the purchase intent in their metadata, written when
the session is created and read back when the buyer returns. Metadata is
parsed into a closed set of variants, one per checkout flow; anything that
does not fit a variant exactly is rejected rather than defaulted.

Wire format (string values, camelCase keys):
    plan_upgrade:        flow, userId, businessId, selectedPackage, paymentMode
    listing_submission:  flow, userId, selectedPackage, paymentMode

Usage:
    metadata = parse_checkout_metadata(session.metadata)
    if not isinstance(metadata, PlanUpgradeMetadata):
        raise PaymentVerificationError(...)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, ClassVar, Union

from django.db import models

from billing.exceptions import PaymentVerificationError

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any

# Checkout session values reported by the gateway
SESSION_STATUS_COMPLETE = "complete"
SESSION_MODE_PAYMENT = "payment"
SESSION_MODE_SUBSCRIPTION = "subscription"


class PaymentMode(models.TextChoices):
    """How the buyer pays for a package."""

    SUBSCRIPTION = "subscription", "Subscription"
    ONE_TIME = "one_time", "One-time payment"

    @property
    def session_mode(self) -> str:
        """Checkout session mode this payment mode must produce."""
        if self == PaymentMode.ONE_TIME:
            return SESSION_MODE_PAYMENT
        return SESSION_MODE_SUBSCRIPTION


class CheckoutFlow(models.TextChoices):
    """What a checkout session pays for."""

    PLAN_UPGRADE = "plan_upgrade", "Plan upgrade"
    LISTING_SUBMISSION = "listing_submission", "Listing submission"


@dataclass(frozen=True)
class PlanUpgradeMetadata:
    """Metadata of a session paying for an existing listing's new package."""

    flow: ClassVar[CheckoutFlow] = CheckoutFlow.PLAN_UPGRADE

    user_id: str
    business_id: str
    selected_package: str
    payment_mode: PaymentMode

    def to_stripe_metadata(self) -> dict[str, str]:
        return {
            "flow": self.flow.value,
            "userId": self.user_id,
            "businessId": self.business_id,
            "selectedPackage": self.selected_package,
            "paymentMode": self.payment_mode.value,
        }


@dataclass(frozen=True)
class ListingSubmissionMetadata:
    """Metadata of a session paying for a listing that is not created yet."""

    flow: ClassVar[CheckoutFlow] = CheckoutFlow.LISTING_SUBMISSION

    user_id: str
    selected_package: str
    payment_mode: PaymentMode

    def to_stripe_metadata(self) -> dict[str, str]:
        return {
            "flow": self.flow.value,
            "userId": self.user_id,
            "selectedPackage": self.selected_package,
            "paymentMode": self.payment_mode.value,
        }


CheckoutMetadata = Union[PlanUpgradeMetadata, ListingSubmissionMetadata]


def _required(metadata: Mapping[str, Any], key: str) -> str:
    value = metadata.get(key)
    if not isinstance(value, str) or not value.strip():
        raise PaymentVerificationError(
            "Checkout session metadata is incomplete.",
            error_code="CHECKOUT_METADATA_INVALID",
            details={"missing": key},
        )
    return value.strip()


def parse_payment_mode(value: Any) -> PaymentMode:
    """Parse a payment mode, rejecting anything outside the closed set."""
    if value not in PaymentMode.values:
        raise PaymentVerificationError(
            "Unsupported payment mode.",
            error_code="CHECKOUT_METADATA_INVALID",
            details={"paymentMode": value},
        )
    return PaymentMode(value)


def parse_checkout_metadata(metadata: Mapping[str, Any] | None) -> CheckoutMetadata:
    """
    Parse checkout session metadata into its flow-specific variant.

    Args:
        metadata: Raw metadata mapping from the checkout session

    Returns:
        PlanUpgradeMetadata or ListingSubmissionMetadata

    Raises:
        PaymentVerificationError: Missing or unknown flow, unknown payment
            mode, or a required key missing for the flow
    """
    metadata = metadata or {}
    flow = metadata.get("flow")

    if flow == CheckoutFlow.PLAN_UPGRADE:
        return PlanUpgradeMetadata(
            user_id=_required(metadata, "userId"),
            business_id=_required(metadata, "businessId"),
            selected_package=_required(metadata, "selectedPackage"),
            payment_mode=parse_payment_mode(metadata.get("paymentMode")),
        )

    if flow == CheckoutFlow.LISTING_SUBMISSION:
        return ListingSubmissionMetadata(
            user_id=_required(metadata, "userId"),
            selected_package=_required(metadata, "selectedPackage"),
            payment_mode=parse_payment_mode(metadata.get("paymentMode")),
        )

    raise PaymentVerificationError(
        "Checkout session was not created for this purchase.",
        error_code="CHECKOUT_FLOW_MISMATCH",
        details={"flow": flow},
    )


def to_minor_units(amount: Decimal | int | float) -> int:
    """
    Convert a major-unit price to the smallest currency unit.

    Halves round away from zero, so 9.995 becomes 1000.
    """
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
