"""
Checkout sessions for new paid listings.

A guest picking a paid package on the submission form pays first; the
listing is created afterwards by ListingSubmissionService, which verifies
the session this service created.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from django.conf import settings

from billing.adapters import CheckoutLineItem, CreateCheckoutSessionParams
from billing.checkout import ListingSubmissionMetadata, PaymentMode, to_minor_units
from billing.services.plan_transition import CHECKOUT_SESSION_ID_PLACEHOLDER
from core.exceptions import ExternalServiceError, NotFoundError
from core.services import BaseService
from listings.models import PricingPackage
from listings.pricing import recurring_interval_days

if TYPE_CHECKING:
    from authentication.models import User
    from billing.adapters import StripeAdapter


@dataclass
class ListingCheckoutOutcome:
    checkout_url: str | None = None
    session_id: str | None = None

    @property
    def no_payment_required(self) -> bool:
        return self.session_id is None

    def to_response(self) -> dict[str, Any]:
        if self.no_payment_required:
            return {"noPaymentRequired": True}
        return {"url": self.checkout_url, "sessionId": self.session_id}


class ListingCheckoutService(BaseService):
    """Creates the checkout session that pays for a listing submission."""

    def __init__(self, gateway: StripeAdapter):
        self.gateway = gateway

    def create_session(
        self,
        user: User,
        package_id: Any,
        payment_mode: PaymentMode | str = PaymentMode.SUBSCRIPTION,
        base_url: str | None = None,
    ) -> ListingCheckoutOutcome:
        """
        Start checkout for a new listing on the given package.

        Free packages need no checkout and return no_payment_required.

        Raises:
            NotFoundError: Package missing or inactive
            ExternalServiceError: Session created without a URL
        """
        payment_mode = PaymentMode(payment_mode)
        package = PricingPackage.objects.filter(pk=package_id, active=True).first()
        if package is None:
            raise NotFoundError(
                "Pricing package not found.",
                error_code="PACKAGE_NOT_FOUND",
                details={"selectedPackage": str(package_id)},
            )
        if package.is_free:
            return ListingCheckoutOutcome()

        base_url = (base_url or settings.SITE_URL).rstrip("/")
        metadata = ListingSubmissionMetadata(
            user_id=str(user.id),
            selected_package=str(package.id),
            payment_mode=payment_mode,
        ).to_stripe_metadata()
        is_subscription = payment_mode == PaymentMode.SUBSCRIPTION

        session = self.gateway.create_checkout_session(
            CreateCheckoutSessionParams(
                mode=payment_mode.session_mode,
                line_item=CheckoutLineItem(
                    name=package.name,
                    description=package.description,
                    unit_amount=to_minor_units(package.price),
                    currency=settings.BILLING_CURRENCY,
                    recurring_interval_days=(
                        recurring_interval_days(package.billing_period, package.duration_days)
                        if is_subscription
                        else None
                    ),
                ),
                success_url=(
                    f"{base_url}/submit/success?session_id={CHECKOUT_SESSION_ID_PLACEHOLDER}"
                ),
                cancel_url=f"{base_url}/submit?payment=cancelled",
                metadata=metadata,
                customer_email=user.email or None,
                subscription_metadata=dict(metadata) if is_subscription else None,
            )
        )
        if not session.url:
            raise ExternalServiceError(
                "Failed to create checkout URL.",
                error_code="CHECKOUT_URL_MISSING",
                details={"sessionId": session.id},
            )

        self.get_logger().info(
            f"Listing checkout session {session.id} created",
            extra={
                "checkout_session_id": session.id,
                "package_id": str(package.id),
                "payment_mode": payment_mode.value,
            },
        )
        return ListingCheckoutOutcome(checkout_url=session.url, session_id=session.id)
