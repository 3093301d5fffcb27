"""
Plan transition engine.

Decides what a request to move a listing to another pricing package means
and carries it out:

    Same package             -> rejected (PlanPolicyViolationError)
    Cheaper paid package     -> downgrade: executed now (auto mode) or
                                queued for an admin (admin_approval mode)
    Cheaper free package     -> rejected in every mode
    Free package otherwise   -> applied immediately, no payment
    Paid package otherwise   -> hosted checkout session; the package is
                                applied later by CheckoutVerifier

A downgrade is a move to a strictly cheaper package from a listing that
already has one. A listing without a package is never downgrading.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from django.conf import settings
from django.db import transaction

from billing.adapters import CheckoutLineItem, CreateCheckoutSessionParams
from billing.checkout import PaymentMode, PlanUpgradeMetadata, to_minor_units
from billing.exceptions import PlanPolicyViolationError
from billing.services.downgrade_executor import DowngradeExecutionParams
from billing.services.governance import PendingDowngradeInput
from billing.state_machines import DowngradeDecisionMode
from core.exceptions import ExternalServiceError, NotFoundError
from core.services import BaseService
from listings.models import Listing, PricingPackage
from listings.pricing import recurring_interval_days

if TYPE_CHECKING:
    from authentication.models import User
    from billing.adapters import StripeAdapter
    from billing.services.downgrade_executor import DowngradeExecutor
    from billing.services.governance import DowngradeGovernanceStore

DOWNGRADE_REQUESTED_MESSAGE = (
    "Downgrade request submitted. An admin will review your request "
    "before changing your plan."
)
DOWNGRADED_MESSAGE = (
    "Plan downgraded successfully. Your previous plan features are now "
    "disabled and only the selected plan features remain active."
)
UPGRADED_MESSAGE = "Plan upgraded successfully."

CHECKOUT_SESSION_ID_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"


# =============================================================================
# Outcome
# =============================================================================


@dataclass
class TransitionOutcome:
    """
    Result of PlanTransitionEngine.request_transition().

    Exactly one of the kinds applies:
        DOWNGRADE_REQUESTED: request_id is set, listing unchanged
        DOWNGRADED: cancelled_subscription_count is set
        UPGRADED: free package applied
        CHECKOUT_REQUIRED: checkout_url and session_id are set
    """

    DOWNGRADE_REQUESTED = "downgrade_requested"
    DOWNGRADED = "downgraded"
    UPGRADED = "upgraded"
    CHECKOUT_REQUIRED = "checkout_required"

    kind: str
    request_id: str | None = None
    cancelled_subscription_count: int = 0
    checkout_url: str | None = None
    session_id: str | None = None

    def to_response(self) -> dict[str, Any]:
        if self.kind == self.DOWNGRADE_REQUESTED:
            return {
                "ok": True,
                "downgradeRequested": True,
                "requiresAdminApproval": True,
                "requestId": self.request_id,
                "message": DOWNGRADE_REQUESTED_MESSAGE,
            }
        if self.kind == self.DOWNGRADED:
            return {
                "ok": True,
                "noPaymentRequired": True,
                "downgraded": True,
                "cancelledSubscriptionCount": self.cancelled_subscription_count,
                "message": DOWNGRADED_MESSAGE,
            }
        if self.kind == self.UPGRADED:
            return {
                "ok": True,
                "upgraded": True,
                "noPaymentRequired": True,
                "message": UPGRADED_MESSAGE,
            }
        return {"url": self.checkout_url, "sessionId": self.session_id}


# =============================================================================
# Engine
# =============================================================================


class PlanTransitionEngine(BaseService):
    """
    Classifies and orchestrates listing plan transitions.

    Usage:
        engine = get_plan_transition_engine()
        outcome = engine.request_transition(
            owner=request.user,
            listing_id=data["businessId"],
            package_id=data["selectedPackage"],
            payment_mode=PaymentMode.SUBSCRIPTION,
            base_url="https://directory.example.com",
        )
        return Response(outcome.to_response())
    """

    def __init__(
        self,
        gateway: StripeAdapter,
        governance: DowngradeGovernanceStore,
        executor: DowngradeExecutor,
        notifier: Any,
    ):
        self.gateway = gateway
        self.governance = governance
        self.executor = executor
        self.notifier = notifier

    def request_transition(
        self,
        owner: User,
        listing_id: Any,
        package_id: Any,
        payment_mode: PaymentMode | str = PaymentMode.SUBSCRIPTION,
        base_url: str | None = None,
    ) -> TransitionOutcome:
        """
        Request a move of the owner's listing to another package.

        Raises:
            NotFoundError: Listing missing or not owned; package missing or inactive
            PlanPolicyViolationError: Same package, or downgrade to a free package
            ExternalServiceError: Checkout session created without a URL
            StripeError: Gateway failure
        """
        payment_mode = PaymentMode(payment_mode)
        listing = (
            Listing.objects.select_related("package")
            .filter(pk=listing_id, owner=owner)
            .first()
        )
        if listing is None:
            raise NotFoundError(
                "Listing not found or not owned by current user.",
                error_code="LISTING_NOT_FOUND",
                details={"businessId": str(listing_id)},
            )

        package = PricingPackage.objects.filter(pk=package_id, active=True).first()
        if package is None:
            raise NotFoundError(
                "Pricing package not found.",
                error_code="PACKAGE_NOT_FOUND",
                details={"selectedPackage": str(package_id)},
            )

        if listing.package_id == package.id:
            raise PlanPolicyViolationError(
                "This listing is already on the selected plan.",
                error_code="ALREADY_ON_PLAN",
            )

        log_context = {
            "listing_id": str(listing.id),
            "current_package_id": str(listing.package_id) if listing.package_id else None,
            "target_package_id": str(package.id),
            "payment_mode": payment_mode.value,
        }

        if self.is_downgrade(listing.package, package):
            if package.is_free:
                raise PlanPolicyViolationError(
                    "Downgrading to a free plan is not allowed.",
                    error_code="FREE_DOWNGRADE_FORBIDDEN",
                )
            return self._downgrade(owner, listing, package, log_context)

        if package.is_free:
            return self._apply_free_package(owner, listing, package, log_context)

        return self._start_checkout(
            owner, listing, package, payment_mode, base_url, log_context
        )

    @staticmethod
    def is_downgrade(current: PricingPackage | None, target: PricingPackage) -> bool:
        return current is not None and target.price < current.price

    # =========================================================================
    # Downgrades
    # =========================================================================

    def _downgrade(self, owner, listing, package, log_context) -> TransitionOutcome:
        logger = self.get_logger()
        mode = self.governance.get_mode()

        if mode == DowngradeDecisionMode.ADMIN_APPROVAL:
            request = self.governance.create_or_update_pending_request(
                PendingDowngradeInput(
                    owner=owner,
                    listing=listing,
                    current_package=listing.package,
                    target_package=package,
                )
            )
            logger.info(
                f"Downgrade of listing {listing.id} queued for admin approval",
                extra={**log_context, "downgrade_request_id": str(request.id)},
            )
            return TransitionOutcome(
                kind=TransitionOutcome.DOWNGRADE_REQUESTED,
                request_id=str(request.id),
            )

        result = self.executor.execute(
            DowngradeExecutionParams(
                owner_user_id=str(owner.id),
                owner_email=owner.email or None,
                listing_id=str(listing.id),
                current_package_id=str(listing.package_id),
                target_package_id=str(package.id),
            )
        )
        logger.info(f"Listing {listing.id} downgraded automatically", extra=log_context)
        return TransitionOutcome(
            kind=TransitionOutcome.DOWNGRADED,
            cancelled_subscription_count=len(result.cancelled_subscription_ids),
        )

    # =========================================================================
    # Upgrades
    # =========================================================================

    def _apply_free_package(self, owner, listing, package, log_context) -> TransitionOutcome:
        previous_package_name = listing.package.name if listing.package else None

        with self.atomic():
            locked = Listing.objects.select_for_update().get(pk=listing.pk)
            locked.assign_package(package)
            locked.save(update_fields=["package", "package_assigned_at", "updated_at"])

            transaction.on_commit(
                lambda: self._notify_upgraded(
                    owner, listing.name, package, previous_package_name, log_context
                )
            )

        self.get_logger().info(
            f"Free package applied to listing {listing.id}", extra=log_context
        )
        return TransitionOutcome(kind=TransitionOutcome.UPGRADED)

    def _notify_upgraded(self, owner, listing_name, package, previous_package_name, log_context):
        try:
            self.notifier.send_plan_upgraded(
                to=owner.email,
                name=owner.name,
                listing_name=listing_name,
                new_package_name=package.name,
                previous_package_name=previous_package_name,
            )
        except Exception:
            self.get_logger().exception("Plan upgraded email failed", extra=log_context)

    def _start_checkout(
        self, owner, listing, package, payment_mode, base_url, log_context
    ) -> TransitionOutcome:
        base_url = (base_url or settings.SITE_URL).rstrip("/")
        listing_id = str(listing.id)
        package_id = str(package.id)

        metadata = PlanUpgradeMetadata(
            user_id=str(owner.id),
            business_id=listing_id,
            selected_package=package_id,
            payment_mode=payment_mode,
        ).to_stripe_metadata()

        is_subscription = payment_mode == PaymentMode.SUBSCRIPTION
        params = CreateCheckoutSessionParams(
            mode=payment_mode.session_mode,
            line_item=CheckoutLineItem(
                name=f"{package.name} - Plan Upgrade",
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
                f"{base_url}/dashboard/billing"
                f"?upgradeSessionId={CHECKOUT_SESSION_ID_PLACEHOLDER}"
                f"&businessId={quote(listing_id, safe='')}"
                f"&selectedPackage={quote(package_id, safe='')}"
                f"&paymentMode={quote(payment_mode.value, safe='')}"
            ),
            cancel_url=(
                f"{base_url}/dashboard/billing"
                f"?upgrade=cancelled&businessId={quote(listing_id, safe='')}"
            ),
            metadata=metadata,
            customer_email=owner.email or None,
            subscription_metadata=dict(metadata) if is_subscription else None,
        )

        session = self.gateway.create_checkout_session(params)
        if not session.url:
            raise ExternalServiceError(
                "Failed to create checkout URL.",
                error_code="CHECKOUT_URL_MISSING",
                details={"sessionId": session.id},
            )

        self.get_logger().info(
            f"Upgrade checkout session {session.id} created for listing {listing.id}",
            extra={**log_context, "checkout_session_id": session.id},
        )
        return TransitionOutcome(
            kind=TransitionOutcome.CHECKOUT_REQUIRED,
            checkout_url=session.url,
            session_id=session.id,
        )
