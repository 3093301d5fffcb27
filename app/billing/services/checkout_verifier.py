"""
Checkout session verification.

A buyer returning from hosted checkout brings a session id in the URL. The
id proves nothing by itself, so the session is fetched from the gateway
and every claim is checked against it before anything changes:

    - metadata flow matches the purchase being completed
    - metadata userId is the caller
    - metadata businessId / selectedPackage / paymentMode match the request
    - session status is complete
    - session mode matches the payment mode (payment vs subscription)

Any mismatch raises PaymentVerificationError and nothing is mutated.

Applying a verified upgrade is at-most-once: the listing row is locked and
a listing already on the package is reported as alreadyUpgraded, so a
reloaded success page cannot apply it or email about it twice.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from django.db import transaction

from billing.checkout import (
    SESSION_STATUS_COMPLETE,
    ListingSubmissionMetadata,
    PaymentMode,
    PlanUpgradeMetadata,
    parse_checkout_metadata,
)
from billing.exceptions import PaymentVerificationError, StripeInvalidRequestError
from core.exceptions import NotFoundError
from core.services import BaseService
from listings.models import Listing, PricingPackage
from notifications.services import format_amount

if TYPE_CHECKING:
    from authentication.models import User
    from billing.adapters import CheckoutSessionResult, StripeAdapter

VERIFICATION_FAILED_MESSAGE = "Payment verification failed."
PLACEHOLDER_SESSION_MESSAGE = (
    "Invalid upgrade session id. Please retry the upgrade from the Billing page."
)


@dataclass
class VerificationOutcome:
    already_upgraded: bool = False

    def to_response(self) -> dict[str, Any]:
        if self.already_upgraded:
            return {"ok": True, "alreadyUpgraded": True}
        return {"ok": True}


def _verification_failed(check: str, **details) -> PaymentVerificationError:
    return PaymentVerificationError(
        VERIFICATION_FAILED_MESSAGE,
        error_code="PAYMENT_VERIFICATION_FAILED",
        details={"failed_check": check, **details},
    )


def is_placeholder_session_id(session_id: str) -> bool:
    """True for ids where the redirect template was never substituted."""
    return "CHECKOUT_SESSION_ID" in session_id or "{" in session_id or "}" in session_id


class CheckoutVerifier(BaseService):
    """
    Verifies completed checkout sessions and applies upgrades once.

    Usage:
        verifier = get_checkout_verifier()
        outcome = verifier.verify(
            session_id="cs_test_123",
            business_id=listing_id,
            selected_package=package_id,
            payment_mode="subscription",
            user=request.user,
        )
    """

    def __init__(self, gateway: StripeAdapter, notifier: Any):
        self.gateway = gateway
        self.notifier = notifier

    # =========================================================================
    # Plan upgrades
    # =========================================================================

    def verify(
        self,
        session_id: str,
        business_id: Any,
        selected_package: Any,
        payment_mode: PaymentMode | str,
        user: User,
    ) -> VerificationOutcome:
        """
        Verify an upgrade checkout session and apply its package.

        Raises:
            PaymentVerificationError: Placeholder id, unknown session, failed
                check, or the selected package is no longer available
            NotFoundError: Listing missing or not owned by the user
        """
        logger = self.get_logger()
        payment_mode = PaymentMode(payment_mode)
        business_id = str(business_id)
        selected_package = str(selected_package)

        if is_placeholder_session_id(session_id):
            raise PaymentVerificationError(
                PLACEHOLDER_SESSION_MESSAGE,
                error_code="CHECKOUT_SESSION_PLACEHOLDER",
            )

        listing = (
            Listing.objects.select_related("package")
            .filter(pk=business_id, owner=user)
            .first()
        )
        if listing is None:
            raise NotFoundError(
                "Listing not found or not owned by current user.",
                error_code="LISTING_NOT_FOUND",
                details={"businessId": business_id},
            )

        session = self._retrieve(session_id)
        metadata = parse_checkout_metadata(session.metadata)
        if not isinstance(metadata, PlanUpgradeMetadata):
            raise _verification_failed("flow", flow=metadata.flow.value)
        if metadata.business_id != str(listing.id):
            raise _verification_failed("businessId")
        self._check_common(session, metadata, user, selected_package, payment_mode)

        package = self._active_package(selected_package)
        previous_package_name = listing.package.name if listing.package else None

        log_context = {
            "checkout_session_id": session.id,
            "listing_id": business_id,
            "package_id": selected_package,
        }

        with self.atomic():
            locked = Listing.objects.select_for_update().get(pk=listing.pk)
            if locked.package_id == package.id:
                logger.info(
                    f"Checkout session {session.id} already applied to listing {business_id}",
                    extra=log_context,
                )
                return VerificationOutcome(already_upgraded=True)

            locked.assign_package(package)
            locked.save(update_fields=["package", "package_assigned_at", "updated_at"])

            transaction.on_commit(
                lambda: self._notify_upgrade(
                    session=session,
                    user=user,
                    listing_name=listing.name,
                    package=package,
                    previous_package_name=previous_package_name,
                    payment_mode=payment_mode,
                )
            )

        logger.info(
            f"Checkout session {session.id} verified, listing {business_id} upgraded",
            extra=log_context,
        )
        return VerificationOutcome()

    # =========================================================================
    # Listing submissions
    # =========================================================================

    def verify_listing_submission(
        self,
        session_id: str,
        user: User,
        selected_package: Any,
        payment_mode: PaymentMode | str,
    ) -> CheckoutSessionResult:
        """
        Verify a checkout session that pays for a new listing.

        Only checks; creating the listing is the caller's job.

        Raises:
            PaymentVerificationError: Any failed check
        """
        payment_mode = PaymentMode(payment_mode)
        if is_placeholder_session_id(session_id):
            raise _verification_failed("session_id")

        session = self._retrieve(session_id)
        metadata = parse_checkout_metadata(session.metadata)
        if not isinstance(metadata, ListingSubmissionMetadata):
            raise _verification_failed("flow", flow=metadata.flow.value)
        self._check_common(session, metadata, user, str(selected_package), payment_mode)

        self.get_logger().info(
            f"Listing submission checkout session {session.id} verified",
            extra={"checkout_session_id": session.id, "package_id": str(selected_package)},
        )
        return session

    # =========================================================================
    # Internals
    # =========================================================================

    def _retrieve(self, session_id: str) -> CheckoutSessionResult:
        try:
            return self.gateway.retrieve_checkout_session(session_id)
        except StripeInvalidRequestError as exc:
            raise _verification_failed("session_lookup", stripe_code=exc.stripe_code) from exc

    @staticmethod
    def _check_common(session, metadata, user, selected_package, payment_mode) -> None:
        if metadata.user_id != str(user.id):
            raise _verification_failed("userId")
        if metadata.selected_package != selected_package:
            raise _verification_failed("selectedPackage")
        if metadata.payment_mode != payment_mode:
            raise _verification_failed("paymentMode")
        if session.status != SESSION_STATUS_COMPLETE:
            raise _verification_failed("status", status=session.status)
        if session.mode != payment_mode.session_mode:
            raise _verification_failed("mode", mode=session.mode)

    @staticmethod
    def _active_package(package_id: str) -> PricingPackage:
        package = PricingPackage.objects.filter(pk=package_id, active=True).first()
        if package is None:
            raise PaymentVerificationError(
                "Selected package is invalid.",
                error_code="PACKAGE_INVALID",
                details={"selectedPackage": package_id},
            )
        return package

    def _notify_upgrade(
        self,
        session: CheckoutSessionResult,
        user: User,
        listing_name: str,
        package: PricingPackage,
        previous_package_name: str | None,
        payment_mode: PaymentMode,
    ) -> None:
        to = user.email or session.customer_details_email or session.customer_email
        if not to:
            return

        logger = self.get_logger()
        log_context = {"session_id": session.id, "package_id": str(package.id)}

        if (session.amount_total or 0) > 0:
            try:
                self.notifier.send_payment_received(
                    to=to,
                    name=user.name,
                    package_name=package.name,
                    amount_formatted=format_amount(session.amount_total, session.currency),
                    payment_mode=payment_mode.value,
                )
            except Exception:
                logger.exception("Payment received email failed", extra=log_context)

        try:
            self.notifier.send_plan_upgraded(
                to=to,
                name=user.name,
                listing_name=listing_name,
                new_package_name=package.name,
                previous_package_name=previous_package_name,
            )
        except Exception:
            logger.exception("Plan upgraded email failed", extra=log_context)
