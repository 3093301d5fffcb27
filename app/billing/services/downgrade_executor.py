"""
Downgrade execution.

Executing a downgrade:
    1. Find the subscriptions that pay for the listing's current plan, from
       the most recent checkout sessions (owned by the user, subscription
       mode, matched by listing id or, failing that, by current package)
    2. Cancel each one that is not already canceled
    3. Point the listing at the target package and drop entitlements the
       target package does not include

Gateway calls happen before the listing is touched, so a gateway failure
leaves the listing on its current plan.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from billing.adapters import IdempotencyKeyGenerator
from billing.checkout import PaymentMode
from core.exceptions import NotFoundError
from core.services import BaseService
from listings.features import PackageFeature
from listings.models import Listing, PricingPackage

if TYPE_CHECKING:
    from billing.adapters import CheckoutSessionResult, StripeAdapter

RECENT_SESSION_LIMIT = 100


@dataclass(frozen=True)
class DowngradeExecutionParams:
    owner_user_id: str
    listing_id: str
    target_package_id: str
    owner_email: str | None = None
    current_package_id: str | None = None


@dataclass
class DowngradeExecutionResult:
    listing_id: str
    cancelled_subscription_ids: list[str] = field(default_factory=list)


class DowngradeExecutor(BaseService):
    """
    Cancels old-plan subscriptions and applies the target package.

    Usage:
        executor = DowngradeExecutor(gateway=StripeAdapter())
        result = executor.execute(
            DowngradeExecutionParams(
                owner_user_id=str(user.id),
                owner_email=user.email,
                listing_id=str(listing.id),
                current_package_id=str(listing.package_id),
                target_package_id=str(package.id),
            )
        )
    """

    def __init__(self, gateway: StripeAdapter):
        self.gateway = gateway

    def execute(self, params: DowngradeExecutionParams) -> DowngradeExecutionResult:
        logger = self.get_logger()
        log_context = {
            "listing_id": params.listing_id,
            "current_package_id": params.current_package_id,
            "target_package_id": params.target_package_id,
        }

        subscription_ids = self.find_subscription_ids(params)
        cancelled = self._cancel_subscriptions(subscription_ids)

        with self.atomic():
            listing = (
                Listing.objects.select_for_update()
                .filter(pk=params.listing_id)
                .first()
            )
            if listing is None:
                raise NotFoundError(
                    "Listing not found.",
                    error_code="LISTING_NOT_FOUND",
                    details={"listing_id": params.listing_id},
                )
            target = PricingPackage.objects.get(pk=params.target_package_id)

            listing.assign_package(target)
            update_fields = ["package", "package_assigned_at", "updated_at"]
            keeps_featured = PackageFeature.FEATURED_LISTING in target.enabled_features
            if listing.featured and not keeps_featured:
                listing.featured = False
                update_fields.append("featured")
            listing.save(update_fields=update_fields)

        logger.info(
            f"Listing {params.listing_id} downgraded, "
            f"{len(cancelled)} subscription(s) cancelled",
            extra={**log_context, "cancelled_subscription_ids": cancelled},
        )
        return DowngradeExecutionResult(
            listing_id=params.listing_id,
            cancelled_subscription_ids=cancelled,
        )

    def find_subscription_ids(self, params: DowngradeExecutionParams) -> list[str]:
        """
        Subscription ids paying for the listing's current plan.

        Sessions matched by listing id win; the current-package match is
        only used when no session names the listing.
        """
        sessions = self.gateway.list_checkout_sessions(limit=RECENT_SESSION_LIMIT)
        owned = [
            session
            for session in sessions
            if self._is_subscription_session(session)
            and self._is_owned(session, params.owner_user_id, params.owner_email)
        ]

        candidates = [
            session
            for session in owned
            if session.metadata.get("businessId") == params.listing_id
        ]
        if not candidates and params.current_package_id:
            candidates = [
                session
                for session in owned
                if session.metadata.get("selectedPackage") == params.current_package_id
            ]

        # Keep first-seen order, drop duplicates
        return list(dict.fromkeys(session.subscription_id for session in candidates))

    def _cancel_subscriptions(self, subscription_ids: list[str]) -> list[str]:
        cancelled: list[str] = []
        for subscription_id in subscription_ids:
            subscription = self.gateway.retrieve_subscription(subscription_id)
            if subscription.is_canceled:
                continue
            self.gateway.cancel_subscription(
                subscription_id,
                idempotency_key=IdempotencyKeyGenerator.generate(
                    "cancel_subscription", subscription_id
                ),
            )
            cancelled.append(subscription_id)
        return cancelled

    @staticmethod
    def _is_subscription_session(session: CheckoutSessionResult) -> bool:
        if not session.subscription_id:
            return False
        return session.metadata.get("paymentMode") != PaymentMode.ONE_TIME

    @staticmethod
    def _is_owned(
        session: CheckoutSessionResult,
        owner_user_id: str,
        owner_email: str | None,
    ) -> bool:
        if session.metadata.get("userId") == owner_user_id:
            return True
        session_email = session.customer_details_email or session.customer_email
        return bool(owner_email) and session_email == owner_email

