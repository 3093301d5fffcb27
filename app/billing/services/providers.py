"""
Process-wide billing service instances.

The payment gateway client and the governance store are built once per
process and injected into every service that needs them. Views resolve
services through these functions; tests patch them to inject fakes.

Usage:
    from billing.services.providers import get_plan_transition_engine

    outcome = get_plan_transition_engine().request_transition(...)

    # Tests
    mocker.patch(
        "billing.views.get_plan_transition_engine",
        return_value=PlanTransitionEngine(gateway=fake_gateway, ...),
    )
"""

from __future__ import annotations

from functools import lru_cache

from billing.adapters import StripeAdapter
from billing.services.checkout_verifier import CheckoutVerifier
from billing.services.downgrade_decisions import DowngradeDecisionService
from billing.services.downgrade_executor import DowngradeExecutor
from billing.services.expired_listings import ExpiredListingFallbackService
from billing.services.governance import DowngradeGovernanceStore
from billing.services.listing_checkout import ListingCheckoutService
from billing.services.plan_transition import PlanTransitionEngine
from notifications.services import BillingEmailService


@lru_cache(maxsize=1)
def get_payment_gateway() -> StripeAdapter:
    return StripeAdapter()


@lru_cache(maxsize=1)
def get_governance_store() -> DowngradeGovernanceStore:
    return DowngradeGovernanceStore()


@lru_cache(maxsize=1)
def get_downgrade_executor() -> DowngradeExecutor:
    return DowngradeExecutor(gateway=get_payment_gateway())


@lru_cache(maxsize=1)
def get_plan_transition_engine() -> PlanTransitionEngine:
    return PlanTransitionEngine(
        gateway=get_payment_gateway(),
        governance=get_governance_store(),
        executor=get_downgrade_executor(),
        notifier=BillingEmailService,
    )


@lru_cache(maxsize=1)
def get_checkout_verifier() -> CheckoutVerifier:
    return CheckoutVerifier(gateway=get_payment_gateway(), notifier=BillingEmailService)


@lru_cache(maxsize=1)
def get_downgrade_decision_service() -> DowngradeDecisionService:
    return DowngradeDecisionService(
        governance=get_governance_store(),
        executor=get_downgrade_executor(),
    )


@lru_cache(maxsize=1)
def get_listing_checkout_service() -> ListingCheckoutService:
    return ListingCheckoutService(gateway=get_payment_gateway())


@lru_cache(maxsize=1)
def get_expired_listing_service() -> ExpiredListingFallbackService:
    return ExpiredListingFallbackService(governance=get_governance_store())
