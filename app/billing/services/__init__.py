"""
Billing services.

Services:
    PlanTransitionEngine: Classifies and orchestrates plan changes
    CheckoutVerifier: Verifies returned checkout sessions, applies upgrades once
    DowngradeGovernanceStore: Downgrade policy and request workflow
    DowngradeExecutor: Cancels old-plan subscriptions, applies the target package
    DowngradeDecisionService: Admin approve/reject of queued downgrades
    ListingCheckoutService: Checkout sessions for new paid listings
    ExpiredListingFallbackService: Moves lapsed paid listings to the fallback package

Instances wired with the shared gateway live in billing.services.providers.
"""

from billing.services.checkout_verifier import CheckoutVerifier, VerificationOutcome
from billing.services.downgrade_decisions import DecisionOutcome, DowngradeDecisionService
from billing.services.downgrade_executor import (
    DowngradeExecutionParams,
    DowngradeExecutionResult,
    DowngradeExecutor,
)
from billing.services.expired_listings import ExpiredListingFallbackService
from billing.services.governance import DowngradeGovernanceStore, PendingDowngradeInput
from billing.services.listing_checkout import ListingCheckoutOutcome, ListingCheckoutService
from billing.services.plan_transition import PlanTransitionEngine, TransitionOutcome

__all__ = [
    "CheckoutVerifier",
    "DecisionOutcome",
    "DowngradeDecisionService",
    "DowngradeExecutionParams",
    "DowngradeExecutionResult",
    "DowngradeExecutor",
    "DowngradeGovernanceStore",
    "ExpiredListingFallbackService",
    "ListingCheckoutOutcome",
    "ListingCheckoutService",
    "PendingDowngradeInput",
    "PlanTransitionEngine",
    "TransitionOutcome",
    "VerificationOutcome",
]
