"""
Pytest fixtures for billing tests.

The payment gateway is never called for real: services are built with a
MagicMock specced on StripeAdapter, and the Redis connection behind
DistributedLock is mocked.

Usage:
    def test_checkout(engine, gateway, listing, premium_package):
        gateway.create_checkout_session.return_value = CheckoutSessionFactory(url="...")
        outcome = engine.request_transition(...)
"""

import pytest

from billing.adapters import StripeAdapter
from billing.services import (
    CheckoutVerifier,
    DowngradeDecisionService,
    DowngradeExecutor,
    DowngradeGovernanceStore,
    ExpiredListingFallbackService,
    ListingCheckoutService,
    PlanTransitionEngine,
)
from billing.state_machines import DowngradeDecisionMode
from billing.tests.factories import SubscriptionFactory


# =============================================================================
# Collaborators
# =============================================================================


@pytest.fixture
def gateway(mocker):
    """StripeAdapter mock with no recent sessions and active subscriptions."""
    mock_gateway = mocker.MagicMock(spec=StripeAdapter)
    mock_gateway.list_checkout_sessions.return_value = []
    mock_gateway.retrieve_subscription.side_effect = lambda subscription_id: (
        SubscriptionFactory(id=subscription_id)
    )
    mock_gateway.cancel_subscription.side_effect = lambda subscription_id, idempotency_key: (
        SubscriptionFactory(id=subscription_id, status="canceled")
    )
    return mock_gateway


@pytest.fixture
def notifier(mocker):
    """Stand-in for BillingEmailService."""
    return mocker.MagicMock(name="notifier")


@pytest.fixture
def mock_redis(mocker):
    """
    Mock Redis client behind DistributedLock.

    Locks are always granted and released.
    """
    mock_client = mocker.MagicMock()
    mock_client.set.return_value = True
    mock_client.eval.return_value = 1
    mocker.patch("billing.locks.get_redis_connection", return_value=mock_client)
    return mock_client


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def governance():
    return DowngradeGovernanceStore()


@pytest.fixture
def executor(gateway):
    return DowngradeExecutor(gateway=gateway)


@pytest.fixture
def engine(gateway, governance, executor, notifier):
    return PlanTransitionEngine(
        gateway=gateway,
        governance=governance,
        executor=executor,
        notifier=notifier,
    )


@pytest.fixture
def verifier(gateway, notifier):
    return CheckoutVerifier(gateway=gateway, notifier=notifier)


@pytest.fixture
def decision_service(governance, executor, mock_redis):
    return DowngradeDecisionService(governance=governance, executor=executor)


@pytest.fixture
def listing_checkout(gateway):
    return ListingCheckoutService(gateway=gateway)


@pytest.fixture
def expired_service(governance):
    return ExpiredListingFallbackService(governance=governance)


# =============================================================================
# Policy
# =============================================================================


@pytest.fixture
def admin_approval_mode(db, governance):
    """Switch the downgrade policy to admin approval."""
    return governance.set_mode(DowngradeDecisionMode.ADMIN_APPROVAL)


@pytest.fixture
def services(mocker, engine, verifier, governance, decision_service, listing_checkout,
             expired_service):
    """
    Route the billing views to services built on the mocked gateway.

    Returns the services keyed by name for assertions.
    """
    mocker.patch("billing.views.get_plan_transition_engine", return_value=engine)
    mocker.patch("billing.views.get_checkout_verifier", return_value=verifier)
    mocker.patch("billing.views.get_governance_store", return_value=governance)
    mocker.patch("billing.views.get_downgrade_decision_service", return_value=decision_service)
    mocker.patch("billing.views.get_listing_checkout_service", return_value=listing_checkout)
    mocker.patch("billing.views.get_expired_listing_service", return_value=expired_service)
    return {
        "engine": engine,
        "verifier": verifier,
        "governance": governance,
        "decisions": decision_service,
        "listing_checkout": listing_checkout,
        "expired": expired_service,
    }
