"""
Pytest fixtures for Stripe adapter tests.

No request leaves the process: the Stripe resources used by the adapter
are patched and the SDK's global configuration is restored after each test.

Sections:
    - Stripe SDK Fixtures
    - Mock Stripe Objects
    - Error Fixtures
"""

from dataclasses import dataclass
from typing import Any
from unittest.mock import patch

import pytest
import stripe


# =============================================================================
# Stripe SDK Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def stripe_globals(monkeypatch):
    """Keep the adapter's SDK configuration from leaking between tests."""
    monkeypatch.setattr(stripe, "max_network_retries", stripe.max_network_retries)
    monkeypatch.setattr(stripe, "default_http_client", None)


@pytest.fixture
def mock_http_client():
    """Mock stripe.RequestsClient."""
    with patch("stripe.RequestsClient") as mock:
        yield mock


@pytest.fixture
def mock_stripe_session(mock_http_client):
    """Mock stripe.checkout.Session API."""
    with patch("stripe.checkout.Session") as mock:
        yield mock


@pytest.fixture
def mock_stripe_subscription(mock_http_client):
    """Mock stripe.Subscription API."""
    with patch("stripe.Subscription") as mock:
        yield mock


# =============================================================================
# Mock Stripe Objects
# =============================================================================


@dataclass
class MockStripeObject:
    """Mock Stripe API object with attribute access and to_dict()."""

    data: dict[str, Any]

    def __getattr__(self, name: str) -> Any:
        if name == "data":
            return self.__dict__["data"]
        return self.data.get(name)

    def to_dict(self) -> dict[str, Any]:
        return self.data


@dataclass
class MockStripeList:
    data: list[MockStripeObject]


@pytest.fixture
def mock_checkout_session():
    """Factory for checkout session responses."""

    def _create(
        id: str = "cs_test_123",
        status: str = "complete",
        mode: str = "subscription",
        metadata: dict | None = None,
        amount_total: int = 2500,
        customer_details_email: str | None = "buyer@example.com",
        subscription: Any = "sub_test_123",
        url: str | None = None,
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "checkout.session",
                "status": status,
                "mode": mode,
                "url": url,
                "metadata": metadata or {},
                "amount_total": amount_total,
                "currency": "gbp",
                "customer_email": None,
                "customer_details": (
                    MockStripeObject({"email": customer_details_email})
                    if customer_details_email
                    else None
                ),
                "subscription": subscription,
            }
        )

    return _create


@pytest.fixture
def mock_subscription():
    """Factory for subscription responses."""

    def _create(id: str = "sub_test_123", status: str = "active") -> MockStripeObject:
        return MockStripeObject(
            {"id": id, "object": "subscription", "status": status, "metadata": {}}
        )

    return _create


@pytest.fixture
def mock_session_list(mock_checkout_session):
    def _create(count: int = 2) -> MockStripeList:
        return MockStripeList(
            [mock_checkout_session(id=f"cs_test_{i}") for i in range(count)]
        )

    return _create


# =============================================================================
# Error Fixtures
# =============================================================================


@pytest.fixture
def invalid_request_error():
    def _create(
        message: str = "No such checkout.session: 'cs_missing'",
        code: str = "resource_missing",
    ) -> stripe.InvalidRequestError:
        return stripe.InvalidRequestError(message, param="id", code=code)

    return _create


@pytest.fixture
def rate_limit_error():
    return stripe.RateLimitError("Too many requests")


@pytest.fixture
def api_connection_error():
    return stripe.APIConnectionError("Network error communicating with Stripe")


@pytest.fixture
def timeout_error():
    return stripe.APIConnectionError("Request timed out")


@pytest.fixture
def api_error():
    return stripe.APIError("An error occurred with our API")


@pytest.fixture
def authentication_error():
    return stripe.AuthenticationError("Invalid API Key provided")
