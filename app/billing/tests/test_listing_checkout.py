"""
Tests for ListingCheckoutService.
"""

import pytest

from billing.checkout import PaymentMode
from billing.tests.factories import CheckoutSessionFactory
from core.exceptions import ExternalServiceError, NotFoundError


@pytest.mark.django_db
class TestCreateSession:
    def test_paid_package_creates_session(self, listing_checkout, gateway, owner, premium_package):
        gateway.create_checkout_session.return_value = CheckoutSessionFactory(
            id="cs_test_new", url="https://checkout.stripe.com/c/pay/cs_test_new", status="open"
        )

        outcome = listing_checkout.create_session(user=owner, package_id=premium_package.id)

        assert outcome.to_response() == {
            "url": "https://checkout.stripe.com/c/pay/cs_test_new",
            "sessionId": "cs_test_new",
        }
        params = gateway.create_checkout_session.call_args.args[0]
        assert params.line_item.name == "Premium"
        assert params.line_item.unit_amount == 2500
        assert params.success_url == (
            "https://directory.example.com/submit/success?session_id={CHECKOUT_SESSION_ID}"
        )
        assert params.cancel_url == "https://directory.example.com/submit?payment=cancelled"
        assert params.customer_email == "owner@example.com"
        assert params.metadata == {
            "flow": "listing_submission",
            "userId": str(owner.id),
            "selectedPackage": str(premium_package.id),
            "paymentMode": "subscription",
        }

    def test_base_url_from_request(self, listing_checkout, gateway, owner, premium_package):
        gateway.create_checkout_session.return_value = CheckoutSessionFactory(
            url="https://checkout.stripe.com/c/pay/x", status="open"
        )

        listing_checkout.create_session(
            user=owner,
            package_id=premium_package.id,
            payment_mode=PaymentMode.ONE_TIME,
            base_url="http://localhost:3000/",
        )

        params = gateway.create_checkout_session.call_args.args[0]
        assert params.cancel_url == "http://localhost:3000/submit?payment=cancelled"
        assert params.mode == "payment"
        assert params.subscription_metadata is None

    def test_free_package_needs_no_payment(self, listing_checkout, gateway, owner, free_package):
        outcome = listing_checkout.create_session(user=owner, package_id=free_package.id)

        assert outcome.to_response() == {"noPaymentRequired": True}
        gateway.create_checkout_session.assert_not_called()

    def test_inactive_package(self, listing_checkout, owner, premium_package):
        premium_package.active = False
        premium_package.save()

        with pytest.raises(NotFoundError):
            listing_checkout.create_session(user=owner, package_id=premium_package.id)

    def test_missing_url(self, listing_checkout, gateway, owner, premium_package):
        gateway.create_checkout_session.return_value = CheckoutSessionFactory(url=None)

        with pytest.raises(ExternalServiceError):
            listing_checkout.create_session(user=owner, package_id=premium_package.id)
