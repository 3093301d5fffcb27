"""
Tests for PlanTransitionEngine.

Tests cover:
- Ownership and package validation
- Same-plan and free-downgrade rejection
- Downgrades in auto and admin-approval modes
- Free packages applied without payment
- Checkout sessions for paid upgrades (URLs, metadata, line item)
"""

from decimal import Decimal
from urllib.parse import parse_qs, urlsplit

import pytest

from billing.checkout import PaymentMode
from billing.exceptions import PlanPolicyViolationError, StripeAPIUnavailableError
from billing.models import DowngradeRequest
from billing.services import PlanTransitionEngine, TransitionOutcome
from billing.state_machines import DowngradeRequestStatus
from billing.tests.factories import CheckoutSessionFactory
from core.exceptions import ExternalServiceError, NotFoundError
from listings.models import Listing
from listings.tests.factories import ListingFactory, PricingPackageFactory


@pytest.fixture
def starter_package(db):
    return PricingPackageFactory(name="Starter", price=Decimal("5.00"))


def current_package(listing):
    return Listing.objects.select_related("package").get(pk=listing.pk).package


class TestIsDowngrade:
    def test_cheaper_package_is_downgrade(self):
        current = PricingPackageFactory.build(price=Decimal("10.00"))
        target = PricingPackageFactory.build(price=Decimal("9.99"))

        assert PlanTransitionEngine.is_downgrade(current, target) is True

    def test_equal_or_higher_price_is_not(self):
        current = PricingPackageFactory.build(price=Decimal("10.00"))

        assert not PlanTransitionEngine.is_downgrade(
            current, PricingPackageFactory.build(price=Decimal("10.00"))
        )
        assert not PlanTransitionEngine.is_downgrade(
            current, PricingPackageFactory.build(price=Decimal("12.00"))
        )

    def test_listing_without_package_never_downgrades(self):
        target = PricingPackageFactory.build(price=Decimal("0.00"))

        assert PlanTransitionEngine.is_downgrade(None, target) is False


@pytest.mark.django_db
class TestValidation:
    def test_unknown_listing(self, engine, owner, premium_package):
        with pytest.raises(NotFoundError) as exc_info:
            engine.request_transition(
                owner=owner,
                listing_id="00000000-0000-0000-0000-000000000000",
                package_id=premium_package.id,
            )

        assert exc_info.value.error_code == "LISTING_NOT_FOUND"

    def test_listing_of_another_owner(self, engine, other_owner, listing, premium_package):
        with pytest.raises(NotFoundError):
            engine.request_transition(
                owner=other_owner, listing_id=listing.id, package_id=premium_package.id
            )

    def test_inactive_package(self, engine, owner, listing):
        retired = PricingPackageFactory(price=Decimal("30.00"), active=False)

        with pytest.raises(NotFoundError) as exc_info:
            engine.request_transition(owner=owner, listing_id=listing.id, package_id=retired.id)

        assert exc_info.value.error_code == "PACKAGE_NOT_FOUND"

    def test_same_package_rejected(self, engine, gateway, owner, listing, basic_package):
        with pytest.raises(PlanPolicyViolationError) as exc_info:
            engine.request_transition(
                owner=owner, listing_id=listing.id, package_id=basic_package.id
            )

        assert exc_info.value.error_code == "ALREADY_ON_PLAN"
        gateway.create_checkout_session.assert_not_called()


@pytest.mark.django_db
class TestDowngrades:
    def test_free_downgrade_rejected_in_auto_mode(self, engine, owner, listing, free_package):
        with pytest.raises(PlanPolicyViolationError) as exc_info:
            engine.request_transition(
                owner=owner, listing_id=listing.id, package_id=free_package.id
            )

        assert exc_info.value.error_code == "FREE_DOWNGRADE_FORBIDDEN"
        assert current_package(listing).name == "Basic"

    def test_free_downgrade_rejected_in_admin_mode(
        self, engine, owner, listing, free_package, admin_approval_mode
    ):
        with pytest.raises(PlanPolicyViolationError):
            engine.request_transition(
                owner=owner, listing_id=listing.id, package_id=free_package.id
            )

        assert not DowngradeRequest.objects.exists()

    def test_auto_mode_executes_downgrade(
        self, engine, gateway, owner, listing, starter_package
    ):
        session = CheckoutSessionFactory(
            metadata={
                "flow": "plan_upgrade",
                "userId": str(owner.id),
                "businessId": str(listing.id),
                "selectedPackage": str(listing.package_id),
                "paymentMode": "subscription",
            }
        )
        gateway.list_checkout_sessions.return_value = [session]

        outcome = engine.request_transition(
            owner=owner, listing_id=listing.id, package_id=starter_package.id
        )

        assert outcome.kind == TransitionOutcome.DOWNGRADED
        assert outcome.cancelled_subscription_count == 1
        assert current_package(listing) == starter_package
        assert outcome.to_response()["downgraded"] is True
        assert outcome.to_response()["noPaymentRequired"] is True

    def test_admin_mode_queues_request(
        self, engine, gateway, owner, listing, starter_package, admin_approval_mode
    ):
        outcome = engine.request_transition(
            owner=owner, listing_id=listing.id, package_id=starter_package.id
        )

        request = DowngradeRequest.objects.get()
        assert outcome.kind == TransitionOutcome.DOWNGRADE_REQUESTED
        assert outcome.request_id == str(request.id)
        assert request.status == DowngradeRequestStatus.PENDING
        assert request.target_package == starter_package
        assert current_package(listing).name == "Basic"
        gateway.cancel_subscription.assert_not_called()

        body = outcome.to_response()
        assert body["requiresAdminApproval"] is True
        assert body["requestId"] == str(request.id)

    def test_repeated_admin_mode_request_keeps_one_pending(
        self, engine, owner, listing, starter_package, admin_approval_mode
    ):
        lite = PricingPackageFactory(name="Lite", price=Decimal("3.00"))

        first = engine.request_transition(
            owner=owner, listing_id=listing.id, package_id=starter_package.id
        )
        second = engine.request_transition(owner=owner, listing_id=listing.id, package_id=lite.id)

        assert first.request_id == second.request_id
        assert DowngradeRequest.objects.get().target_package == lite


@pytest.mark.django_db
class TestFreePackage:
    def test_listing_without_package_gets_free_package(
        self, engine, notifier, owner, free_package, django_capture_on_commit_callbacks
    ):
        listing = ListingFactory(owner=owner, package=None, name="New Shop")

        with django_capture_on_commit_callbacks(execute=True):
            outcome = engine.request_transition(
                owner=owner, listing_id=listing.id, package_id=free_package.id
            )

        assert outcome.kind == TransitionOutcome.UPGRADED
        assert outcome.to_response() == {
            "ok": True,
            "upgraded": True,
            "noPaymentRequired": True,
            "message": "Plan upgraded successfully.",
        }
        assert current_package(listing) == free_package
        notifier.send_plan_upgraded.assert_called_once_with(
            to=owner.email,
            name=owner.name,
            listing_name="New Shop",
            new_package_name="Free",
            previous_package_name=None,
        )

    def test_email_failure_is_logged_not_raised(
        self, engine, notifier, owner, free_package, django_capture_on_commit_callbacks, caplog
    ):
        listing = ListingFactory(owner=owner, package=None)
        notifier.send_plan_upgraded.side_effect = RuntimeError("smtp down")

        with django_capture_on_commit_callbacks(execute=True):
            outcome = engine.request_transition(
                owner=owner, listing_id=listing.id, package_id=free_package.id
            )

        assert outcome.kind == TransitionOutcome.UPGRADED
        assert current_package(listing) == free_package
        assert "Plan upgraded email failed" in caplog.text


@pytest.mark.django_db
class TestCheckout:
    def test_paid_upgrade_creates_checkout_session(
        self, engine, gateway, owner, listing, premium_package
    ):
        gateway.create_checkout_session.return_value = CheckoutSessionFactory(
            id="cs_test_upgrade", url="https://checkout.stripe.com/c/pay/cs_test_upgrade",
            status="open",
        )

        outcome = engine.request_transition(
            owner=owner,
            listing_id=listing.id,
            package_id=premium_package.id,
            base_url="https://shop.example.com/",
        )

        assert outcome.to_response() == {
            "url": "https://checkout.stripe.com/c/pay/cs_test_upgrade",
            "sessionId": "cs_test_upgrade",
        }
        assert current_package(listing).name == "Basic"

        params = gateway.create_checkout_session.call_args.args[0]
        assert params.mode == "subscription"
        assert params.line_item.name == "Premium - Plan Upgrade"
        assert params.line_item.unit_amount == 2500
        assert params.line_item.currency == "gbp"
        assert params.line_item.recurring_interval_days == 30
        assert params.customer_email == owner.email
        assert params.metadata == {
            "flow": "plan_upgrade",
            "userId": str(owner.id),
            "businessId": str(listing.id),
            "selectedPackage": str(premium_package.id),
            "paymentMode": "subscription",
        }
        assert params.subscription_metadata == params.metadata

        success = urlsplit(params.success_url)
        assert success.netloc == "shop.example.com"
        assert success.path == "/dashboard/billing"
        query = parse_qs(success.query)
        assert query["upgradeSessionId"] == ["{CHECKOUT_SESSION_ID}"]
        assert query["paymentMode"] == ["subscription"]
        assert "upgrade=cancelled" in params.cancel_url
        assert query["businessId"] == [str(listing.id)]
        assert query["selectedPackage"] == [str(premium_package.id)]

    def test_one_time_payment_mode(self, engine, gateway, owner, listing, premium_package):
        gateway.create_checkout_session.return_value = CheckoutSessionFactory(
            url="https://checkout.stripe.com/c/pay/cs_test_once", status="open"
        )

        engine.request_transition(
            owner=owner,
            listing_id=listing.id,
            package_id=premium_package.id,
            payment_mode=PaymentMode.ONE_TIME,
        )

        params = gateway.create_checkout_session.call_args.args[0]
        assert params.mode == "payment"
        assert params.line_item.recurring_interval_days is None
        assert params.subscription_metadata is None
        assert params.metadata["paymentMode"] == "one_time"

    def test_yearly_package_bills_every_365_days(self, engine, gateway, owner, listing):
        yearly = PricingPackageFactory(
            name="Annual", price=Decimal("199.00"), billing_period="yearly"
        )
        gateway.create_checkout_session.return_value = CheckoutSessionFactory(
            url="https://checkout.stripe.com/c/pay/cs_test_year", status="open"
        )

        engine.request_transition(owner=owner, listing_id=listing.id, package_id=yearly.id)

        params = gateway.create_checkout_session.call_args.args[0]
        assert params.line_item.recurring_interval_days == 365
        assert params.line_item.unit_amount == 19900

    def test_missing_checkout_url_raises(self, engine, gateway, owner, listing, premium_package):
        gateway.create_checkout_session.return_value = CheckoutSessionFactory(url=None)

        with pytest.raises(ExternalServiceError) as exc_info:
            engine.request_transition(
                owner=owner, listing_id=listing.id, package_id=premium_package.id
            )

        assert exc_info.value.message == "Failed to create checkout URL."

    def test_gateway_errors_propagate(self, engine, gateway, owner, listing, premium_package):
        gateway.create_checkout_session.side_effect = StripeAPIUnavailableError("down")

        with pytest.raises(StripeAPIUnavailableError):
            engine.request_transition(
                owner=owner, listing_id=listing.id, package_id=premium_package.id
            )
