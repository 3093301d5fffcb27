"""
Factory Boy factories for billing test data.

Usage:
    from billing.tests.factories import CheckoutSessionFactory, DowngradeRequestFactory

    request = DowngradeRequestFactory(listing=listing, target_package=basic)
    session = CheckoutSessionFactory(metadata={...}, amount_total=2500)
"""

import uuid

import factory

from billing.adapters import CheckoutSessionResult, SubscriptionResult
from billing.checkout import SESSION_MODE_SUBSCRIPTION, SESSION_STATUS_COMPLETE
from billing.models import DowngradeRequest
from listings.tests.factories import ListingFactory, PricingPackageFactory


class DowngradeRequestFactory(factory.django.DjangoModelFactory):
    """
    Factory for pending DowngradeRequest instances.

    Status is FSM-protected; move requests on with approve()/reject().
    """

    class Meta:
        model = DowngradeRequest

    listing = factory.SubFactory(ListingFactory)
    owner = factory.SelfAttribute("listing.owner")
    owner_email = factory.SelfAttribute("owner.email")
    owner_name = factory.SelfAttribute("owner.name")
    listing_name = factory.SelfAttribute("listing.name")
    current_package = factory.SelfAttribute("listing.package")
    current_package_name = factory.LazyAttribute(
        lambda o: o.current_package.name if o.current_package else "Current plan"
    )
    target_package = factory.SubFactory(PricingPackageFactory, name="Starter")
    target_package_name = factory.SelfAttribute("target_package.name")


# =============================================================================
# Gateway results (plain dataclasses, never saved)
# =============================================================================


class CheckoutSessionFactory(factory.Factory):
    """
    Completed subscription checkout session as returned by StripeAdapter.

    Example:
        CheckoutSessionFactory(metadata=PlanUpgradeMetadata(...).to_stripe_metadata())
    """

    class Meta:
        model = CheckoutSessionResult

    id = factory.LazyFunction(lambda: f"cs_test_{uuid.uuid4().hex[:16]}")
    url = None
    status = SESSION_STATUS_COMPLETE
    mode = SESSION_MODE_SUBSCRIPTION
    metadata = factory.LazyFunction(dict)
    amount_total = 2500
    currency = "gbp"
    customer_email = None
    customer_details_email = None
    subscription_id = factory.LazyFunction(lambda: f"sub_{uuid.uuid4().hex[:14]}")


class SubscriptionFactory(factory.Factory):
    class Meta:
        model = SubscriptionResult

    id = factory.LazyFunction(lambda: f"sub_{uuid.uuid4().hex[:14]}")
    status = "active"
    metadata = factory.LazyFunction(dict)
