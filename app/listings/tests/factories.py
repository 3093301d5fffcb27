"""
Factory Boy factories for listing test data.

Usage:
    from listings.tests.factories import ListingFactory, PricingPackageFactory

    premium = PricingPackageFactory(name="Premium", price=Decimal("25.00"))
    listing = ListingFactory(owner=owner, package=premium)
"""

from decimal import Decimal

import factory
from django.utils import timezone

from authentication.tests.factories import BusinessOwnerFactory
from listings.models import Badge, Listing, ListingStatus, PricingPackage
from listings.pricing import BillingPeriod


class PricingPackageFactory(factory.django.DjangoModelFactory):
    """
    Factory for PricingPackage.

    Default creates an active monthly package priced 10.00.
    """

    class Meta:
        model = PricingPackage

    name = factory.Sequence(lambda n: f"Package {n}")
    description = "Everything a growing business needs"
    price = Decimal("10.00")
    billing_period = BillingPeriod.MONTHLY
    duration_days = 0
    features = factory.LazyFunction(list)
    gallery_limit = 0
    active = True


class ListingFactory(factory.django.DjangoModelFactory):
    """
    Factory for Listing.

    Default creates an approved listing whose package was assigned now.
    """

    class Meta:
        model = Listing

    name = factory.Sequence(lambda n: f"Business {n}")
    slug = factory.Sequence(lambda n: f"business-listing-{n}")
    owner = factory.SubFactory(BusinessOwnerFactory)
    package = factory.SubFactory(PricingPackageFactory)
    package_assigned_at = factory.LazyFunction(timezone.now)
    status = ListingStatus.APPROVED
    featured = False
    city = "Bristol"
    email = factory.Sequence(lambda n: f"hello{n}@business.example.com")


class BadgeFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Badge
        django_get_or_create = ("name",)

    name = factory.Sequence(lambda n: f"Badge {n}")
    icon = "star"
