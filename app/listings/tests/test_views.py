"""
API tests for listing endpoints.
"""

from decimal import Decimal

import pytest
from django.urls import reverse
from freezegun import freeze_time
from rest_framework import status

from billing.services import DowngradeGovernanceStore, ExpiredListingFallbackService
from listings.models import Listing
from listings.services import ListingSubmissionService
from listings.slugs import SlugAllocator
from listings.tests.factories import ListingFactory


@pytest.fixture
def verifier(mocker):
    return mocker.MagicMock(name="verifier")


@pytest.fixture(autouse=True)
def submission_service(mocker, verifier):
    service = ListingSubmissionService(
        verifier=verifier,
        allocator=SlugAllocator(max_attempts=3, base_delay=0, max_delay=0, sleep=lambda _: None),
    )
    mocker.patch("listings.views.get_listing_submission_service", return_value=service)
    return service


@pytest.fixture(autouse=True)
def expired_service(mocker):
    service = ExpiredListingFallbackService(governance=DowngradeGovernanceStore())
    mocker.patch("listings.views.get_expired_listing_service", return_value=service)
    return service


@pytest.mark.django_db
class TestListingSubmissionView:
    @property
    def url(self):
        return reverse("listings:listing-submit")

    def test_requires_authentication(self, api_client):
        response = api_client.post(self.url, {"businessName": "Olive Bakery"}, format="json")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_created(self, owner_client, free_package):
        response = owner_client.post(
            self.url,
            {
                "businessName": "Olive Bakery",
                "selectedPackage": str(free_package.id),
                "products": [
                    {"name": "Sourdough", "description": "Loaf", "price": "4.50", "inStock": False}
                ],
                "menuItems": [
                    {"category": "Cakes", "name": "Eclair", "description": "Choc", "price": "3.00"}
                ],
            },
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["slug"] == "olive-bakery"
        listing = Listing.objects.get(pk=response.data["businessId"])
        assert listing.products.get().price == Decimal("4.50")
        assert listing.products.get().in_stock is False
        assert listing.menu_items.get().dietary == []

    def test_replayed_is_200(self, owner_client):
        owner_client.post(self.url, {"businessName": "Olive Bakery"}, format="json")

        response = owner_client.post(self.url, {"businessName": "Olive Bakery"}, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["message"] == "Listing already submitted."

    def test_paid_without_session_is_402(self, owner_client, premium_package):
        response = owner_client.post(
            self.url,
            {"businessName": "Olive Bakery", "selectedPackage": str(premium_package.id)},
            format="json",
        )

        assert response.status_code == status.HTTP_402_PAYMENT_REQUIRED
        assert response.data["error"] == "Missing Stripe checkout session."

    def test_session_used_by_other_owner_is_409(self, owner_client, other_owner, premium_package):
        ListingFactory(owner=other_owner, checkout_session_id="cs_test_paid")

        response = owner_client.post(
            self.url,
            {
                "businessName": "Olive Bakery",
                "selectedPackage": str(premium_package.id),
                "stripeSessionId": "cs_test_paid",
            },
            format="json",
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_blank_name_rejected(self, owner_client):
        response = owner_client.post(self.url, {"businessName": "   "}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "businessName" in response.data


@pytest.mark.django_db
class TestMyListingsView:
    @property
    def url(self):
        return reverse("listings:listing-mine")

    def test_lists_only_own_listings(self, owner_client, listing, other_owner):
        ListingFactory(owner=other_owner)

        response = owner_client.get(self.url)

        assert response.status_code == status.HTTP_200_OK
        businesses = response.data["businesses"]
        assert [item["id"] for item in businesses] == [str(listing.id)]
        assert businesses[0]["package"]["name"] == "Basic"
        assert businesses[0]["enabledFeatures"] == ["branding", "gallery"]
        assert businesses[0]["galleryLimit"] == 5
        assert businesses[0]["planExpiresAt"] is not None

    def test_expired_plan_moved_before_listing(
        self, owner_client, owner, basic_package, free_package
    ):
        DowngradeGovernanceStore().set_expired_listing_package_id(free_package.id)
        with freeze_time("2026-01-01 12:00"):
            ListingFactory(owner=owner, package=basic_package, featured=True)

        with freeze_time("2026-03-01 12:00"):
            response = owner_client.get(self.url)

        item = response.data["businesses"][0]
        assert item["package"]["name"] == "Free"
        assert item["featured"] is False
        assert item["planExpiresAt"] is None
        assert item["enabledFeatures"] == []

    def test_requires_authentication(self, api_client):
        assert api_client.get(self.url).status_code == status.HTTP_401_UNAUTHORIZED
