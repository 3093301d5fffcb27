"""
Tests for DowngradeGovernanceStore.

Tests cover:
- Policy defaults, mode normalisation and partial updates
- Expired-listing fallback package resolution (policy vs setting)
- Optimistic locking on policy updates
- Pending request upsert (one pending request per owner and listing)
- Decisions and their idempotency
"""

from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction
from freezegun import freeze_time

from billing.exceptions import StaleRecordError
from billing.models import DowngradePolicy, DowngradeRequest
from billing.services import PendingDowngradeInput
from billing.state_machines import (
    DowngradeDecision,
    DowngradeDecisionMode,
    DowngradeRequestStatus,
)
from billing.tests.factories import DowngradeRequestFactory
from core.exceptions import NotFoundError
from listings.tests.factories import ListingFactory, PricingPackageFactory


def get_fresh_request(request_id) -> DowngradeRequest:
    """Re-read a request; the protected FSM field forbids refresh_from_db()."""
    return DowngradeRequest.objects.get(pk=request_id)


# =============================================================================
# Policy
# =============================================================================


@pytest.mark.django_db
class TestDowngradePolicy:
    def test_mode_defaults_to_auto(self, governance):
        assert governance.get_mode() == DowngradeDecisionMode.AUTO
        assert DowngradePolicy.objects.count() == 1

    def test_set_mode_persists(self, governance, admin_user):
        policy = governance.set_mode(DowngradeDecisionMode.ADMIN_APPROVAL, actor=admin_user)

        assert governance.get_mode() == DowngradeDecisionMode.ADMIN_APPROVAL
        assert policy.updated_by == admin_user

    def test_unknown_mode_reads_as_auto(self, governance):
        governance.set_mode("approve-everything")

        assert governance.get_mode() == DowngradeDecisionMode.AUTO

    def test_each_update_bumps_version(self, governance):
        first = governance.set_mode(DowngradeDecisionMode.ADMIN_APPROVAL)
        second = governance.set_mode(DowngradeDecisionMode.AUTO)

        assert second.version == first.version + 1

    def test_partial_update_keeps_other_field(self, governance, free_package):
        governance.update_policy(
            mode=DowngradeDecisionMode.ADMIN_APPROVAL,
            expired_listing_package_id=free_package.id,
        )

        governance.update_policy(expired_listing_package_id=None)

        assert governance.get_mode() == DowngradeDecisionMode.ADMIN_APPROVAL
        assert governance.get_expired_listing_package_id() is None

    def test_update_with_matching_version(self, governance):
        current = governance.get_policy()

        policy = governance.update_policy(
            mode=DowngradeDecisionMode.ADMIN_APPROVAL,
            expected_version=current.version,
        )

        assert policy.mode == DowngradeDecisionMode.ADMIN_APPROVAL

    def test_update_with_stale_version_raises(self, governance):
        stale_version = governance.get_policy().version
        governance.set_mode(DowngradeDecisionMode.ADMIN_APPROVAL)

        with pytest.raises(StaleRecordError):
            governance.update_policy(
                mode=DowngradeDecisionMode.AUTO, expected_version=stale_version
            )

        assert governance.get_mode() == DowngradeDecisionMode.ADMIN_APPROVAL


@pytest.mark.django_db
class TestExpiredListingPackage:
    def test_none_when_nothing_configured(self, governance, settings):
        settings.EXPIRED_LISTING_PACKAGE_ID = None

        assert governance.get_expired_listing_package_id() is None

    def test_falls_back_to_setting(self, governance, settings, free_package):
        settings.EXPIRED_LISTING_PACKAGE_ID = str(free_package.id)

        assert governance.get_expired_listing_package_id() == str(free_package.id)

    def test_policy_wins_over_setting(self, governance, settings, free_package, basic_package):
        settings.EXPIRED_LISTING_PACKAGE_ID = str(basic_package.id)

        governance.set_expired_listing_package_id(free_package.id)

        assert governance.get_expired_listing_package_id() == str(free_package.id)


# =============================================================================
# Pending requests
# =============================================================================


@pytest.mark.django_db
class TestPendingRequests:
    def test_creates_request_with_snapshots(self, governance, owner, listing, basic_package):
        starter = PricingPackageFactory(name="Starter", price=Decimal("5.00"))

        request = governance.create_or_update_pending_request(
            PendingDowngradeInput(
                owner=owner,
                listing=listing,
                current_package=basic_package,
                target_package=starter,
            )
        )

        assert request.status == DowngradeRequestStatus.PENDING
        assert request.owner_email == "owner@example.com"
        assert request.owner_name == "Olive Owner"
        assert request.listing_name == "Olive Bakery"
        assert request.current_package_name == "Basic"
        assert request.target_package_name == "Starter"

    def test_missing_current_package_gets_placeholder_name(self, governance, owner):
        listing = ListingFactory(owner=owner, package=None)
        starter = PricingPackageFactory(name="Starter", price=Decimal("5.00"))

        request = governance.create_or_update_pending_request(
            PendingDowngradeInput(
                owner=owner, listing=listing, current_package=None, target_package=starter
            )
        )

        assert request.current_package is None
        assert request.current_package_name == "Current plan"

    def test_second_request_refreshes_pending_one(self, governance, owner, listing, basic_package):
        starter = PricingPackageFactory(name="Starter", price=Decimal("5.00"))
        lite = PricingPackageFactory(name="Lite", price=Decimal("3.00"))

        first = governance.create_or_update_pending_request(
            PendingDowngradeInput(owner, listing, basic_package, starter)
        )
        second = governance.create_or_update_pending_request(
            PendingDowngradeInput(owner, listing, basic_package, lite)
        )

        assert second.id == first.id
        assert DowngradeRequest.objects.filter(status=DowngradeRequestStatus.PENDING).count() == 1
        fresh = get_fresh_request(first.id)
        assert fresh.target_package == lite
        assert fresh.target_package_name == "Lite"
        assert fresh.version == first.version + 1

    def test_decided_request_does_not_block_new_one(
        self, governance, owner, listing, basic_package
    ):
        starter = PricingPackageFactory(name="Starter", price=Decimal("5.00"))
        first = governance.create_or_update_pending_request(
            PendingDowngradeInput(owner, listing, basic_package, starter)
        )
        governance.decide(first.id, DowngradeDecision.REJECT)

        second = governance.create_or_update_pending_request(
            PendingDowngradeInput(owner, listing, basic_package, starter)
        )

        assert second.id != first.id
        assert DowngradeRequest.objects.count() == 2

    def test_database_rejects_second_pending_row(self, listing):
        DowngradeRequestFactory(listing=listing)

        with pytest.raises(IntegrityError), transaction.atomic():
            DowngradeRequestFactory(listing=listing)

    def test_list_requests_newest_first_and_filtered(self, governance, admin_user):
        with freeze_time("2026-03-01 09:00"):
            older = DowngradeRequestFactory()
        with freeze_time("2026-03-02 09:00"):
            newer = DowngradeRequestFactory()
        governance.decide(older.id, DowngradeDecision.APPROVE, actor=admin_user)

        all_ids = [request.id for request in governance.list_requests()]
        pending_ids = [
            request.id for request in governance.list_requests(DowngradeRequestStatus.PENDING)
        ]

        assert all_ids == [newer.id, older.id]
        assert pending_ids == [newer.id]


# =============================================================================
# Decisions
# =============================================================================


@pytest.mark.django_db
class TestDecide:
    def test_approve_stamps_decision(self, governance, admin_user):
        request = DowngradeRequestFactory()

        decided = governance.decide(request.id, DowngradeDecision.APPROVE, actor=admin_user)

        assert decided.status == DowngradeRequestStatus.APPROVED
        assert decided.decided_by == admin_user
        assert decided.decided_by_name == "Ada Admin"
        assert decided.decided_at is not None

    def test_reject(self, governance, admin_user):
        request = DowngradeRequestFactory()

        decided = governance.decide(request.id, "reject", actor=admin_user)

        assert get_fresh_request(decided.id).status == DowngradeRequestStatus.REJECTED

    def test_deciding_twice_keeps_first_decision(self, governance, admin_user):
        request = DowngradeRequestFactory()
        governance.decide(request.id, DowngradeDecision.REJECT, actor=admin_user)

        again = governance.decide(request.id, DowngradeDecision.APPROVE, actor=admin_user)

        assert again.status == DowngradeRequestStatus.REJECTED
        assert get_fresh_request(request.id).status == DowngradeRequestStatus.REJECTED

    def test_unknown_request_raises_not_found(self, governance):
        with pytest.raises(NotFoundError) as exc_info:
            governance.decide("00000000-0000-0000-0000-000000000000", DowngradeDecision.REJECT)

        assert exc_info.value.message == "Downgrade request not found."

    def test_stale_version_raises(self, governance):
        request = DowngradeRequestFactory()

        with pytest.raises(StaleRecordError):
            governance.decide(
                request.id, DowngradeDecision.REJECT, expected_version=request.version + 1
            )

        assert get_fresh_request(request.id).status == DowngradeRequestStatus.PENDING
