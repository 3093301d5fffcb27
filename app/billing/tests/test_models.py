"""
Tests for billing models: the policy singleton and request constraints.
"""

import pytest
from django.db import IntegrityError, transaction

from billing.models import DowngradePolicy
from billing.state_machines import DowngradeDecisionMode
from billing.tests.factories import DowngradeRequestFactory


@pytest.mark.django_db
class TestDowngradePolicy:
    def test_load_creates_defaults(self):
        policy = DowngradePolicy.load()

        assert policy.pk == DowngradePolicy.SINGLETON_ID
        assert policy.mode == DowngradeDecisionMode.AUTO
        assert policy.expired_listing_package is None
        assert policy.version == 1

    def test_load_returns_same_row(self):
        first = DowngradePolicy.load()

        assert DowngradePolicy.load().pk == first.pk
        assert DowngradePolicy.objects.count() == 1

    def test_load_for_update(self):
        with transaction.atomic():
            policy = DowngradePolicy.load(for_update=True)

        assert policy.pk == DowngradePolicy.SINGLETON_ID

    def test_update_bumps_version(self):
        policy = DowngradePolicy.load()

        policy.mode = DowngradeDecisionMode.ADMIN_APPROVAL
        policy.save()
        policy.save()

        assert policy.version == 3
        assert DowngradePolicy.objects.get().version == 3

    def test_unknown_stored_mode_reads_as_auto(self):
        DowngradePolicy.load()
        DowngradePolicy.objects.update(mode="legacy")

        assert DowngradePolicy.load().decision_mode == DowngradeDecisionMode.AUTO


@pytest.mark.django_db
class TestDowngradeRequestConstraints:
    def test_one_pending_request_per_owner_and_listing(self, listing):
        DowngradeRequestFactory(listing=listing)

        with pytest.raises(IntegrityError), transaction.atomic():
            DowngradeRequestFactory(listing=listing)

    def test_decided_requests_do_not_block_new_ones(self, listing):
        decided = DowngradeRequestFactory(listing=listing)
        decided.reject()
        decided.save()

        DowngradeRequestFactory(listing=listing)

        assert listing.downgrade_requests.count() == 2
