"""
Root pytest configuration for the Django project.

This module configures pytest-django and provides project-wide fixtures.
App-specific fixtures are defined in each app's tests/conftest.py.
"""

import os
from decimal import Decimal

import django
import pytest

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")


def pytest_configure():
    """Configure Django settings before tests run."""
    django.setup()

    from django.conf import settings

    # Disable throttling during tests to prevent rate limit failures
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}

    # Use fast password hasher for tests
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]

    # The test client speaks plain HTTP
    settings.SECURE_SSL_REDIRECT = False

    # Emails are delivered in-process and collected in mail.outbox
    settings.EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True

    from config.celery import app as celery_app

    celery_app.conf.task_always_eager = True
    celery_app.conf.task_eager_propagates = True

    settings.SITE_URL = "https://directory.example.com"
    settings.SLUG_RETRY_BASE_DELAY_SECONDS = 0
    settings.SLUG_RETRY_MAX_DELAY_SECONDS = 0


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_views.py, test_services.py, test_tasks.py, etc. → integration
    - test_models.py, test_serializers.py, test_locks.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_tasks.py",
        "test_permissions.py",
        "test_governance.py",
        "test_plan_transition.py",
        "test_checkout_verifier.py",
        "test_downgrade_executor.py",
        "test_downgrade_decisions.py",
        "test_expired_listings.py",
        "test_listing_checkout.py",
        "test_slugs.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_serializers.py",
        "test_stripe_adapter.py",
        "test_checkout.py",
        "test_features.py",
        "test_pricing.py",
        "test_locks.py",
        "test_state_transitions.py",
        "test_exceptions.py",
        "test_helpers.py",
    ]

    for item in items:
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)


# =============================================================================
# Users
# =============================================================================


@pytest.fixture
def owner(db):
    """A business owner."""
    from authentication.tests.factories import BusinessOwnerFactory

    return BusinessOwnerFactory(email="owner@example.com", name="Olive Owner")


@pytest.fixture
def other_owner(db):
    from authentication.tests.factories import BusinessOwnerFactory

    return BusinessOwnerFactory(email="other@example.com")


@pytest.fixture
def admin_user(db):
    """A directory admin (role admin, not staff)."""
    from authentication.tests.factories import AdminUserFactory

    return AdminUserFactory(email="admin@example.com", name="Ada Admin")


# =============================================================================
# Packages & Listings
# =============================================================================


@pytest.fixture
def free_package(db):
    from listings.tests.factories import PricingPackageFactory

    return PricingPackageFactory(name="Free", price=Decimal("0.00"), features=[])


@pytest.fixture
def basic_package(db):
    from listings.tests.factories import PricingPackageFactory

    return PricingPackageFactory(
        name="Basic",
        price=Decimal("10.00"),
        features=["branding", "gallery"],
        gallery_limit=5,
    )


@pytest.fixture
def premium_package(db):
    from listings.tests.factories import PricingPackageFactory

    return PricingPackageFactory(
        name="Premium",
        price=Decimal("25.00"),
        features=["branding", "gallery", "featured_listing"],
        gallery_limit=20,
    )


@pytest.fixture
def listing(db, owner, basic_package):
    """An approved listing on the Basic package."""
    from listings.tests.factories import ListingFactory

    return ListingFactory(owner=owner, package=basic_package, name="Olive Bakery")


# =============================================================================
# API Clients
# =============================================================================


@pytest.fixture
def api_client():
    from rest_framework.test import APIClient

    return APIClient()


@pytest.fixture
def owner_client(api_client, owner):
    api_client.force_authenticate(user=owner)
    return api_client


@pytest.fixture
def admin_client(admin_user):
    from rest_framework.test import APIClient

    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client
