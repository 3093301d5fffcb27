"""
URL configuration for the directory billing service.

URL Structure:
    /                                  - ReDoc API documentation
    /admin/                            - Django admin interface
    /health/                           - Health check endpoint (load balancers, Docker)
    /schema/                           - OpenAPI schema (YAML)
    /api/v1/                           - API
        listings/                      - Submit a listing (POST)
        listings/mine/                 - Caller's listings (GET)
        checkout-sessions/             - Checkout for a new paid listing (POST)
        plan-transitions/              - Request a plan change (POST)
        plan-transitions/verify/       - Verify an upgrade checkout (POST)
        downgrade-policy/              - Downgrade policy (GET/PUT, admin)
        downgrade-requests/            - Downgrade queue (GET, admin)
        downgrade-requests/{id}/decision/ - Approve or reject (POST, admin)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("", include("listings.urls")),
    path("", include("billing.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Directory Billing Admin"
admin.site.site_title = "Directory Billing"
admin.site.index_title = "Listings and plans"
