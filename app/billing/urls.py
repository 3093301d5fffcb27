"""
URL configuration for billing app.

Mounted at /api/v1/ in config/urls.py.
"""

from django.urls import path

from billing import views

app_name = "billing"

urlpatterns = [
    path("plan-transitions/", views.PlanTransitionView.as_view(), name="plan-transition"),
    path(
        "plan-transitions/verify/",
        views.VerifyPlanTransitionView.as_view(),
        name="plan-transition-verify",
    ),
    path(
        "checkout-sessions/",
        views.ListingCheckoutSessionView.as_view(),
        name="checkout-session",
    ),
    path("downgrade-policy/", views.DowngradePolicyView.as_view(), name="downgrade-policy"),
    path(
        "downgrade-requests/",
        views.DowngradeRequestListView.as_view(),
        name="downgrade-request-list",
    ),
    path(
        "downgrade-requests/<uuid:pk>/decision/",
        views.DowngradeRequestDecisionView.as_view(),
        name="downgrade-request-decision",
    ),
]
