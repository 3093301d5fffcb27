"""
URL configuration for listings app.

Mounted at /api/v1/ in config/urls.py.
"""

from django.urls import path

from listings import views

app_name = "listings"

urlpatterns = [
    path("listings/", views.ListingSubmissionView.as_view(), name="listing-submit"),
    path("listings/mine/", views.MyListingsView.as_view(), name="listing-mine"),
]
