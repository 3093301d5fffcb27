"""
DRF views for listings.

Endpoints:
    POST /api/v1/listings/ - Submit a new listing
    GET /api/v1/listings/mine/ - Listings owned by the caller
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from billing.services.providers import get_expired_listing_service
from core.exceptions import BaseApplicationError
from core.views import error_response
from listings.models import Listing
from listings.serializers import ListingSubmissionSerializer, OwnedListingSerializer
from listings.services import get_listing_submission_service


class ListingSubmissionView(APIView):
    """
    Submit a listing.

    POST /api/v1/listings/

    Returns 201 for a new listing and 200 when the submission replays an
    earlier one (same checkout session, or same slug and owner).
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="submit_listing",
        summary="Submit listing",
        request=ListingSubmissionSerializer,
        responses={
            201: OpenApiResponse(description="{ok, businessId, slug, message}"),
            200: OpenApiResponse(description="Submission replayed"),
            402: OpenApiResponse(description="Paid package without verified payment"),
            409: OpenApiResponse(description="Slug or checkout session conflict"),
        },
        tags=["Listings"],
    )
    def post(self, request):
        serializer = ListingSubmissionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = get_listing_submission_service().submit(
                owner=request.user, data=serializer.validated_data
            )
        except BaseApplicationError as exc:
            return error_response(exc)

        return Response(
            result.to_response(),
            status=status.HTTP_200_OK if result.replayed else status.HTTP_201_CREATED,
        )


class MyListingsView(APIView):
    """
    Listings owned by the caller, newest first.

    GET /api/v1/listings/mine/

    Expired paid plans are moved to the fallback package before listing.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_my_listings",
        summary="List my listings",
        responses={200: OwnedListingSerializer(many=True)},
        tags=["Listings"],
    )
    def get(self, request):
        get_expired_listing_service().apply_for_owner(request.user)

        listings = Listing.objects.filter(owner=request.user).select_related("package")
        return Response({"businesses": OwnedListingSerializer(listings, many=True).data})
