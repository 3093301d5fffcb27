"""
DRF views for billing.

Related files:
    - services/: Business logic (views only translate HTTP to service calls)
    - serializers.py: Request validation and response shapes
    - urls.py: URL routing

Endpoints:
    Owners:
        POST /api/v1/plan-transitions/ - Request a plan change for a listing
        POST /api/v1/plan-transitions/verify/ - Verify a returned upgrade checkout
        POST /api/v1/checkout-sessions/ - Start checkout for a new paid listing

    Admins:
        GET/PUT /api/v1/downgrade-policy/ - Read or change the downgrade policy
        GET /api/v1/downgrade-requests/ - List downgrade requests (?status=)
        POST /api/v1/downgrade-requests/{id}/decision/ - Approve or reject

Errors:
    Service errors (core.exceptions.BaseApplicationError) are returned as
    {"error", "error_code", "details"?} with the exception's HTTP status.
"""

from __future__ import annotations

from django.conf import settings
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from billing.permissions import IsDirectoryAdmin
from billing.serializers import (
    DowngradeDecisionSerializer,
    DowngradePolicyUpdateSerializer,
    DowngradeRequestSerializer,
    DowngradeRequestStatusFilterSerializer,
    ListingCheckoutSessionSerializer,
    PlanTransitionRequestSerializer,
    VerifyPlanTransitionSerializer,
)
from billing.services.providers import (
    get_checkout_verifier,
    get_downgrade_decision_service,
    get_expired_listing_service,
    get_governance_store,
    get_listing_checkout_service,
    get_plan_transition_engine,
)
from core.exceptions import BaseApplicationError
from core.views import error_response


def request_base_url(request) -> str:
    """Public site URL used for checkout redirects."""
    return settings.SITE_URL or request.build_absolute_uri("/").rstrip("/")


def policy_response(policy, governance, **extra) -> dict:
    return {
        **extra,
        "mode": policy.decision_mode.value,
        "expiredListingPackageId": governance.get_expired_listing_package_id(),
        "version": policy.version,
    }


# =============================================================================
# Owner endpoints
# =============================================================================


class PlanTransitionView(APIView):
    """
    Request a listing plan change.

    POST /api/v1/plan-transitions/

    Request body:
        {"businessId": "...", "selectedPackage": "...", "paymentMode": "subscription"}

    Returns one of:
        {"url", "sessionId"}                         - checkout required
        {"ok", "upgraded", "noPaymentRequired"}      - free package applied
        {"ok", "downgraded", "cancelledSubscriptionCount", ...}
        {"ok", "downgradeRequested", "requiresAdminApproval", "requestId", ...}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="request_plan_transition",
        summary="Request plan change",
        request=PlanTransitionRequestSerializer,
        responses={
            200: OpenApiResponse(description="Transition outcome"),
            400: OpenApiResponse(description="Same plan or free downgrade"),
            404: OpenApiResponse(description="Listing or package not found"),
        },
        tags=["Billing - Plans"],
    )
    def post(self, request):
        serializer = PlanTransitionRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        # An expired paid plan is settled first so it is not treated as current
        get_expired_listing_service().apply_for_owned_listing(
            request.user, serializer.validated_data["listing_id"]
        )

        try:
            outcome = get_plan_transition_engine().request_transition(
                owner=request.user,
                base_url=request_base_url(request),
                **serializer.validated_data,
            )
        except BaseApplicationError as exc:
            return error_response(exc)

        return Response(outcome.to_response())


class VerifyPlanTransitionView(APIView):
    """
    Verify a completed upgrade checkout and apply the package.

    POST /api/v1/plan-transitions/verify/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="verify_plan_transition",
        summary="Verify upgrade checkout",
        request=VerifyPlanTransitionSerializer,
        responses={
            200: OpenApiResponse(description="{ok, alreadyUpgraded?}"),
            400: OpenApiResponse(description="Verification failed"),
            404: OpenApiResponse(description="Listing not found"),
        },
        tags=["Billing - Plans"],
    )
    def post(self, request):
        serializer = VerifyPlanTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            outcome = get_checkout_verifier().verify(
                user=request.user,
                **serializer.validated_data,
            )
        except BaseApplicationError as exc:
            return error_response(exc)

        return Response(outcome.to_response())


class ListingCheckoutSessionView(APIView):
    """
    Start checkout for a new listing on a paid package.

    POST /api/v1/checkout-sessions/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_listing_checkout_session",
        summary="Create listing checkout session",
        request=ListingCheckoutSessionSerializer,
        responses={
            200: OpenApiResponse(description="{url, sessionId} or {noPaymentRequired}"),
            404: OpenApiResponse(description="Package not found"),
        },
        tags=["Billing - Checkout"],
    )
    def post(self, request):
        serializer = ListingCheckoutSessionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            outcome = get_listing_checkout_service().create_session(
                user=request.user,
                base_url=request_base_url(request),
                **serializer.validated_data,
            )
        except BaseApplicationError as exc:
            return error_response(exc)

        return Response(outcome.to_response())


# =============================================================================
# Admin endpoints
# =============================================================================


class DowngradePolicyView(APIView):
    """
    Read or change the downgrade policy.

    GET /api/v1/downgrade-policy/
    PUT /api/v1/downgrade-policy/

    Request body (PUT):
        {"mode": "admin_approval", "expiredListingPackageId": null, "version": 3}
    """

    permission_classes = [IsAuthenticated, IsDirectoryAdmin]

    @extend_schema(
        operation_id="get_downgrade_policy",
        summary="Get downgrade policy",
        tags=["Billing - Admin"],
    )
    def get(self, request):
        governance = get_governance_store()
        return Response(policy_response(governance.get_policy(), governance))

    @extend_schema(
        operation_id="update_downgrade_policy",
        summary="Update downgrade policy",
        request=DowngradePolicyUpdateSerializer,
        responses={
            200: OpenApiResponse(description="Updated policy"),
            409: OpenApiResponse(description="Policy changed since it was read"),
        },
        tags=["Billing - Admin"],
    )
    def put(self, request):
        serializer = DowngradePolicyUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        governance = get_governance_store()
        try:
            policy = governance.update_policy(actor=request.user, **serializer.validated_data)
        except BaseApplicationError as exc:
            return error_response(exc)

        return Response(policy_response(policy, governance, ok=True))


class DowngradeRequestListView(APIView):
    """
    List downgrade requests, newest first.

    GET /api/v1/downgrade-requests/?status=pending
    """

    permission_classes = [IsAuthenticated, IsDirectoryAdmin]

    @extend_schema(
        operation_id="list_downgrade_requests",
        summary="List downgrade requests",
        parameters=[
            OpenApiParameter(
                name="status",
                type=str,
                location=OpenApiParameter.QUERY,
                description="Filter by status (pending, approved, rejected)",
                required=False,
            ),
        ],
        tags=["Billing - Admin"],
    )
    def get(self, request):
        filters = DowngradeRequestStatusFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)

        requests = get_governance_store().list_requests(
            status=filters.validated_data.get("status")
        )
        return Response({"requests": DowngradeRequestSerializer(requests, many=True).data})


class DowngradeRequestDecisionView(APIView):
    """
    Approve or reject a downgrade request.

    POST /api/v1/downgrade-requests/{id}/decision/

    Request body:
        {"decision": "approve"}

    Deciding a request that was already decided returns it unchanged with
    "alreadyDecided": true.
    """

    permission_classes = [IsAuthenticated, IsDirectoryAdmin]

    @extend_schema(
        operation_id="decide_downgrade_request",
        summary="Decide downgrade request",
        request=DowngradeDecisionSerializer,
        responses={
            200: OpenApiResponse(description="{ok, request, message, alreadyDecided?}"),
            400: OpenApiResponse(description="Request no longer valid"),
            404: OpenApiResponse(description="Request not found"),
        },
        tags=["Billing - Admin"],
    )
    def post(self, request, pk):
        serializer = DowngradeDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            outcome = get_downgrade_decision_service().decide(
                pk,
                serializer.validated_data["decision"],
                actor=request.user,
            )
        except BaseApplicationError as exc:
            return error_response(exc)

        body = {
            "ok": True,
            "request": DowngradeRequestSerializer(outcome.request).data,
            "message": outcome.message,
        }
        if outcome.already_decided:
            body["alreadyDecided"] = True
        return Response(body)
