"""
Downgrade governance store.

Persists the downgrade policy (decision mode, expired-listing fallback
package) and the queue of downgrade requests awaiting admin decisions.

All writes are transactional:
    - Policy updates lock the singleton row and bump its version
    - Pending-request upserts lock the (owner, listing) pending row; a
      concurrent insert losing the partial unique constraint re-reads and
      updates the winner's row, so one pending request survives
    - Decisions lock the request row; deciding twice is a no-op

Usage:
    store = DowngradeGovernanceStore()

    if store.get_mode() == DowngradeDecisionMode.ADMIN_APPROVAL:
        request = store.create_or_update_pending_request(
            PendingDowngradeInput(owner=user, listing=listing,
                                  current_package=listing.package,
                                  target_package=package)
        )

    store.decide(request.id, DowngradeDecision.REJECT, actor=admin)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.db import IntegrityError, transaction
from django_fsm import TransitionNotAllowed

from billing.exceptions import InvalidStateTransitionError
from billing.locks import check_version
from billing.models import DowngradePolicy, DowngradeRequest
from billing.state_machines import (
    DowngradeDecision,
    DowngradeDecisionMode,
    DowngradeRequestStatus,
)
from core.exceptions import NotFoundError
from core.services import BaseService

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from authentication.models import User
    from listings.models import Listing, PricingPackage

# Sentinel for "field not supplied" in partial policy updates
UNSET: Any = object()

DEFAULT_CURRENT_PACKAGE_NAME = "Current plan"


@dataclass(frozen=True)
class PendingDowngradeInput:
    """
    Data for creating or refreshing a pending downgrade request.

    Attributes:
        owner: Listing owner asking for the downgrade
        listing: Listing to downgrade
        current_package: Package the listing is on now (may be None)
        target_package: Cheaper paid package requested
    """

    owner: User
    listing: Listing
    current_package: PricingPackage | None
    target_package: PricingPackage

    def snapshot(self) -> dict[str, Any]:
        return {
            "owner_email": self.owner.email or "",
            "owner_name": self.owner.name or "",
            "listing_name": self.listing.name,
            "current_package": self.current_package,
            "current_package_name": (
                self.current_package.name
                if self.current_package is not None
                else DEFAULT_CURRENT_PACKAGE_NAME
            ),
            "target_package": self.target_package,
            "target_package_name": self.target_package.name,
        }


class DowngradeGovernanceStore(BaseService):
    """
    Transactional store for downgrade policy and downgrade requests.
    """

    # =========================================================================
    # Policy
    # =========================================================================

    def get_policy(self) -> DowngradePolicy:
        return DowngradePolicy.load()

    def get_mode(self) -> DowngradeDecisionMode:
        """Current decision mode. Defaults to auto; unknown stored values read as auto."""
        return self.get_policy().decision_mode

    def set_mode(self, mode: str, actor: User | None = None) -> DowngradePolicy:
        return self.update_policy(mode=mode, actor=actor)

    def get_expired_listing_package_id(self) -> str | None:
        """
        Package id expired paid listings fall back to.

        The stored policy wins; without one, the EXPIRED_LISTING_PACKAGE_ID
        setting is used. None means no fallback is configured.
        """
        policy = self.get_policy()
        if policy.expired_listing_package_id is not None:
            return str(policy.expired_listing_package_id)
        configured = (getattr(settings, "EXPIRED_LISTING_PACKAGE_ID", "") or "").strip()
        return configured or None

    def set_expired_listing_package_id(
        self,
        package_id: Any,
        actor: User | None = None,
    ) -> DowngradePolicy:
        return self.update_policy(expired_listing_package_id=package_id, actor=actor)

    def update_policy(
        self,
        *,
        mode: Any = UNSET,
        expired_listing_package_id: Any = UNSET,
        actor: User | None = None,
        expected_version: int | None = None,
    ) -> DowngradePolicy:
        """
        Change one or both policy fields in a single transaction.

        Args:
            mode: New decision mode (normalised; unknown values become auto)
            expired_listing_package_id: Fallback package id, or None to clear
            actor: Admin making the change
            expected_version: Reject the write if the policy changed since read

        Raises:
            StaleRecordError: expected_version no longer matches
        """
        with self.atomic():
            if expected_version is not None:
                DowngradePolicy.load()
                policy = check_version(
                    DowngradePolicy, DowngradePolicy.SINGLETON_ID, expected_version
                )
            else:
                policy = DowngradePolicy.load(for_update=True)

            if mode is not UNSET:
                policy.mode = DowngradeDecisionMode.normalize(mode)
            if expired_listing_package_id is not UNSET:
                policy.expired_listing_package_id = expired_listing_package_id
            policy.updated_by = actor
            policy.save()

        self.get_logger().info(
            f"Downgrade policy updated: mode={policy.mode}",
            extra={
                "mode": policy.mode,
                "expired_listing_package_id": (
                    str(policy.expired_listing_package_id)
                    if policy.expired_listing_package_id
                    else None
                ),
                "actor_id": getattr(actor, "id", None),
                "version": policy.version,
            },
        )
        return policy

    # =========================================================================
    # Requests
    # =========================================================================

    def create_or_update_pending_request(
        self,
        data: PendingDowngradeInput,
    ) -> DowngradeRequest:
        """
        Upsert the pending request for (owner, listing).

        An existing pending request has its target and snapshot fields
        refreshed; otherwise a new pending request is inserted.
        """
        snapshot = data.snapshot()

        with self.atomic():
            existing = self._lock_pending(data.owner, data.listing)
            if existing is None:
                try:
                    with transaction.atomic():
                        request = DowngradeRequest.objects.create(
                            owner=data.owner,
                            listing=data.listing,
                            **snapshot,
                        )
                except IntegrityError:
                    # Lost the race against a concurrent insert for the same pair
                    existing = self._lock_pending(data.owner, data.listing)
                    if existing is None:
                        raise
                else:
                    self.get_logger().info(
                        f"Downgrade request {request.id} created",
                        extra=self._log_context(request),
                    )
                    return request

            for field_name, value in snapshot.items():
                setattr(existing, field_name, value)
            existing.save()

        self.get_logger().info(
            f"Downgrade request {existing.id} refreshed",
            extra=self._log_context(existing),
        )
        return existing

    def list_requests(self, status: str | None = None) -> QuerySet[DowngradeRequest]:
        """Requests newest first, optionally filtered by status."""
        queryset = DowngradeRequest.objects.select_related(
            "owner", "listing", "current_package", "target_package", "decided_by"
        ).order_by("-created_at")
        if status:
            queryset = queryset.filter(status=status)
        return queryset

    def get_request(self, request_id: Any) -> DowngradeRequest | None:
        return DowngradeRequest.objects.filter(pk=request_id).first()

    def decide(
        self,
        request_id: Any,
        decision: str,
        actor: User | None = None,
        expected_version: int | None = None,
    ) -> DowngradeRequest:
        """
        Move a pending request to approved or rejected.

        A request that is no longer pending is returned unchanged.

        Raises:
            NotFoundError: Unknown request id
            StaleRecordError: expected_version no longer matches
        """
        decision = DowngradeDecision(decision)

        with self.atomic():
            if expected_version is not None:
                request = check_version(DowngradeRequest, request_id, expected_version)
            else:
                request = (
                    DowngradeRequest.objects.select_for_update()
                    .filter(pk=request_id)
                    .first()
                )
                if request is None:
                    raise NotFoundError(
                        "Downgrade request not found.",
                        error_code="DOWNGRADE_REQUEST_NOT_FOUND",
                        details={"request_id": str(request_id)},
                    )

            if request.status != DowngradeRequestStatus.PENDING:
                self.get_logger().info(
                    f"Downgrade request {request.id} already {request.status}, not re-deciding",
                    extra=self._log_context(request),
                )
                return request

            try:
                if decision == DowngradeDecision.APPROVE:
                    request.approve(actor)
                else:
                    request.reject(actor)
            except TransitionNotAllowed as exc:
                raise InvalidStateTransitionError(
                    f"Cannot {decision.value} a {request.status} downgrade request",
                    details={
                        "current_state": request.status,
                        "target_state": decision.resulting_status,
                    },
                ) from exc
            request.save()

        self.get_logger().info(
            f"Downgrade request {request.id} {request.status}",
            extra={**self._log_context(request), "actor_id": getattr(actor, "id", None)},
        )
        return request

    # =========================================================================
    # Internals
    # =========================================================================

    @staticmethod
    def _lock_pending(owner, listing) -> DowngradeRequest | None:
        return (
            DowngradeRequest.objects.select_for_update()
            .filter(owner=owner, listing=listing, status=DowngradeRequestStatus.PENDING)
            .first()
        )

    @staticmethod
    def _log_context(request: DowngradeRequest) -> dict[str, Any]:
        return {
            "downgrade_request_id": str(request.id),
            "listing_id": str(request.listing_id),
            "target_package_id": str(request.target_package_id),
            "status": request.status,
        }
