"""
Admin decisions on queued downgrade requests.

Approving re-checks the request against the current state of the listing
and target package, executes the downgrade (cancelling subscriptions at the
gateway), and only then marks the request approved. Gateway calls cannot
run inside a database transaction, so the whole decision is serialised per
request with a Redis lock instead; two admins clicking approve at once
cannot both execute the downgrade.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from django.conf import settings

from billing.exceptions import PlanPolicyViolationError
from billing.locks import DistributedLock
from billing.services.downgrade_executor import DowngradeExecutionParams
from billing.state_machines import DowngradeDecision
from core.exceptions import NotFoundError, ValidationError
from core.services import BaseService
from listings.models import Listing

if TYPE_CHECKING:
    from authentication.models import User
    from billing.models import DowngradeRequest
    from billing.services.downgrade_executor import DowngradeExecutor
    from billing.services.governance import DowngradeGovernanceStore

APPROVED_MESSAGE = "Downgrade approved and applied."
REJECTED_MESSAGE = "Downgrade request rejected."
ALREADY_DECIDED_MESSAGE = "Downgrade request is already processed."


@dataclass
class DecisionOutcome:
    request: DowngradeRequest
    already_decided: bool = False
    message: str = ""


class DowngradeDecisionService(BaseService):
    """
    Applies admin approve/reject decisions.

    Usage:
        service = get_downgrade_decision_service()
        outcome = service.decide(request_id, "approve", actor=request.user)
    """

    def __init__(self, governance: DowngradeGovernanceStore, executor: DowngradeExecutor):
        self.governance = governance
        self.executor = executor

    def decide(self, request_id: Any, decision: str, actor: User) -> DecisionOutcome:
        """
        Approve or reject a downgrade request.

        Raises:
            NotFoundError: Unknown request id
            ValidationError: Listing gone or re-owned, target package inactive
            PlanPolicyViolationError: Target package is free
            LockAcquisitionError: Another decision on this request is running
            StripeError: Gateway failure while cancelling subscriptions
        """
        decision = DowngradeDecision(decision)
        ttl = getattr(settings, "DOWNGRADE_DECISION_LOCK_TTL_SECONDS", 120)

        with DistributedLock(f"downgrade-request:{request_id}", ttl=ttl):
            request = self.governance.get_request(request_id)
            if request is None:
                raise NotFoundError(
                    "Downgrade request not found.",
                    error_code="DOWNGRADE_REQUEST_NOT_FOUND",
                    details={"request_id": str(request_id)},
                )

            if not request.is_pending:
                self.get_logger().info(
                    f"Downgrade request {request.id} already {request.status}",
                    extra={"downgrade_request_id": str(request.id)},
                )
                return DecisionOutcome(
                    request=request,
                    already_decided=True,
                    message=ALREADY_DECIDED_MESSAGE,
                )

            if decision == DowngradeDecision.REJECT:
                request = self.governance.decide(request.id, decision, actor=actor)
                return DecisionOutcome(request=request, message=REJECTED_MESSAGE)

            self._apply(request)
            request = self.governance.decide(request.id, decision, actor=actor)
            return DecisionOutcome(request=request, message=APPROVED_MESSAGE)

    def _apply(self, request: DowngradeRequest) -> None:
        listing = Listing.objects.filter(pk=request.listing_id).first()
        if listing is None or listing.owner_id != request.owner_id:
            raise ValidationError(
                "Business no longer matches this downgrade request.",
                error_code="DOWNGRADE_LISTING_MISMATCH",
            )

        target = request.target_package
        if not target.active:
            raise ValidationError(
                "Target package is no longer valid.",
                error_code="DOWNGRADE_TARGET_INVALID",
            )
        if target.is_free:
            raise PlanPolicyViolationError(
                "Downgrading to a free plan is not allowed.",
                error_code="FREE_DOWNGRADE_FORBIDDEN",
            )

        if listing.package_id == target.id:
            return

        self.executor.execute(
            DowngradeExecutionParams(
                owner_user_id=str(request.owner_id),
                owner_email=request.owner_email or None,
                listing_id=str(listing.id),
                current_package_id=str(listing.package_id) if listing.package_id else None,
                target_package_id=str(target.id),
            )
        )
