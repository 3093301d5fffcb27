"""
Downgrade governance models.

DowngradePolicy is a single row holding the downgrade decision mode and the
package expired paid listings fall back to. DowngradeRequest records a
downgrade awaiting (or having received) an admin decision.

Usage:
    from billing.models import DowngradePolicy, DowngradeRequest

    policy = DowngradePolicy.load()
    if policy.mode == DowngradeDecisionMode.ADMIN_APPROVAL:
        ...

    # State transitions using django-fsm
    request.approve(actor)   # pending -> approved
    request.save()

Invariants:
    - At most one pending request per (owner, listing), enforced by a
      partial unique constraint
    - Status only moves pending -> approved or pending -> rejected
    - Requests are never deleted
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone
from django_fsm import FSMField, transition

from billing.state_machines import DowngradeDecisionMode, DowngradeRequestStatus
from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin
from core.models import BaseModel


class DowngradePolicy(VersionedMixin, models.Model):
    """
    Singleton downgrade governance settings.

    Fields:
        mode: auto (execute downgrades immediately) or admin_approval
        expired_listing_package: Package expired paid listings fall back to
        updated_by: Admin who last changed the policy
        version: Optimistic locking version
    """

    SINGLETON_ID = 1

    id = models.PositiveSmallIntegerField(primary_key=True, default=SINGLETON_ID, editable=False)

    mode = models.CharField(
        max_length=20,
        choices=DowngradeDecisionMode.choices,
        default=DowngradeDecisionMode.AUTO,
        help_text="How downgrades to a cheaper paid package are handled",
    )
    expired_listing_package = models.ForeignKey(
        "listings.PricingPackage",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Package expired paid listings are moved to",
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Downgrade policy"
        verbose_name_plural = "Downgrade policy"

    def __str__(self) -> str:
        return f"DowngradePolicy(mode={self.mode})"

    @classmethod
    def load(cls, for_update: bool = False) -> DowngradePolicy:
        """
        Return the policy row, creating it with defaults on first use.

        Args:
            for_update: Lock the row (caller must be inside a transaction)
        """
        queryset = cls.objects.select_for_update() if for_update else cls.objects
        policy = queryset.filter(pk=cls.SINGLETON_ID).first()
        if policy is None:
            policy, _ = cls.objects.get_or_create(pk=cls.SINGLETON_ID)
            if for_update:
                policy = cls.objects.select_for_update().get(pk=cls.SINGLETON_ID)
        return policy

    @property
    def decision_mode(self) -> DowngradeDecisionMode:
        return DowngradeDecisionMode.normalize(self.mode)


class DowngradeRequest(UUIDPrimaryKeyMixin, VersionedMixin, BaseModel):
    """
    A listing downgrade awaiting admin approval.

    Owner, listing and package names are snapshotted so the admin queue
    stays readable when the records change later.

    State Flow:
        PENDING -> APPROVED
        PENDING -> REJECTED
    """

    # ==========================================================================
    # Requester
    # ==========================================================================

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="downgrade_requests",
    )
    owner_email = models.EmailField(blank=True, default="")
    owner_name = models.CharField(max_length=150, blank=True, default="")

    # ==========================================================================
    # Listing & Packages
    # ==========================================================================

    listing = models.ForeignKey(
        "listings.Listing",
        on_delete=models.CASCADE,
        related_name="downgrade_requests",
    )
    listing_name = models.CharField(max_length=160)

    current_package = models.ForeignKey(
        "listings.PricingPackage",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    current_package_name = models.CharField(max_length=120, blank=True, default="")

    target_package = models.ForeignKey(
        "listings.PricingPackage",
        on_delete=models.PROTECT,
        related_name="+",
    )
    target_package_name = models.CharField(max_length=120)

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=DowngradeRequestStatus.PENDING,
        choices=DowngradeRequestStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current status of the request (managed by FSM)",
    )

    # ==========================================================================
    # Decision
    # ==========================================================================

    decided_at = models.DateTimeField(null=True, blank=True)
    decided_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    decided_by_name = models.CharField(max_length=150, blank=True, default="")

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Downgrade request"
        verbose_name_plural = "Downgrade requests"
        indexes = [
            models.Index(fields=["status", "created_at"], name="downgrade_status_created_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["owner", "listing"],
                condition=models.Q(status=DowngradeRequestStatus.PENDING),
                name="unique_pending_downgrade_request",
            ),
        ]

    def __str__(self) -> str:
        return f"DowngradeRequest({self.id}, {self.status}, {self.listing_name})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    def _stamp_decision(self, actor) -> None:
        self.decided_at = timezone.now()
        self.decided_by = actor
        self.decided_by_name = actor.get_full_name() if actor is not None else ""

    @transition(
        field=status,
        source=DowngradeRequestStatus.PENDING,
        target=DowngradeRequestStatus.APPROVED,
    )
    def approve(self, actor=None):
        """
        Record the admin's approval.

        Transition: PENDING -> APPROVED

        The downgrade itself is executed by the caller before this.
        """
        self._stamp_decision(actor)

    @transition(
        field=status,
        source=DowngradeRequestStatus.PENDING,
        target=DowngradeRequestStatus.REJECTED,
    )
    def reject(self, actor=None):
        """
        Record the admin's rejection.

        Transition: PENDING -> REJECTED
        """
        self._stamp_decision(actor)

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_pending(self) -> bool:
        return self.status == DowngradeRequestStatus.PENDING
