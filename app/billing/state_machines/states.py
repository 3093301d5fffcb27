"""
State enums for billing models.

These are Django TextChoices for database storage and admin integration.

State Machines Overview:

DowngradeRequest Status:
    pending → approved
    pending → rejected
    (approved and rejected are terminal)

DowngradePolicy Mode:
    auto            - downgrades execute immediately
    admin_approval  - downgrades queue a DowngradeRequest for an admin
"""

from __future__ import annotations

from django.db import models


class DowngradeRequestStatus(models.TextChoices):
    """
    States for the DowngradeRequest lifecycle.

    Terminal states: APPROVED, REJECTED

    State Flow:
        PENDING → APPROVED (admin approved, downgrade executed)
        PENDING → REJECTED (admin rejected, listing untouched)
    """

    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"

    @classmethod
    def terminal_states(cls) -> frozenset[str]:
        return frozenset({cls.APPROVED, cls.REJECTED})


class DowngradeDecisionMode(models.TextChoices):
    """How downgrades to a cheaper paid package are handled."""

    AUTO = "auto", "Automatic"
    ADMIN_APPROVAL = "admin_approval", "Admin approval"

    @classmethod
    def normalize(cls, value) -> DowngradeDecisionMode:
        """Map stored or legacy values to a mode; anything unknown means AUTO."""
        if value == cls.ADMIN_APPROVAL:
            return cls.ADMIN_APPROVAL
        return cls.AUTO


class DowngradeDecision(models.TextChoices):
    """Admin decision on a pending downgrade request."""

    APPROVE = "approve", "Approve"
    REJECT = "reject", "Reject"

    @property
    def resulting_status(self) -> DowngradeRequestStatus:
        if self == DowngradeDecision.APPROVE:
            return DowngradeRequestStatus.APPROVED
        return DowngradeRequestStatus.REJECTED
