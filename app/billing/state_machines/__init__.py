"""
State machine enums for billing models.
"""

from billing.state_machines.states import (
    DowngradeDecision,
    DowngradeDecisionMode,
    DowngradeRequestStatus,
)

__all__ = [
    "DowngradeDecision",
    "DowngradeDecisionMode",
    "DowngradeRequestStatus",
]
