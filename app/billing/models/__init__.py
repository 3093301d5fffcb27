"""
Billing models.

Models:
    - DowngradePolicy: Singleton downgrade governance settings
    - DowngradeRequest: Downgrade awaiting an admin decision
"""

from billing.models.downgrade import DowngradePolicy, DowngradeRequest

__all__ = [
    "DowngradePolicy",
    "DowngradeRequest",
]
