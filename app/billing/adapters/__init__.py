"""
Payment gateway adapters.
"""

from billing.adapters.stripe_adapter import (
    CheckoutLineItem,
    CheckoutSessionResult,
    CreateCheckoutSessionParams,
    IdempotencyKeyGenerator,
    StripeAdapter,
    SubscriptionResult,
)

__all__ = [
    "CheckoutLineItem",
    "CheckoutSessionResult",
    "CreateCheckoutSessionParams",
    "IdempotencyKeyGenerator",
    "StripeAdapter",
    "SubscriptionResult",
]
