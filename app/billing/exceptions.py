"""
Billing exceptions for plan transitions and checkout verification.

Exception Hierarchy:
    PaymentError (base for billing domain, 400)
    ├── PaymentVerificationError - Checkout session failed a verification check
    │   └── PaymentRequiredError - Paid action attempted without a valid payment (402)
    ├── PlanPolicyViolationError - Transition forbidden by plan rules
    └── PaymentProcessingError - Payment gateway failures (502)
        └── StripeError - Base for all Stripe errors
            ├── StripeInvalidRequestError - Invalid request params (permanent)
            ├── StripeAuthenticationError - Bad API key (permanent)
            ├── StripeRateLimitError - Rate limited (transient, retry)
            ├── StripeAPIUnavailableError - API unavailable (transient, retry)
            └── StripeTimeoutError - Request timeout (transient, retry)

    StaleRecordError - Optimistic locking conflict (inherits ConflictError)
    LockAcquisitionError - Distributed lock timeout (inherits ConflictError)
    InvalidStateTransitionError - FSM transition not allowed (inherits ConflictError)

Usage:
    from billing.exceptions import PaymentVerificationError

    if session.status != "complete":
        raise PaymentVerificationError(
            "Checkout session is not complete.",
            error_code="CHECKOUT_INCOMPLETE",
            details={"session_id": session.id, "status": session.status},
        )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Billing Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all billing operations.

    Example:
        try:
            engine.request_transition(...)
        except PaymentError as e:
            return Response(e.to_dict(), status=e.http_status)
    """

    default_error_code: str = "PAYMENT_ERROR"
    http_status: int = 400


class PaymentVerificationError(PaymentError):
    """
    Raised when a checkout session does not prove the claimed payment.

    Verification fails closed: any mismatch in flow, owner, listing,
    package, payment mode, completion status or session mode raises this
    and nothing is mutated. The message stays generic; the failed check is
    in error_code and details for logs.
    """

    default_error_code: str = "PAYMENT_VERIFICATION_FAILED"


class PaymentRequiredError(PaymentVerificationError):
    """
    Raised when a paid package is selected without a verified payment.

    Used by listing submission, which answers HTTP 402 instead of 400.
    """

    default_error_code: str = "PAYMENT_REQUIRED"
    http_status: int = 402


class PlanPolicyViolationError(PaymentError):
    """
    Raised when a requested plan transition breaks a plan rule.

    Use for:
    - Requesting the package the listing already has
    - Downgrading to a free package (always rejected)
    """

    default_error_code: str = "PLAN_POLICY_VIOLATION"


class PaymentProcessingError(PaymentError):
    """Raised when the payment gateway cannot complete a call."""

    default_error_code: str = "PAYMENT_PROCESSING_ERROR"
    http_status: int = 502


# =============================================================================
# Stripe-Specific Exceptions
# =============================================================================


class StripeError(PaymentProcessingError):
    """
    Base exception for all Stripe-related errors.

    Attributes:
        stripe_code: Stripe's internal error code
        is_retryable: Whether the operation can be retried

    Use is_retryable to determine retry behavior:
    - True: Transient error, safe to retry with backoff
    - False: Permanent error, do not retry
    """

    default_error_code: str = "STRIPE_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class StripeInvalidRequestError(StripeError):
    """
    Invalid request parameters sent to Stripe.

    Includes lookups of unknown ids (stripe_code "resource_missing"), which
    verification treats as a failed check rather than a gateway outage.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"
    is_retryable: bool = False


class StripeAuthenticationError(StripeError):
    """Stripe rejected the API key. Operational issue, alert on it."""

    default_error_code: str = "STRIPE_AUTHENTICATION_FAILED"
    is_retryable: bool = False


# -----------------------------------------------------------------------------
# Transient Errors (safe to retry with backoff)
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    """Rate limited by Stripe API."""

    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """
    Stripe API is temporarily unavailable.

    This covers network connectivity issues and Stripe server errors (5xx).
    """

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True


class StripeTimeoutError(StripeError):
    """
    Stripe API call timed out (STRIPE_API_TIMEOUT_SECONDS).

    The operation may have succeeded on Stripe's side. Mutating calls carry
    idempotency keys so a retry cannot repeat them.
    """

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True


# =============================================================================
# Concurrency Control Exceptions
# =============================================================================


class StaleRecordError(ConflictError):
    """
    Raised when optimistic locking detects concurrent modification.

    The record changed between the caller's read and its update. The caller
    should reload and retry, or abort.
    """

    default_error_code: str = "STALE_RECORD"


class LockAcquisitionError(ConflictError):
    """Raised when a distributed lock cannot be acquired within its timeout."""

    default_error_code: str = "LOCK_ACQUISITION_FAILED"


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a state machine transition is not allowed.

    Wraps django-fsm's TransitionNotAllowed in the standard error format.
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


__all__ = [
    "PaymentError",
    "PaymentVerificationError",
    "PaymentRequiredError",
    "PlanPolicyViolationError",
    "PaymentProcessingError",
    "StripeError",
    "StripeInvalidRequestError",
    "StripeAuthenticationError",
    "StripeRateLimitError",
    "StripeAPIUnavailableError",
    "StripeTimeoutError",
    "StaleRecordError",
    "LockAcquisitionError",
    "InvalidStateTransitionError",
]
