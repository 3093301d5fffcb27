"""
Stripe API adapter for checkout and subscription operations.

This module provides the StripeAdapter class, the payment gateway used by
the billing services. All Stripe calls go through this adapter to ensure
consistent error handling, timeouts, idempotency, and observability.

Features:
- Configurable timeouts and network retries on all API calls
- Automatic error translation to domain exceptions
- Structured logging with timing metrics
- Idempotency keys on mutating calls

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)
- STRIPE_MAX_RETRIES: Network retry attempts inside the SDK (default: 2)

Usage:
    from billing.adapters import StripeAdapter, CreateCheckoutSessionParams

    gateway = StripeAdapter()
    session = gateway.create_checkout_session(
        CreateCheckoutSessionParams(
            mode="subscription",
            line_item=CheckoutLineItem(
                name="Premium - Plan Upgrade",
                unit_amount=2500,
                currency="gbp",
                recurring_interval_days=30,
            ),
            success_url="https://example.com/ok",
            cancel_url="https://example.com/cancel",
            metadata={"flow": "plan_upgrade", ...},
        )
    )
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

import stripe
from django.conf import settings

from billing.checkout import SESSION_MODE_PAYMENT, SESSION_MODE_SUBSCRIPTION
from billing.exceptions import (
    StripeAPIUnavailableError,
    StripeAuthenticationError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
)


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CheckoutLineItem:
    """
    Single priced line item of a checkout session.

    Attributes:
        name: Product name shown on the Stripe checkout page
        unit_amount: Price in the smallest currency unit (pence)
        currency: ISO 4217 currency code (lower case)
        description: Optional product description
        recurring_interval_days: Bill every N days (subscriptions only)
    """

    name: str
    unit_amount: int
    currency: str
    description: str = ""
    recurring_interval_days: int | None = None

    def to_stripe(self) -> dict[str, Any]:
        product_data: dict[str, Any] = {"name": self.name}
        if self.description:
            product_data["description"] = self.description

        price_data: dict[str, Any] = {
            "currency": self.currency,
            "unit_amount": self.unit_amount,
            "product_data": product_data,
        }
        if self.recurring_interval_days is not None:
            price_data["recurring"] = {
                "interval": "day",
                "interval_count": self.recurring_interval_days,
            }
        return {"quantity": 1, "price_data": price_data}


@dataclass
class CreateCheckoutSessionParams:
    """
    Parameters for creating a Stripe Checkout Session.

    Attributes:
        mode: 'payment' (one-time) or 'subscription'
        line_item: The single item being purchased
        success_url: Redirect after payment (may contain {CHECKOUT_SESSION_ID})
        cancel_url: Redirect when the buyer abandons checkout
        metadata: Key-value pairs attached to the session
        customer_email: Prefills the checkout email field
        subscription_metadata: Metadata copied onto the created subscription
        allow_promotion_codes: Whether promotion codes can be entered
        idempotency_key: Optional key for idempotent creation
    """

    mode: str
    line_item: CheckoutLineItem
    success_url: str
    cancel_url: str
    metadata: dict[str, str] = field(default_factory=dict)
    customer_email: str | None = None
    subscription_metadata: dict[str, str] | None = None
    allow_promotion_codes: bool = True
    idempotency_key: str | None = None

    def __post_init__(self) -> None:
        if self.mode not in (SESSION_MODE_PAYMENT, SESSION_MODE_SUBSCRIPTION):
            raise ValueError(f"Unsupported checkout mode: {self.mode}")
        if self.line_item.unit_amount <= 0:
            raise ValueError("unit_amount must be positive")
        if self.mode == SESSION_MODE_SUBSCRIPTION and not self.line_item.recurring_interval_days:
            raise ValueError("subscription checkout requires a recurring interval")


@dataclass
class CheckoutSessionResult:
    """
    Result from Stripe Checkout Session operations.

    Attributes:
        id: Checkout Session ID (cs_xxx)
        url: Hosted checkout URL (None once the session is complete)
        status: open, complete or expired
        mode: payment or subscription
        metadata: Attached metadata
        amount_total: Total charged in the smallest currency unit
        currency: Currency code
        customer_email: Email passed at creation
        customer_details_email: Email the buyer entered on the checkout page
        subscription_id: Subscription created by the session, if any
        raw_response: Full Stripe response dict (for debugging)
    """

    id: str
    url: str | None = None
    status: str | None = None
    mode: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    amount_total: int | None = None
    currency: str | None = None
    customer_email: str | None = None
    customer_details_email: str | None = None
    subscription_id: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class SubscriptionResult:
    """
    Result from Stripe Subscription operations.

    Attributes:
        id: Subscription ID (sub_xxx)
        status: active, past_due, canceled, ...
        metadata: Attached metadata
    """

    id: str
    status: str
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def is_canceled(self) -> bool:
        return self.status == "canceled"


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    Example:
        key = IdempotencyKeyGenerator.generate("cancel_subscription", "sub_123")
        # "cancel_subscription:sub_123:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str,
        attempt: int = 1,
    ) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]
        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


def _plain_dict(value: Any) -> dict[str, Any]:
    """Convert a StripeObject (or plain mapping) to a dict."""
    if value is None:
        return {}
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return dict(value)


def _object_id(value: Any) -> str | None:
    """Id of a possibly-expanded reference field."""
    if value is None or isinstance(value, str):
        return value
    return getattr(value, "id", None)


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Payment gateway adapter for Stripe Checkout and Subscriptions.

    One instance is built per process (see billing.services.providers) and
    shared by the billing services. Instances hold configuration only and
    are safe to share between threads.

    Usage:
        gateway = StripeAdapter()
        session = gateway.retrieve_checkout_session("cs_test_123")
        gateway.cancel_subscription("sub_123", idempotency_key=key)
    """

    _configure_lock = threading.Lock()

    def __init__(
        self,
        api_key: str | None = None,
        timeout_seconds: float | None = None,
        max_retries: int | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.STRIPE_SECRET_KEY
        self.timeout_seconds = (
            timeout_seconds
            if timeout_seconds is not None
            else getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        )
        self.max_retries = (
            max_retries if max_retries is not None else getattr(settings, "STRIPE_MAX_RETRIES", 2)
        )
        self._configured = False

    # =========================================================================
    # Configuration
    # =========================================================================

    def _configure_stripe(self) -> None:
        """Configure the Stripe SDK timeout and retries once per instance."""
        if self._configured:
            return
        with self._configure_lock:
            stripe.max_network_retries = self.max_retries
            stripe.default_http_client = stripe.RequestsClient(timeout=self.timeout_seconds)
            self._configured = True

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    # =========================================================================
    # Checkout Sessions
    # =========================================================================

    def create_checkout_session(
        self,
        params: CreateCheckoutSessionParams,
    ) -> CheckoutSessionResult:
        """
        Create a hosted Checkout Session.

        Returns:
            CheckoutSessionResult including the hosted checkout URL

        Raises:
            StripeInvalidRequestError: Invalid parameters
            StripeAPIUnavailableError: Stripe service unavailable
            StripeTimeoutError: Request timed out
        """
        log_context = {
            "operation": "create_checkout_session",
            "mode": params.mode,
            "unit_amount": params.line_item.unit_amount,
            "currency": params.line_item.currency,
            "flow": params.metadata.get("flow"),
        }

        request: dict[str, Any] = {
            "mode": params.mode,
            "line_items": [params.line_item.to_stripe()],
            "success_url": params.success_url,
            "cancel_url": params.cancel_url,
            "metadata": params.metadata,
            "allow_promotion_codes": params.allow_promotion_codes,
        }
        if params.customer_email:
            request["customer_email"] = params.customer_email
        if params.subscription_metadata is not None:
            request["subscription_data"] = {"metadata": params.subscription_metadata}
        if params.idempotency_key:
            request["idempotency_key"] = params.idempotency_key

        session = self._call(
            log_context,
            lambda: stripe.checkout.Session.create(api_key=self.api_key, **request),
        )
        return self._session_result(session)

    def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionResult:
        """
        Retrieve a Checkout Session by id.

        Raises:
            StripeInvalidRequestError: Unknown session id (stripe_code resource_missing)
            StripeAPIUnavailableError: Stripe service unavailable
        """
        log_context = {
            "operation": "retrieve_checkout_session",
            "checkout_session_id": session_id,
        }
        session = self._call(
            log_context,
            lambda: stripe.checkout.Session.retrieve(session_id, api_key=self.api_key),
        )
        return self._session_result(session)

    def list_checkout_sessions(self, limit: int = 100) -> list[CheckoutSessionResult]:
        """
        List the most recent Checkout Sessions (newest first).

        Args:
            limit: Number of sessions to fetch (Stripe caps this at 100)
        """
        log_context = {"operation": "list_checkout_sessions", "limit": limit}
        page = self._call(
            log_context,
            lambda: stripe.checkout.Session.list(limit=limit, api_key=self.api_key),
        )
        return [self._session_result(session) for session in page.data]

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def retrieve_subscription(self, subscription_id: str) -> SubscriptionResult:
        """Retrieve a Subscription by id."""
        log_context = {
            "operation": "retrieve_subscription",
            "subscription_id": subscription_id,
        }
        subscription = self._call(
            log_context,
            lambda: stripe.Subscription.retrieve(subscription_id, api_key=self.api_key),
        )
        return self._subscription_result(subscription)

    def cancel_subscription(
        self,
        subscription_id: str,
        idempotency_key: str,
    ) -> SubscriptionResult:
        """
        Cancel a Subscription immediately.

        Args:
            subscription_id: Stripe Subscription ID (sub_xxx)
            idempotency_key: Unique key for idempotent cancellation

        Raises:
            StripeInvalidRequestError: Subscription unknown or not cancelable
        """
        log_context = {
            "operation": "cancel_subscription",
            "subscription_id": subscription_id,
            "idempotency_key": idempotency_key,
        }
        subscription = self._call(
            log_context,
            lambda: stripe.Subscription.cancel(
                subscription_id,
                api_key=self.api_key,
                idempotency_key=idempotency_key,
            ),
        )
        return self._subscription_result(subscription)

    # =========================================================================
    # Internals
    # =========================================================================

    def _call(self, log_context: dict[str, Any], operation):
        """Run one SDK call with timing logs and error translation."""
        self._configure_stripe()
        logger = self.get_logger()

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)
        try:
            result = operation()
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            self._handle_stripe_error(e, log_context, duration_ms)
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Stripe operation completed",
            extra={**log_context, "duration_ms": duration_ms},
        )
        return result

    @staticmethod
    def _session_result(session: Any) -> CheckoutSessionResult:
        customer_details = getattr(session, "customer_details", None)
        return CheckoutSessionResult(
            id=session.id,
            url=getattr(session, "url", None),
            status=getattr(session, "status", None),
            mode=getattr(session, "mode", None),
            metadata=_plain_dict(getattr(session, "metadata", None)),
            amount_total=getattr(session, "amount_total", None),
            currency=getattr(session, "currency", None),
            customer_email=getattr(session, "customer_email", None),
            customer_details_email=getattr(customer_details, "email", None),
            subscription_id=_object_id(getattr(session, "subscription", None)),
            raw_response=_plain_dict(session) if hasattr(session, "to_dict") else {},
        )

    @staticmethod
    def _subscription_result(subscription: Any) -> SubscriptionResult:
        return SubscriptionResult(
            id=subscription.id,
            status=subscription.status,
            metadata=_plain_dict(getattr(subscription, "metadata", None)),
        )

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to domain exceptions.

        Raises:
            StripeInvalidRequestError: Invalid request parameters or unknown id
            StripeAuthenticationError: API key rejected
            StripeRateLimitError: Rate limited
            StripeTimeoutError: Request timed out
            StripeAPIUnavailableError: API unavailable or unexpected failure
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            raise StripeInvalidRequestError(str(error), stripe_code=error.code) from error

        if isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise StripeAuthenticationError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            ) from error

        if isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            ) from error

        if isinstance(error, stripe.APIConnectionError):
            if "timed out" in str(error).lower() or "timeout" in str(error).lower():
                logger.error("Stripe request timed out", extra=log_context)
                raise StripeTimeoutError(
                    "Stripe did not respond in time. Please retry.",
                    stripe_code="timeout",
                ) from error
            logger.error("Connection error to Stripe", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            ) from error

        if isinstance(error, stripe.StripeError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code="api_error",
            ) from error

        logger.error(
            f"Unexpected error from Stripe: {type(error).__name__}",
            extra=log_context,
            exc_info=True,
        )
        raise StripeAPIUnavailableError(
            f"Unexpected Stripe error: {error}",
            stripe_code="unknown_error",
        ) from error
