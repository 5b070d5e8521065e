"""Stripe integration for credit-pack checkout.

Wraps the three provider calls the payment service needs: creating a
customer, creating a hosted checkout session, and verifying webhook
signatures.

Usage:
    from resume_tailor.integrations.stripe_billing import StripeBillingClient

    billing = StripeBillingClient()
    customer_id = await billing.create_customer(email="a@example.com", user_id="user_123")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import stripe

from resume_tailor.config import settings


@dataclass(frozen=True)
class ProviderSession:
    session_id: str
    url: str


class WebhookVerificationError(Exception):
    """Raised when a webhook payload or its signature cannot be verified."""


class BillingProvider(Protocol):
    async def create_customer(self, email: str, user_id: str) -> str: ...

    async def create_checkout_session(
        self,
        customer_id: str,
        amount: int,
        currency: str,
        product_name: str,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
    ) -> ProviderSession: ...

    def construct_event(self, payload: bytes, signature: str) -> dict[str, Any]: ...


class StripeBillingClient:
    """Manages Stripe customers, checkout sessions, and webhook events."""

    def __init__(
        self,
        secret_key: str | None = None,
        webhook_secret: str | None = None,
    ) -> None:
        stripe.api_key = secret_key or settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    async def create_customer(self, email: str, user_id: str) -> str:
        """Create a Stripe customer and return its id."""
        customer = stripe.Customer.create(
            email=email,
            metadata={"user_id": user_id},
        )
        return customer.id

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    async def create_checkout_session(
        self,
        customer_id: str,
        amount: int,
        currency: str,
        product_name: str,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
    ) -> ProviderSession:
        """Create a one-off hosted checkout session for a single line item."""
        session = stripe.checkout.Session.create(
            customer=customer_id,
            payment_method_types=["card"],
            line_items=[
                {
                    "price_data": {
                        "currency": currency,
                        "unit_amount": amount,
                        "product_data": {"name": product_name},
                    },
                    "quantity": 1,
                }
            ],
            mode="payment",
            metadata=metadata,
            success_url=success_url,
            cancel_url=cancel_url,
        )
        return ProviderSession(session_id=session.id, url=session.url)

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    def construct_event(self, payload: bytes, signature: str) -> dict[str, Any]:
        """Verify the signature header and return the parsed event.

        Raises WebhookVerificationError for a bad signature or a payload
        that is not a valid event.
        """
        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                self.webhook_secret,
            )
        except stripe.SignatureVerificationError as exc:
            raise WebhookVerificationError("signature mismatch") from exc
        except ValueError as exc:
            raise WebhookVerificationError("invalid payload") from exc
        return event.to_dict() if hasattr(event, "to_dict") else dict(event)
