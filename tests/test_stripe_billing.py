"""Tests for the Stripe billing integration.

All Stripe API calls are mocked -- no real Stripe account is required.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import stripe

from resume_tailor.integrations.stripe_billing import (
    StripeBillingClient,
    WebhookVerificationError,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _mock_session(session_id: str = "cs_test_123") -> MagicMock:
    """Build a fake stripe.checkout.Session object."""
    session = MagicMock()
    session.id = session_id
    session.url = f"https://checkout.stripe.com/c/pay/{session_id}"
    return session


def _client() -> StripeBillingClient:
    return StripeBillingClient(secret_key="sk_test_123", webhook_secret="whsec_test")


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_customer_tags_user_id():
    customer = MagicMock()
    customer.id = "cus_001"

    with patch("stripe.Customer.create", return_value=customer) as mock_create:
        customer_id = await _client().create_customer("a@example.com", "user_1")

    assert customer_id == "cus_001"
    mock_create.assert_called_once_with(
        email="a@example.com", metadata={"user_id": "user_1"},
    )


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_checkout_session_single_line_item():
    with patch(
        "stripe.checkout.Session.create", return_value=_mock_session("cs_abc"),
    ) as mock_create:
        session = await _client().create_checkout_session(
            customer_id="cus_001",
            amount=999,
            currency="usd",
            product_name="Professional - 15 Resume Revisions",
            metadata={"user_id": "user_1", "plan_id": "professional", "credits": "15"},
            success_url="https://app.test/payment/success?session_id={CHECKOUT_SESSION_ID}",
            cancel_url="https://app.test/payment/cancel",
        )

    assert session.session_id == "cs_abc"
    assert session.url.endswith("cs_abc")

    kwargs = mock_create.call_args.kwargs
    assert kwargs["customer"] == "cus_001"
    assert kwargs["mode"] == "payment"
    assert kwargs["metadata"]["credits"] == "15"
    [item] = kwargs["line_items"]
    assert item["quantity"] == 1
    assert item["price_data"]["unit_amount"] == 999
    assert item["price_data"]["currency"] == "usd"


# ---------------------------------------------------------------------------
# Webhooks
# ---------------------------------------------------------------------------

def test_construct_event_returns_plain_dict():
    event = {"id": "evt_1", "type": "checkout.session.completed", "data": {"object": {}}}

    with patch("stripe.Webhook.construct_event", return_value=event) as mock_construct:
        result = _client().construct_event(b"{}", "t=1,v1=abc")

    assert result == event
    mock_construct.assert_called_once_with(b"{}", "t=1,v1=abc", "whsec_test")


def test_construct_event_bad_signature_raises():
    error = stripe.SignatureVerificationError("No signatures found", "t=1,v1=bad")

    with patch("stripe.Webhook.construct_event", side_effect=error):
        with pytest.raises(WebhookVerificationError, match="signature"):
            _client().construct_event(b"{}", "t=1,v1=bad")


def test_construct_event_invalid_payload_raises():
    with patch("stripe.Webhook.construct_event", side_effect=ValueError("bad json")):
        with pytest.raises(WebhookVerificationError, match="payload"):
            _client().construct_event(b"not json", "t=1,v1=abc")
