"""Stripe webhook endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from resume_tailor.api.dependencies import get_payment_service
from resume_tailor.services.payment_service import PaymentService

router = APIRouter(prefix="/api/v1/webhooks", tags=["webhooks"])


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    payments: PaymentService = Depends(get_payment_service),
):
    """Receive and process Stripe webhook events.

    Reads the raw request body and the Stripe-Signature header, then
    delegates to the payment service for verification and handling.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    await payments.handle_webhook(payload, signature)
    return {"received": True}
