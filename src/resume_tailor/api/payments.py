"""Plan catalog, checkout, and payment history endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from resume_tailor.api.dependencies import get_current_user, get_payment_service
from resume_tailor.models import User
from resume_tailor.services.payment_service import (
    PRICING_PLANS,
    CheckoutRequest,
    CheckoutSession,
    PaymentResponse,
    PaymentService,
    PlanResponse,
)

router = APIRouter(prefix="/api/v1/payments", tags=["payments"])


@router.get("/plans", response_model=list[PlanResponse])
async def list_plans():
    """Return the purchasable credit packs."""
    return [
        PlanResponse(
            id=plan.id,
            name=plan.name,
            price=plan.price,
            credits=plan.credits,
            description=plan.description,
        )
        for plan in PRICING_PLANS.values()
    ]


@router.post("/checkout", response_model=CheckoutSession)
async def create_checkout(
    body: CheckoutRequest,
    current_user: User = Depends(get_current_user),
    payments: PaymentService = Depends(get_payment_service),
):
    """Create a hosted checkout session for the requested plan."""
    return await payments.create_checkout(current_user, body.plan_id)


@router.get("", response_model=list[PaymentResponse])
async def list_payments(
    current_user: User = Depends(get_current_user),
    payments: PaymentService = Depends(get_payment_service),
):
    return await payments.list_payments_for_user(current_user.id)
