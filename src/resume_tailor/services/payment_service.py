"""Stripe checkout for credit packs and idempotent webhook reconciliation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import structlog
from pydantic import BaseModel
from sqlalchemy import select, text, update
from sqlalchemy.ext.asyncio import AsyncSession

from resume_tailor.config import settings
from resume_tailor.database import unit_of_work
from resume_tailor.errors import InvalidPlan, InvalidSignature
from resume_tailor.integrations.stripe_billing import (
    BillingProvider,
    WebhookVerificationError,
)
from resume_tailor.models import Payment, User
from resume_tailor.models.base import new_id
from resume_tailor.models.billing import PAYMENT_COMPLETED, PAYMENT_FAILED, PAYMENT_PENDING
from resume_tailor.services.analytics_service import EVENT_PAYMENT, track_event
from resume_tailor.services.audit_logger import (
    OUTCOME_NOOP,
    OUTCOME_OK,
    OUTCOME_REJECTED,
    EventRecorder,
)
from resume_tailor.services.entitlement_service import grant_paid_credits

log = structlog.get_logger()

CURRENCY = "usd"

EVENT_CHECKOUT_COMPLETED = "checkout.session.completed"
EVENT_CHECKOUT_EXPIRED = "checkout.session.expired"
EVENT_CHECKOUT_ASYNC_FAILED = "checkout.session.async_payment_failed"


# ---------------------------------------------------------------------------
# Plan catalog
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Plan:
    id: str
    name: str
    price: int
    credits: int
    description: str


PRICING_PLANS: dict[str, Plan] = {
    "basic": Plan("basic", "Basic", 499, 5, "5 resume revisions"),
    "professional": Plan("professional", "Professional", 999, 15, "15 resume revisions"),
    "unlimited": Plan("unlimited", "Power Pack", 1999, 50, "50 resume revisions"),
}


def get_plan(plan_id: str) -> Plan:
    """Look up a plan. Raises InvalidPlan (400) for unknown ids."""
    plan = PRICING_PLANS.get(plan_id)
    if plan is None:
        raise InvalidPlan()
    return plan


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class PlanResponse(BaseModel):
    id: str
    name: str
    price: int
    credits: int
    description: str
    currency: str = CURRENCY


class CheckoutRequest(BaseModel):
    plan_id: str


class CheckoutSession(BaseModel):
    url: str
    session_id: str


class PaymentResponse(BaseModel):
    id: str
    stripe_session_id: str
    amount: int
    currency: str
    status: str
    credits_granted: int
    created_at: datetime
    completed_at: datetime | None

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# PaymentService
# ---------------------------------------------------------------------------

class PaymentService:
    """Creates checkout sessions and settles provider webhooks exactly once."""

    def __init__(
        self,
        db: AsyncSession,
        billing: BillingProvider,
        recorder: EventRecorder,
    ) -> None:
        self.db = db
        self.billing = billing
        self.recorder = recorder

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    async def create_checkout(self, user: User, plan_id: str) -> CheckoutSession:
        """Start a hosted checkout for *plan_id* and record a pending payment."""
        plan = get_plan(plan_id)

        customer_id = user.stripe_customer_id or await self._ensure_customer(user)

        base_url = settings.PUBLIC_BASE_URL.rstrip("/")
        session = await self.billing.create_checkout_session(
            customer_id=customer_id,
            amount=plan.price,
            currency=CURRENCY,
            product_name=f"{plan.name} - {plan.credits} Resume Revisions",
            metadata={
                "user_id": user.id,
                "plan_id": plan.id,
                "credits": str(plan.credits),
            },
            success_url=f"{base_url}/payment/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{base_url}/payment/cancel",
        )

        # A webhook that beat us here has already written the row.
        async with unit_of_work(self.db):
            await self.db.execute(
                text(
                    "INSERT INTO payments "
                    "(id, user_id, stripe_session_id, amount, currency, status, "
                    "credits_granted, created_at) "
                    "VALUES (:id, :user_id, :session_id, :amount, :currency, :status, "
                    ":credits, :created_at) "
                    "ON CONFLICT (stripe_session_id) DO NOTHING"
                ),
                {
                    "id": new_id(),
                    "user_id": user.id,
                    "session_id": session.session_id,
                    "amount": plan.price,
                    "currency": CURRENCY,
                    "status": PAYMENT_PENDING,
                    "credits": plan.credits,
                    "created_at": datetime.now(timezone.utc),
                },
            )

        log.info(
            "checkout_created",
            user_id=user.id,
            plan_id=plan.id,
            session_id=session.session_id,
        )
        return CheckoutSession(url=session.url, session_id=session.session_id)

    async def _ensure_customer(self, user: User) -> str:
        """Create the provider customer and store it unless another request did first.

        The first stored id wins; a customer created by the losing request is
        left unused at the provider.
        """
        created_id = await self.billing.create_customer(user.email, user.id)
        async with unit_of_work(self.db):
            result = await self.db.execute(
                update(User)
                .where(User.id == user.id, User.stripe_customer_id.is_(None))
                .values(stripe_customer_id=created_id)
                .returning(User.stripe_customer_id)
                .execution_options(synchronize_session=False)
            )
            customer_id = result.scalar_one_or_none()
            if customer_id is None:
                stored = await self.db.execute(
                    select(User.stripe_customer_id).where(User.id == user.id)
                )
                customer_id = stored.scalar_one()
                log.warning(
                    "stripe_customer_race_lost",
                    user_id=user.id,
                    discarded_customer_id=created_id,
                    customer_id=customer_id,
                )
        user.stripe_customer_id = customer_id
        return customer_id

    async def list_payments_for_user(self, user_id: str) -> list[Payment]:
        result = await self.db.execute(
            select(Payment)
            .where(Payment.user_id == user_id)
            .order_by(Payment.created_at.desc())
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Webhook entry-point
    # ------------------------------------------------------------------

    async def handle_webhook(self, payload: bytes, signature: str | None) -> None:
        """Verify a provider webhook and apply it at most once.

        Raises InvalidSignature (400) when the header is missing or the
        payload fails verification. Authenticated but unusable events are
        logged and acknowledged so the provider stops retrying them.
        """
        if not signature:
            self.recorder.record("webhook", OUTCOME_REJECTED, reason="missing_signature")
            raise InvalidSignature()
        try:
            event = self.billing.construct_event(payload, signature)
        except WebhookVerificationError as exc:
            self.recorder.record("webhook", OUTCOME_REJECTED, reason=str(exc))
            raise InvalidSignature() from exc

        event_id = event.get("id")
        event_type = event.get("type")
        session_obj = (event.get("data") or {}).get("object") or {}

        async with unit_of_work(self.db):
            if event_id and not await self._claim_event(event_id):
                log.info("webhook_duplicate", event_id=event_id, event_type=event_type)
                self.recorder.record(
                    "webhook", OUTCOME_NOOP, event_id=event_id, event_type=event_type,
                )
                if event_type == EVENT_CHECKOUT_COMPLETED:
                    await self._track_redelivery(event_id, session_obj)
                return

            if event_type == EVENT_CHECKOUT_COMPLETED:
                await self._process_checkout_completed(event_id, session_obj)
            elif event_type in (EVENT_CHECKOUT_EXPIRED, EVENT_CHECKOUT_ASYNC_FAILED):
                await self._process_checkout_failed(event_id, session_obj)
            else:
                log.info("webhook_ignored", event_id=event_id, event_type=event_type)

    # ------------------------------------------------------------------
    # Webhook helpers
    # ------------------------------------------------------------------

    async def _claim_event(self, event_id: str) -> bool:
        """Record an event id. False when it was already processed."""
        result = await self.db.execute(
            text(
                "INSERT INTO processed_webhooks (event_id, processed_at) "
                "VALUES (:event_id, :processed_at) "
                "ON CONFLICT (event_id) DO NOTHING "
                "RETURNING event_id"
            ),
            {"event_id": event_id, "processed_at": datetime.now(timezone.utc)},
        )
        return result.fetchone() is not None

    async def _process_checkout_completed(
        self,
        event_id: str | None,
        session_obj: dict[str, Any],
    ) -> None:
        session_id = session_obj.get("id")
        metadata = session_obj.get("metadata") or {}
        user_id = metadata.get("user_id")
        try:
            credits = int(metadata.get("credits"))
        except (TypeError, ValueError):
            credits = 0

        if not session_id or not user_id or credits <= 0:
            log.warning(
                "webhook_malformed",
                event_id=event_id,
                session_id=session_id,
                metadata=dict(metadata),
            )
            self.recorder.record(
                "webhook", OUTCOME_REJECTED, event_id=event_id, reason="malformed_metadata",
            )
            return

        user_exists = await self.db.execute(
            text("SELECT 1 FROM users WHERE id = :user_id"),
            {"user_id": user_id},
        )
        if user_exists.fetchone() is None:
            log.warning("webhook_unknown_user", event_id=event_id, user_id=user_id)
            self.recorder.record(
                "webhook", OUTCOME_REJECTED, event_id=event_id, reason="unknown_user",
            )
            return

        amount = session_obj.get("amount_total") or 0
        payment_intent = session_obj.get("payment_intent")

        transitioned = await self._transition_to_completed(session_id, payment_intent)
        if not transitioned:
            inserted = await self._insert_completed(
                session_id, user_id, amount, credits, payment_intent,
            )
            if inserted:
                transitioned = True
            else:
                # Lost to a concurrent pending insert; that row is now visible.
                transitioned = await self._transition_to_completed(
                    session_id, payment_intent,
                )

        if transitioned:
            new_balance = await grant_paid_credits(self.db, user_id, credits)
            log.info(
                "payment_completed",
                user_id=user_id,
                session_id=session_id,
                credits=credits,
                paid_credits_remaining=new_balance,
            )
            self.recorder.record(
                "payment", OUTCOME_OK,
                user_id=user_id, session_id=session_id, credits=credits, amount=amount,
            )
        else:
            log.info("payment_already_completed", session_id=session_id)
            self.recorder.record("payment", OUTCOME_NOOP, session_id=session_id)

        await track_event(
            self.db, EVENT_PAYMENT, user_id,
            {
                "session_id": session_id,
                "plan_id": metadata.get("plan_id"),
                "amount": amount,
                "credits": credits,
                "granted": transitioned,
            },
        )

    async def _track_redelivery(self, event_id: str, session_obj: dict[str, Any]) -> None:
        # Unattributed: the metadata user may not exist, and nothing is granted.
        metadata = session_obj.get("metadata") or {}
        await track_event(
            self.db, EVENT_PAYMENT, None,
            {
                "session_id": session_obj.get("id"),
                "event_id": event_id,
                "user_id": metadata.get("user_id"),
                "plan_id": metadata.get("plan_id"),
                "amount": session_obj.get("amount_total") or 0,
                "granted": False,
                "duplicate": True,
            },
        )

    async def _transition_to_completed(
        self,
        session_id: str,
        payment_intent: str | None,
    ) -> bool:
        result = await self.db.execute(
            text(
                "UPDATE payments "
                "SET status = :completed, completed_at = :now, "
                "stripe_payment_intent_id = COALESCE(:payment_intent, stripe_payment_intent_id) "
                "WHERE stripe_session_id = :session_id AND status <> :completed "
                "RETURNING id"
            ),
            {
                "completed": PAYMENT_COMPLETED,
                "now": datetime.now(timezone.utc),
                "payment_intent": payment_intent,
                "session_id": session_id,
            },
        )
        return result.fetchone() is not None

    async def _insert_completed(
        self,
        session_id: str,
        user_id: str,
        amount: int,
        credits: int,
        payment_intent: str | None,
    ) -> bool:
        now = datetime.now(timezone.utc)
        result = await self.db.execute(
            text(
                "INSERT INTO payments "
                "(id, user_id, stripe_session_id, stripe_payment_intent_id, amount, "
                "currency, status, credits_granted, created_at, completed_at) "
                "VALUES (:id, :user_id, :session_id, :payment_intent, :amount, "
                ":currency, :status, :credits, :now, :now) "
                "ON CONFLICT (stripe_session_id) DO NOTHING "
                "RETURNING id"
            ),
            {
                "id": new_id(),
                "user_id": user_id,
                "session_id": session_id,
                "payment_intent": payment_intent,
                "amount": amount,
                "currency": CURRENCY,
                "status": PAYMENT_COMPLETED,
                "credits": credits,
                "now": now,
            },
        )
        return result.fetchone() is not None

    async def _process_checkout_failed(
        self,
        event_id: str | None,
        session_obj: dict[str, Any],
    ) -> None:
        session_id = session_obj.get("id")
        if not session_id:
            log.warning("webhook_malformed", event_id=event_id, reason="missing_session_id")
            return
        result = await self.db.execute(
            text(
                "UPDATE payments SET status = :failed "
                "WHERE stripe_session_id = :session_id AND status = :pending "
                "RETURNING user_id"
            ),
            {
                "failed": PAYMENT_FAILED,
                "pending": PAYMENT_PENDING,
                "session_id": session_id,
            },
        )
        row = result.fetchone()
        log.info(
            "payment_failed",
            event_id=event_id,
            session_id=session_id,
            updated=row is not None,
        )
