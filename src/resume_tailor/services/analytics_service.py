"""Analytics event log -- append-only tracking and the admin summary."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel
from sqlalchemy import and_, func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from resume_tailor.models import AnalyticsEvent, Payment, Resume, Revision, User
from resume_tailor.models.base import new_id
from resume_tailor.models.billing import PAYMENT_COMPLETED
from resume_tailor.models.user import STATUS_ACTIVE

EVENT_SIGNUP = "signup"
EVENT_LOGIN = "login"
EVENT_UPLOAD = "upload"
EVENT_TAILOR = "tailor"
EVENT_PAYMENT = "payment"
EVENT_ERROR = "error"


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class AnalyticsSummary(BaseModel):
    total_users: int
    active_users_7d: int
    total_resumes: int
    total_revisions: int
    total_payments: int
    revenue: int


class AnalyticsEventResponse(BaseModel):
    id: str
    event_type: str
    user_id: str | None
    metadata: dict[str, Any] | None
    created_at: datetime

    @classmethod
    def from_event(cls, event: AnalyticsEvent) -> "AnalyticsEventResponse":
        return cls(
            id=event.id,
            event_type=event.event_type,
            user_id=event.user_id,
            metadata=event.event_metadata,
            created_at=event.created_at,
        )


# ---------------------------------------------------------------------------
# Service functions
# ---------------------------------------------------------------------------

async def track_event(
    db: AsyncSession,
    event_type: str,
    user_id: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> str:
    """Append one analytics event and return its id.

    The caller owns the transaction; nothing is committed here.
    """
    event_id = new_id()
    await db.execute(
        insert(AnalyticsEvent).values(
            id=event_id,
            event_type=event_type,
            user_id=user_id,
            event_metadata=metadata or {},
            created_at=datetime.now(timezone.utc),
        )
    )
    return event_id


async def list_events(db: AsyncSession, limit: int = 100) -> list[AnalyticsEvent]:
    """Return the most recent events, newest first."""
    result = await db.execute(
        select(AnalyticsEvent).order_by(AnalyticsEvent.created_at.desc()).limit(limit)
    )
    return list(result.scalars().all())


async def count_events(
    db: AsyncSession,
    event_type: str,
    since: datetime | None = None,
) -> int:
    """Count events of one type, optionally only those after *since*."""
    condition = AnalyticsEvent.event_type == event_type
    if since is not None:
        condition = and_(condition, AnalyticsEvent.created_at >= since)
    result = await db.execute(
        select(func.count()).select_from(AnalyticsEvent).where(condition)
    )
    return result.scalar_one()


async def _count(db: AsyncSession, model, *conditions) -> int:
    stmt = select(func.count()).select_from(model)
    if conditions:
        stmt = stmt.where(*conditions)
    result = await db.execute(stmt)
    return result.scalar_one()


async def get_summary(db: AsyncSession) -> AnalyticsSummary:
    """Headline numbers for the admin dashboard."""
    week_ago = datetime.now(timezone.utc) - timedelta(days=7)

    total_users = await _count(db, User)
    active_users = await _count(
        db, User, User.status == STATUS_ACTIVE, User.last_login_at >= week_ago,
    )
    total_resumes = await _count(db, Resume)
    total_revisions = await _count(db, Revision)

    result = await db.execute(
        select(func.count(), func.coalesce(func.sum(Payment.amount), 0))
        .select_from(Payment)
        .where(Payment.status == PAYMENT_COMPLETED)
    )
    payment_count, revenue = result.one()

    return AnalyticsSummary(
        total_users=total_users,
        active_users_7d=active_users,
        total_resumes=total_resumes,
        total_revisions=total_revisions,
        total_payments=payment_count,
        revenue=int(revenue or 0),
    )
