"""Admin endpoints -- usage analytics and user management."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from resume_tailor.api.auth import UserResponse
from resume_tailor.api.dependencies import require_admin
from resume_tailor.database import get_db
from resume_tailor.services import admin_service
from resume_tailor.services.analytics_service import (
    AnalyticsEventResponse,
    AnalyticsSummary,
    get_summary,
    list_events,
)
from resume_tailor.services.payment_service import PaymentResponse
from resume_tailor.services.resume_service import ResumeResponse
from resume_tailor.services.revision_service import RevisionResponse

router = APIRouter(
    prefix="/api/v1/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


class UserStatusRequest(BaseModel):
    status: str


class AdminPaymentResponse(PaymentResponse):
    user_id: str


@router.get("/stats", response_model=AnalyticsSummary)
async def read_stats(db: AsyncSession = Depends(get_db)):
    return await get_summary(db)


@router.get("/users", response_model=list[UserResponse])
async def read_users(db: AsyncSession = Depends(get_db)):
    users = await admin_service.list_users(db)
    return [UserResponse.from_user(user) for user in users]


@router.patch("/users/{user_id}/status", response_model=UserResponse)
async def update_user_status(
    user_id: str,
    body: UserStatusRequest,
    db: AsyncSession = Depends(get_db),
):
    """Activate or deactivate an account."""
    user = await admin_service.set_user_status(db, user_id, body.status)
    return UserResponse.from_user(user)


@router.get("/resumes", response_model=list[ResumeResponse])
async def read_all_resumes(db: AsyncSession = Depends(get_db)):
    return await admin_service.list_all_resumes(db)


@router.get("/revisions", response_model=list[RevisionResponse])
async def read_all_revisions(db: AsyncSession = Depends(get_db)):
    return await admin_service.list_all_revisions(db)


@router.get("/payments", response_model=list[AdminPaymentResponse])
async def read_all_payments(db: AsyncSession = Depends(get_db)):
    return await admin_service.list_all_payments(db)


@router.get("/events", response_model=list[AnalyticsEventResponse])
async def read_events(
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    events = await list_events(db, limit=limit)
    return [AnalyticsEventResponse.from_event(event) for event in events]
