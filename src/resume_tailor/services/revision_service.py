"""Revision workflow -- reserve an entitlement, generate, settle, record.

The ledger is only debited after the model has produced usable output, and
the debit, the revision row, and the ``tailor`` analytics event commit
together or not at all.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from resume_tailor.database import unit_of_work
from resume_tailor.errors import GenerationFailed, NotFound
from resume_tailor.models import Resume, Revision
from resume_tailor.models.base import new_id
from resume_tailor.services.analytics_service import EVENT_ERROR, EVENT_TAILOR, track_event
from resume_tailor.services.audit_logger import OUTCOME_ERROR, OUTCOME_OK, EventRecorder
from resume_tailor.services.entitlement_service import (
    EntitlementSource,
    check_and_reserve,
    settle,
)
from resume_tailor.services.generation_service import GenerationService

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class TailorRequest(BaseModel):
    resume_id: str
    target_industry: str = Field(min_length=1, max_length=200)
    target_role: str = Field(min_length=1, max_length=200)


class RevisionResponse(BaseModel):
    id: str
    resume_id: str
    user_id: str
    target_industry: str
    target_role: str
    tailored_content: str
    was_free: bool
    prompt_version_id: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Service functions
# ---------------------------------------------------------------------------

async def _get_owned_resume(db: AsyncSession, user_id: str, resume_id: str) -> Resume:
    result = await db.execute(
        select(Resume).where(Resume.id == resume_id, Resume.user_id == user_id)
    )
    resume = result.scalar_one_or_none()
    if resume is None:
        raise NotFound("Resume not found")
    return resume


async def tailor_resume(
    db: AsyncSession,
    generator: GenerationService,
    recorder: EventRecorder,
    user_id: str,
    resume_id: str,
    target_industry: str,
    target_role: str,
) -> Revision:
    """Run one tailoring request end to end.

    Raises NotFound if the resume is not the caller's, EntitlementExhausted
    when no uses remain, and GenerationFailed when the model call fails.
    Any other error from the generation step is recorded the same way and
    re-raised. In every failure case the counters are left untouched.
    """
    resume = await _get_owned_resume(db, user_id, resume_id)
    reservation = await check_and_reserve(db, user_id)

    try:
        result = await generator.tailor(
            resume.extracted_text,
            target_industry,
            target_role,
            premium=reservation.source is EntitlementSource.PAID,
        )
    except Exception as exc:
        error = exc.detail if isinstance(exc, GenerationFailed) else str(exc)
        if isinstance(exc, GenerationFailed):
            log.error(
                "tailor_failed",
                user_id=user_id,
                operation="tailor",
                resume_id=resume_id,
                error=error,
                cause=repr(exc.__cause__) if exc.__cause__ else None,
            )
        else:
            log.exception(
                "tailor_failed", user_id=user_id, operation="tailor", resume_id=resume_id,
            )
        recorder.record(
            "generation", OUTCOME_ERROR,
            user_id=user_id, resume_id=resume_id, error=type(exc).__name__,
        )
        async with unit_of_work(db):
            await track_event(
                db, EVENT_ERROR, user_id,
                {"operation": "tailor", "resume_id": resume_id, "error": error},
            )
        raise

    async with unit_of_work(db):
        balance = await settle(db, user_id, reservation.source)
        revision = Revision(
            id=new_id(),
            resume_id=resume_id,
            user_id=user_id,
            target_industry=target_industry,
            target_role=target_role,
            tailored_content=result.content,
            was_free=balance.source is EntitlementSource.FREE,
            prompt_version_id=result.prompt_version_id,
            created_at=datetime.now(timezone.utc),
        )
        db.add(revision)
        await track_event(
            db, EVENT_TAILOR, user_id,
            {
                "resume_id": resume_id,
                "revision_id": revision.id,
                "target_industry": target_industry,
                "target_role": target_role,
                "was_free": revision.was_free,
                "prompt_version_id": result.prompt_version_id,
            },
        )

    recorder.record(
        "ledger", OUTCOME_OK,
        user_id=user_id,
        source=balance.source.value,
        revision_id=revision.id,
        free_remaining=balance.free_remaining,
        paid_remaining=balance.paid_credits_remaining,
    )
    return revision


async def list_revisions(db: AsyncSession, user_id: str) -> list[Revision]:
    result = await db.execute(
        select(Revision)
        .where(Revision.user_id == user_id)
        .order_by(Revision.created_at.desc())
    )
    return list(result.scalars().all())


async def get_revision(db: AsyncSession, user_id: str, revision_id: str) -> Revision:
    """Return one of the caller's revisions. Other users' ids read as missing."""
    result = await db.execute(
        select(Revision).where(Revision.id == revision_id, Revision.user_id == user_id)
    )
    revision = result.scalar_one_or_none()
    if revision is None:
        raise NotFound("Revision not found")
    return revision
