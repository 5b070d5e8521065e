"""Revision endpoints -- tailoring requests, history, and the ledger balance."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from resume_tailor.api.dependencies import (
    AuthContext,
    get_auth_context,
    get_generation_service,
    get_recorder,
)
from resume_tailor.database import get_db
from resume_tailor.services.audit_logger import EventRecorder
from resume_tailor.services.entitlement_service import LedgerBalance, get_balance
from resume_tailor.services.generation_service import GenerationService
from resume_tailor.services.revision_service import (
    RevisionResponse,
    TailorRequest,
    get_revision,
    list_revisions,
    tailor_resume,
)

router = APIRouter(prefix="/api/v1/revisions", tags=["revisions"])


@router.get("", response_model=list[RevisionResponse])
async def read_revisions(
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    return await list_revisions(db, ctx.principal_id)


@router.get("/balance", response_model=LedgerBalance)
async def read_balance(
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Return the caller's free and paid revision counters."""
    return await get_balance(db, ctx.principal_id)


@router.post("/tailor", response_model=RevisionResponse, status_code=status.HTTP_201_CREATED)
async def create_revision(
    body: TailorRequest,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
    generator: GenerationService = Depends(get_generation_service),
    recorder: EventRecorder = Depends(get_recorder),
):
    """Tailor one of the caller's resumes, consuming one revision."""
    return await tailor_resume(
        db,
        generator,
        recorder,
        ctx.principal_id,
        body.resume_id,
        body.target_industry,
        body.target_role,
    )


@router.get("/{revision_id}", response_model=RevisionResponse)
async def read_revision(
    revision_id: str,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    return await get_revision(db, ctx.principal_id, revision_id)
