"""Resume upload and retrieval endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from resume_tailor.api.dependencies import AuthContext, get_auth_context, get_text_extractor
from resume_tailor.database import get_db
from resume_tailor.integrations.text_extractor import TextExtractor
from resume_tailor.services.resume_service import (
    ResumeResponse,
    create_resume,
    delete_resume,
    get_resume,
    list_resumes,
)

router = APIRouter(prefix="/api/v1/resumes", tags=["resumes"])


@router.get("", response_model=list[ResumeResponse])
async def read_resumes(
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    return await list_resumes(db, ctx.principal_id)


@router.post("/upload", response_model=ResumeResponse, status_code=status.HTTP_201_CREATED)
async def upload_resume(
    file: UploadFile = File(...),
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
    extractor: TextExtractor = Depends(get_text_extractor),
):
    """Accept a PDF or DOCX upload and store its extracted text."""
    data = await file.read()
    return await create_resume(
        db, extractor, ctx.principal_id, file.filename or "", file.content_type, data,
    )


@router.get("/{resume_id}", response_model=ResumeResponse)
async def read_resume(
    resume_id: str,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    return await get_resume(db, ctx.principal_id, resume_id)


@router.delete("/{resume_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_resume(
    resume_id: str,
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    await delete_resume(db, ctx.principal_id, resume_id)
