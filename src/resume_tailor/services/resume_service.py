"""Resume store -- upload validation, text extraction, owner-scoped reads."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from pydantic import BaseModel
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from resume_tailor.config import settings
from resume_tailor.database import unit_of_work
from resume_tailor.errors import ExtractionFailed, NotFound, UnsupportedType, ValidationError
from resume_tailor.integrations.text_extractor import (
    MIME_TYPES,
    TextExtractionError,
    TextExtractor,
)
from resume_tailor.models import Resume
from resume_tailor.models.base import new_id
from resume_tailor.services.analytics_service import EVENT_UPLOAD, track_event

log = structlog.get_logger()


class ResumeResponse(BaseModel):
    id: str
    user_id: str
    original_filename: str
    file_type: str
    extracted_text: str
    created_at: datetime

    model_config = {"from_attributes": True}


def resolve_file_type(content_type: str | None) -> str:
    """Map an upload's MIME type to ``pdf``/``docx``. Raises UnsupportedType."""
    file_type = MIME_TYPES.get((content_type or "").split(";")[0].strip().lower())
    if file_type is None:
        raise UnsupportedType()
    return file_type


async def create_resume(
    db: AsyncSession,
    extractor: TextExtractor,
    user_id: str,
    filename: str,
    content_type: str | None,
    data: bytes,
) -> Resume:
    """Validate an upload, extract its text, and store it.

    Raises UnsupportedType (400) for anything but PDF/DOCX, ValidationError
    (400) past the size limit, and ExtractionFailed (422) when no text
    could be read.
    """
    file_type = resolve_file_type(content_type)
    if not data:
        raise ValidationError("Uploaded file is empty")
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise ValidationError("File too large")

    try:
        extracted = extractor.extract(data, file_type)
    except TextExtractionError as exc:
        log.warning("resume_extraction_failed", user_id=user_id, error=str(exc))
        raise ExtractionFailed() from exc
    if not extracted or not extracted.strip():
        raise ExtractionFailed()

    resume = Resume(
        id=new_id(),
        user_id=user_id,
        original_filename=filename or f"resume.{file_type}",
        file_type=file_type,
        extracted_text=extracted,
        created_at=datetime.now(timezone.utc),
    )
    async with unit_of_work(db):
        db.add(resume)
        await track_event(
            db, EVENT_UPLOAD, user_id,
            {"resume_id": resume.id, "file_type": file_type, "size": len(data)},
        )

    log.info("resume_uploaded", user_id=user_id, resume_id=resume.id, file_type=file_type)
    return resume


async def list_resumes(db: AsyncSession, user_id: str) -> list[Resume]:
    result = await db.execute(
        select(Resume).where(Resume.user_id == user_id).order_by(Resume.created_at.desc())
    )
    return list(result.scalars().all())


async def get_resume(db: AsyncSession, user_id: str, resume_id: str) -> Resume:
    result = await db.execute(
        select(Resume).where(Resume.id == resume_id, Resume.user_id == user_id)
    )
    resume = result.scalar_one_or_none()
    if resume is None:
        raise NotFound("Resume not found")
    return resume


async def delete_resume(db: AsyncSession, user_id: str, resume_id: str) -> None:
    """Delete one of the caller's resumes and, by cascade, its revisions."""
    await get_resume(db, user_id, resume_id)
    async with unit_of_work(db):
        result = await db.execute(
            delete(Resume)
            .where(Resume.id == resume_id, Resume.user_id == user_id)
            .returning(Resume.id)
        )
        deleted = result.scalar_one_or_none()
    if deleted is None:
        raise NotFound("Resume not found")
    log.info("resume_deleted", user_id=user_id, resume_id=resume_id)
