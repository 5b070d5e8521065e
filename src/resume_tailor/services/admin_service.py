"""Operator views -- user management and cross-user listings."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from resume_tailor.errors import NotFound, ValidationError
from resume_tailor.models import Payment, Resume, Revision, User
from resume_tailor.models.user import STATUS_ACTIVE, STATUS_DEACTIVATED

USER_STATUSES = (STATUS_ACTIVE, STATUS_DEACTIVATED)


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.created_at.desc()))
    return list(result.scalars().all())


async def set_user_status(db: AsyncSession, user_id: str, status: str) -> User:
    """Activate or deactivate an account. Raises 400 on an unknown status."""
    if status not in USER_STATUSES:
        raise ValidationError(f"Invalid status: {status!r}")

    result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(status=status, updated_at=datetime.now(timezone.utc))
        .returning(User.id)
    )
    if result.scalar_one_or_none() is None:
        raise NotFound("User not found")
    await db.commit()

    user = await db.get(User, user_id, populate_existing=True)
    if user is None:
        raise NotFound("User not found")
    return user


async def list_all_resumes(db: AsyncSession) -> list[Resume]:
    result = await db.execute(select(Resume).order_by(Resume.created_at.desc()))
    return list(result.scalars().all())


async def list_all_revisions(db: AsyncSession) -> list[Revision]:
    result = await db.execute(select(Revision).order_by(Revision.created_at.desc()))
    return list(result.scalars().all())


async def list_all_payments(db: AsyncSession) -> list[Payment]:
    result = await db.execute(select(Payment).order_by(Payment.created_at.desc()))
    return list(result.scalars().all())
