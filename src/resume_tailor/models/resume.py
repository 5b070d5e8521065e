"""Uploaded resumes and the tailored revisions generated from them."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from resume_tailor.models.base import Base, new_id, utcnow

if TYPE_CHECKING:
    from resume_tailor.models.user import User


class Resume(Base):
    __tablename__ = "resumes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("users.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
        index=True,
    )
    original_filename: Mapped[str] = mapped_column(String(512), nullable=False)
    file_type: Mapped[str] = mapped_column(String(10), nullable=False)
    extracted_text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("file_type IN ('pdf', 'docx')", name="ck_resume_file_type"),
    )

    user: Mapped[User] = relationship(back_populates="resumes")
    revisions: Mapped[list[Revision]] = relationship(
        back_populates="resume", cascade="all, delete-orphan", passive_deletes=True
    )


class Revision(Base):
    """Immutable -- one row per successful generation."""

    __tablename__ = "revisions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    resume_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("resumes.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("users.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
        index=True,
    )
    target_industry: Mapped[str] = mapped_column(Text, nullable=False)
    target_role: Mapped[str] = mapped_column(Text, nullable=False)
    tailored_content: Mapped[str] = mapped_column(Text, nullable=False)
    was_free: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # Weak reference: prompt versions are never owned by revisions
    prompt_version_id: Mapped[Optional[str]] = mapped_column(
        String(36), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    resume: Mapped[Resume] = relationship(back_populates="revisions")
    user: Mapped[User] = relationship(back_populates="revisions")
