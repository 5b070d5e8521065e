"""User model -- identity, role/status, and the revision entitlement counters."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from resume_tailor.models.base import Base, utcnow

if TYPE_CHECKING:
    from resume_tailor.models.billing import Payment
    from resume_tailor.models.resume import Resume, Revision

ROLE_USER = "user"
ROLE_ADMIN = "admin"

STATUS_ACTIVE = "active"
STATUS_DEACTIVATED = "deactivated"


class User(Base):
    __tablename__ = "users"

    # Identity-provider principal id, not generated locally
    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    profile_image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(String(20), default=ROLE_USER, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=STATUS_ACTIVE, nullable=False
    )
    free_uses_consumed: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False, server_default="0"
    )
    paid_credits_remaining: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False, server_default="0"
    )
    stripe_customer_id: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("role IN ('user', 'admin')", name="ck_user_role"),
        CheckConstraint(
            "status IN ('active', 'deactivated')", name="ck_user_status"
        ),
        CheckConstraint("free_uses_consumed >= 0", name="ck_user_free_nonneg"),
        CheckConstraint(
            "paid_credits_remaining >= 0", name="ck_user_paid_nonneg"
        ),
    )

    resumes: Mapped[list[Resume]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    revisions: Mapped[list[Revision]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    payments: Mapped[list[Payment]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_deactivated(self) -> bool:
        return self.status == STATUS_DEACTIVATED
