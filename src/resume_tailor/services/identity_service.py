"""Identity reconciliation -- map identity-provider principals onto user rows.

Three cases, checked in order:

1. The principal id already exists: refresh the profile from non-empty
   incoming values.
2. Another row owns the email: the provider re-issued the id. The row and
   every reference to it move to the new id in one transaction.
3. Otherwise: race-safe upsert of a fresh user.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy import select, text, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from resume_tailor.database import unit_of_work
from resume_tailor.errors import Conflict, NotFound, ValidationError
from resume_tailor.models import User
from resume_tailor.models.user import ROLE_USER, STATUS_ACTIVE
from resume_tailor.services.analytics_service import EVENT_LOGIN, EVENT_SIGNUP, track_event
from resume_tailor.services.audit_logger import OUTCOME_ERROR, OUTCOME_OK, EventRecorder

log = structlog.get_logger()

# (table, column) pairs holding a user id
USER_REFERENCES = (
    ("resumes", "user_id"),
    ("revisions", "user_id"),
    ("payments", "user_id"),
    ("analytics_events", "user_id"),
    ("prompt_versions", "created_by"),
    ("prompt_test_runs", "created_by"),
)


@dataclass
class SyncResult:
    user: User
    created: bool
    migrated_from: str | None = None


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class IdentityService:
    """Keeps the users table in step with the identity provider."""

    def __init__(self, db: AsyncSession, recorder: EventRecorder) -> None:
        self.db = db
        self.recorder = recorder

    async def sync(
        self,
        candidate_id: str,
        email: str | None,
        first_name: str | None = None,
        last_name: str | None = None,
        avatar_url: str | None = None,
    ) -> SyncResult:
        """Create, refresh, or migrate the user row for *candidate_id*."""
        if not candidate_id:
            raise ValidationError("Principal id is required")
        email = _clean(email)
        profile = {
            "first_name": _clean(first_name),
            "last_name": _clean(last_name),
            "profile_image_url": _clean(avatar_url),
        }

        existing = await self.db.get(User, candidate_id)
        if existing is not None:
            return await self._refresh(existing, email, profile)

        if email is None:
            raise ValidationError("Email is required to create an account")

        result = await self.db.execute(select(User).where(User.email == email))
        owner = result.scalar_one_or_none()
        if owner is not None:
            return await self._migrate(owner, candidate_id, email, profile)

        return await self._upsert(candidate_id, email, profile)

    # ------------------------------------------------------------------
    # Case 1: known id
    # ------------------------------------------------------------------

    async def _refresh(self, user: User, email: str | None, profile: dict) -> SyncResult:
        now = datetime.now(timezone.utc)
        values = {key: value for key, value in profile.items() if value is not None}
        if email is not None and email != user.email and not await self._email_taken(email, user.id):
            values["email"] = email
        values["last_login_at"] = now
        values["updated_at"] = now

        async with unit_of_work(self.db):
            await self.db.execute(update(User).where(User.id == user.id).values(**values))
            await track_event(self.db, EVENT_LOGIN, user.id)

        await self.db.refresh(user)
        return SyncResult(user=user, created=False)

    async def _email_taken(self, email: str, user_id: str) -> bool:
        result = await self.db.execute(
            text("SELECT 1 FROM users WHERE email = :email AND id <> :user_id"),
            {"email": email, "user_id": user_id},
        )
        return result.fetchone() is not None

    # ------------------------------------------------------------------
    # Case 2: id migration
    # ------------------------------------------------------------------

    async def _migrate(
        self,
        owner: User,
        new_id: str,
        email: str,
        profile: dict,
    ) -> SyncResult:
        """Move *owner* and everything referencing it to *new_id*.

        Raises Conflict, leaving the store unchanged, if any reference to
        the old id survives the rewrite.
        """
        old_id = owner.id
        now = datetime.now(timezone.utc)
        self.db.expunge(owner)

        try:
            async with unit_of_work(self.db):
                await self.db.execute(
                    text(
                        "UPDATE users SET id = :new_id, "
                        "first_name = COALESCE(:first_name, first_name), "
                        "last_name = COALESCE(:last_name, last_name), "
                        "profile_image_url = COALESCE(:profile_image_url, profile_image_url), "
                        "last_login_at = :now, updated_at = :now "
                        "WHERE id = :old_id"
                    ),
                    {"new_id": new_id, "old_id": old_id, "now": now, **profile},
                )
                for table, column in USER_REFERENCES:
                    await self.db.execute(
                        text(f"UPDATE {table} SET {column} = :new_id WHERE {column} = :old_id"),
                        {"new_id": new_id, "old_id": old_id},
                    )

                remaining = await self._count_references(old_id)
                if remaining:
                    raise Conflict("Account migration left dangling references")

                await track_event(
                    self.db, EVENT_LOGIN, new_id,
                    {"migrated_from": old_id},
                )
        except (Conflict, IntegrityError) as exc:
            log.error(
                "identity_migration_failed",
                old_user_id=old_id,
                new_user_id=new_id,
                error=str(exc),
            )
            self.recorder.record(
                "identity", OUTCOME_ERROR,
                action="id_migrated", old_user_id=old_id, new_user_id=new_id, error=exc,
            )
            if isinstance(exc, Conflict):
                raise
            raise Conflict("Account migration failed") from exc

        self.recorder.record(
            "identity", OUTCOME_OK,
            action="id_migrated", old_user_id=old_id, new_user_id=new_id, email=email,
        )
        user = await self.db.get(User, new_id, populate_existing=True)
        if user is None:
            raise NotFound("User not found")
        return SyncResult(user=user, created=False, migrated_from=old_id)

    async def _count_references(self, user_id: str) -> int:
        total = 0
        for table, column in (("users", "id"),) + USER_REFERENCES:
            result = await self.db.execute(
                text(f"SELECT COUNT(*) FROM {table} WHERE {column} = :user_id"),
                {"user_id": user_id},
            )
            total += result.scalar_one()
        return total

    # ------------------------------------------------------------------
    # Case 3: new principal
    # ------------------------------------------------------------------

    async def _upsert(self, user_id: str, email: str, profile: dict) -> SyncResult:
        now = datetime.now(timezone.utc)
        try:
            async with unit_of_work(self.db):
                await self.db.execute(
                    text(
                        "INSERT INTO users "
                        "(id, email, first_name, last_name, profile_image_url, role, status, "
                        "free_uses_consumed, paid_credits_remaining, last_login_at, "
                        "created_at, updated_at) "
                        "VALUES (:id, :email, :first_name, :last_name, :profile_image_url, "
                        ":role, :status, 0, 0, :now, :now, :now) "
                        "ON CONFLICT (id) DO UPDATE SET "
                        "first_name = COALESCE(excluded.first_name, users.first_name), "
                        "last_name = COALESCE(excluded.last_name, users.last_name), "
                        "profile_image_url = COALESCE(excluded.profile_image_url, "
                        "users.profile_image_url), "
                        "last_login_at = excluded.last_login_at, "
                        "updated_at = excluded.updated_at"
                    ),
                    {
                        "id": user_id,
                        "email": email,
                        "role": ROLE_USER,
                        "status": STATUS_ACTIVE,
                        "now": now,
                        **profile,
                    },
                )
                await track_event(self.db, EVENT_SIGNUP, user_id, {"email": email})
        except IntegrityError as exc:
            log.warning("identity_upsert_conflict", user_id=user_id, email=email)
            raise Conflict("An account with this email already exists") from exc

        log.info("user_created", user_id=user_id)
        user = await self.db.get(User, user_id, populate_existing=True)
        if user is None:
            raise NotFound("User not found")
        return SyncResult(user=user, created=True)
