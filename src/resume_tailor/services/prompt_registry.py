"""Prompt version registry -- CRUD, single-active activation, sandbox history."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from pydantic import BaseModel
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from resume_tailor.database import unit_of_work
from resume_tailor.errors import Conflict, NotFound, ValidationError
from resume_tailor.models import PromptTestRun, PromptVersion
from resume_tailor.models.base import new_id

log = structlog.get_logger()

EDITABLE_FIELDS = ("name", "description", "system_prompt", "user_prompt_template")
_REQUIRED_FIELDS = ("name", "system_prompt", "user_prompt_template")


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class PromptVersionResponse(BaseModel):
    id: str
    name: str
    description: str | None
    system_prompt: str
    user_prompt_template: str
    is_active: bool
    is_default: bool
    created_by: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PromptTestRunResponse(BaseModel):
    id: str
    prompt_version_id: str | None
    test_input: str
    target_industry: str
    target_role: str
    output: str
    execution_time_ms: int | None
    created_by: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


def _require_text(field: str, value: str | None) -> None:
    if value is None or not value.strip():
        raise ValidationError(f"{field} must not be empty")


# ---------------------------------------------------------------------------
# PromptRegistry
# ---------------------------------------------------------------------------

class PromptRegistry:
    """Stored prompt versions. At most one is active at any time."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_versions(self) -> list[PromptVersion]:
        result = await self.db.execute(
            select(PromptVersion).order_by(PromptVersion.created_at.desc())
        )
        return list(result.scalars().all())

    async def get(self, version_id: str) -> PromptVersion:
        result = await self.db.execute(
            select(PromptVersion).where(PromptVersion.id == version_id)
        )
        version = result.scalar_one_or_none()
        if version is None:
            raise NotFound("Prompt version not found")
        return version

    async def get_active(self) -> PromptVersion | None:
        result = await self.db.execute(
            select(PromptVersion).where(PromptVersion.is_active.is_(True)).limit(1)
        )
        return result.scalars().first()

    async def get_default(self) -> PromptVersion | None:
        result = await self.db.execute(
            select(PromptVersion).where(PromptVersion.is_default.is_(True)).limit(1)
        )
        return result.scalars().first()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(
        self,
        name: str,
        system_prompt: str,
        user_prompt_template: str,
        description: str | None = None,
        created_by: str | None = None,
    ) -> PromptVersion:
        """Store a new, inactive, non-default version."""
        _require_text("name", name)
        _require_text("system_prompt", system_prompt)
        _require_text("user_prompt_template", user_prompt_template)

        now = datetime.now(timezone.utc)
        version = PromptVersion(
            id=new_id(),
            name=name.strip(),
            description=description,
            system_prompt=system_prompt,
            user_prompt_template=user_prompt_template,
            is_active=False,
            is_default=False,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        self.db.add(version)
        await self.db.commit()
        await self.db.refresh(version)

        log.info("prompt_version_created", version_id=version.id, created_by=created_by)
        return version

    async def update(self, version_id: str, **changes) -> PromptVersion:
        """Edit the text fields of a version. Activation flags are never touched."""
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        values = {key: value for key, value in changes.items() if value is not None}
        for field in _REQUIRED_FIELDS:
            if field in values:
                _require_text(field, values[field])

        version = await self.get(version_id)
        if not values:
            return version

        values["updated_at"] = datetime.now(timezone.utc)
        await self.db.execute(
            update(PromptVersion)
            .where(PromptVersion.id == version_id)
            .values(**values)
        )
        await self.db.commit()
        await self.db.refresh(version)
        return version

    async def activate(self, version_id: str) -> PromptVersion:
        """Make *version_id* the only active version, atomically.

        Raises NotFound for an unknown id, Conflict when a concurrent
        activation committed first.
        """
        # Checked before the transaction so a miss rolls nothing back.
        version = await self.get(version_id)
        now = datetime.now(timezone.utc)
        try:
            async with unit_of_work(self.db):
                await self.db.execute(
                    update(PromptVersion)
                    .where(
                        PromptVersion.is_active.is_(True),
                        PromptVersion.id != version_id,
                    )
                    .values(is_active=False, updated_at=now)
                )
                await self.db.execute(
                    update(PromptVersion)
                    .where(PromptVersion.id == version_id)
                    .values(is_active=True, updated_at=now)
                )
        except IntegrityError as exc:
            log.warning("prompt_activation_conflict", version_id=version_id)
            raise Conflict("Another prompt version was activated concurrently") from exc

        await self.db.refresh(version)
        log.info("prompt_version_activated", version_id=version_id)
        return version

    # ------------------------------------------------------------------
    # Sandbox history
    # ------------------------------------------------------------------

    async def record_test_run(
        self,
        test_input: str,
        target_industry: str,
        target_role: str,
        output: str,
        execution_time_ms: int | None,
        prompt_version_id: str | None = None,
        created_by: str | None = None,
    ) -> PromptTestRun:
        run = PromptTestRun(
            id=new_id(),
            prompt_version_id=prompt_version_id,
            test_input=test_input,
            target_industry=target_industry,
            target_role=target_role,
            output=output,
            execution_time_ms=execution_time_ms,
            created_by=created_by,
            created_at=datetime.now(timezone.utc),
        )
        self.db.add(run)
        await self.db.commit()
        await self.db.refresh(run)
        return run

    async def list_test_runs(self, version_id: str) -> list[PromptTestRun]:
        result = await self.db.execute(
            select(PromptTestRun)
            .where(PromptTestRun.prompt_version_id == version_id)
            .order_by(PromptTestRun.created_at.desc())
        )
        return list(result.scalars().all())
