"""Tests for identity reconciliation: create, refresh, and id migration."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from resume_tailor.errors import Conflict, ValidationError
from resume_tailor.models import (
    AnalyticsEvent,
    Payment,
    PromptTestRun,
    PromptVersion,
    Resume,
    Revision,
    User,
)
from resume_tailor.services.identity_service import IdentityService


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _events(db, event_type: str) -> list[AnalyticsEvent]:
    result = await db.execute(
        select(AnalyticsEvent).where(AnalyticsEvent.event_type == event_type)
    )
    return list(result.scalars().all())


async def _seed_owned_rows(db, user_id: str) -> None:
    """Give *user_id* one row in every table that references a user."""
    now = datetime.now(timezone.utc)
    db.add_all([
        Resume(
            id="res_1", user_id=user_id, original_filename="cv.pdf",
            file_type="pdf", extracted_text="text", created_at=now,
        ),
        Payment(
            id="pay_1", user_id=user_id, stripe_session_id="cs_1", amount=499,
            currency="usd", status="completed", credits_granted=5, created_at=now,
        ),
        PromptVersion(
            id="pv_1", name="v1", system_prompt="s", user_prompt_template="t",
            is_active=False, is_default=False, created_by=user_id,
            created_at=now, updated_at=now,
        ),
        AnalyticsEvent(id="ev_1", event_type="upload", user_id=user_id, created_at=now),
    ])
    await db.flush()
    db.add_all([
        Revision(
            id="rev_1", resume_id="res_1", user_id=user_id, target_industry="Tech",
            target_role="Engineer", tailored_content="out", was_free=True, created_at=now,
        ),
        PromptTestRun(
            id="run_1", prompt_version_id="pv_1", test_input="x", target_industry="a",
            target_role="b", output="o", created_by=user_id, created_at=now,
        ),
    ])
    await db.commit()
    db.expunge_all()


# ---------------------------------------------------------------------------
# New principals
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_sync_creates_user_with_zeroed_counters(db_session, recorder):
    service = IdentityService(db_session, recorder)

    result = await service.sync("user_new", " new@example.com ", "Ada", "Lovelace", None)

    assert result.created is True
    assert result.migrated_from is None
    user = result.user
    assert user.id == "user_new"
    assert user.email == "new@example.com"
    assert user.first_name == "Ada"
    assert user.role == "user"
    assert user.status == "active"
    assert (user.free_uses_consumed, user.paid_credits_remaining) == (0, 0)
    assert user.last_login_at is not None
    assert len(await _events(db_session, "signup")) == 1


@pytest.mark.asyncio
async def test_sync_requires_candidate_id(db_session, recorder):
    with pytest.raises(ValidationError):
        await IdentityService(db_session, recorder).sync("", "a@example.com")


@pytest.mark.asyncio
async def test_sync_new_user_without_email_is_rejected(db_session, recorder):
    with pytest.raises(ValidationError):
        await IdentityService(db_session, recorder).sync("user_new", "   ")

    assert await db_session.get(User, "user_new") is None


# ---------------------------------------------------------------------------
# Known principals
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_sync_existing_user_refreshes_non_empty_fields_only(
    db_session, make_user, recorder,
):
    await make_user(
        "user_1", first_name="Grace", last_name="Hopper",
        profile_image_url="https://img.example.com/old.png",
        paid_credits_remaining=7,
    )

    result = await IdentityService(db_session, recorder).sync(
        "user_1", "user_1@example.com", "", "Brewster", None,
    )

    user = result.user
    assert result.created is False
    assert user.first_name == "Grace"
    assert user.last_name == "Brewster"
    assert user.profile_image_url == "https://img.example.com/old.png"
    assert user.paid_credits_remaining == 7
    assert user.last_login_at is not None
    assert len(await _events(db_session, "login")) == 1


@pytest.mark.asyncio
async def test_sync_existing_user_keeps_email_owned_by_someone_else(
    db_session, make_user, recorder,
):
    await make_user("user_1", email="one@example.com")
    await make_user("user_2", email="two@example.com")

    result = await IdentityService(db_session, recorder).sync("user_1", "two@example.com")

    assert result.user.email == "one@example.com"


@pytest.mark.asyncio
async def test_sync_existing_user_adopts_new_free_email(db_session, make_user, recorder):
    await make_user("user_1", email="old@example.com")

    result = await IdentityService(db_session, recorder).sync("user_1", "fresh@example.com")

    assert result.user.email == "fresh@example.com"


# ---------------------------------------------------------------------------
# Id migration
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_sync_migrates_every_reference_to_new_id(db_session, make_user, recorder):
    await make_user(
        "old_id", email="jane@example.com", first_name="Jane",
        free_uses_consumed=2, paid_credits_remaining=4,
    )
    await _seed_owned_rows(db_session, "old_id")

    result = await IdentityService(db_session, recorder).sync(
        "new_id", "jane@example.com", None, "Doe", None,
    )

    assert result.migrated_from == "old_id"
    assert result.created is False
    user = result.user
    assert user.id == "new_id"
    assert user.first_name == "Jane"
    assert user.last_name == "Doe"
    assert (user.free_uses_consumed, user.paid_credits_remaining) == (2, 4)
    assert await db_session.get(User, "old_id") is None

    for model, column in (
        (Resume, Resume.user_id),
        (Revision, Revision.user_id),
        (Payment, Payment.user_id),
        (PromptVersion, PromptVersion.created_by),
        (PromptTestRun, PromptTestRun.created_by),
    ):
        values = (await db_session.execute(select(column))).scalars().all()
        assert values == ["new_id"], model.__tablename__

    events = (await db_session.execute(
        select(AnalyticsEvent).execution_options(populate_existing=True)
    )).scalars().all()
    assert {e.user_id for e in events} == {"new_id"}
    login = [e for e in events if e.event_type == "login"]
    assert login[0].event_metadata == {"migrated_from": "old_id"}

    [(category, outcome, attrs)] = recorder.of("identity")
    assert (category, outcome) == ("identity", "ok")
    assert attrs["old_user_id"] == "old_id"
    assert attrs["new_user_id"] == "new_id"


@pytest.mark.asyncio
async def test_migration_with_dangling_reference_rolls_back(db_session, make_user, recorder):
    await make_user("old_id", email="jane@example.com", paid_credits_remaining=4)
    await _seed_owned_rows(db_session, "old_id")

    with patch.object(
        IdentityService, "_count_references", new=AsyncMock(return_value=1),
    ):
        with pytest.raises(Conflict):
            await IdentityService(db_session, recorder).sync("new_id", "jane@example.com")

    assert await db_session.get(User, "new_id") is None
    old = await db_session.get(User, "old_id", populate_existing=True)
    assert old is not None
    assert old.paid_credits_remaining == 4
    resume_owner = (await db_session.execute(select(Resume.user_id))).scalar_one()
    assert resume_owner == "old_id"
    assert recorder.of("identity")[0][1] == "error"
