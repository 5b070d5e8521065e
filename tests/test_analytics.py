"""Tests for the analytics log and the operator views."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from resume_tailor.errors import NotFound, ValidationError
from resume_tailor.models import Payment, Resume
from resume_tailor.services.admin_service import list_all_payments, list_users, set_user_status
from resume_tailor.services.analytics_service import (
    AnalyticsEventResponse,
    count_events,
    get_summary,
    list_events,
    track_event,
)


# ---------------------------------------------------------------------------
# Event log
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_track_event_is_left_for_caller_to_commit(db_session, make_user):
    await make_user("user_1")

    await track_event(db_session, "upload", "user_1", {"size": 10})
    await db_session.rollback()

    assert await count_events(db_session, "upload") == 0


@pytest.mark.asyncio
async def test_list_and_count_events(db_session, make_user):
    await make_user("user_1")
    await track_event(db_session, "login", "user_1")
    await track_event(db_session, "upload", "user_1", {"resume_id": "r1"})
    await track_event(db_session, "login")
    await db_session.commit()

    events = await list_events(db_session, limit=2)
    assert len(events) == 2
    assert await count_events(db_session, "login") == 2
    future = datetime.now(timezone.utc) + timedelta(days=1)
    assert await count_events(db_session, "login", since=future) == 0

    rendered = [AnalyticsEventResponse.from_event(e) for e in await list_events(db_session)]
    upload = next(r for r in rendered if r.event_type == "upload")
    assert upload.metadata == {"resume_id": "r1"}
    assert upload.user_id == "user_1"


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_summary_counts_activity_and_completed_revenue(db_session, make_user):
    now = datetime.now(timezone.utc)
    await make_user("recent", last_login_at=now - timedelta(days=1))
    await make_user("stale", last_login_at=now - timedelta(days=30))
    await make_user("banned", status="deactivated", last_login_at=now)
    db_session.add_all([
        Resume(
            id="res_1", user_id="recent", original_filename="cv.pdf",
            file_type="pdf", extracted_text="x", created_at=now,
        ),
        Payment(
            id="p1", user_id="recent", stripe_session_id="cs_1", amount=499,
            currency="usd", status="completed", credits_granted=5, created_at=now,
        ),
        Payment(
            id="p2", user_id="recent", stripe_session_id="cs_2", amount=1999,
            currency="usd", status="completed", credits_granted=50, created_at=now,
        ),
        Payment(
            id="p3", user_id="stale", stripe_session_id="cs_3", amount=999,
            currency="usd", status="pending", credits_granted=15, created_at=now,
        ),
    ])
    await db_session.commit()

    summary = await get_summary(db_session)

    assert summary.total_users == 3
    assert summary.active_users_7d == 1
    assert summary.total_resumes == 1
    assert summary.total_revisions == 0
    assert summary.total_payments == 2
    assert summary.revenue == 2498


@pytest.mark.asyncio
async def test_summary_of_empty_store(db_session):
    summary = await get_summary(db_session)

    assert summary.revenue == 0
    assert summary.total_users == 0


# ---------------------------------------------------------------------------
# Operator views
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_set_user_status_round_trip(db_session, make_user):
    await make_user("user_1")

    user = await set_user_status(db_session, "user_1", "deactivated")
    assert user.is_deactivated

    user = await set_user_status(db_session, "user_1", "active")
    assert user.status == "active"


@pytest.mark.asyncio
async def test_set_user_status_validates_input(db_session, make_user):
    await make_user("user_1")

    with pytest.raises(ValidationError):
        await set_user_status(db_session, "user_1", "suspended")
    with pytest.raises(NotFound):
        await set_user_status(db_session, "ghost", "active")


@pytest.mark.asyncio
async def test_listings_cover_every_user(db_session, make_user):
    await make_user("user_1")
    await make_user("user_2")
    db_session.add(Payment(
        id="p1", user_id="user_2", stripe_session_id="cs_1", amount=499,
        currency="usd", status="pending", credits_granted=5,
        created_at=datetime.now(timezone.utc),
    ))
    await db_session.commit()

    assert {u.id for u in await list_users(db_session)} == {"user_1", "user_2"}
    assert [p.user_id for p in await list_all_payments(db_session)] == ["user_2"]
