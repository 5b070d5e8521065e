"""Tests for the entitlement ledger -- reservation, settlement, and grants."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import text

from resume_tailor.errors import EntitlementExhausted, NotFound, ValidationError
from resume_tailor.services.entitlement_service import (
    FREE_TIER_LIMIT,
    EntitlementSource,
    check_and_reserve,
    get_balance,
    grant_paid_credits,
    settle,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _row(*values):
    """Create a lightweight tuple-like object returned by fetchone."""
    return values


def _result(row):
    result = MagicMock()
    result.fetchone.return_value = row
    return result


async def _counters(db, user_id):
    result = await db.execute(
        text("SELECT free_uses_consumed, paid_credits_remaining FROM users WHERE id = :id"),
        {"id": user_id},
    )
    return tuple(result.fetchone())


# ---------------------------------------------------------------------------
# check_and_reserve (mocked session)
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_reserve_prefers_free_while_available():
    mock_db = AsyncMock()
    mock_db.execute.return_value = _result(_row(1, 10))

    reservation = await check_and_reserve(mock_db, "user_1")

    assert reservation.source is EntitlementSource.FREE
    assert reservation.free_remaining == 2
    assert reservation.paid_remaining == 10
    assert reservation.total_remaining == 12


@pytest.mark.asyncio
async def test_reserve_uses_paid_once_free_exhausted():
    mock_db = AsyncMock()
    mock_db.execute.return_value = _result(_row(FREE_TIER_LIMIT, 1))

    reservation = await check_and_reserve(mock_db, "user_1")

    assert reservation.source is EntitlementSource.PAID
    assert reservation.free_remaining == 0


@pytest.mark.asyncio
async def test_reserve_exhausted_raises_403_with_actionable_message():
    mock_db = AsyncMock()
    mock_db.execute.return_value = _result(_row(FREE_TIER_LIMIT, 0))

    with pytest.raises(EntitlementExhausted) as exc_info:
        await check_and_reserve(mock_db, "user_1")

    assert exc_info.value.status_code == 403
    assert "Purchase more" in exc_info.value.detail


@pytest.mark.asyncio
async def test_reserve_unknown_user_raises_404():
    mock_db = AsyncMock()
    mock_db.execute.return_value = _result(None)

    with pytest.raises(NotFound):
        await check_and_reserve(mock_db, "ghost")


@pytest.mark.asyncio
async def test_reserve_is_read_only():
    mock_db = AsyncMock()
    mock_db.execute.return_value = _result(_row(0, 0))

    await check_and_reserve(mock_db, "user_1")

    assert mock_db.execute.call_count == 1
    sql = str(mock_db.execute.call_args.args[0])
    assert sql.lstrip().upper().startswith("SELECT")
    mock_db.commit.assert_not_called()


# ---------------------------------------------------------------------------
# settle (mocked session)
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_settle_falls_back_to_other_bucket_once():
    """A free reservation that lost its race is settled from the paid bucket."""
    mock_db = AsyncMock()
    mock_db.execute.side_effect = [_result(None), _result(_row(3, 4))]

    balance = await settle(mock_db, "user_1", EntitlementSource.FREE)

    assert balance.source is EntitlementSource.PAID
    assert balance.paid_credits_remaining == 4
    assert mock_db.execute.call_count == 2


@pytest.mark.asyncio
async def test_settle_raises_when_both_buckets_empty():
    mock_db = AsyncMock()
    mock_db.execute.side_effect = [_result(None), _result(None)]

    with pytest.raises(EntitlementExhausted):
        await settle(mock_db, "user_1", EntitlementSource.PAID)

    assert mock_db.execute.call_count == 2


# ---------------------------------------------------------------------------
# Against a real database
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_free_counter_never_exceeds_limit(db_session, make_user):
    await make_user("user_1")

    for _ in range(FREE_TIER_LIMIT):
        balance = await settle(db_session, "user_1", EntitlementSource.FREE)
        assert balance.source is EntitlementSource.FREE
    await db_session.commit()

    with pytest.raises(EntitlementExhausted):
        await settle(db_session, "user_1", EntitlementSource.FREE)
    await db_session.rollback()

    assert await _counters(db_session, "user_1") == (FREE_TIER_LIMIT, 0)


@pytest.mark.asyncio
async def test_paid_counter_never_goes_negative(db_session, make_user):
    await make_user("user_1", free_uses_consumed=FREE_TIER_LIMIT, paid_credits_remaining=1)

    balance = await settle(db_session, "user_1", EntitlementSource.PAID)
    await db_session.commit()
    assert balance.paid_credits_remaining == 0
    assert balance.total_remaining == 0

    with pytest.raises(EntitlementExhausted):
        await settle(db_session, "user_1", EntitlementSource.PAID)
    await db_session.rollback()

    assert await _counters(db_session, "user_1") == (FREE_TIER_LIMIT, 0)


@pytest.mark.asyncio
async def test_each_settle_debits_exactly_one_unit(db_session, make_user):
    await make_user("user_1", free_uses_consumed=2, paid_credits_remaining=2)

    before = await get_balance(db_session, "user_1")
    await settle(db_session, "user_1", EntitlementSource.FREE)
    after = await get_balance(db_session, "user_1")

    assert before.total_remaining - after.total_remaining == 1


@pytest.mark.asyncio
async def test_grant_paid_credits_increments(db_session, make_user):
    await make_user("user_1", paid_credits_remaining=2)

    new_balance = await grant_paid_credits(db_session, "user_1", 15)
    await db_session.commit()

    assert new_balance == 17
    assert await _counters(db_session, "user_1") == (0, 17)


@pytest.mark.asyncio
async def test_grant_rejects_non_positive_and_unknown_user(db_session, make_user):
    await make_user("user_1")

    with pytest.raises(ValidationError):
        await grant_paid_credits(db_session, "user_1", 0)
    with pytest.raises(NotFound):
        await grant_paid_credits(db_session, "ghost", 5)


@pytest.mark.asyncio
async def test_get_balance_reports_remaining(db_session, make_user):
    await make_user("user_1", free_uses_consumed=1, paid_credits_remaining=5)

    balance = await get_balance(db_session, "user_1")

    assert balance.free_uses_consumed == 1
    assert balance.free_remaining == 2
    assert balance.paid_credits_remaining == 5
    assert balance.total_remaining == 7
