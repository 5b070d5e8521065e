"""Entitlement ledger -- free-tier and paid revision counters.

Every user gets ``FREE_TIER_LIMIT`` free revisions; after that each
revision consumes one paid credit.  Counters are always read fresh from
the store and debited with a single conditional UPDATE so concurrent
requests can never push a counter past its bound.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone

from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from resume_tailor.errors import EntitlementExhausted, NotFound, ValidationError

FREE_TIER_LIMIT = 3


class EntitlementSource(str, enum.Enum):
    FREE = "free"
    PAID = "paid"


@dataclass(frozen=True)
class Reservation:
    """Outcome of the pre-generation check. Nothing is debited yet."""

    user_id: str
    source: EntitlementSource
    free_remaining: int
    paid_remaining: int

    @property
    def total_remaining(self) -> int:
        return self.free_remaining + self.paid_remaining


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class LedgerBalance(BaseModel):
    free_uses_consumed: int
    free_remaining: int
    paid_credits_remaining: int
    total_remaining: int
    source: EntitlementSource | None = None

    @classmethod
    def from_counters(
        cls,
        free_used: int,
        paid: int,
        source: EntitlementSource | None = None,
    ) -> "LedgerBalance":
        free_remaining = max(FREE_TIER_LIMIT - free_used, 0)
        return cls(
            free_uses_consumed=free_used,
            free_remaining=free_remaining,
            paid_credits_remaining=paid,
            total_remaining=free_remaining + paid,
            source=source,
        )


# ---------------------------------------------------------------------------
# Service functions
# ---------------------------------------------------------------------------

async def _read_counters(db: AsyncSession, user_id: str) -> tuple[int, int]:
    result = await db.execute(
        text(
            "SELECT free_uses_consumed, paid_credits_remaining "
            "FROM users WHERE id = :user_id"
        ),
        {"user_id": user_id},
    )
    row = result.fetchone()
    if row is None:
        raise NotFound("User not found")
    return row[0], row[1]


async def get_balance(db: AsyncSession, user_id: str) -> LedgerBalance:
    """Return the current counters for a user."""
    free_used, paid = await _read_counters(db, user_id)
    return LedgerBalance.from_counters(free_used, paid)


async def check_and_reserve(db: AsyncSession, user_id: str) -> Reservation:
    """Decide which bucket the next revision will draw from.

    Free uses are preferred while any remain. Read-only: the debit happens
    in ``settle`` after generation succeeds.

    Raises EntitlementExhausted (403) when both buckets are empty.
    """
    free_used, paid = await _read_counters(db, user_id)
    free_remaining = max(FREE_TIER_LIMIT - free_used, 0)

    if free_remaining + paid <= 0:
        raise EntitlementExhausted()

    source = EntitlementSource.FREE if free_remaining > 0 else EntitlementSource.PAID
    return Reservation(
        user_id=user_id,
        source=source,
        free_remaining=free_remaining,
        paid_remaining=paid,
    )


async def _debit_free(db: AsyncSession, user_id: str):
    result = await db.execute(
        text(
            "UPDATE users "
            "SET free_uses_consumed = free_uses_consumed + 1, updated_at = :now "
            "WHERE id = :user_id AND free_uses_consumed < :limit "
            "RETURNING free_uses_consumed, paid_credits_remaining"
        ),
        {
            "user_id": user_id,
            "limit": FREE_TIER_LIMIT,
            "now": datetime.now(timezone.utc),
        },
    )
    return result.fetchone()


async def _debit_paid(db: AsyncSession, user_id: str):
    result = await db.execute(
        text(
            "UPDATE users "
            "SET paid_credits_remaining = paid_credits_remaining - 1, updated_at = :now "
            "WHERE id = :user_id AND paid_credits_remaining > 0 "
            "RETURNING free_uses_consumed, paid_credits_remaining"
        ),
        {"user_id": user_id, "now": datetime.now(timezone.utc)},
    )
    return result.fetchone()


_DEBITS = {
    EntitlementSource.FREE: _debit_free,
    EntitlementSource.PAID: _debit_paid,
}


async def settle(
    db: AsyncSession,
    user_id: str,
    source: EntitlementSource,
) -> LedgerBalance:
    """Debit exactly one unit, preferring *source*.

    If the preferred bucket was drained by a concurrent request since the
    reservation, the other bucket is tried once. The returned balance
    carries the source that was actually debited.

    Raises EntitlementExhausted (403) if neither bucket could be debited.
    Does not commit; the caller's unit of work owns the transaction.
    """
    other = (
        EntitlementSource.PAID if source is EntitlementSource.FREE
        else EntitlementSource.FREE
    )
    for candidate in (source, other):
        row = await _DEBITS[candidate](db, user_id)
        if row is not None:
            return LedgerBalance.from_counters(row[0], row[1], source=candidate)

    raise EntitlementExhausted()


async def grant_paid_credits(db: AsyncSession, user_id: str, credits: int) -> int:
    """Atomically add paid credits. Returns the new paid balance."""
    if credits <= 0:
        raise ValidationError("Credits to grant must be positive")

    result = await db.execute(
        text(
            "UPDATE users "
            "SET paid_credits_remaining = paid_credits_remaining + :credits, "
            "updated_at = :now "
            "WHERE id = :user_id "
            "RETURNING paid_credits_remaining"
        ),
        {
            "user_id": user_id,
            "credits": credits,
            "now": datetime.now(timezone.utc),
        },
    )
    row = result.fetchone()
    if row is None:
        raise NotFound("User not found")
    return row[0]
