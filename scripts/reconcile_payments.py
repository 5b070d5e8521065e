#!/usr/bin/env python3
"""Nightly payment and ledger reconciliation script.

Reports:
    * payments still ``pending`` after ``STALE_AFTER_HOURS`` (the webhook
      never arrived or was rejected);
    * users whose counters break the ledger bounds;
    * users holding more paid credits than they ever purchased.

Usage:
    DATABASE_URL=postgresql://... python scripts/reconcile_payments.py

Exit codes:
    0 -- nothing to report
    1 -- one or more findings
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from datetime import datetime, timedelta, timezone

import asyncpg  # type: ignore[import-untyped]

DEFAULT_DATABASE_URL = "postgresql://app:devpassword@db:5432/resumetailor"
STALE_AFTER_HOURS = int(os.environ.get("STALE_AFTER_HOURS", "24"))
FREE_TIER_LIMIT = 3


def _get_dsn() -> str:
    """Return a raw ``postgresql://`` DSN (strip any SQLAlchemy dialect prefix)."""
    url = os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)
    for prefix in ("postgresql+asyncpg://", "postgresql+psycopg2://"):
        if url.startswith(prefix):
            url = "postgresql://" + url[len(prefix):]
    return url


async def reconcile(dsn: str) -> dict[str, list[dict]]:
    """Run every check and return the findings keyed by check name."""
    conn: asyncpg.Connection = await asyncpg.connect(dsn)
    try:
        cutoff = datetime.now(timezone.utc) - timedelta(hours=STALE_AFTER_HOURS)
        stale = await conn.fetch(
            "SELECT id, user_id, stripe_session_id, amount, created_at "
            "FROM payments WHERE status = 'pending' AND created_at < $1 "
            "ORDER BY created_at",
            cutoff,
        )

        out_of_bounds = await conn.fetch(
            "SELECT id, free_uses_consumed, paid_credits_remaining FROM users "
            "WHERE free_uses_consumed > $1 "
            "OR free_uses_consumed < 0 OR paid_credits_remaining < 0 "
            "ORDER BY id",
            FREE_TIER_LIMIT,
        )

        # Admin grants also raise the balance, so this is a signal, not proof.
        over_granted = await conn.fetch(
            """
            SELECT
                u.id AS user_id,
                u.paid_credits_remaining,
                COALESCE(SUM(p.credits_granted), 0)::int AS purchased
            FROM users u
            LEFT JOIN payments p
                   ON p.user_id = u.id AND p.status = 'completed'
            GROUP BY u.id, u.paid_credits_remaining
            HAVING u.paid_credits_remaining > COALESCE(SUM(p.credits_granted), 0)
            ORDER BY u.id
            """
        )

        return {
            "stale_pending_payments": [
                {
                    "payment_id": row["id"],
                    "user_id": row["user_id"],
                    "stripe_session_id": row["stripe_session_id"],
                    "amount": row["amount"],
                    "created_at": row["created_at"].isoformat(),
                }
                for row in stale
            ],
            "counter_violations": [
                {
                    "user_id": row["id"],
                    "free_uses_consumed": row["free_uses_consumed"],
                    "paid_credits_remaining": row["paid_credits_remaining"],
                }
                for row in out_of_bounds
            ],
            "credits_exceed_purchases": [
                {
                    "user_id": row["user_id"],
                    "paid_credits_remaining": row["paid_credits_remaining"],
                    "purchased": row["purchased"],
                }
                for row in over_granted
            ],
        }
    finally:
        await conn.close()


async def main() -> int:
    findings = await reconcile(_get_dsn())
    total = sum(len(items) for items in findings.values())

    report = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "total_findings": total,
        **findings,
    }

    json.dump(report, sys.stdout, indent=2)
    sys.stdout.write("\n")

    return 1 if total else 0


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)
