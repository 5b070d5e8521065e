#!/usr/bin/env python3
"""Operator CLI for user administration.

Usage:
    DATABASE_URL=postgresql://... python scripts/admin_cli.py users
    python scripts/admin_cli.py stats
    python scripts/admin_cli.py promote <email-or-id>
    python scripts/admin_cli.py demote <email-or-id>
    python scripts/admin_cli.py grant <email-or-id> <count>
    python scripts/admin_cli.py deactivate <email-or-id>
    python scripts/admin_cli.py activate <email-or-id>

Exit codes:
    0 -- command succeeded
    1 -- user not found or invalid arguments
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from datetime import datetime, timezone

import asyncpg  # type: ignore[import-untyped]

DEFAULT_DATABASE_URL = "postgresql://app:devpassword@db:5432/resumetailor"


def _get_dsn() -> str:
    """Return a raw ``postgresql://`` DSN (strip any SQLAlchemy dialect prefix)."""
    url = os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)
    for prefix in ("postgresql+asyncpg://", "postgresql+psycopg2://"):
        if url.startswith(prefix):
            url = "postgresql://" + url[len(prefix):]
    return url


class UserNotFound(Exception):
    pass


async def _find_user(conn: asyncpg.Connection, identifier: str) -> asyncpg.Record:
    """Look a user up by email first, then by id."""
    row = await conn.fetchrow(
        "SELECT id, email, paid_credits_remaining FROM users WHERE email = $1",
        identifier,
    )
    if row is None:
        row = await conn.fetchrow(
            "SELECT id, email, paid_credits_remaining FROM users WHERE id = $1",
            identifier,
        )
    if row is None:
        raise UserNotFound(identifier)
    return row


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

async def list_users(conn: asyncpg.Connection) -> None:
    rows = await conn.fetch(
        "SELECT id, email, first_name, last_name, role, status, "
        "free_uses_consumed, paid_credits_remaining "
        "FROM users ORDER BY created_at DESC"
    )
    print(
        f"{'ID':<40}{'Email':<35}{'Name':<25}{'Role':<8}"
        f"{'Status':<13}{'Free Used':<11}{'Paid Left':<10}"
    )
    print("-" * 142)
    for row in rows:
        name = " ".join(p for p in (row["first_name"], row["last_name"]) if p) or "-"
        print(
            f"{row['id']:<40}{row['email'] or '-':<35}{name:<25}{row['role']:<8}"
            f"{row['status']:<13}{row['free_uses_consumed']:<11}"
            f"{row['paid_credits_remaining']:<10}"
        )
    print(f"\nTotal: {len(rows)} users")


async def show_stats(conn: asyncpg.Connection) -> None:
    users = await conn.fetchval("SELECT COUNT(*) FROM users")
    resumes = await conn.fetchval("SELECT COUNT(*) FROM resumes")
    revisions = await conn.fetchval("SELECT COUNT(*) FROM revisions")
    payments = await conn.fetchrow(
        "SELECT COUNT(*) AS count, COALESCE(SUM(amount), 0)::bigint AS revenue "
        "FROM payments WHERE status = 'completed'"
    )
    print(f"Users:      {users}")
    print(f"Resumes:    {resumes}")
    print(f"Revisions:  {revisions}")
    print(f"Payments:   {payments['count']}")
    print(f"Revenue:    ${payments['revenue'] / 100:.2f}")


async def set_role(conn: asyncpg.Connection, identifier: str, role: str) -> None:
    user = await _find_user(conn, identifier)
    await conn.execute(
        "UPDATE users SET role = $1, updated_at = $2 WHERE id = $3",
        role, datetime.now(timezone.utc), user["id"],
    )
    print(f"Set role of {user['email'] or user['id']} to {role}.")


async def set_status(conn: asyncpg.Connection, identifier: str, status: str) -> None:
    user = await _find_user(conn, identifier)
    await conn.execute(
        "UPDATE users SET status = $1, updated_at = $2 WHERE id = $3",
        status, datetime.now(timezone.utc), user["id"],
    )
    print(f"Set status of {user['email'] or user['id']} to {status}.")


async def grant(conn: asyncpg.Connection, identifier: str, count: int) -> None:
    user = await _find_user(conn, identifier)
    new_balance = await conn.fetchval(
        "UPDATE users "
        "SET paid_credits_remaining = paid_credits_remaining + $1, updated_at = $2 "
        "WHERE id = $3 RETURNING paid_credits_remaining",
        count, datetime.now(timezone.utc), user["id"],
    )
    print(f"Granted {count} revisions to {user['email'] or user['id']}. New balance: {new_balance}")


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Resume Tailor admin CLI")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("users", help="list all users")
    sub.add_parser("stats", help="show application totals")
    for name in ("promote", "demote", "deactivate", "activate"):
        cmd = sub.add_parser(name)
        cmd.add_argument("identifier", help="email or user id")
    grant_cmd = sub.add_parser("grant", help="add paid revisions")
    grant_cmd.add_argument("identifier", help="email or user id")
    grant_cmd.add_argument("count", type=int)
    return parser


async def run(args: argparse.Namespace) -> int:
    if args.command == "grant" and args.count <= 0:
        print("Count must be a positive integer.", file=sys.stderr)
        return 1

    conn: asyncpg.Connection = await asyncpg.connect(_get_dsn())
    try:
        if args.command == "users":
            await list_users(conn)
        elif args.command == "stats":
            await show_stats(conn)
        elif args.command == "promote":
            await set_role(conn, args.identifier, "admin")
        elif args.command == "demote":
            await set_role(conn, args.identifier, "user")
        elif args.command == "deactivate":
            await set_status(conn, args.identifier, "deactivated")
        elif args.command == "activate":
            await set_status(conn, args.identifier, "active")
        elif args.command == "grant":
            await grant(conn, args.identifier, args.count)
    except UserNotFound as exc:
        print(f"User not found: {exc}", file=sys.stderr)
        return 1
    finally:
        await conn.close()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(run(_build_parser().parse_args())))
