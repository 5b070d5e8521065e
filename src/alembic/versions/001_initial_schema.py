"""Initial schema -- all tables, indexes, the seeded default prompt, and triggers.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18
"""

from alembic import op

from resume_tailor.schema_sql import (
    indexes,
    seeds,
    tables_billing,
    tables_core,
    tables_prompts,
    triggers,
)

revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _execute_all(statements: list[str]) -> None:
    """Execute a list of SQL statements sequentially."""
    for stmt in statements:
        op.execute(stmt)


def upgrade() -> None:
    _execute_all(tables_core.ALL)
    _execute_all(tables_billing.ALL)
    _execute_all(tables_prompts.ALL)
    _execute_all(indexes.ALL)
    _execute_all(seeds.ALL)
    _execute_all(triggers.FUNCTIONS_ALL)
    _execute_all(triggers.TRIGGERS_ALL)


def downgrade() -> None:
    _drop_triggers()
    _drop_functions()
    _drop_tables()


def _drop_triggers() -> None:
    op.execute(
        "DROP TRIGGER IF EXISTS trg_analytics_events_immutable_fields "
        "ON analytics_events;"
    )
    op.execute("DROP TRIGGER IF EXISTS trg_revisions_immutable_fields ON revisions;")
    op.execute(
        "DROP TRIGGER IF EXISTS trg_processed_webhooks_immutable "
        "ON processed_webhooks;"
    )


def _drop_functions() -> None:
    op.execute("DROP FUNCTION IF EXISTS check_immutable_event_fields();")
    op.execute("DROP FUNCTION IF EXISTS check_immutable_revision_fields();")
    op.execute("DROP FUNCTION IF EXISTS raise_immutable_error();")


def _drop_tables() -> None:
    tables = [
        "analytics_events",
        "prompt_test_runs",
        "prompt_versions",
        "processed_webhooks",
        "payments",
        "revisions",
        "resumes",
        "users",
    ]
    for table in tables:
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE;")
