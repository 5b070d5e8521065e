"""All CREATE INDEX statements for the initial schema."""

ALL = [
    # resumes / revisions
    "CREATE INDEX ix_resumes_user_id ON resumes(user_id);",
    "CREATE INDEX ix_revisions_user_id ON revisions(user_id);",
    "CREATE INDEX idx_revisions_resume ON revisions(resume_id, created_at DESC);",
    # payments
    "CREATE INDEX ix_payments_user_id ON payments(user_id);",
    "CREATE INDEX idx_payments_pending ON payments(created_at) WHERE status = 'pending';",
    # prompt_versions -- at most one active and one default row
    "CREATE UNIQUE INDEX uq_prompt_versions_single_active "
    "ON prompt_versions(is_active) WHERE is_active;",
    "CREATE UNIQUE INDEX uq_prompt_versions_single_default "
    "ON prompt_versions(is_default) WHERE is_default;",
    # prompt_test_runs
    "CREATE INDEX ix_prompt_test_runs_prompt_version_id "
    "ON prompt_test_runs(prompt_version_id);",
    # analytics_events
    "CREATE INDEX idx_analytics_type_created ON analytics_events(event_type, created_at);",
    "CREATE INDEX idx_analytics_user ON analytics_events(user_id) WHERE user_id IS NOT NULL;",
]
