"""CREATE TABLE statements for prompt versions, sandbox runs, and analytics."""

PROMPT_VERSIONS = """
CREATE TABLE prompt_versions (
    id                      VARCHAR(36) PRIMARY KEY,
    name                    VARCHAR(255) NOT NULL,
    description             TEXT,
    system_prompt           TEXT NOT NULL,
    user_prompt_template    TEXT NOT NULL,
    is_active               BOOLEAN NOT NULL DEFAULT FALSE,
    is_default              BOOLEAN NOT NULL DEFAULT FALSE,
    created_by              VARCHAR(255)
                            REFERENCES users(id) ON DELETE SET NULL ON UPDATE CASCADE,
    created_at              TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at              TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""

PROMPT_TEST_RUNS = """
CREATE TABLE prompt_test_runs (
    id                  VARCHAR(36) PRIMARY KEY,
    prompt_version_id   VARCHAR(36)
                        REFERENCES prompt_versions(id) ON DELETE CASCADE,
    test_input          TEXT NOT NULL,
    target_industry     TEXT NOT NULL,
    target_role         TEXT NOT NULL,
    output              TEXT NOT NULL,
    execution_time_ms   INTEGER,
    created_by          VARCHAR(255)
                        REFERENCES users(id) ON DELETE SET NULL ON UPDATE CASCADE,
    created_at          TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""

ANALYTICS_EVENTS = """
CREATE TABLE analytics_events (
    id              VARCHAR(36) PRIMARY KEY,
    event_type      VARCHAR(50) NOT NULL,
    user_id         VARCHAR(255)
                    REFERENCES users(id) ON DELETE SET NULL ON UPDATE CASCADE,
    metadata        JSONB,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""

ALL = [PROMPT_VERSIONS, PROMPT_TEST_RUNS, ANALYTICS_EVENTS]
