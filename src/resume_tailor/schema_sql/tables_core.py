"""CREATE TABLE statements for users, resumes, and revisions."""

USERS = """
CREATE TABLE users (
    id                      VARCHAR(255) PRIMARY KEY,
    email                   VARCHAR(320) NOT NULL UNIQUE,
    first_name              VARCHAR(255),
    last_name               VARCHAR(255),
    profile_image_url       TEXT,
    role                    VARCHAR(20) NOT NULL DEFAULT 'user'
                            CONSTRAINT ck_user_role CHECK (role IN ('user', 'admin')),
    status                  VARCHAR(20) NOT NULL DEFAULT 'active'
                            CONSTRAINT ck_user_status
                            CHECK (status IN ('active', 'deactivated')),
    free_uses_consumed      INTEGER NOT NULL DEFAULT 0
                            CONSTRAINT ck_user_free_nonneg CHECK (free_uses_consumed >= 0),
    paid_credits_remaining  INTEGER NOT NULL DEFAULT 0
                            CONSTRAINT ck_user_paid_nonneg CHECK (paid_credits_remaining >= 0),
    stripe_customer_id      VARCHAR(255) UNIQUE,
    last_login_at           TIMESTAMPTZ,
    created_at              TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at              TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""

RESUMES = """
CREATE TABLE resumes (
    id                  VARCHAR(36) PRIMARY KEY,
    user_id             VARCHAR(255) NOT NULL
                        REFERENCES users(id) ON DELETE CASCADE ON UPDATE CASCADE,
    original_filename   VARCHAR(512) NOT NULL,
    file_type           VARCHAR(10) NOT NULL
                        CONSTRAINT ck_resume_file_type CHECK (file_type IN ('pdf', 'docx')),
    extracted_text      TEXT NOT NULL,
    created_at          TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""

REVISIONS = """
CREATE TABLE revisions (
    id                  VARCHAR(36) PRIMARY KEY,
    resume_id           VARCHAR(36) NOT NULL
                        REFERENCES resumes(id) ON DELETE CASCADE,
    user_id             VARCHAR(255) NOT NULL
                        REFERENCES users(id) ON DELETE CASCADE ON UPDATE CASCADE,
    target_industry     TEXT NOT NULL,
    target_role         TEXT NOT NULL,
    tailored_content    TEXT NOT NULL,
    was_free            BOOLEAN NOT NULL DEFAULT TRUE,
    prompt_version_id   VARCHAR(36),
    created_at          TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""

ALL = [USERS, RESUMES, REVISIONS]
