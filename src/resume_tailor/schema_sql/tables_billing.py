"""CREATE TABLE statements for payments and webhook deduplication."""

PAYMENTS = """
CREATE TABLE payments (
    id                          VARCHAR(36) PRIMARY KEY,
    user_id                     VARCHAR(255) NOT NULL
                                REFERENCES users(id) ON DELETE CASCADE ON UPDATE CASCADE,
    stripe_session_id           VARCHAR(255) NOT NULL UNIQUE,
    stripe_payment_intent_id    VARCHAR(255),
    amount                      INTEGER NOT NULL
                                CONSTRAINT ck_payment_amount_nonneg CHECK (amount >= 0),
    currency                    VARCHAR(3) NOT NULL DEFAULT 'usd',
    status                      VARCHAR(20) NOT NULL DEFAULT 'pending'
                                CONSTRAINT ck_payment_status
                                CHECK (status IN ('pending', 'completed', 'failed')),
    credits_granted             INTEGER NOT NULL
                                CONSTRAINT ck_payment_credits_nonneg
                                CHECK (credits_granted >= 0),
    created_at                  TIMESTAMPTZ NOT NULL DEFAULT now(),
    completed_at                TIMESTAMPTZ
);
"""

PROCESSED_WEBHOOKS = """
CREATE TABLE processed_webhooks (
    event_id        VARCHAR(255) PRIMARY KEY,
    processed_at    TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""

ALL = [PAYMENTS, PROCESSED_WEBHOOKS]
