"""Trigger functions and trigger DDL for the initial schema."""

# ---- Trigger functions ----

FN_RAISE_IMMUTABLE = """
CREATE OR REPLACE FUNCTION raise_immutable_error()
RETURNS TRIGGER AS $$
BEGIN
    RAISE EXCEPTION 'Rows in table % are immutable', TG_TABLE_NAME;
END;
$$ LANGUAGE plpgsql;
"""

# Only the owner reference may change (identity migration rewrites it)
FN_CHECK_IMMUTABLE_REVISION = """
CREATE OR REPLACE FUNCTION check_immutable_revision_fields()
RETURNS TRIGGER AS $$
BEGIN
    IF OLD.id                IS DISTINCT FROM NEW.id
    OR OLD.resume_id         IS DISTINCT FROM NEW.resume_id
    OR OLD.target_industry   IS DISTINCT FROM NEW.target_industry
    OR OLD.target_role       IS DISTINCT FROM NEW.target_role
    OR OLD.tailored_content  IS DISTINCT FROM NEW.tailored_content
    OR OLD.was_free          IS DISTINCT FROM NEW.was_free
    OR OLD.prompt_version_id IS DISTINCT FROM NEW.prompt_version_id
    OR OLD.created_at        IS DISTINCT FROM NEW.created_at
    THEN
        RAISE EXCEPTION 'Cannot modify recorded revision fields';
    END IF;
    RETURN NEW;
END;
$$ LANGUAGE plpgsql;
"""

FN_CHECK_IMMUTABLE_EVENT = """
CREATE OR REPLACE FUNCTION check_immutable_event_fields()
RETURNS TRIGGER AS $$
BEGIN
    IF OLD.id          IS DISTINCT FROM NEW.id
    OR OLD.event_type  IS DISTINCT FROM NEW.event_type
    OR OLD.metadata    IS DISTINCT FROM NEW.metadata
    OR OLD.created_at  IS DISTINCT FROM NEW.created_at
    THEN
        RAISE EXCEPTION 'Analytics events are append-only';
    END IF;
    RETURN NEW;
END;
$$ LANGUAGE plpgsql;
"""

FUNCTIONS_ALL = [
    FN_RAISE_IMMUTABLE,
    FN_CHECK_IMMUTABLE_REVISION,
    FN_CHECK_IMMUTABLE_EVENT,
]

# ---- Triggers ----

TRIGGERS_ALL = [
    "CREATE TRIGGER trg_processed_webhooks_immutable "
    "BEFORE UPDATE OR DELETE ON processed_webhooks "
    "FOR EACH ROW EXECUTE FUNCTION raise_immutable_error();",

    "CREATE TRIGGER trg_revisions_immutable_fields "
    "BEFORE UPDATE ON revisions "
    "FOR EACH ROW EXECUTE FUNCTION check_immutable_revision_fields();",

    "CREATE TRIGGER trg_analytics_events_immutable_fields "
    "BEFORE UPDATE ON analytics_events "
    "FOR EACH ROW EXECUTE FUNCTION check_immutable_event_fields();",
]
