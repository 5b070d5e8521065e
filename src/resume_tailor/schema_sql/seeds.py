"""Seed data INSERT statements."""

from resume_tailor.services.default_prompts import (
    DEFAULT_SYSTEM_PROMPT,
    DEFAULT_USER_PROMPT_TEMPLATE,
)

BUILTIN_PROMPT_VERSION_ID = "00000000-0000-4000-8000-000000000001"

# Dollar quoting keeps the apostrophes in the prompt text intact
DEFAULT_PROMPT_VERSION = f"""
INSERT INTO prompt_versions
    (id, name, description, system_prompt, user_prompt_template, is_active, is_default)
VALUES (
    '{BUILTIN_PROMPT_VERSION_ID}',
    'Resume coach (built-in)',
    'Seeded from the built-in prompts',
    $prompt${DEFAULT_SYSTEM_PROMPT}$prompt$,
    $prompt${DEFAULT_USER_PROMPT_TEMPLATE}$prompt$,
    FALSE,
    TRUE
);
"""

ALL = [DEFAULT_PROMPT_VERSION]
