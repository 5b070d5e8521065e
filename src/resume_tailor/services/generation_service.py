"""Generation service -- prompt resolution, template expansion, model calls."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass

import structlog

from resume_tailor.config import Settings, settings as default_settings
from resume_tailor.errors import GenerationEmpty, GenerationFailed
from resume_tailor.integrations.llm_client import CompletionClient, LLMError
from resume_tailor.services.default_prompts import (
    DEFAULT_SYSTEM_PROMPT,
    DEFAULT_USER_PROMPT_TEMPLATE,
    PREMIUM_SYSTEM_ADDENDUM,
    PREMIUM_USER_ADDENDUM,
)
from resume_tailor.services.prompt_registry import PromptRegistry

log = structlog.get_logger()

_PLACEHOLDER_RE = re.compile(r"\{\{(targetIndustry|targetRole|resumeText)\}\}")


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PromptPair:
    system_prompt: str
    user_prompt_template: str
    version_id: str | None = None


@dataclass(frozen=True)
class TailorResult:
    content: str
    prompt_version_id: str | None


@dataclass(frozen=True)
class PromptTestResult:
    output: str
    execution_time_ms: int


def expand_template(
    template: str,
    target_industry: str,
    target_role: str,
    resume_text: str,
) -> str:
    """Replace every placeholder occurrence in one pass.

    Substituted values are never scanned again, so a resume that happens to
    contain ``{{targetRole}}`` is passed through literally.
    """
    values = {
        "targetIndustry": target_industry,
        "targetRole": target_role,
        "resumeText": resume_text,
    }
    return _PLACEHOLDER_RE.sub(lambda match: values[match.group(1)], template)


# ---------------------------------------------------------------------------
# GenerationService
# ---------------------------------------------------------------------------

class GenerationService:
    """Produces tailored resume text from a resolved prompt pair."""

    def __init__(
        self,
        registry: PromptRegistry,
        llm: CompletionClient,
        settings: Settings | None = None,
    ) -> None:
        self.registry = registry
        self.llm = llm
        self.settings = settings or default_settings

    async def resolve_prompt(self, override: PromptPair | None = None) -> PromptPair:
        """Pick the prompt pair: override, then active, then default, then built-in."""
        if override is not None:
            return PromptPair(
                system_prompt=override.system_prompt,
                user_prompt_template=(
                    override.user_prompt_template or DEFAULT_USER_PROMPT_TEMPLATE
                ),
                version_id=None,
            )

        version = await self.registry.get_active()
        if version is None:
            version = await self.registry.get_default()
        if version is not None:
            return PromptPair(
                system_prompt=version.system_prompt,
                user_prompt_template=version.user_prompt_template,
                version_id=version.id,
            )

        return PromptPair(DEFAULT_SYSTEM_PROMPT, DEFAULT_USER_PROMPT_TEMPLATE)

    async def tailor(
        self,
        resume_text: str,
        target_industry: str,
        target_role: str,
        override: PromptPair | None = None,
        premium: bool = False,
    ) -> TailorResult:
        """Generate a tailored resume.

        Raises GenerationFailed on transport errors and GenerationEmpty when
        the model returns only whitespace.
        """
        pair = await self.resolve_prompt(override)
        system_prompt = pair.system_prompt
        user_prompt = expand_template(
            pair.user_prompt_template, target_industry, target_role, resume_text,
        )
        if premium and override is None and self.settings.PREMIUM_ADDENDUM_ENABLED:
            system_prompt += PREMIUM_SYSTEM_ADDENDUM
            user_prompt += PREMIUM_USER_ADDENDUM

        content, elapsed_ms = await self._complete(system_prompt, user_prompt)
        if not content.strip():
            log.warning(
                "generation_empty",
                prompt_version_id=pair.version_id,
                execution_time_ms=elapsed_ms,
            )
            raise GenerationEmpty()

        log.info(
            "generation_completed",
            prompt_version_id=pair.version_id,
            premium=premium,
            execution_time_ms=elapsed_ms,
        )
        return TailorResult(content=content, prompt_version_id=pair.version_id)

    async def test_prompt(
        self,
        system_prompt: str,
        user_prompt_template: str,
        sample_input: str,
        target_industry: str,
        target_role: str,
    ) -> PromptTestResult:
        """Run an unsaved prompt against sample input. No registry, no ledger."""
        user_prompt = expand_template(
            user_prompt_template, target_industry, target_role, sample_input,
        )
        content, elapsed_ms = await self._complete(system_prompt, user_prompt)
        return PromptTestResult(output=content or "", execution_time_ms=elapsed_ms)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _complete(self, system_prompt: str, user_prompt: str) -> tuple[str, int]:
        start = time.monotonic()
        try:
            content = await self.llm.complete(
                system_prompt, user_prompt, self.settings.LLM_MAX_TOKENS,
            )
        except LLMError as exc:
            log.error("generation_failed", error=str(exc), error_type=type(exc).__name__)
            raise GenerationFailed() from exc
        elapsed_ms = int((time.monotonic() - start) * 1000)
        return content or "", elapsed_ms
