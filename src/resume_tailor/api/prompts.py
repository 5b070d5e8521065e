"""Admin prompt registry endpoints -- versions, activation, and the test sandbox."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from resume_tailor.api.dependencies import (
    get_generation_service,
    get_prompt_registry,
    require_admin,
)
from resume_tailor.models import User
from resume_tailor.services.default_prompts import (
    DEFAULT_SYSTEM_PROMPT,
    DEFAULT_USER_PROMPT_TEMPLATE,
)
from resume_tailor.services.generation_service import GenerationService
from resume_tailor.services.prompt_registry import (
    PromptRegistry,
    PromptTestRunResponse,
    PromptVersionResponse,
)

router = APIRouter(
    prefix="/api/v1/admin/prompts",
    tags=["prompts"],
    dependencies=[Depends(require_admin)],
)


# ---------------------------------------------------------------------------
# Request / response schemas
# ---------------------------------------------------------------------------

class CreatePromptRequest(BaseModel):
    name: str = Field(..., max_length=255)
    description: str | None = None
    system_prompt: str
    user_prompt_template: str


class UpdatePromptRequest(BaseModel):
    name: str | None = Field(None, max_length=255)
    description: str | None = None
    system_prompt: str | None = None
    user_prompt_template: str | None = None


class DefaultPromptsResponse(BaseModel):
    system_prompt: str
    user_prompt_template: str


class TestPromptRequest(BaseModel):
    system_prompt: str = Field(..., min_length=1)
    user_prompt_template: str = Field(..., min_length=1)
    test_input: str = Field(..., min_length=1)
    target_industry: str = Field(..., min_length=1, max_length=200)
    target_role: str = Field(..., min_length=1, max_length=200)
    prompt_version_id: str | None = None


class TestPromptResponse(BaseModel):
    output: str
    execution_time_ms: int
    test_run_id: str


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("", response_model=list[PromptVersionResponse])
async def list_prompt_versions(registry: PromptRegistry = Depends(get_prompt_registry)):
    return await registry.list_versions()


@router.post("", response_model=PromptVersionResponse, status_code=status.HTTP_201_CREATED)
async def create_prompt_version(
    body: CreatePromptRequest,
    admin: User = Depends(require_admin),
    registry: PromptRegistry = Depends(get_prompt_registry),
):
    """Store a new prompt version. It starts inactive."""
    return await registry.create(
        name=body.name,
        system_prompt=body.system_prompt,
        user_prompt_template=body.user_prompt_template,
        description=body.description,
        created_by=admin.id,
    )


@router.get("/defaults", response_model=DefaultPromptsResponse)
async def read_default_prompts():
    """Return the built-in prompts used when no version is active."""
    return DefaultPromptsResponse(
        system_prompt=DEFAULT_SYSTEM_PROMPT,
        user_prompt_template=DEFAULT_USER_PROMPT_TEMPLATE,
    )


@router.post("/test", response_model=TestPromptResponse)
async def test_prompt(
    body: TestPromptRequest,
    admin: User = Depends(require_admin),
    registry: PromptRegistry = Depends(get_prompt_registry),
    generator: GenerationService = Depends(get_generation_service),
):
    """Run an unsaved prompt against sample input and keep the result."""
    if body.prompt_version_id is not None:
        await registry.get(body.prompt_version_id)

    result = await generator.test_prompt(
        body.system_prompt,
        body.user_prompt_template,
        body.test_input,
        body.target_industry,
        body.target_role,
    )
    run = await registry.record_test_run(
        test_input=body.test_input,
        target_industry=body.target_industry,
        target_role=body.target_role,
        output=result.output,
        execution_time_ms=result.execution_time_ms,
        prompt_version_id=body.prompt_version_id,
        created_by=admin.id,
    )
    return TestPromptResponse(
        output=result.output,
        execution_time_ms=result.execution_time_ms,
        test_run_id=run.id,
    )


@router.get("/{version_id}", response_model=PromptVersionResponse)
async def read_prompt_version(
    version_id: str,
    registry: PromptRegistry = Depends(get_prompt_registry),
):
    return await registry.get(version_id)


@router.patch("/{version_id}", response_model=PromptVersionResponse)
async def update_prompt_version(
    version_id: str,
    body: UpdatePromptRequest,
    registry: PromptRegistry = Depends(get_prompt_registry),
):
    return await registry.update(version_id, **body.model_dump(exclude_unset=True))


@router.post("/{version_id}/activate", response_model=PromptVersionResponse)
async def activate_prompt_version(
    version_id: str,
    registry: PromptRegistry = Depends(get_prompt_registry),
):
    """Make this version the one used for all new revisions."""
    return await registry.activate(version_id)


@router.get("/{version_id}/test-runs", response_model=list[PromptTestRunResponse])
async def list_prompt_test_runs(
    version_id: str,
    registry: PromptRegistry = Depends(get_prompt_registry),
):
    await registry.get(version_id)
    return await registry.list_test_runs(version_id)
