"""Authentication API router -- /api/v1/auth/*."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from resume_tailor.api.dependencies import (
    DEACTIVATED_DETAIL,
    get_identity_service,
    get_principal,
)
from resume_tailor.errors import Forbidden
from resume_tailor.models import User
from resume_tailor.services.auth_service import Principal
from resume_tailor.services.entitlement_service import FREE_TIER_LIMIT
from resume_tailor.services.identity_service import IdentityService

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


class UserResponse(BaseModel):
    id: str
    email: str
    first_name: str | None
    last_name: str | None
    profile_image_url: str | None
    role: str
    status: str
    free_uses_consumed: int
    free_uses_remaining: int
    paid_credits_remaining: int
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            profile_image_url=user.profile_image_url,
            role=user.role,
            status=user.status,
            free_uses_consumed=user.free_uses_consumed,
            free_uses_remaining=max(FREE_TIER_LIMIT - user.free_uses_consumed, 0),
            paid_credits_remaining=user.paid_credits_remaining,
            created_at=user.created_at,
        )


@router.get("/user", response_model=UserResponse)
async def current_user(
    principal: Principal = Depends(get_principal),
    identity: IdentityService = Depends(get_identity_service),
):
    """Sync the caller's profile from their token and return the user row."""
    result = await identity.sync(
        principal.id,
        principal.email,
        first_name=principal.first_name,
        last_name=principal.last_name,
        avatar_url=principal.avatar_url,
    )
    if result.user.is_deactivated:
        raise Forbidden(DEACTIVATED_DETAIL)
    return UserResponse.from_user(result.user)
