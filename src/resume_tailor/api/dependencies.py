"""Shared FastAPI dependencies -- authentication, roles, and service wiring."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Cookie, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from resume_tailor.database import get_db
from resume_tailor.errors import Forbidden, Unauthenticated
from resume_tailor.integrations.llm_client import CompletionClient
from resume_tailor.integrations.stripe_billing import BillingProvider
from resume_tailor.integrations.text_extractor import TextExtractor
from resume_tailor.models import User
from resume_tailor.services.audit_logger import EventRecorder
from resume_tailor.services.auth_service import Principal, verify_token
from resume_tailor.services.generation_service import GenerationService
from resume_tailor.services.identity_service import IdentityService
from resume_tailor.services.payment_service import PaymentService
from resume_tailor.services.prompt_registry import PromptRegistry

DEACTIVATED_DETAIL = "Your account has been deactivated. Please contact support."

# Optional bearer scheme -- auto_error=False so we can fall back to the session cookie
_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    principal_id: str
    role: str


# ---------------------------------------------------------------------------
# Collaborators held on app.state
# ---------------------------------------------------------------------------

def get_recorder(request: Request) -> EventRecorder:
    return request.app.state.recorder


def get_llm_client(request: Request) -> CompletionClient:
    return request.app.state.llm_client


def get_billing(request: Request) -> BillingProvider:
    return request.app.state.billing


def get_text_extractor(request: Request) -> TextExtractor:
    return request.app.state.text_extractor


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

def get_identity_service(
    db: AsyncSession = Depends(get_db),
    recorder: EventRecorder = Depends(get_recorder),
) -> IdentityService:
    return IdentityService(db, recorder)


def get_prompt_registry(db: AsyncSession = Depends(get_db)) -> PromptRegistry:
    return PromptRegistry(db)


def get_generation_service(
    registry: PromptRegistry = Depends(get_prompt_registry),
    llm: CompletionClient = Depends(get_llm_client),
) -> GenerationService:
    return GenerationService(registry, llm)


def get_payment_service(
    db: AsyncSession = Depends(get_db),
    billing: BillingProvider = Depends(get_billing),
    recorder: EventRecorder = Depends(get_recorder),
) -> PaymentService:
    return PaymentService(db, billing, recorder)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def get_principal(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    session: str | None = Cookie(default=None, alias="__session"),
) -> Principal:
    """Verify the provider token and return the principal it names.

    Token sources (checked in order):
      1. Authorization: Bearer <token> header
      2. ``__session`` cookie

    Raises Unauthenticated (401) if neither carries a valid token.
    """
    token = credentials.credentials if credentials is not None else session
    if not token:
        raise Unauthenticated()

    principal = verify_token(token)
    request.state.user_id = principal.id
    return principal


def _ensure_active(user: User) -> User:
    if user.is_deactivated:
        raise Forbidden(DEACTIVATED_DETAIL)
    return user


async def get_current_user(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    identity: IdentityService = Depends(get_identity_service),
) -> User:
    """Return the caller's user row, syncing it from the token on first sight.

    Raises Forbidden (403) for deactivated accounts.
    """
    user = await db.get(User, principal.id)
    if user is None:
        result = await identity.sync(
            principal.id,
            principal.email,
            first_name=principal.first_name,
            last_name=principal.last_name,
            avatar_url=principal.avatar_url,
        )
        user = result.user
    return _ensure_active(user)


async def get_auth_context(user: User = Depends(get_current_user)) -> AuthContext:
    return AuthContext(principal_id=user.id, role=user.role)


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Raises Forbidden (403) unless the caller is an admin."""
    if not user.is_admin:
        raise Forbidden("Admin access required")
    return user
