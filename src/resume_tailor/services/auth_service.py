"""Identity-provider token verification.

The provider issues signed JWTs; only ``sub`` is required. Profile claims
are read under either their OIDC or their provider-specific name.
"""

from __future__ import annotations

from dataclasses import dataclass

from jose import JWTError, jwt

from resume_tailor.config import settings
from resume_tailor.errors import Unauthenticated


@dataclass(frozen=True)
class Principal:
    id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    avatar_url: str | None = None


def _claim(payload: dict, *names: str) -> str | None:
    for name in names:
        value = payload.get(name)
        if isinstance(value, str) and value:
            return value
    return None


def verify_token(token: str) -> Principal:
    """Decode and validate a provider JWT.

    Raises Unauthenticated (401) if the token is invalid, expired, or has
    no subject.
    """
    if not settings.AUTH_JWT_SECRET:
        raise Unauthenticated("Authentication is not configured")

    options = {"verify_aud": settings.AUTH_JWT_AUDIENCE is not None}
    try:
        payload = jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=[settings.AUTH_JWT_ALGORITHM],
            audience=settings.AUTH_JWT_AUDIENCE,
            options=options,
        )
    except JWTError:
        raise Unauthenticated("Invalid or expired token")

    subject = payload.get("sub")
    if not subject:
        raise Unauthenticated("Token has no subject")

    return Principal(
        id=str(subject),
        email=_claim(payload, "email"),
        first_name=_claim(payload, "given_name", "first_name"),
        last_name=_claim(payload, "family_name", "last_name"),
        avatar_url=_claim(payload, "picture", "image_url"),
    )
