"""Tests for token verification and the auth endpoints."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from resume_tailor.config import settings
from resume_tailor.errors import Unauthenticated
from resume_tailor.models import User
from resume_tailor.services.auth_service import verify_token

from conftest import TEST_JWT_SECRET


def _token(secret: str = TEST_JWT_SECRET, **claims) -> str:
    return jwt.encode(claims, secret, algorithm="HS256")


# ---------------------------------------------------------------------------
# verify_token
# ---------------------------------------------------------------------------

def test_verify_token_maps_profile_claims(jwt_secret):
    principal = verify_token(_token(
        sub="user_1",
        email="a@example.com",
        given_name="Ada",
        family_name="Lovelace",
        picture="https://img.example.com/a.png",
    ))

    assert principal.id == "user_1"
    assert principal.email == "a@example.com"
    assert (principal.first_name, principal.last_name) == ("Ada", "Lovelace")
    assert principal.avatar_url == "https://img.example.com/a.png"


def test_verify_token_accepts_provider_claim_names(jwt_secret):
    principal = verify_token(_token(
        sub="user_1", first_name="Ada", last_name="L", image_url="https://x/y.png",
    ))

    assert principal.first_name == "Ada"
    assert principal.avatar_url == "https://x/y.png"
    assert principal.email is None


def test_verify_token_rejects_wrong_secret(jwt_secret):
    with pytest.raises(Unauthenticated):
        verify_token(_token(secret="not-the-secret", sub="user_1"))


def test_verify_token_rejects_expired(jwt_secret):
    expired = datetime.now(timezone.utc) - timedelta(minutes=5)

    with pytest.raises(Unauthenticated, match="expired"):
        verify_token(_token(sub="user_1", exp=int(expired.timestamp())))


def test_verify_token_requires_subject(jwt_secret):
    with pytest.raises(Unauthenticated, match="subject"):
        verify_token(_token(email="a@example.com"))


def test_verify_token_checks_audience_when_configured(jwt_secret, monkeypatch):
    monkeypatch.setattr(settings, "AUTH_JWT_AUDIENCE", "resume-tailor")

    assert verify_token(_token(sub="user_1", aud="resume-tailor")).id == "user_1"
    with pytest.raises(Unauthenticated):
        verify_token(_token(sub="user_1", aud="someone-else"))


def test_verify_token_without_configured_secret(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_JWT_SECRET", "")

    with pytest.raises(Unauthenticated, match="not configured"):
        verify_token(_token(sub="user_1"))


# ---------------------------------------------------------------------------
# /api/v1/auth/user
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_auth_user_without_token_is_401(client):
    response = await client.get("/api/v1/auth/user")

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_auth_user_creates_account_on_first_call(client, auth_headers, db_session):
    response = await client.get(
        "/api/v1/auth/user", headers=auth_headers("user_1", given_name="Ada"),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "user_1"
    assert body["email"] == "user_1@example.com"
    assert body["first_name"] == "Ada"
    assert body["free_uses_remaining"] == 3
    assert body["paid_credits_remaining"] == 0
    assert await db_session.get(User, "user_1") is not None


@pytest.mark.asyncio
async def test_auth_user_accepts_session_cookie(client, jwt_secret):
    client.cookies.set("__session", _token(sub="user_1", email="c@example.com"))

    response = await client.get("/api/v1/auth/user")

    assert response.status_code == 200
    assert response.json()["email"] == "c@example.com"


@pytest.mark.asyncio
async def test_auth_user_deactivated_is_403(client, auth_headers, make_user):
    await make_user("user_1", status="deactivated")

    response = await client.get("/api/v1/auth/user", headers=auth_headers("user_1"))

    assert response.status_code == 403
    assert "deactivated" in response.json()["detail"]


@pytest.mark.asyncio
async def test_auth_user_migrates_reissued_id(client, auth_headers, make_user):
    await make_user("old_id", email="jane@example.com", paid_credits_remaining=5)

    response = await client.get(
        "/api/v1/auth/user",
        headers=auth_headers("new_id", email="jane@example.com"),
    )

    assert response.status_code == 200
    assert response.json()["id"] == "new_id"
    assert response.json()["paid_credits_remaining"] == 5
