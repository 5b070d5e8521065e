from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from resume_tailor.api.dependencies import (
    get_billing,
    get_llm_client,
    get_recorder,
    get_text_extractor,
)
from resume_tailor.config import settings
from resume_tailor.database import get_db
from resume_tailor.integrations.llm_client import LLMTimeoutError
from resume_tailor.integrations.stripe_billing import ProviderSession, WebhookVerificationError
from resume_tailor.main import app
from resume_tailor.models import Base, User
from resume_tailor.models.user import ROLE_USER, STATUS_ACTIVE

TEST_JWT_SECRET = "test-secret-key-for-unit-tests"
GOOD_SIGNATURE = "t=1,v1=good"


# ---------------------------------------------------------------------------
# Test doubles for the external collaborators
# ---------------------------------------------------------------------------

class FakeRecorder:
    """EventRecorder that keeps every event in memory."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    def record(self, category: str, outcome: str, **attributes: Any) -> None:
        self.events.append((category, outcome, attributes))

    def of(self, category: str) -> list[tuple[str, str, dict[str, Any]]]:
        return [event for event in self.events if event[0] == category]


class FakeLLM:
    """CompletionClient returning a canned reply, or raising ``error``."""

    def __init__(self, reply: str = "TAILORED RESUME") -> None:
        self.reply = reply
        self.error: Exception | None = None
        self.calls: list[dict[str, Any]] = []

    async def complete(self, system_prompt: str, user_prompt: str, max_tokens: int) -> str:
        self.calls.append(
            {"system": system_prompt, "user": user_prompt, "max_tokens": max_tokens}
        )
        if self.error is not None:
            raise self.error
        return self.reply

    def fail_with_timeout(self) -> None:
        self.error = LLMTimeoutError("timed out")


class FakeBilling:
    """BillingProvider that hands out sequential ids and parses events as JSON-ish dicts."""

    def __init__(self) -> None:
        self.customers: list[tuple[str, str]] = []
        self.sessions: list[dict[str, Any]] = []
        self.next_event: dict[str, Any] | None = None

    async def create_customer(self, email: str, user_id: str) -> str:
        self.customers.append((email, user_id))
        return f"cus_{len(self.customers)}"

    async def create_checkout_session(self, **kwargs: Any) -> ProviderSession:
        self.sessions.append(kwargs)
        session_id = f"cs_test_{len(self.sessions)}"
        return ProviderSession(
            session_id=session_id,
            url=f"https://checkout.stripe.test/{session_id}",
        )

    def construct_event(self, payload: bytes, signature: str) -> dict[str, Any]:
        if signature != GOOD_SIGNATURE or self.next_event is None:
            raise WebhookVerificationError("signature mismatch")
        return self.next_event


class FakeExtractor:
    def __init__(self, text: str = "Jane Doe\nSoftware Engineer") -> None:
        self.text = text

    def extract(self, data: bytes, file_type: str) -> str:
        return self.text


def completed_event(
    event_id: str,
    session_id: str,
    user_id: str,
    credits: int = 5,
    amount: int = 499,
    plan_id: str = "basic",
) -> dict[str, Any]:
    return {
        "id": event_id,
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": session_id,
                "amount_total": amount,
                "payment_intent": f"pi_{event_id}",
                "metadata": {
                    "user_id": user_id,
                    "plan_id": plan_id,
                    "credits": str(credits),
                },
            }
        },
    }


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def db_engine():
    """In-memory SQLite engine with the full schema created from the models."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def recorder() -> FakeRecorder:
    return FakeRecorder()


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def fake_billing() -> FakeBilling:
    return FakeBilling()


@pytest.fixture
def fake_extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture
def make_user(db_session):
    """Insert a user row and return it."""

    async def _make_user(
        user_id: str = "user_1",
        email: str | None = None,
        role: str = ROLE_USER,
        status: str = STATUS_ACTIVE,
        free_uses_consumed: int = 0,
        paid_credits_remaining: int = 0,
        **fields: Any,
    ) -> User:
        now = datetime.now(timezone.utc)
        user = User(
            id=user_id,
            email=email or f"{user_id}@example.com",
            role=role,
            status=status,
            free_uses_consumed=free_uses_consumed,
            paid_credits_remaining=paid_credits_remaining,
            created_at=now,
            updated_at=now,
            **fields,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make_user


@pytest.fixture
def jwt_secret(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setattr(settings, "AUTH_JWT_AUDIENCE", None)
    return TEST_JWT_SECRET


@pytest.fixture
def auth_headers(jwt_secret):
    """Build an Authorization header for a principal."""

    def _auth_headers(user_id: str = "user_1", **claims: Any) -> dict[str, str]:
        payload = {"sub": user_id, "email": f"{user_id}@example.com", **claims}
        token = jwt.encode(payload, jwt_secret, algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
async def client(db_session, recorder, fake_llm, fake_billing, fake_extractor):
    """HTTP client against the app with the database and collaborators swapped out."""

    async def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_recorder] = lambda: recorder
    app.dependency_overrides[get_llm_client] = lambda: fake_llm
    app.dependency_overrides[get_billing] = lambda: fake_billing
    app.dependency_overrides[get_text_extractor] = lambda: fake_extractor

    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
