from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.asyncio import Redis

from resume_tailor.config import settings
from resume_tailor.api.admin import router as admin_router
from resume_tailor.api.auth import router as auth_router
from resume_tailor.api.payments import router as payments_router
from resume_tailor.api.prompts import router as prompts_router
from resume_tailor.api.resumes import router as resumes_router
from resume_tailor.api.revisions import router as revisions_router
from resume_tailor.api.webhooks import router as webhooks_router
from resume_tailor.database import engine
from resume_tailor.integrations.llm_client import ChatCompletionsClient
from resume_tailor.integrations.stripe_billing import StripeBillingClient
from resume_tailor.integrations.text_extractor import DocumentTextExtractor
from resume_tailor.middleware.rate_limit import RateLimitMiddleware
from resume_tailor.middleware.security import SecurityHeadersMiddleware
from resume_tailor.services.audit_logger import AuditLogger

# Configure structlog
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        (
            structlog.dev.ConsoleRenderer()
            if settings.APP_ENV == "development"
            else structlog.processors.JSONRenderer()
        ),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(0),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=True,
)

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    log.info("starting_up", env=settings.APP_ENV)
    redis = Redis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        await redis.ping()
        log.info("redis_connected", url=settings.REDIS_URL)
    except Exception as e:
        log.warning("redis_connection_failed", error=str(e))
    app.state.redis = redis

    app.state.recorder = AuditLogger()
    app.state.llm_client = ChatCompletionsClient()
    app.state.billing = StripeBillingClient()
    app.state.text_extractor = DocumentTextExtractor()
    if not settings.STRIPE_WEBHOOK_SECRET:
        log.warning("stripe_webhook_secret_missing")

    yield

    # Shutdown
    log.info("shutting_down")
    await redis.close()
    await engine.dispose()


app = FastAPI(
    title="Resume Tailor",
    lifespan=lifespan,
)

# CORS middleware for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.APP_ENV == "development" else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Security headers (outermost -- runs last on request, first on response)
app.add_middleware(SecurityHeadersMiddleware)

# Rate limiting (runs after security headers are already queued)
app.add_middleware(RateLimitMiddleware)


app.include_router(auth_router)
app.include_router(resumes_router)
app.include_router(revisions_router)
app.include_router(payments_router)
app.include_router(webhooks_router)
app.include_router(admin_router)
app.include_router(prompts_router)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    log.exception(
        "unhandled_exception",
        path=request.url.path,
        user_id=getattr(request.state, "user_id", None),
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
