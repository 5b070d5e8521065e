"""ORM models package -- re-exports all models and the Base class."""

from resume_tailor.models.base import Base
from resume_tailor.models.user import User
from resume_tailor.models.resume import Resume, Revision
from resume_tailor.models.billing import Payment, ProcessedWebhook
from resume_tailor.models.prompt import AnalyticsEvent, PromptTestRun, PromptVersion

__all__ = [
    "Base",
    "User",
    "Resume",
    "Revision",
    "Payment",
    "ProcessedWebhook",
    "PromptVersion",
    "PromptTestRun",
    "AnalyticsEvent",
]
