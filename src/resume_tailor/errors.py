"""Error kinds raised by the services.

Each kind is an ``HTTPException`` so services can raise it directly and
FastAPI renders it as ``{"detail": ...}`` with the right status code.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class ServiceError(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None, headers: dict[str, str] | None = None) -> None:
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.default_detail,
            headers=headers,
        )


class Unauthenticated(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication required"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden"


class EntitlementExhausted(Forbidden):
    default_detail = (
        "You've used all your revisions. "
        "Purchase more to continue tailoring your resume."
    )


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ValidationError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class InvalidPlan(ValidationError):
    default_detail = "Invalid plan selected"


class UnsupportedType(ValidationError):
    default_detail = "Only PDF and DOCX files are allowed"


class InvalidSignature(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid signature"


class ExtractionFailed(ServiceError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = (
        "Could not extract text from file. "
        "Please ensure the file contains readable text."
    )


class GenerationFailed(ServiceError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Failed to tailor resume. Please try again."


class GenerationEmpty(GenerationFailed):
    pass


class Conflict(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"
