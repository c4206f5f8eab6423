"""Domain exceptions and structured error responses.

Every error leaves the API in the same JSON shape:
``{"error": true, "status_code": ..., "detail": ..., "request_id": ...}``.
Storage failures are not wrapped; they reach the generic handler as-is.
"""

import logging
import uuid

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("courseflow")


class CourseflowError(Exception):
    """Base class for domain errors raised by services."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFoundError(CourseflowError):
    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(CourseflowError):
    """Malformed or missing input to a mutation. Nothing was written."""

    status_code = status.HTTP_400_BAD_REQUEST


class LessonLockedError(CourseflowError):
    status_code = status.HTTP_403_FORBIDDEN


class CertificateConflictError(CourseflowError):
    """The certificate insert kept hitting a uniqueness constraint.

    Raised only when re-reading after the conflict finds no certificate for
    the learner, i.e. the collision was on the certificate number.
    """

    status_code = status.HTTP_409_CONFLICT


def _error_body(request: Request, status_code: int, detail, **extra) -> dict:
    body = {
        "error": True,
        "status_code": status_code,
        "detail": detail,
        "request_id": getattr(request.state, "request_id", None),
    }
    body.update(extra)
    return body


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(CourseflowError)
    async def domain_exception_handler(request: Request, exc: CourseflowError):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.status_code, exc.detail),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.status_code, exc.detail),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_body(
                request, 422, "Validation error", errors=exc.errors()
            ),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(request, 500, "Internal server error"),
        )


def parse_uuid(value, field: str) -> uuid.UUID:
    """Parse an id taken from a path, query or body; ValidationError if malformed."""
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {field}")
