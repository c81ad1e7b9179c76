"""
Error Taxonomy and Exception Handlers

Every domain failure is a ServiceError carrying an HTTP status and a stable
error code. The handlers registered here render all errors, including
HTTPExceptions raised by auth dependencies and request validation failures,
as a single JSON envelope:

    {"success": false, "status": 404, "code": "NOT_FOUND", "message": "..."}
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException

from visa_api.core.config import settings

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base exception for service-layer errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class BadRequestError(ServiceError):
    """Malformed input or an illegal state transition."""

    def __init__(self, message: str, error_code: str = "BAD_REQUEST"):
        super().__init__(message=message, error_code=error_code, status_code=400)


class UnauthorizedError(ServiceError):
    """Missing or invalid credentials."""

    def __init__(self, message: str = "Authentication required", error_code: str = "UNAUTHORIZED"):
        super().__init__(message=message, error_code=error_code, status_code=401)


class ForbiddenError(ServiceError):
    """Authenticated, but lacking permission or ownership."""

    def __init__(self, message: str = "Access denied", error_code: str = "FORBIDDEN"):
        super().__init__(message=message, error_code=error_code, status_code=403)


class NotFoundError(ServiceError):
    """A referenced entity does not exist."""

    def __init__(self, message: str, error_code: str = "NOT_FOUND"):
        super().__init__(message=message, error_code=error_code, status_code=404)


class ConflictError(ServiceError):
    """A uniqueness constraint would be violated."""

    def __init__(self, message: str, error_code: str = "CONFLICT"):
        super().__init__(message=message, error_code=error_code, status_code=409)


class PaymentProviderError(ServiceError):
    """The external payment processor failed or timed out. Safe to retry."""

    def __init__(self, message: str = "Payment provider is unavailable. Please try again."):
        super().__init__(message=message, error_code="PAYMENT_PROVIDER_ERROR", status_code=503)


def error_body(status_code: int, code: str, message: str) -> dict:
    return {"success": False, "status": status_code, "code": code, "message": message}


async def service_error_handler(_request: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, exc.error_code, exc.message),
    )


async def http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    # Auth dependencies raise with detail={"error": ..., "message": ...}
    if isinstance(exc.detail, dict):
        code = exc.detail.get("error", "HTTP_ERROR")
        message = exc.detail.get("message", "")
    else:
        code = "HTTP_ERROR"
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, code, message),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_body(status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR", message),
    )


async def integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning(f"Integrity constraint violated: {exc.orig}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=error_body(
            status.HTTP_409_CONFLICT,
            "CONFLICT",
            "The request conflicts with an existing record.",
        ),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    message = "An unexpected error occurred." if settings.is_production else str(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", message),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the JSON error envelope on the application."""
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
