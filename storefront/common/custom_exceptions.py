"""
Domain errors and the FastAPI handlers that render them.

Services raise these; routes let them propagate. Every domain error except
StorageError is surfaced verbatim to the caller with its own code and message.
"""
from typing import Any, Optional
from fastapi import FastAPI, HTTPException, Request,status
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from storefront.common.constants import logger, request_id_ctx
from storefront.common.utils import build_error, json_error


class StorefrontError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None,
                 details: Optional[dict[str, Any]] = None):
        self.message = message or self.default_message
        super().__init__(self.message)
        self.code = code or _default_code(type(self).__name__)
        self.details = details or {}


def _default_code(class_name: str) -> str:
    out = []
    for i, ch in enumerate(class_name):
        if ch.isupper() and i:
            out.append("_")
        out.append(ch.upper())
    return "".join(out)


class ValidationError(StorefrontError):
    """Missing or malformed input, caller must correct and resubmit."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class InvalidReference(ValidationError):
    default_message = "Invalid UTR. Enter the transaction reference from your payment app."


class NameRequired(ValidationError):
    default_message = "Name is required for registration"


class DuplicateEmail(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "User already exists"


class InvalidCredentials(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid credentials"


class ExternalIdentityConflict(StorefrontError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Account is already linked to a different external identity"


class RateLimited(StorefrontError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Please wait before requesting another OTP"

    def __init__(self, message: Optional[str] = None, retry_after: int = 0):
        super().__init__(message, details={"retry_after": retry_after})
        self.retry_after = retry_after


class Expired(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "OTP has expired"


class Mismatch(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid OTP"


class InvalidToken(StorefrontError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid session token"


class TokenExpired(InvalidToken):
    default_message = "Session token expired"


class Unauthorized(StorefrontError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "User not authorized"


class Forbidden(StorefrontError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient role for this resource"


class NotFound(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class StorageError(StorefrontError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server Error"


class ExternalProviderError(StorefrontError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Identity provider unavailable"


# code -> class, used by the http client to turn error envelopes back into exceptions
ERRORS_BY_CODE = {
    cls().code: cls for cls in (
        ValidationError, InvalidReference, NameRequired, DuplicateEmail, InvalidCredentials,
        ExternalIdentityConflict, Expired, Mismatch, InvalidToken, TokenExpired,
        Unauthorized, Forbidden, NotFound, StorageError, ExternalProviderError, RateLimited,
    )
}


async def storefront_error_handler(request: Request, exc: StorefrontError):
    rid = request_id_ctx.get(None)

    if isinstance(exc, StorageError):
        logger.error("storage.error", extra={"path": request.url.path, "detail": exc.message})
        payload = build_error(code=exc.code, details={"message": StorageError.default_message}, request_id=rid)
        return json_error(payload, status_code=exc.status_code)

    logger.info("request.rejected", extra={
        "path": request.url.path,
        "code": exc.code,
        "status_code": exc.status_code,
    })
    headers = None
    if isinstance(exc, RateLimited):
        headers = {"Retry-After": str(exc.retry_after)}
    details = {"message": exc.message, **exc.details}
    payload = build_error(code=exc.code, details=details, request_id=rid)
    return json_error(payload, status_code=exc.status_code, headers=headers)


async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    rid = request_id_ctx.get(None)
    logger.error(
        "storage.unavailable",
        extra={"path": request.url.path, "method": request.method},
        exc_info=exc,
    )
    payload = build_error(code=StorageError().code, details={"message": StorageError.default_message}, request_id=rid)
    return json_error(payload, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


async def fallback_handler(request: Request, exc: Exception):

    rid = request_id_ctx.get(None)

    logger.error(
        "unexpected.exception",
        extra={
            "path": request.url.path,
            "method": request.method,
        },
        exc_info=exc,
    )

    payload = build_error(code="SERVER_ERROR", details={"message": "Internal Server Error"}, request_id=rid)
    return json_error(payload, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    rid = request_id_ctx.get(None)
    logger.warning(
        "request.validation_failed",
        extra={
            "errors": exc.errors(),
            "path": request.url.path,
        },
    )

    payload = build_error(code="UNPROCESSABLE_ENTITY", details={"message":"invalid request"}, request_id=rid)
    return json_error(payload, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


async def http_exception_handler(request: Request, exc: HTTPException):

    rid = request_id_ctx.get(None)
    payload = build_error(code=f"HTTP_{exc.status_code}", details={"message":exc.detail}, request_id=rid)
    return json_error(payload, status_code=exc.status_code, headers=getattr(exc, "headers", None))


def register_all_exceptions(app: FastAPI):

    app.add_exception_handler(
        Exception, # catch all unidentified/unhandled exceptions
        fallback_handler
    )

    app.add_exception_handler(StorefrontError, storefront_error_handler)

    app.add_exception_handler(SQLAlchemyError, database_exception_handler)

    app.add_exception_handler(
        RequestValidationError,
        validation_exception_handler
    )

    app.add_exception_handler(
        HTTPException,
        http_exception_handler
    )
