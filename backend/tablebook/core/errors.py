"""
Error taxonomy for the booking engine and the envelope it is rendered in.

Services raise BookingError subclasses; the handlers installed by
install_exception_handlers() turn them into

    {"error": {"code": ..., "message": ..., "requestId": ...}}

with the matching HTTP status. Codes are part of the public contract,
class names are not.
"""

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from tablebook.core.logging import get_logger

logger = get_logger(__name__)


class BookingError(Exception):
    code = "INTERNAL_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(BookingError):
    code = "VALIDATION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class PastTimeError(ValidationError):
    code = "RESERVATION_PAST_TIME"
    default_message = "Cannot create reservations in the past"


class InvalidTimeError(ValidationError):
    code = "RESERVATION_INVALID_TIME"
    default_message = "End time must be after start time"


class MissingIdempotencyKeyError(ValidationError):
    code = "MISSING_IDEMPOTENCY_KEY"
    default_message = "x-idempotency-key header required"


class AuthRequiredError(BookingError):
    code = "AUTH_REQUIRED"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authorization header required"


class AuthInvalidError(BookingError):
    code = "AUTH_INVALID"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid authorization token"


class TenantNotFoundError(BookingError):
    code = "TENANT_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "No tenant found for user"


class NotFoundError(BookingError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class HoldNotFoundError(NotFoundError):
    code = "HOLD_NOT_FOUND"
    default_message = "Booking hold not found or expired"


class ReservationConflictError(BookingError):
    code = "RESERVATION_CONFLICT"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Time slot conflicts with existing reservation"


class DatabaseError(BookingError):
    code = "DATABASE_ERROR"
    default_message = "A storage error occurred, please retry with the same idempotency key"


def error_body(code: str, message: str, request_id: str | None) -> dict:
    return {"error": {"code": code, "message": message, "requestId": request_id}}


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    request_id = _request_id(request)
    if exc.status_code >= 500:
        logger.error("request_error", code=exc.code, error=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message, request_id),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_encoder(exc.errors())
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(ValidationError.code, message, _request_id(request)),
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    request_id = _request_id(request)
    logger.error("database_error", request_id=request_id, error_type=type(exc).__name__, error=str(exc))
    return JSONResponse(
        status_code=DatabaseError.status_code,
        content=error_body(DatabaseError.code, DatabaseError.default_message, request_id),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # Details stay in the log; the caller only gets the generic message
    logger.exception("unhandled_error", error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(BookingError.code, BookingError.default_message, _request_id(request)),
    )


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingError, booking_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
