import datetime as dt
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, Field

from booking.domain.exceptions import (
    AppointmentNotFoundError,
    BookingError,
    InvalidStateTransitionError,
    InvalidTimeRangeError,
    SlotUnavailableError,
    ValidationFailedError,
)

_STATUS_BY_ERROR: dict[type[BookingError], HTTPStatus] = {
    AppointmentNotFoundError: HTTPStatus.NOT_FOUND,
    InvalidTimeRangeError: HTTPStatus.BAD_REQUEST,
    SlotUnavailableError: HTTPStatus.CONFLICT,
    InvalidStateTransitionError: HTTPStatus.BAD_REQUEST,
    ValidationFailedError: HTTPStatus.BAD_REQUEST,
}


class ErrorResponse(BaseModel):
    """Uniform JSON body for every failed request."""

    timestamp: dt.datetime = Field(default_factory=dt.datetime.now)
    status: int
    error: str
    message: str
    path: str
    details: list[str] | None = None


def _respond(
    request: Request, status: HTTPStatus, message: str, details: list[str] | None = None
) -> JSONResponse:
    body = ErrorResponse(
        status=status.value,
        error=status.phrase,
        message=message,
        path=request.url.path,
        details=details,
    )
    return JSONResponse(
        status_code=status.value,
        content=jsonable_encoder(body.model_dump(exclude_none=True)),
    )


async def _handle_booking_error(request: Request, exc: BookingError) -> JSONResponse:
    status = next(
        (code for kind, code in _STATUS_BY_ERROR.items() if isinstance(exc, kind)),
        HTTPStatus.BAD_REQUEST,
    )
    details = exc.messages if isinstance(exc, ValidationFailedError) else None
    logger.info("{} {} rejected: {}", request.method, request.url.path, exc)
    return _respond(request, status, str(exc), details)


async def _handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = [
        f"{'.'.join(str(part) for part in error['loc'][1:]) or error['loc'][0]}: {error['msg']}"
        for error in exc.errors()
    ]
    return _respond(request, HTTPStatus.BAD_REQUEST, "Request validation failed", details)


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error handling {} {}", request.method, request.url.path)
    return _respond(
        request,
        HTTPStatus.INTERNAL_SERVER_ERROR,
        "An unexpected error occurred. Please contact the administrator.",
    )


def register_error_handlers(app: FastAPI) -> None:
    """Map domain errors to HTTP status codes and the ErrorResponse body."""
    app.add_exception_handler(BookingError, _handle_booking_error)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError, _handle_request_validation  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, _handle_unexpected)
