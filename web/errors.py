"""
Error responses

Maps ledger errors to HTTP status codes. The body always carries the
error's stable code and its message.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from core.ledger.errors import (
    AlreadyPaidError,
    AlreadyVoidError,
    ExternalCaptureFailedError,
    HasPaidChargesError,
    InvalidStateTransitionError,
    InvalidVoidTargetError,
    LedgerError,
    NotFoundError,
    PermissionDeniedError,
    ProcessorPaymentNotVoidableError,
)

logger = logging.getLogger(__name__)

# Anything not listed is a validation error (422)
STATUS_BY_ERROR: dict[type[LedgerError], int] = {
    NotFoundError: 404,
    PermissionDeniedError: 403,
    ExternalCaptureFailedError: 502,
    AlreadyVoidError: 409,
    AlreadyPaidError: 409,
    HasPaidChargesError: 409,
    InvalidVoidTargetError: 409,
    InvalidStateTransitionError: 409,
    ProcessorPaymentNotVoidableError: 409,
}


def status_for(error: LedgerError) -> int:
    for error_type in type(error).__mro__:
        if error_type in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[error_type]
    return 422


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status_code = status_for(exc)
    body = {"error": exc.code, "message": exc.message}
    if isinstance(exc, ExternalCaptureFailedError) and exc.processor_error:
        body["processor_error"] = exc.processor_error

    log = logger.error if status_code >= 500 else logger.info
    log(
        f"{request.method} {request.url.path} -> {status_code} {exc.code}",
        extra={"error_message": exc.message},
    )
    return JSONResponse(status_code=status_code, content=body)


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"error": "invalid_value", "message": str(exc)},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LedgerError, ledger_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)
