"""
Domain errors and global exception handlers.

Handlers prevent stack-trace leakage: every error body is
``{"success": false, "message": ..., "detail": ...}``.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


# ── Domain errors ───────────────────────────────────────────────────
class PaytrackError(Exception):
    """Base class for expected, client-facing failures."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UserNotFoundError(PaytrackError):
    status_code = 404

    def __init__(self, user_id: int) -> None:
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class PayslipNotFoundError(PaytrackError):
    status_code = 404

    def __init__(self, payslip_id: int) -> None:
        super().__init__(f"Payslip {payslip_id} not found")
        self.payslip_id = payslip_id


class TimeEntryNotFoundError(PaytrackError):
    status_code = 404

    def __init__(self, entry_id: int) -> None:
        super().__init__(f"Time entry {entry_id} not found")
        self.entry_id = entry_id


class ClockStateError(PaytrackError):
    """Clock-in while clocked in, or clock-out with no open session."""


class InvalidSelectorError(PaytrackError):
    """Missing or inconsistent date selector on a payroll request."""


class InvalidStatusTransition(PaytrackError):
    status_code = 409

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move payslip from {current} to {target}")
        self.current = current
        self.target = target


# ── Handlers ────────────────────────────────────────────────────────
def _error_body(message: str) -> dict:
    return {"success": False, "message": message, "detail": message}


async def _paytrack_error_handler(_request: Request, exc: PaytrackError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message))


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def _validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    return JSONResponse(status_code=400, content=_error_body(message))


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(status_code=409, content=_error_body("Database constraint violation"))


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(status_code=500, content=_error_body("Internal database error"))


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(status_code=500, content=_error_body("Internal server error"))


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(PaytrackError, _paytrack_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
