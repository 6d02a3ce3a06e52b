"""
Error mapping for the HTTP surface.

Every StockKernelError becomes ``{"error": code, "message": str,
"details": {...}}`` with a status chosen by category, so callers can tell
"your request was wrong" (4xx) from "the ledger is inconsistent" (500).
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from stock_kernel.exceptions import (
    CapacityError,
    ConcurrencyError,
    IntegrityError,
    NotFoundError,
    StateError,
    StockKernelError,
    ValidationError,
)
from stock_kernel.logging_config import get_logger

logger = get_logger("api.errors")

# first match wins; ImmutabilityViolationError is a StateError
_STATUS_BY_CATEGORY: tuple[tuple[type[StockKernelError], int], ...] = (
    (ValidationError, 422),
    (CapacityError, 409),
    (StateError, 409),
    (NotFoundError, 404),
    (ConcurrencyError, 503),
    (IntegrityError, 500),
)


def status_for(exc: StockKernelError) -> int:
    for category, status in _STATUS_BY_CATEGORY:
        if isinstance(exc, category):
            return status
    return 500


def error_body(exc: StockKernelError) -> dict:
    details = exc.details()
    if getattr(exc, "retryable", False):
        details["retryable"] = True
    return {"error": exc.code, "message": str(exc), "details": jsonable_encoder(details)}


async def stock_error_handler(request: Request, exc: StockKernelError) -> JSONResponse:
    status = status_for(exc)
    log = logger.critical if isinstance(exc, IntegrityError) else logger.info
    log(
        "request_failed",
        extra={
            "path": request.url.path,
            "method": request.method,
            "status_code": status,
            "error_code": exc.code,
        },
    )
    headers = {"Retry-After": "1"} if isinstance(exc, ConcurrencyError) else None
    return JSONResponse(status_code=status, content=error_body(exc), headers=headers)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StockKernelError, stock_error_handler)
