"""Error Handlers — render every failure as the storefront error envelope.

Invariants:
    - Every error body is {"error": {code, message, category, severity, timestamp, ...}}
      whatever raised it, so clients parse one shape
    - StorefrontError → its own http_status and to_response() body
    - RequestValidationError → 400 VALIDATION_ERROR, one detail per rejected field
    - Anything else → 500 INTERNAL_ERROR; the exception text stays in the log

Design Decisions:
    - Log level follows severity as well as status: a CRITICAL error (stock gone
      at confirmation) logs at ERROR even though it answers 409
    - The user, order, product and payment intent ids carried in ErrorContext
      become log record fields, so JSONFormatter surfaces them
"""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.core.errors import ErrorCategory, ErrorSeverity, StorefrontError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    app.exception_handler(StorefrontError)(storefront_error_handler)
    app.exception_handler(RequestValidationError)(validation_error_handler)
    app.exception_handler(Exception)(unhandled_error_handler)


async def storefront_error_handler(
    request: Request, exc: StorefrontError,
) -> JSONResponse:
    ctx = exc.context
    logger.log(
        _log_level(exc),
        f"{request.method} {request.url.path} -> {exc.code}: {exc.message}",
        extra={
            "error_code": exc.code,
            "path": request.url.path,
            "user_id": ctx.user_id,
            "order_id": ctx.order_id,
            "product_id": ctx.product_id,
            "payment_intent_id": ctx.payment_intent_id,
        },
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def validation_error_handler(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(loc) for loc in e["loc"]),
            "message": e["msg"],
            "type": e["type"],
        }
        for e in exc.errors()
    ]
    logger.warning(
        f"{request.method} {request.url.path} rejected: "
        f"{', '.join(d['field'] for d in details)}",
        extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_envelope(
            "VALIDATION_ERROR", "Invalid request data",
            ErrorCategory.VALIDATION, ErrorSeverity.ERROR, details=details,
        ),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}",
        exc_info=exc,
        extra={"error_code": "INTERNAL_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_envelope(
            "INTERNAL_ERROR", "An unexpected error occurred",
            ErrorCategory.INTERNAL, ErrorSeverity.CRITICAL,
        ),
    )


def _log_level(exc: StorefrontError) -> int:
    if exc.http_status >= 500 or exc.severity == ErrorSeverity.CRITICAL:
        return logging.ERROR
    return logging.WARNING


def _envelope(
    code: str,
    message: str,
    category: ErrorCategory,
    severity: ErrorSeverity,
    **fields,
) -> dict:
    """Error body for failures raised outside the StorefrontError hierarchy."""
    return {
        "error": {
            "code": code,
            "message": message,
            "category": category.value,
            "severity": severity.value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **fields,
        },
    }
