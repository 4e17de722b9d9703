"""Error kinds raised by the core and their HTTP mapping."""

from __future__ import annotations

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from imagegate.logging_config import get_logger

logger = get_logger(__name__)


class GatewayError(Exception):
    """Base class for failures scoped to a single request."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind = "gateway_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnsupportedMediaType(GatewayError):
    status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    kind = "unsupported_media_type"


class NotFound(GatewayError):
    status_code = status.HTTP_404_NOT_FOUND
    kind = "not_found"


class InvalidInput(GatewayError):
    status_code = status.HTTP_400_BAD_REQUEST
    kind = "invalid_input"


class StoreError(GatewayError):
    """The object store or key-value registry failed."""

    status_code = status.HTTP_502_BAD_GATEWAY
    kind = "store_error"


def error_body(request: Request, code: int, kind: str, message) -> dict:
    return {
        "success": False,
        "error": {
            "code": code,
            "type": kind,
            "message": message,
            "request_id": getattr(request.state, "request_id", None),
        },
    }


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    if isinstance(exc, StoreError):
        logger.error(
            "Storage backend failure",
            extra={"error_message": exc.message, "endpoint": request.url.path, "method": request.method},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, exc.status_code, exc.kind, exc.message),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, exc.status_code, "http_error", exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected errors."""
    logger.exception(
        "Unexpected error",
        extra={
            "error_type": type(exc).__name__,
            "error_message": str(exc),
            "endpoint": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(request, 500, "internal_error", "Internal server error"),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors with field information."""
    details = []
    for error in exc.errors():
        detail = {"type": error["type"], "loc": list(error["loc"]), "msg": error["msg"]}
        if "ctx" in error:
            detail["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        details.append(detail)

    body = error_body(request, status.HTTP_422_UNPROCESSABLE_ENTITY, "validation_error", "Validation error")
    body["error"]["details"] = details
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=body)
