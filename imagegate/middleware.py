"""Request logging, security headers and the upload size gate."""

from __future__ import annotations

import time
import uuid

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from imagegate.errors import error_body
from imagegate.logging_config import get_logger, request_id_var

logger = get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    QUIET_PATHS = {"/health"}

    async def dispatch(self, request: Request, call_next):
        request_id = uuid.uuid4().hex
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.exception(
                "Request raised exception",
                extra={"method": request.method, "path": request.url.path, "error_type": type(exc).__name__},
            )
            raise
        finally:
            request_id_var.reset(token)

        context = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            "client_ip": request.client.host if request.client else "unknown",
        }
        if response.status_code >= 500:
            logger.error("Request failed", extra=context)
        elif response.status_code >= 400:
            logger.warning("Request error", extra=context)
        elif request.url.path not in self.QUIET_PATHS:
            logger.info("Request completed", extra=context)
        response.headers["X-Request-ID"] = request_id
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, image_origin: str):
        super().__init__(app)
        self.image_origin = image_origin

    async def dispatch(self, request: Request, call_next):
        resp = await call_next(request)
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        resp.headers.setdefault("X-Frame-Options", "DENY")
        if request.url.scheme == "https":
            resp.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        ctype = str(resp.headers.get("content-type", "")).lower()
        if ctype.startswith("text/html"):
            resp.headers.setdefault(
                "Content-Security-Policy",
                "default-src 'none'; script-src 'self' 'unsafe-inline'; "
                f"connect-src 'self'; img-src 'self' data: {self.image_origin}; style-src 'self' 'unsafe-inline'; "
                "base-uri 'none'; frame-ancestors 'none'; object-src 'none'; form-action 'self'",
            )
            resp.headers.setdefault("Cross-Origin-Opener-Policy", "same-origin")
            resp.headers.setdefault("X-Robots-Tag", "noindex, nofollow")
        return resp


class UploadSizeLimitMiddleware(BaseHTTPMiddleware):
    """Refuse oversized uploads from their Content-Length, before the form is parsed.

    Chunked or unlabelled bodies still hit the streaming limit in the upload route.
    """

    def __init__(self, app, max_bytes: int, paths: tuple[str, ...] = ("/api/upload",)):
        super().__init__(app)
        self.max_bytes = max_bytes
        self.paths = paths

    async def dispatch(self, request: Request, call_next):
        if request.method == "POST" and request.url.path in self.paths:
            cl = request.headers.get("content-length")
            if cl and cl.isdigit() and int(cl) > self.max_bytes:
                logger.warning("Upload refused by Content-Length", extra={"content_length": int(cl)})
                message = f"file too large (> {self.max_bytes // (1024 * 1024)} MB)"
                return JSONResponse(status_code=413, content=error_body(request, 413, "http_error", message))
        return await call_next(request)
