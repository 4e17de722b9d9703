from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from imagegate import __version__, errors
from imagegate.auth import LoginRequired
from imagegate.config import Settings, get_settings
from imagegate.logging_config import configure_logging, get_logger
from imagegate.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware, UploadSizeLimitMiddleware
from imagegate.preferences import UploadPathPreferences
from imagegate.routes import api_router, pages_router, public_router, telegram_router
from imagegate.service import Gateway
from imagegate.shares import ShareRegistry
from imagegate.storage import Backends, open_backends
from imagegate.telegram import TelegramBot

PROXY_TRUSTED_HOSTS = ["10.0.0.0/8", "127.0.0.1", "172.16.0.0/12", "192.168.0.0/16"]


async def _redirect_to_login(request, exc):
    return RedirectResponse("/", status_code=302)


def build_app(settings: Settings | None = None, backends: Backends | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(log_level=settings.log_level, log_format=settings.log_format)
    logger = get_logger(__name__)

    backends = backends or open_backends(settings)
    gateway = Gateway(backends.objects, ShareRegistry(backends.shares), settings.base_url)
    bot = None
    if settings.telegram_bot_token:
        bot = TelegramBot(
            gateway,
            UploadPathPreferences(backends.upload_paths),
            settings.telegram_bot_token,
            settings.allowed_chat_ids,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Starting image gateway",
            extra={"version": __version__, "storage_backend": settings.storage_backend, "telegram": bot is not None},
        )
        backends.ensure_buckets()
        try:
            yield
        finally:
            if bot is not None:
                bot.close()

    app = FastAPI(title="imagegate", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.gateway = gateway
    app.state.bot = bot

    # first added = innermost
    app.add_middleware(UploadSizeLimitMiddleware, max_bytes=settings.max_upload_bytes)
    app.add_middleware(SecurityHeadersMiddleware, image_origin=settings.base_url)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_host_list or ["*"])
    if settings.force_https:
        app.add_middleware(HTTPSRedirectMiddleware)
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=PROXY_TRUSTED_HOSTS)

    app.add_exception_handler(LoginRequired, _redirect_to_login)
    app.add_exception_handler(errors.GatewayError, errors.gateway_error_handler)
    app.add_exception_handler(RequestValidationError, errors.validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, errors.http_exception_handler)
    app.add_exception_handler(Exception, errors.general_exception_handler)

    app.include_router(pages_router)
    app.include_router(api_router)
    app.include_router(public_router)
    app.include_router(telegram_router)
    return app


app = build_app()


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "8080")))
