"""HTTP routes: login, pages, the authenticated JSON API, public share listings and the bot webhook."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from starlette.concurrency import run_in_threadpool

from imagegate import pages
from imagegate.auth import COOKIE_MAX_AGE, COOKIE_NAME, check_secret, issue_session, require_auth
from imagegate.config import Settings
from imagegate.errors import InvalidInput
from imagegate.listing import DirectoryEntry, ListingPage, parent_path
from imagegate.service import Gateway
from imagegate.shares import is_valid_share_id
from imagegate.telegram import ChatNotAllowed, TelegramBot

CHUNK_SIZE = 1024 * 1024  # 1 MiB


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_gateway(request: Request) -> Gateway:
    return request.app.state.gateway


def get_bot(request: Request) -> TelegramBot:
    bot = request.app.state.bot
    if bot is None:
        raise HTTPException(404, "Telegram bot is not configured")
    return bot


def _page_size(page_size: int | None, settings: Settings) -> int:
    return min(page_size or settings.default_page_size, settings.max_page_size)


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DeleteRequest(_Body):
    keys: list[str] | None = None


class PathRequest(_Body):
    path: str | None = None


class ShareDeleteRequest(_Body):
    share_id: str | None = None


# -----------------
# Login + pages
# -----------------
pages_router = APIRouter()


@pages_router.get("/", response_class=HTMLResponse)
@pages_router.get("/index.html", response_class=HTMLResponse)
def login_form(settings: Settings = Depends(get_settings)) -> str:
    return pages.login_page(settings.landingpage_title)


@pages_router.post("/login")
def login(key: str = Form(""), settings: Settings = Depends(get_settings)):
    if not check_secret(key, settings.secret_key):
        return HTMLResponse(pages.login_page(settings.landingpage_title, "Wrong key, please try again"), status_code=401)
    resp = RedirectResponse("/upload", status_code=302)
    resp.set_cookie(
        COOKIE_NAME,
        issue_session(settings.secret_key),
        max_age=COOKIE_MAX_AGE,
        path="/",
        secure=True,
        httponly=True,
        samesite="lax",
    )
    return resp


@pages_router.get("/upload", response_class=HTMLResponse, dependencies=[Depends(require_auth)])
def upload_form(settings: Settings = Depends(get_settings)) -> str:
    return pages.upload_page(settings.landingpage_title, settings.max_file_mb)


@pages_router.get("/gallery", response_class=HTMLResponse, dependencies=[Depends(require_auth)])
def gallery(settings: Settings = Depends(get_settings)) -> str:
    return pages.gallery_page(settings.landingpage_title, settings.default_page_size)


@pages_router.get("/s/{share_id}", response_class=HTMLResponse, name="share_page")
def share_view(share_id: str, settings: Settings = Depends(get_settings)) -> str:
    if not is_valid_share_id(share_id):
        raise HTTPException(404, "Not found")
    return pages.share_page(settings.landingpage_title, share_id, settings.default_page_size)


@pages_router.get("/health")
def health():
    return {"status": "ok"}


# -----------------
# Authenticated API
# -----------------
api_router = APIRouter(prefix="/api", dependencies=[Depends(require_auth)])


@api_router.post("/upload")
async def upload(
    file: UploadFile | None = File(None),
    path: str = Form(""),
    gateway: Gateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    if file is None:
        raise InvalidInput("No file provided")
    max_bytes = settings.max_upload_bytes
    chunks, size = [], 0
    try:
        while True:
            chunk = await file.read(CHUNK_SIZE)
            if not chunk:
                break
            size += len(chunk)
            if size > max_bytes:
                raise HTTPException(413, f"file too large (> {settings.max_file_mb} MB)")
            chunks.append(chunk)
    finally:
        await file.close()

    result = await run_in_threadpool(gateway.upload_object, b"".join(chunks), path or None)
    return {"success": True, **result.model_dump()}


@api_router.get("/list")
def list_files(
    prefix: str = Query(""),
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, alias="pageSize", ge=1),
    gateway: Gateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    listing = gateway.list_path(prefix, page, _page_size(page_size, settings))
    return {"success": True, **listing.model_dump(by_alias=True, mode="json")}


@api_router.post("/delete")
def delete_files(payload: DeleteRequest, gateway: Gateway = Depends(get_gateway)):
    result = gateway.delete_objects(payload.keys or [])
    return {
        "success": not result.failed_keys,
        "message": f"Deleted {len(result.deleted_keys)} file(s)",
        **result.model_dump(by_alias=True),
    }


@api_router.post("/create-folder")
def create_folder(payload: PathRequest, gateway: Gateway = Depends(get_gateway)):
    folder = gateway.create_folder(payload.path or "")
    return {"success": True, "message": "Folder created successfully", "path": folder}


@api_router.post("/share/create")
def create_share(payload: PathRequest, request: Request, gateway: Gateway = Depends(get_gateway)):
    if payload.path is None:
        raise InvalidInput("Path is required")
    share = gateway.create_share(payload.path)
    url = str(request.url_for("share_page", share_id=share.share_id))
    return {"success": True, "url": url, **share.model_dump(by_alias=True)}


@api_router.get("/share/list")
def list_shares(request: Request, gateway: Gateway = Depends(get_gateway)):
    shares = [
        {**share.model_dump(by_alias=True), "url": str(request.url_for("share_page", share_id=share.share_id))}
        for share in gateway.list_shares()
    ]
    return {"success": True, "shares": shares}


@api_router.post("/share/delete")
def delete_share(payload: ShareDeleteRequest, gateway: Gateway = Depends(get_gateway)):
    gateway.revoke_share(payload.share_id or "")
    return {"success": True, "message": "Share link deleted"}


# -----------------
# Public share listing
# -----------------
public_router = APIRouter(prefix="/api/s")


def _hide_scope(listing: ListingPage, relative: str) -> ListingPage:
    """Rewrite folder paths so they are relative to the share's scope."""
    cut = len(listing.current_path) - len(relative)
    return listing.model_copy(
        update={
            "current_path": relative,
            "parent_path": parent_path(relative),
            "directories": [DirectoryEntry(name=d.name, path=d.path[cut:]) for d in listing.directories],
        }
    )


@public_router.get("/{share_id}/list")
def list_shared_files(
    share_id: str,
    prefix: str = Query(""),
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, alias="pageSize", ge=1),
    gateway: Gateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    listing = gateway.list_shared_path(share_id, prefix, page, _page_size(page_size, settings))
    listing = _hide_scope(listing, prefix)
    return {"success": True, **listing.model_dump(by_alias=True, mode="json")}


# -----------------
# Telegram
# -----------------
telegram_router = APIRouter()


@telegram_router.post("/webhook", name="telegram_webhook")
def telegram_webhook(update: dict = Body(...), bot: TelegramBot = Depends(get_bot)):
    try:
        bot.handle_update(update)
    except ChatNotAllowed:
        return PlainTextResponse("Unauthorized access", status_code=403)
    return PlainTextResponse("OK")


@telegram_router.get("/setWebhook")
def set_webhook(request: Request, bot: TelegramBot = Depends(get_bot)):
    webhook_url = str(request.url_for("telegram_webhook"))
    result = bot.set_webhook(webhook_url)
    if result.get("ok"):
        return PlainTextResponse(f"Webhook set successfully to {webhook_url}")
    return PlainTextResponse("Failed to set webhook", status_code=500)
