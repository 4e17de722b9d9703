"""Telegram bot front end: photo uploads and the per-chat upload folder."""

from __future__ import annotations

import html

import httpx

from imagegate.errors import GatewayError, InvalidInput, UnsupportedMediaType
from imagegate.logging_config import get_logger
from imagegate.preferences import UploadPathPreferences
from imagegate.service import Gateway
from imagegate.sniffer import SUPPORTED_EXTENSIONS

logger = get_logger(__name__)

TELEGRAM_API = "https://api.telegram.org"
REQUEST_TIMEOUT = 30.0

HELP_TEXT = (
    "Send me an image!\n"
    "Or use one of these commands:\n"
    "/modify <path> change the folder uploads are stored in\n"
    "/status show the current upload folder"
)


class ChatNotAllowed(Exception):
    pass


class TelegramBot:
    def __init__(
        self,
        gateway: Gateway,
        preferences: UploadPathPreferences,
        token: str,
        allowed_chat_ids: set[str],
        http: httpx.Client | None = None,
        api_base: str = TELEGRAM_API,
    ):
        self.gateway = gateway
        self.preferences = preferences
        self.allowed_chat_ids = allowed_chat_ids
        self.http = http or httpx.Client(timeout=REQUEST_TIMEOUT)
        self.api_url = f"{api_base}/bot{token}"
        self.file_base = f"{api_base}/file/bot{token}"

    def close(self) -> None:
        self.http.close()

    # -----------------
    # Bot API calls
    # -----------------
    def set_webhook(self, webhook_url: str) -> dict:
        try:
            response = self.http.post(f"{self.api_url}/setWebhook", json={"url": webhook_url})
            result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Error setting webhook: %s", e)
            return {"ok": False, "description": str(e)}
        if not result.get("ok"):
            logger.error("Failed to set webhook: %s", result.get("description"))
        return result

    def send_message(self, chat_id, text: str, **options) -> None:
        try:
            response = self.http.post(f"{self.api_url}/sendMessage", json={"chat_id": chat_id, "text": text, **options})
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("sendMessage failed: %s", e, extra={"chat_id": chat_id})

    def download_file(self, file_id: str) -> bytes:
        response = self.http.get(f"{self.api_url}/getFile", params={"file_id": file_id})
        response.raise_for_status()
        file_path = response.json()["result"]["file_path"]
        download = self.http.get(f"{self.file_base}/{file_path}")
        download.raise_for_status()
        return download.content

    # -----------------
    # Updates
    # -----------------
    def handle_update(self, update: dict) -> None:
        message = update.get("message")
        if not message:
            return
        chat_id = message["chat"]["id"]
        if str(chat_id) not in self.allowed_chat_ids:
            raise ChatNotAllowed(str(chat_id))

        if message.get("text"):
            self._handle_text(chat_id, message["text"].strip())
        elif message.get("document"):
            document = message["document"]
            file_name = document.get("file_name") or ""
            extension = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
            if extension not in SUPPORTED_EXTENSIONS:
                self.send_message(chat_id, "Unsupported file type, please send a JPG/PNG/GIF/WEBP file")
                return
            self._handle_media(chat_id, document["file_id"], message["message_id"])
        elif message.get("photo"):
            # photo sizes are ordered smallest first
            self._handle_media(chat_id, message["photo"][-1]["file_id"], message["message_id"])

    def _handle_text(self, chat_id, text: str) -> None:
        if text.startswith("/modify"):
            parts = text.split()
            if len(parts) < 2:
                self.send_message(chat_id, "Please give a path, for example: /modify blog")
                return
            try:
                prefix = self.preferences.set(chat_id, parts[1])
            except InvalidInput as e:
                self.send_message(chat_id, e.message)
                return
            self.send_message(chat_id, f"Upload path set to {prefix or '/'}")
        elif text == "/status":
            current = self.preferences.get(chat_id)
            self.send_message(chat_id, f"Current path: {current}" if current else "Current path: / (default)")
        else:
            self.send_message(chat_id, HELP_TEXT)

    def _handle_media(self, chat_id, file_id: str, message_id: int) -> None:
        try:
            data = self.download_file(file_id)
            result = self.gateway.upload_object(data, self.preferences.get(chat_id))
        except UnsupportedMediaType as e:
            self.send_message(chat_id, e.message, reply_to_message_id=message_id)
            return
        except (GatewayError, httpx.HTTPError, KeyError, ValueError) as e:
            logger.error("Telegram upload failed: %s", e, extra={"chat_id": chat_id})
            self.send_message(chat_id, "Processing the file failed, please try again later.", reply_to_message_id=message_id)
            return
        url = html.escape(result.url)
        self.send_message(
            chat_id,
            f"Direct link:\n<code>{url}</code>\nMarkdown:\n<code>![img]({url})</code>",
            parse_mode="HTML",
            reply_to_message_id=message_id,
        )
