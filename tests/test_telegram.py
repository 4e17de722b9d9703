from __future__ import annotations

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from imagegate.preferences import UploadPathPreferences
from imagegate.service import Gateway
from imagegate.storage.memory import MemoryKeyValueStore
from imagegate.telegram import ChatNotAllowed, TelegramBot
from tests.helpers import JPEG

TOKEN = "123:abc"


class FakeBotApi:
    """Answers the Bot API calls the gateway makes and records them."""

    def __init__(self, payload: bytes = JPEG):
        self.payload = payload
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/getFile"):
            return httpx.Response(200, json={"ok": True, "result": {"file_path": "photos/file_1.jpg"}})
        if path == f"/file/bot{TOKEN}/photos/file_1.jpg":
            return httpx.Response(200, content=self.payload)
        if path.endswith("/setWebhook"):
            return httpx.Response(200, json={"ok": True, "result": True})
        return httpx.Response(200, json={"ok": True})

    def messages(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.url.path.endswith("/sendMessage")]


@pytest.fixture
def api() -> FakeBotApi:
    return FakeBotApi()


@pytest.fixture
def preferences() -> UploadPathPreferences:
    return UploadPathPreferences(MemoryKeyValueStore())


@pytest.fixture
def bot(gateway: Gateway, preferences, api) -> TelegramBot:
    http = httpx.Client(transport=httpx.MockTransport(api))
    return TelegramBot(gateway, preferences, TOKEN, {"42"}, http=http)


def text_update(text: str, chat_id: int = 42) -> dict:
    return {"message": {"message_id": 7, "chat": {"id": chat_id}, "text": text}}


def test_unknown_chat_is_refused(bot: TelegramBot, api) -> None:
    with pytest.raises(ChatNotAllowed):
        bot.handle_update(text_update("/status", chat_id=99))
    assert api.requests == []


def test_update_without_message_is_ignored(bot: TelegramBot, api) -> None:
    bot.handle_update({"edited_message": {}})
    assert api.requests == []


def test_modify_and_status(bot: TelegramBot, api, preferences) -> None:
    bot.handle_update(text_update("/status"))
    bot.handle_update(text_update("/modify blog/2024"))
    bot.handle_update(text_update("/status"))

    assert [m["text"] for m in api.messages()] == [
        "Current path: / (default)",
        "Upload path set to blog/2024/",
        "Current path: blog/2024/",
    ]
    assert preferences.get(42) == "blog/2024/"


def test_modify_back_to_root(bot: TelegramBot, preferences) -> None:
    bot.handle_update(text_update("/modify blog"))
    bot.handle_update(text_update("/modify /"))
    assert preferences.get(42) == ""


def test_modify_requires_argument(bot: TelegramBot, api) -> None:
    bot.handle_update(text_update("/modify"))
    assert "/modify blog" in api.messages()[0]["text"]


def test_modify_refuses_traversal(bot: TelegramBot, api, preferences) -> None:
    bot.handle_update(text_update("/modify ../x"))
    assert preferences.get(42) == ""
    assert "traversal" in api.messages()[0]["text"]


def test_other_text_gets_help(bot: TelegramBot, api) -> None:
    bot.handle_update(text_update("hello"))
    assert "/modify" in api.messages()[0]["text"]


def test_photo_is_stored_under_chat_prefix(bot: TelegramBot, api, gateway: Gateway, preferences) -> None:
    preferences.set(42, "tg")
    update = {
        "message": {
            "message_id": 9,
            "chat": {"id": 42},
            "photo": [{"file_id": "small"}, {"file_id": "large"}],
        }
    }
    bot.handle_update(update)

    get_file = next(r for r in api.requests if r.url.path.endswith("/getFile"))
    assert get_file.url.params["file_id"] == "large"

    files = gateway.list_path("tg/", 1, 50).files
    assert len(files) == 1
    assert files[0].key.endswith(".jpg")

    reply = api.messages()[-1]
    assert reply["reply_to_message_id"] == 9
    assert reply["parse_mode"] == "HTML"
    assert files[0].url in reply["text"]


def test_document_with_unsupported_extension(bot: TelegramBot, api) -> None:
    update = {"message": {"message_id": 3, "chat": {"id": 42}, "document": {"file_id": "f", "file_name": "notes.txt"}}}
    bot.handle_update(update)
    assert [r.url.path for r in api.requests] == [f"/bot{TOKEN}/sendMessage"]
    assert "Unsupported file type" in api.messages()[0]["text"]


def test_document_with_fake_image_content(gateway: Gateway, preferences) -> None:
    api = FakeBotApi(payload=b"definitely not an image")
    bot = TelegramBot(gateway, preferences, TOKEN, {"42"}, http=httpx.Client(transport=httpx.MockTransport(api)))
    update = {"message": {"message_id": 3, "chat": {"id": 42}, "document": {"file_id": "f", "file_name": "cat.png"}}}

    bot.handle_update(update)

    assert gateway.list_path("", 1, 50).files == []
    assert "JPG/PNG/GIF/WEBP" in api.messages()[-1]["text"]


def test_webhook_route(app, bot: TelegramBot, api) -> None:
    app.state.bot = bot
    with TestClient(app) as client:
        ok = client.post("/webhook", json=text_update("/status"))
        assert ok.status_code == 200
        assert ok.text == "OK"

        denied = client.post("/webhook", json=text_update("/status", chat_id=1))
        assert denied.status_code == 403

        registered = client.get("/setWebhook")
        assert registered.status_code == 200
        assert "http://testserver/webhook" in registered.text

    set_hook = next(r for r in api.requests if r.url.path.endswith("/setWebhook"))
    assert json.loads(set_hook.content) == {"url": "http://testserver/webhook"}


def test_webhook_without_bot(app) -> None:
    app.state.bot = None
    with TestClient(app) as client:
        assert client.post("/webhook", json=text_update("/status")).status_code == 404
