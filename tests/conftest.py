from __future__ import annotations

import os

# imagegate.main builds a module-level app on import; it must find a complete config.
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("BASE_URL", "img.test")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest
from fastapi.testclient import TestClient

from imagegate.auth import COOKIE_NAME, issue_session
from imagegate.config import Settings
from imagegate.main import build_app
from imagegate.service import Gateway
from imagegate.shares import ShareRegistry
from imagegate.storage import Backends
from imagegate.storage.memory import MemoryKeyValueStore, MemoryObjectStore
from tests.helpers import BASE_URL, FIXED_NOW, SECRET


@pytest.fixture
def settings() -> Settings:
    return Settings(
        secret_key=SECRET,
        base_url="img.test",
        storage_backend="memory",
        telegram_bot_token="123:abc",
        chat_id="42, 43",
        log_format="text",
    )


@pytest.fixture
def backends() -> Backends:
    return Backends(MemoryObjectStore(), MemoryKeyValueStore(), MemoryKeyValueStore())


@pytest.fixture
def gateway(backends: Backends) -> Gateway:
    return Gateway(backends.objects, ShareRegistry(backends.shares), BASE_URL, clock=lambda: FIXED_NOW)


@pytest.fixture
def app(settings: Settings, backends: Backends):
    return build_app(settings, backends)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_client(client: TestClient) -> TestClient:
    client.cookies.set(COOKIE_NAME, issue_session(SECRET))
    return client
