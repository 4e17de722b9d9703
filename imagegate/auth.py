"""Single shared-secret login gate backed by a signed session cookie."""

from __future__ import annotations

import hmac
import uuid
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import HTTPException, Request, status

from imagegate.logging_config import get_logger

logger = get_logger(__name__)

COOKIE_NAME = "auth"
SESSION_HOURS = 24
COOKIE_MAX_AGE = SESSION_HOURS * 3600
SESSION_ALGORITHM = "HS256"
SESSION_TYPE = "web_session"


class LoginRequired(Exception):
    """Raised for page requests without a session; handled as a redirect to the login page."""


def issue_session(secret_key: str, now: datetime | None = None, hours: int = SESSION_HOURS) -> str:
    """Create a signed session token valid for ``hours``.

    Every call yields a distinct token (``jti``), and expiry is enforced on
    decode, not only by the browser's cookie lifetime.
    """
    now = now or datetime.now(timezone.utc)
    payload = {
        "type": SESSION_TYPE,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(hours=hours)).timestamp()),
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, secret_key, algorithm=SESSION_ALGORITHM)


def validate_session(token: str, secret_key: str) -> bool:
    try:
        payload = jwt.decode(token, secret_key, algorithms=[SESSION_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired session")
        return False
    except jwt.InvalidTokenError:
        return False
    return payload.get("type") == SESSION_TYPE


def check_secret(candidate: str | None, secret_key: str) -> bool:
    return hmac.compare_digest((candidate or "").encode("utf-8"), secret_key.encode("utf-8"))


def is_authenticated(request: Request, secret_key: str) -> bool:
    cookie = request.cookies.get(COOKIE_NAME)
    if not cookie:
        return False
    return validate_session(cookie, secret_key)


def require_auth(request: Request) -> None:
    if is_authenticated(request, request.app.state.settings.secret_key):
        return
    if request.url.path.startswith("/api/"):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Unauthorized")
    raise LoginRequired()
