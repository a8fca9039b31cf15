from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from flask import current_app
from werkzeug.security import check_password_hash, generate_password_hash

COOKIE_NAME = "auth-token"
TOKEN_LIFETIME = timedelta(days=365)
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

REMEMBER_ME_MAX_AGE = {
    "forever": 365 * 24 * 60 * 60,
    "week": 7 * 24 * 60 * 60,
}
DEFAULT_MAX_AGE = 24 * 60 * 60


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return check_password_hash(password_hash, password)


def create_token(payload: dict[str, Any]) -> str:
    # The cookie max-age decides how long a login really lasts.
    now = datetime.now(timezone.utc)
    claims = dict(payload)
    claims["iat"] = now
    claims["exp"] = now + TOKEN_LIFETIME
    return jwt.encode(claims, current_app.config["JWT_SECRET"], algorithm="HS256")


def verify_token(token: str) -> dict[str, Any] | None:
    try:
        return jwt.decode(token, current_app.config["JWT_SECRET"], algorithms=["HS256"])
    except jwt.InvalidTokenError:
        return None


def get_user_from_request(request) -> dict[str, Any] | None:
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        return None
    payload = verify_token(token)
    if payload is None or "userId" not in payload:
        return None
    return payload


def cookie_max_age(remember_me: str | None) -> int:
    return REMEMBER_ME_MAX_AGE.get(remember_me or "", DEFAULT_MAX_AGE)


def validate_email(email: str) -> bool:
    return EMAIL_RE.match(email) is not None


def validate_password(password: str) -> tuple[bool, str]:
    if len(password) < 8:
        return False, "Password must be at least 8 characters long"
    if not re.search(r"[A-Z]", password):
        return False, "Password must contain at least one uppercase letter"
    if not re.search(r"[a-z]", password):
        return False, "Password must contain at least one lowercase letter"
    if not re.search(r"\d", password):
        return False, "Password must contain at least one number"
    return True, ""


def validate_name(name: str) -> tuple[bool, str]:
    if len(name) < 2:
        return False, "Name must be at least 2 characters long"
    if len(name) > 50:
        return False, "Name must be less than 50 characters"
    return True, ""


def sanitize_input(value: str) -> str:
    return value.strip().replace("<", "").replace(">", "")
