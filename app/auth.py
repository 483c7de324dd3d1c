from __future__ import annotations

import hmac
from typing import Dict, Optional

from fastapi import Request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from config.settings import Settings, get_settings


TOKEN_COOKIE = "token"

PUBLIC_PATHS = {"/api/login", "/login.html", "/health", "/script.js", "/favicon.ico"}


def _serializer(settings: Settings) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(settings.jwt_secret, salt="visionchat-auth")


def generate_token(username: str, settings: Optional[Settings] = None) -> str:
    return _serializer(settings or get_settings()).dumps({"username": username})


def verify_token(token: str, settings: Optional[Settings] = None) -> Optional[Dict]:
    settings = settings or get_settings()
    try:
        return _serializer(settings).loads(token, max_age=settings.token_max_age)
    except (BadSignature, SignatureExpired):
        return None


def authenticate(username: str, password: str, settings: Optional[Settings] = None) -> bool:
    settings = settings or get_settings()
    user_ok = hmac.compare_digest(username.encode(), settings.auth_username.encode())
    pass_ok = hmac.compare_digest(password.encode(), settings.auth_password.encode())
    return user_ok and pass_ok


def is_public_path(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith("/styles.css")


def token_from_request(request: Request) -> Optional[str]:
    token = request.cookies.get(TOKEN_COOKIE)
    if token:
        return token
    header = request.headers.get("authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value:
        return value.strip()
    return None
