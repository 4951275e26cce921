# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import urlencode

from fastapi import HTTPException, Request
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from cookieauth.auth.users import UserRecord
from cookieauth.core.config import Settings
from cookieauth.core.errors import StoreReadError

LOGIN_PATH = "/login"
SIGNUP_PATH = "/signup"
LOGOUT_PATH = "/logout"
HOME_PATH = "/home"

# Never gated, whatever the protected prefixes say.
PUBLIC_PATHS = frozenset({LOGIN_PATH, SIGNUP_PATH, LOGOUT_PATH})


@dataclass(frozen=True)
class CurrentUser:
    id: int
    email: str
    first_name: str
    last_name: str

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.email

    @classmethod
    def from_record(cls, u: UserRecord) -> "CurrentUser":
        return cls(id=u.id, email=u.email, first_name=u.first_name, last_name=u.last_name)


def load_user_from_request(request: Request) -> Optional[CurrentUser]:
    settings: Settings = request.app.state.settings
    token = request.cookies.get(settings.cookie_name, "")
    if not token:
        return None
    try:
        check = request.app.state.lifecycle.validate(token)
    except (SQLAlchemyError, StoreReadError) as exc:
        logger.error("Session lookup failed, treating request as anonymous: {}", exc)
        return None
    if not check.authenticated:
        return None
    return CurrentUser.from_record(check.user)


def current_user_optional(request: Request) -> Optional[CurrentUser]:
    # The gate middleware has already resolved the cookie for this request.
    if hasattr(request.state, "user"):
        return request.state.user
    return load_user_from_request(request)


def is_protected(path: str, prefixes: Iterable[str]) -> bool:
    if path.rstrip("/") in PUBLIC_PATHS:
        return False
    for p in prefixes:
        p = p.rstrip("/") or "/"
        if p == "/" or path == p or path.startswith(p + "/"):
            return True
    return False


def login_redirect_url(request: Request) -> str:
    next_url = str(request.url.path)
    if request.url.query:
        next_url += "?" + request.url.query
    return f"{LOGIN_PATH}?{urlencode({'next': next_url})}"


def safe_next(next_url: str, default: str = HOME_PATH) -> str:
    """Only local absolute paths are honoured as post-login targets."""
    n = (next_url or "").strip()
    if not n.startswith("/") or n.startswith("//") or "\\" in n:
        return default
    return n


def require_user(request: Request) -> CurrentUser:
    u = current_user_optional(request)
    if u:
        return u
    raise HTTPException(status_code=303, headers={"Location": login_redirect_url(request)})


def cookie_settings(settings: Settings) -> dict:
    return {"path": "/", "httponly": True, "samesite": "lax", "secure": settings.cookie_secure}
