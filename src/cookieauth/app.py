# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Form, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from loguru import logger

from cookieauth.auth.lifecycle import SessionLifecycle
from cookieauth.auth.session import Clock, SessionStore, now_ms
from cookieauth.auth.users import UserStore
from cookieauth.core.config import Settings
from cookieauth.core.errors import AuthError
from cookieauth.core.logging import setup_logging
from cookieauth.infra.db import Database
from cookieauth.permissions import (
    HOME_PATH,
    LOGIN_PATH,
    LOGOUT_PATH,
    SIGNUP_PATH,
    cookie_settings,
    current_user_optional,
    is_protected,
    load_user_from_request,
    login_redirect_url,
    require_user,
    safe_next,
)

BASE_DIR = Path(__file__).resolve().parent

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

router = APIRouter()


def _render(request: Request, template_name: str, ctx: Optional[dict] = None, *, status_code: int = 200):
    """TemplateResponse wrapper injecting the resolved user."""
    base_ctx = {"current_user": current_user_optional(request)}
    merged = {**base_ctx, **(ctx or {})}
    return templates.TemplateResponse(request, template_name, merged, status_code=status_code)


def _lifecycle(request: Request) -> SessionLifecycle:
    return request.app.state.lifecycle


def _settings(request: Request) -> Settings:
    return request.app.state.settings


# ------------------ Routes ------------------


@router.get("/")
def root(request: Request):
    target = HOME_PATH if current_user_optional(request) else LOGIN_PATH
    return RedirectResponse(url=target, status_code=303)


@router.get(LOGIN_PATH, response_class=HTMLResponse)
def login_get(request: Request, next: str = HOME_PATH, created: bool = False):
    if current_user_optional(request):
        return RedirectResponse(url=safe_next(next), status_code=303)
    notice = "Account created, you can log in now" if created else ""
    return _render(request, "login.html", {"next": next, "error": "", "notice": notice, "email": ""})


@router.post(LOGIN_PATH)
def login_post(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    next: str = Form(HOME_PATH),
):
    settings = _settings(request)
    try:
        session = _lifecycle(request).login(email, password)
    except AuthError as exc:
        return _render(
            request,
            "login.html",
            {"next": next, "error": exc.message, "notice": "", "email": email},
            status_code=422,
        )
    resp = RedirectResponse(url=safe_next(next), status_code=303)
    resp.set_cookie(settings.cookie_name, session.id, **cookie_settings(settings))
    return resp


@router.get(SIGNUP_PATH, response_class=HTMLResponse)
def signup_get(request: Request):
    return _render(request, "signup.html", {"error": "", "form": {}})


@router.post(SIGNUP_PATH)
def signup_post(
    request: Request,
    first_name: str = Form("", alias="firstName"),
    last_name: str = Form("", alias="lastName"),
    email: str = Form(""),
    password: str = Form(""),
):
    form = {"firstName": first_name, "lastName": last_name, "email": email}
    try:
        _lifecycle(request).signup(
            first_name=first_name, last_name=last_name, email=email, password=password
        )
    except AuthError as exc:
        return _render(request, "signup.html", {"error": exc.message, "form": form}, status_code=422)
    return RedirectResponse(url=f"{LOGIN_PATH}?created=1", status_code=303)


@router.post(LOGOUT_PATH)
def logout_post(request: Request):
    settings = _settings(request)
    _lifecycle(request).logout(request.cookies.get(settings.cookie_name, ""))
    resp = RedirectResponse(url=LOGIN_PATH, status_code=303)
    resp.delete_cookie(settings.cookie_name, path="/")
    return resp


@router.get("/home", response_class=HTMLResponse)
def home(request: Request, user=Depends(require_user)):
    return _render(request, "home.html", {"user": user})


def create_app(
    settings: Optional[Settings] = None,
    *,
    clock: Clock = now_ms,
    database: Optional[Database] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    db = database or Database(settings.database_url)
    users = UserStore(db)
    sessions = SessionStore(
        db,
        ttl_ms=settings.session_ttl_ms,
        refresh_ttl_ms=settings.refresh_ttl_ms,
        id_length=settings.session_id_length,
        id_attempts=settings.session_id_attempts,
        clock=clock,
    )
    lifecycle = SessionLifecycle(users, sessions, clock=clock, time_cost=settings.argon2_time_cost)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level)
        # StorageInitError propagates and aborts startup.
        db.init()
        logger.info("cookie-auth started (session TTL {}s)", settings.session_ttl_seconds)
        yield
        db.dispose()

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db
    app.state.lifecycle = lifecycle

    @app.middleware("http")
    async def _session_gate(request: Request, call_next):
        # Validation hits the database; keep it off the event loop.
        request.state.user = await run_in_threadpool(load_user_from_request, request)
        if request.state.user is None and is_protected(request.url.path, settings.protected_prefixes):
            return RedirectResponse(url=login_redirect_url(request), status_code=303)
        return await call_next(request)

    app.include_router(router)
    return app


app = create_app()
