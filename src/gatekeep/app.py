# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Form, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException

from gatekeep.app_logging import setup_logger
from gatekeep.auth.session import CookieSigner
from gatekeep.config import Settings
from gatekeep.errors import GENERIC_FAILURE, AuthError, SignInRequired, StorageError
from gatekeep.infra.account_repo import Account, AccountRepo
from gatekeep.infra.db import init_db
from gatekeep.infra.session_repo import SessionRepo
from gatekeep.permissions import (
    current_user_optional,
    require_user,
    session_middleware,
    set_session_cookie,
    sign_in_required_handler,
)
from gatekeep.services.account_service import AccountService, normalize_email
from gatekeep.services.session_service import SessionManager

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

router = APIRouter()


def _render(request: Request, template_name: str, ctx: Optional[dict] = None, status_code: int = 200):
    """TemplateResponse wrapper injecting the per-request user and flash."""
    user = current_user_optional(request)
    base_ctx = {
        "user": user.public() if user is not None else None,
        "flash": getattr(request.state, "flash", None),
        "values": {"email": ""},
        "error": None,
    }
    merged = {**base_ctx, **(ctx or {})}
    return templates.TemplateResponse(request, template_name, merged, status_code=status_code)


def _form_error(request: Request, template_name: str, email: str, error: AuthError):
    return _render(
        request,
        template_name,
        {"values": {"email": email}, "error": error.message},
        status_code=error.status_code,
    )


async def _start_session(request: Request, account: Account, flash_text: str) -> RedirectResponse:
    """Replace whatever session this client had with a fresh one for ``account``."""
    manager: SessionManager = request.app.state.session_manager
    await manager.destroy(getattr(request.state, "session_id", None))
    session_id = await manager.create(account.id)
    await manager.set_flash(session_id, "success", flash_text)
    response = RedirectResponse(url="/dashboard", status_code=302)
    set_session_cookie(request, response, session_id)
    return response


# ------------------ Routes ------------------


@router.get("/", response_class=HTMLResponse)
async def home(request: Request):
    return _render(request, "index.html")


@router.get("/signup", response_class=HTMLResponse)
async def signup_get(request: Request):
    return _render(request, "signup.html")


@router.post("/signup")
async def signup_post(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form("", alias="confirmPassword"),
):
    normalized = normalize_email(email)
    service: AccountService = request.app.state.account_service
    try:
        account = await service.register(email, password, confirm_password)
        return await _start_session(request, account, "Welcome!")
    except StorageError as e:
        logger.exception("Signup error")
        return _form_error(request, "signup.html", normalized, e)
    except AuthError as e:
        return _form_error(request, "signup.html", normalized, e)


@router.get("/signin", response_class=HTMLResponse)
async def signin_get(request: Request):
    return _render(request, "signin.html")


@router.post("/signin")
async def signin_post(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
):
    normalized = normalize_email(email)
    service: AccountService = request.app.state.account_service
    try:
        account = await service.authenticate(email, password)
        response = await _start_session(request, account, "Signed in successfully.")
    except StorageError as e:
        logger.exception("Signin error")
        return _form_error(request, "signin.html", normalized, e)
    except AuthError as e:
        return _form_error(request, "signin.html", normalized, e)
    logger.info("Signed in", extra={"account_id": account.id})
    return response


@router.get("/logout")
async def logout(request: Request):
    await request.app.state.session_manager.destroy(getattr(request.state, "session_id", None))
    response = RedirectResponse(url="/", status_code=302)
    response.delete_cookie(request.app.state.settings.cookie_name)
    return response


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard(request: Request, user: Account = Depends(require_user)):
    return _render(request, "dashboard.html")


# ------------------ Error handlers ------------------


async def _not_found_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return PlainTextResponse("Not Found", status_code=404)
    return await http_exception_handler(request, exc)


async def _unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return PlainTextResponse(GENERIC_FAILURE, status_code=500)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    setup_logger(settings.log_level)
    init_db(settings.db_path)

    accounts = AccountRepo(settings.db_path)
    sessions = SessionRepo(settings.db_path)

    app = FastAPI()
    app.state.settings = settings
    app.state.cookie_signer = CookieSigner(settings)
    app.state.account_service = AccountService(accounts)
    app.state.session_manager = SessionManager(
        sessions, accounts, ttl_seconds=settings.session_ttl_seconds
    )

    app.middleware("http")(session_middleware)
    app.add_exception_handler(SignInRequired, sign_in_required_handler)
    app.add_exception_handler(StarletteHTTPException, _not_found_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)
    app.include_router(router)
    return app
