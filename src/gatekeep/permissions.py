# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Request
from fastapi.responses import PlainTextResponse, RedirectResponse

from gatekeep.errors import SignInRequired, StorageError
from gatekeep.infra.account_repo import Account

logger = logging.getLogger(__name__)

SIGN_IN_PATH = "/signin"


async def session_middleware(request: Request, call_next):
    """Resolve the session once per request, before any route logic.

    Sets ``request.state.session_id`` (live session or None),
    ``request.state.user`` (Account or None) and ``request.state.flash``
    (consumed here, so it shows on exactly one response).
    """
    state = request.app.state
    session_id = state.cookie_signer.unsign(request.cookies.get(state.settings.cookie_name))
    manager = state.session_manager
    try:
        record = await manager.load(session_id)
        live_id = record.session_id if record is not None else None
        request.state.session_id = live_id
        request.state.user = await manager.resolve(live_id)
        request.state.flash = await manager.take_flash(live_id)
    except StorageError:
        logger.exception("Session lookup failed")
        return PlainTextResponse(StorageError.message, status_code=500)
    return await call_next(request)


def current_user_optional(request: Request) -> Optional[Account]:
    return getattr(request.state, "user", None)


def require_user(request: Request) -> Account:
    u = current_user_optional(request)
    if u is not None:
        return u
    raise SignInRequired()


def set_session_cookie(request: Request, response, session_id: str) -> None:
    state = request.app.state
    response.set_cookie(
        state.settings.cookie_name,
        state.cookie_signer.sign(session_id),
        **state.settings.cookie_settings(),
    )


async def sign_in_required_handler(request: Request, exc: SignInRequired):
    """Anonymous request on a protected route: flash an error and send to sign-in."""
    manager = request.app.state.session_manager
    response = RedirectResponse(url=SIGN_IN_PATH, status_code=302)
    session_id = getattr(request.state, "session_id", None)
    if session_id is None:
        session_id = await manager.create_anonymous()
        set_session_cookie(request, response, session_id)
    await manager.set_flash(session_id, "error", exc.message)
    return response
