# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from fastapi.concurrency import run_in_threadpool

from gatekeep.config import SESSION_TTL_SECONDS
from gatekeep.infra.account_repo import Account, AccountRepo
from gatekeep.infra.db import utcnow
from gatekeep.infra.session_repo import SessionRecord, SessionRepo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Flash:
    kind: str
    text: str


class SessionManager:
    """Issues, resolves and destroys server-side sessions.

    A session bound to an account is Authenticated once resolved. A session
    with no account only carries a flash for a visitor who is not signed in.
    """

    def __init__(
        self,
        sessions: SessionRepo,
        accounts: AccountRepo,
        *,
        ttl_seconds: int = SESSION_TTL_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.sessions = sessions
        self.accounts = accounts
        self.ttl = timedelta(seconds=ttl_seconds)
        self.clock = clock

    async def _insert(self, account_id: Optional[int]) -> str:
        now = self.clock()
        session_id = secrets.token_urlsafe(32)
        await run_in_threadpool(self.sessions.purge_expired, now)
        await run_in_threadpool(
            self.sessions.insert,
            session_id,
            account_id=account_id,
            created_at=now,
            expires_at=now + self.ttl,
        )
        return session_id

    async def create(self, account_id: int) -> str:
        return await self._insert(int(account_id))

    async def create_anonymous(self) -> str:
        return await self._insert(None)

    async def load(self, session_id: Optional[str]) -> Optional[SessionRecord]:
        """Return the session row if it exists and has not expired."""
        if not session_id:
            return None
        record = await run_in_threadpool(self.sessions.get, session_id)
        if record is None or record.expires_at <= self.clock():
            return None
        return record

    async def resolve(self, session_id: Optional[str]) -> Optional[Account]:
        record = await self.load(session_id)
        if record is None or record.is_anonymous:
            return None
        # The account may have vanished; such a session is not trusted.
        return await run_in_threadpool(self.accounts.find_by_id, record.account_id)

    async def validate(self, session_id: Optional[str]) -> Optional[int]:
        account = await self.resolve(session_id)
        return account.id if account is not None else None

    async def destroy(self, session_id: Optional[str]) -> None:
        if not session_id:
            return
        await run_in_threadpool(self.sessions.delete, session_id)

    async def set_flash(self, session_id: str, kind: str, text: str) -> None:
        stored = await run_in_threadpool(self.sessions.set_flash, session_id, kind, text)
        if not stored:
            logger.debug("Flash dropped, session no longer exists")

    async def take_flash(self, session_id: Optional[str]) -> Optional[Flash]:
        if await self.load(session_id) is None:
            return None
        taken = await run_in_threadpool(self.sessions.take_flash, session_id)
        if taken is None:
            return None
        kind, text = taken
        return Flash(kind=kind, text=text)
