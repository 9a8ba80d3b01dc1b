# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

from gatekeep.infra.db import connect, from_iso, storage_errors, to_iso


@dataclass(frozen=True)
class SessionRecord:
    session_id: str
    account_id: Optional[int]
    created_at: datetime
    expires_at: datetime

    @property
    def is_anonymous(self) -> bool:
        return self.account_id is None


def _row_to_session(row: Optional[sqlite3.Row]) -> Optional[SessionRecord]:
    if row is None:
        return None
    account_id = row["account_id"]
    return SessionRecord(
        session_id=str(row["session_id"]),
        account_id=int(account_id) if account_id is not None else None,
        created_at=from_iso(row["created_at"]),
        expires_at=from_iso(row["expires_at"]),
    )


class SessionRepo:
    """Server-side session rows, keyed by the opaque session id."""

    def __init__(self, db_path: Path):
        self.db_path = db_path

    def insert(
        self,
        session_id: str,
        *,
        account_id: Optional[int],
        created_at: datetime,
        expires_at: datetime,
    ) -> None:
        with storage_errors():
            with connect(self.db_path, write=True) as conn:
                conn.execute(
                    """
                    INSERT INTO sessions (session_id, account_id, created_at, expires_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (session_id, account_id, to_iso(created_at), to_iso(expires_at)),
                )

    def get(self, session_id: str) -> Optional[SessionRecord]:
        with storage_errors():
            with connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT * FROM sessions WHERE session_id=?", (session_id,)
                ).fetchone()
        return _row_to_session(row)

    def delete(self, session_id: str) -> None:
        with storage_errors():
            with connect(self.db_path, write=True) as conn:
                conn.execute("DELETE FROM sessions WHERE session_id=?", (session_id,))

    def set_flash(self, session_id: str, kind: str, text: str) -> bool:
        """Attach a flash to an existing row. Returns False if the row is gone."""
        with storage_errors():
            with connect(self.db_path, write=True) as conn:
                cur = conn.execute(
                    "UPDATE sessions SET flash_kind=?, flash_text=? WHERE session_id=?",
                    (kind, text, session_id),
                )
                return cur.rowcount > 0

    def take_flash(self, session_id: str) -> Optional[Tuple[str, str]]:
        with storage_errors():
            with connect(self.db_path, write=True) as conn:
                row = conn.execute(
                    "SELECT flash_kind, flash_text FROM sessions WHERE session_id=?",
                    (session_id,),
                ).fetchone()
                if row is None or row["flash_kind"] is None:
                    return None
                conn.execute(
                    "UPDATE sessions SET flash_kind=NULL, flash_text=NULL WHERE session_id=?",
                    (session_id,),
                )
        return str(row["flash_kind"]), str(row["flash_text"] or "")

    def purge_expired(self, now: datetime) -> int:
        with storage_errors():
            with connect(self.db_path, write=True) as conn:
                cur = conn.execute("DELETE FROM sessions WHERE expires_at <= ?", (to_iso(now),))
                return cur.rowcount
