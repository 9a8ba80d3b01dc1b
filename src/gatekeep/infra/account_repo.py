# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from gatekeep.errors import DuplicateEmail
from gatekeep.infra.db import connect, storage_errors, to_iso, utcnow


@dataclass(frozen=True)
class Account:
    id: int
    email: str
    password_hash: str
    created_at: str

    def public(self) -> dict:
        """Fields safe to hand to the rendering layer."""
        return {"id": self.id, "email": self.email, "created_at": self.created_at}


def _row_to_account(row: Optional[sqlite3.Row]) -> Optional[Account]:
    if row is None:
        return None
    return Account(
        id=int(row["id"]),
        email=str(row["email"]),
        password_hash=str(row["password_hash"]),
        created_at=str(row["created_at"]),
    )


class AccountRepo:
    """Append-only account storage. Email uniqueness is a table constraint."""

    def __init__(self, db_path: Path):
        self.db_path = db_path

    def create_account(self, email: str, password_hash: str) -> Account:
        """Insert an account and return it as stored.

        Raises DuplicateEmail when the unique index on ``email`` rejects the row.
        """
        with storage_errors():
            try:
                with connect(self.db_path, write=True) as conn:
                    conn.execute(
                        "INSERT INTO accounts (email, password_hash, created_at) VALUES (?, ?, ?)",
                        (email, password_hash, to_iso(utcnow())),
                    )
                    row = conn.execute("SELECT * FROM accounts WHERE email=?", (email,)).fetchone()
            except sqlite3.IntegrityError as e:
                if "UNIQUE" in str(e).upper():
                    raise DuplicateEmail() from e
                raise
            account = _row_to_account(row)
            if account is None:
                # Insert reported success but the row is not readable back.
                raise sqlite3.DatabaseError("account row missing after insert")
        return account

    def find_by_email(self, email: str) -> Optional[Account]:
        with storage_errors():
            with connect(self.db_path) as conn:
                row = conn.execute("SELECT * FROM accounts WHERE email=?", (email,)).fetchone()
        return _row_to_account(row)

    def find_by_id(self, account_id: int) -> Optional[Account]:
        with storage_errors():
            with connect(self.db_path) as conn:
                row = conn.execute("SELECT * FROM accounts WHERE id=?", (int(account_id),)).fetchone()
        return _row_to_account(row)
