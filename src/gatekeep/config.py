# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

SESSION_TTL_SECONDS = 60 * 60 * 24 * 7  # 7 days

_TRUTHY = {"1", "true", "yes", "y"}


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    secret_key: str
    db_path: Path
    cookie_name: str = "gatekeep_session"
    cookie_secure: bool = False
    session_salt: str = "gatekeep.session.v1"
    session_ttl_seconds: int = SESSION_TTL_SECONDS
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        secret = os.getenv("SECRET_KEY") or os.getenv("GATEKEEP_SECRET_KEY")
        if not secret:
            raise RuntimeError("Missing SECRET_KEY (or GATEKEEP_SECRET_KEY) in environment")
        db_path = Path(os.getenv("GATEKEEP_DB_PATH", str(Path("data") / "app.db"))).resolve()
        return cls(
            secret_key=secret,
            db_path=db_path,
            cookie_name=os.getenv("GATEKEEP_COOKIE_NAME", "gatekeep_session"),
            cookie_secure=_env_bool("GATEKEEP_COOKIE_SECURE"),
            session_salt=os.getenv("GATEKEEP_SESSION_SALT", "gatekeep.session.v1"),
            log_level=os.getenv("GATEKEEP_LOG_LEVEL", "INFO").upper(),
        )

    def cookie_settings(self) -> dict:
        return {
            "httponly": True,
            "samesite": "lax",
            "secure": self.cookie_secure,
            "max_age": self.session_ttl_seconds,
        }
