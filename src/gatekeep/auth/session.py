# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Optional

from itsdangerous import BadSignature, URLSafeTimedSerializer

from gatekeep.config import Settings


class CookieSigner:
    """Signs session ids into cookie values and back."""

    def __init__(self, settings: Settings):
        self._serializer = URLSafeTimedSerializer(
            secret_key=settings.secret_key, salt=settings.session_salt
        )
        self._max_age = settings.session_ttl_seconds

    def sign(self, session_id: str) -> str:
        return self._serializer.dumps({"sid": session_id})

    def unsign(self, token: Optional[str]) -> Optional[str]:
        if not token:
            return None
        try:
            data = self._serializer.loads(token, max_age=self._max_age)
        except BadSignature:
            # BadTimeSignature and SignatureExpired are both subclasses.
            return None
        if not isinstance(data, dict):
            return None
        sid = str(data.get("sid") or "").strip()
        return sid or None
