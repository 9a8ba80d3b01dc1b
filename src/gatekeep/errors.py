# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Failure kinds raised by the account and session layers.

Every error carries a ``message`` that is safe to show to the user. Storage
details stay in the chained exception and in the server log.
"""

from __future__ import annotations

GENERIC_FAILURE = "Something went wrong. Please try again."


class AuthError(Exception):
    """Base class for failures mapped to a response at the request boundary."""

    status_code = 400
    message = ""

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(AuthError):
    """Missing or mismatched input."""

    def __init__(self, code: str, message: str):
        self.code = code
        super().__init__(message)


class DuplicateEmail(AuthError):
    message = "Email is already registered."


class InvalidCredentials(AuthError):
    """Unknown email or wrong password. Both read the same on purpose."""

    message = "Invalid email or password."


class StorageError(AuthError):
    status_code = 500
    message = GENERIC_FAILURE


class SignInRequired(Exception):
    """Raised by the access gate when an anonymous request hits a protected route."""

    message = "Please sign in first."
