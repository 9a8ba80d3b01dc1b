# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from functools import lru_cache

from argon2.exceptions import InvalidHashError, VerificationError
from fastapi.concurrency import run_in_threadpool

from gatekeep.auth.passwords import hash_password, verify_password
from gatekeep.errors import DuplicateEmail, InvalidCredentials, StorageError, ValidationError
from gatekeep.infra.account_repo import Account, AccountRepo

logger = logging.getLogger(__name__)


def normalize_email(email: object) -> str:
    return str(email or "").strip().lower()


@lru_cache(maxsize=1)
def _decoy_hash() -> str:
    # Verified against when the email is unknown, so both failure paths pay
    # the same hashing cost.
    return hash_password("decoy-password-never-matches")


class AccountService:
    """Registration and password sign-in on top of an AccountRepo.

    Hashing and storage calls run in the worker thread pool so the event
    loop is never blocked by argon2 or SQLite.
    """

    def __init__(self, accounts: AccountRepo):
        self.accounts = accounts

    async def register(self, email: str, password: str, confirm_password: str) -> Account:
        normalized = normalize_email(email)
        if not normalized or not password or not confirm_password:
            raise ValidationError("missing_fields", "All fields are required.")
        if password != confirm_password:
            raise ValidationError("mismatch", "Passwords do not match.")

        # Early exit for the common case; the unique index still decides races.
        existing = await run_in_threadpool(self.accounts.find_by_email, normalized)
        if existing is not None:
            raise DuplicateEmail()

        password_hash = await run_in_threadpool(hash_password, password)
        await run_in_threadpool(self.accounts.create_account, normalized, password_hash)

        # Re-read so the id comes from the store, not from the insert call.
        created = await run_in_threadpool(self.accounts.find_by_email, normalized)
        if created is None:
            raise StorageError()
        logger.info("Account registered", extra={"account_id": created.id})
        return created

    async def authenticate(self, email: str, password: str) -> Account:
        normalized = normalize_email(email)
        if not normalized or not password:
            raise ValidationError("missing_fields", "Email and password are required.")

        account = await run_in_threadpool(self.accounts.find_by_email, normalized)
        if account is not None:
            stored_hash = account.password_hash
        else:
            stored_hash = await run_in_threadpool(_decoy_hash)
        try:
            matches = await run_in_threadpool(verify_password, stored_hash, password)
        except (InvalidHashError, VerificationError) as e:
            # Stored hash is unreadable or carries unusable parameters.
            raise StorageError() from e

        if account is None or not matches:
            logger.info("Sign-in rejected", extra={"email": normalized})
            raise InvalidCredentials()
        return account
