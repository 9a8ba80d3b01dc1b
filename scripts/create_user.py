#!/usr/bin/env python3
from __future__ import annotations

import asyncio
from getpass import getpass

from gatekeep.config import Settings
from gatekeep.errors import AuthError
from gatekeep.infra.account_repo import AccountRepo
from gatekeep.infra.db import init_db
from gatekeep.services.account_service import AccountService


def main() -> None:
    settings = Settings.from_env()
    init_db(settings.db_path)
    service = AccountService(AccountRepo(settings.db_path))

    email = input("Email: ").strip()
    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")

    try:
        account = asyncio.run(service.register(email, pw1, pw2))
    except AuthError as e:
        raise SystemExit(e.message)

    print(f"OK -> {account.email} (id={account.id})")


if __name__ == "__main__":
    main()
