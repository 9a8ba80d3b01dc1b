# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from argon2 import PasswordHasher, Type
from argon2.exceptions import VerifyMismatchError

# Fixed argon2id cost profile. Changing these only affects new hashes; old
# ones still verify because each hash string records its own parameters.
TIME_COST = 3
MEMORY_COST_KIB = 64 * 1024
PARALLELISM = 4
HASH_LEN = 32
SALT_LEN = 16

_PH = PasswordHasher(
    time_cost=TIME_COST,
    memory_cost=MEMORY_COST_KIB,
    parallelism=PARALLELISM,
    hash_len=HASH_LEN,
    salt_len=SALT_LEN,
    type=Type.ID,
)


def hash_password(plain: str) -> str:
    """Salted argon2id hash of ``plain``, a fresh random salt per call."""
    if not plain:
        raise ValueError("Empty password")
    return _PH.hash(plain)


def verify_password(hash_value: str, plain: str) -> bool:
    """Check ``plain`` against ``hash_value``.

    A mismatch is ``False``. A malformed hash raises
    ``argon2.exceptions.InvalidHashError``; a hash with unusable parameters
    raises ``argon2.exceptions.VerificationError``.
    """
    if not plain:
        return False
    try:
        return _PH.verify(hash_value, plain)
    except VerifyMismatchError:
        return False
