# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from functools import lru_cache

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

DEFAULT_TIME_COST = 2


@lru_cache(maxsize=None)
def _hasher(time_cost: int) -> PasswordHasher:
    return PasswordHasher(time_cost=time_cost)


def hash_password(plain: str, *, time_cost: int = DEFAULT_TIME_COST) -> str:
    if not plain:
        raise ValueError("Empty password")
    return _hasher(time_cost).hash(plain)


def verify_password(hash_value: str, plain: str) -> bool:
    if not hash_value or not plain:
        return False
    # Parameters are read back from the encoded hash, so any hasher verifies.
    try:
        return _hasher(DEFAULT_TIME_COST).verify(hash_value, plain)
    except (VerificationError, InvalidHashError):
        return False
