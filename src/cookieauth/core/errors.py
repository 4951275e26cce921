# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy.

Everything below ``AuthError`` is recoverable at the request boundary: the
handlers turn it into a 422 form or the gate into an unauthenticated request.
``StorageInitError`` is the one fatal condition and aborts startup.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class; ``message`` is safe to show to the user."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class DuplicateEmailError(AuthError):
    pass


class StoreWriteError(AuthError):
    """A write touched an unexpected number of rows (or failed outright)."""


class NotFoundError(StoreWriteError):
    """The row a write targeted does not exist."""


class StoreReadError(AuthError):
    """A lookup could not be answered by the database."""


class InvalidInputError(AuthError):
    pass


class InvalidCredentialsError(AuthError):
    """Unknown email or wrong password; the two cases share one message."""


class StorageInitError(RuntimeError):
    pass


class ConfigError(ValueError):
    pass
