# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication core.

This package provides:
- Password hashing/verification (argon2)
- The credential store (``users`` table)
- The session store (``sessions`` table) and opaque session ids
- The session lifecycle: login, signup, validate/refresh/expire, logout
"""
