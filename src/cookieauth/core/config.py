# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Runtime settings, read from ``AUTH_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from cookieauth.core.errors import ConfigError

MIN_SESSION_ID_LENGTH = 20

_TRUTHY = {"1", "true", "yes", "y"}


def _env_int(name: str, default: int, *, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer (got {raw!r})") from exc
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum} (got {value})")
    return value


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def _env_prefixes(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    out = []
    for part in raw.split(","):
        p = part.strip()
        if not p:
            continue
        out.append(p if p.startswith("/") else "/" + p)
    return tuple(out)


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///mydb.sqlite"
    session_ttl_seconds: int = 3600
    # None means "same as session_ttl_seconds".
    session_refresh_ttl_seconds: Optional[int] = None
    session_id_length: int = 32
    session_id_attempts: int = 5
    argon2_time_cost: int = 2
    cookie_name: str = "sessionID"
    cookie_secure: bool = False
    protected_prefixes: Tuple[str, ...] = ("/home",)
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.session_ttl_seconds <= 0:
            raise ConfigError("session_ttl_seconds must be positive")
        if self.session_refresh_ttl_seconds is not None and self.session_refresh_ttl_seconds <= 0:
            raise ConfigError("session_refresh_ttl_seconds must be positive")
        if self.session_id_length < MIN_SESSION_ID_LENGTH:
            raise ConfigError(
                f"session_id_length must be >= {MIN_SESSION_ID_LENGTH} (got {self.session_id_length})"
            )
        if self.session_id_attempts < 1:
            raise ConfigError("session_id_attempts must be >= 1")
        if self.argon2_time_cost < 1:
            raise ConfigError("argon2_time_cost must be >= 1")

    @property
    def session_ttl_ms(self) -> int:
        return self.session_ttl_seconds * 1000

    @property
    def refresh_ttl_ms(self) -> int:
        seconds = self.session_refresh_ttl_seconds or self.session_ttl_seconds
        return seconds * 1000

    @classmethod
    def from_env(cls) -> "Settings":
        refresh_raw = os.getenv("AUTH_SESSION_REFRESH_TTL", "").strip()
        refresh = _env_int("AUTH_SESSION_REFRESH_TTL", 0) if refresh_raw else None
        return cls(
            database_url=os.getenv("AUTH_DATABASE_URL", cls.database_url),
            session_ttl_seconds=_env_int("AUTH_SESSION_TTL", cls.session_ttl_seconds),
            session_refresh_ttl_seconds=refresh,
            session_id_length=_env_int(
                "AUTH_SESSION_ID_LENGTH", cls.session_id_length, minimum=MIN_SESSION_ID_LENGTH
            ),
            session_id_attempts=_env_int("AUTH_SESSION_ID_ATTEMPTS", cls.session_id_attempts),
            argon2_time_cost=_env_int("AUTH_ARGON2_TIME_COST", cls.argon2_time_cost),
            cookie_name=os.getenv("AUTH_COOKIE_NAME", cls.cookie_name),
            cookie_secure=_env_bool("AUTH_COOKIE_SECURE", cls.cookie_secure),
            protected_prefixes=_env_prefixes("AUTH_PROTECTED_PREFIXES", cls.protected_prefixes),
            log_level=os.getenv("AUTH_LOG_LEVEL", cls.log_level).upper(),
        )
