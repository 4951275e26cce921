#!/usr/bin/env python3
"""Delete expired session rows.

Expired sessions are only reaped when a request presents them; run this
periodically (cron, systemd timer) to keep the table bounded.
"""
from __future__ import annotations

from cookieauth.auth.session import SessionStore
from cookieauth.core.config import Settings
from cookieauth.core.logging import setup_logging
from cookieauth.infra.db import Database


def main() -> None:
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    db = Database(settings.database_url)
    db.init()
    try:
        removed = SessionStore(db, ttl_ms=settings.session_ttl_ms).purge_expired()
    finally:
        db.dispose()
    print(f"OK -> {removed} expired sessions removed from {db.url}")


if __name__ == "__main__":
    main()
