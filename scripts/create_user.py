#!/usr/bin/env python3
from __future__ import annotations

from getpass import getpass

from cookieauth.auth.lifecycle import SessionLifecycle
from cookieauth.auth.session import SessionStore
from cookieauth.auth.users import UserStore
from cookieauth.core.config import Settings
from cookieauth.core.errors import AuthError
from cookieauth.infra.db import Database


def main() -> None:
    settings = Settings.from_env()
    db = Database(settings.database_url)
    db.init()
    lifecycle = SessionLifecycle(
        UserStore(db),
        SessionStore(db, ttl_ms=settings.session_ttl_ms),
        time_cost=settings.argon2_time_cost,
    )

    first_name = input("First name: ").strip()
    last_name = input("Last name: ").strip()
    email = input("Email: ").strip()
    if not email:
        raise SystemExit("Email is required")

    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")
    if not pw1:
        raise SystemExit("Password is required")

    try:
        user = lifecycle.signup(first_name=first_name, last_name=last_name, email=email, password=pw1)
    except AuthError as exc:
        raise SystemExit(exc.message)
    finally:
        db.dispose()
    print(f"OK -> user {user.id} <{user.email}> in {db.url}")


if __name__ == "__main__":
    main()
