# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Session lifecycle: issue, validate (refresh or expire) and revoke sessions.

From the validator's point of view a session id is ABSENT (no row), EXPIRED
(row past its expiry, reaped on sight), ORPHANED (row whose user is gone) or
VALID. Only VALID authenticates, and every VALID hit slides the expiry
forward, so active sessions never lapse and idle ones lapse one TTL after
their last use.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from loguru import logger

from cookieauth.auth.passwords import DEFAULT_TIME_COST, hash_password, verify_password
from cookieauth.auth.session import Clock, SessionRecord, SessionStore, now_ms, redact
from cookieauth.auth.users import UserRecord, UserStore, normalize_email
from cookieauth.core.errors import InvalidCredentialsError, InvalidInputError, StoreWriteError

INVALID_CREDENTIALS_MESSAGE = "Incorrect username or password"


class SessionStatus(str, Enum):
    ABSENT = "absent"
    VALID = "valid"
    EXPIRED = "expired"
    ORPHANED = "orphaned"


@dataclass(frozen=True)
class SessionCheck:
    status: SessionStatus
    user: Optional[UserRecord] = None
    session: Optional[SessionRecord] = None

    @property
    def authenticated(self) -> bool:
        return self.status is SessionStatus.VALID and self.user is not None


class SessionLifecycle:
    def __init__(
        self,
        users: UserStore,
        sessions: SessionStore,
        *,
        clock: Clock = now_ms,
        time_cost: int = DEFAULT_TIME_COST,
    ) -> None:
        self.users = users
        self.sessions = sessions
        self.clock = clock
        self.time_cost = time_cost
        self._dummy_hash: Optional[str] = None

    def signup(self, *, first_name: str, last_name: str, email: str, password: str) -> UserRecord:
        """Create the account. No session is issued; logging in is a separate step."""
        if not normalize_email(email) or not password:
            raise InvalidInputError("Email and password are required")
        user = self.users.create_user(
            first_name=first_name,
            last_name=last_name,
            email=normalize_email(email),
            password_hash=hash_password(password, time_cost=self.time_cost),
        )
        logger.info("User {} signed up", user.id)
        return user

    def login(self, email: str, password: str) -> SessionRecord:
        user = self.users.get_user_by_email(email)
        if user is None:
            # Same argon2 cost as a wrong password.
            verify_password(self._unknown_user_hash(), password)
            raise InvalidCredentialsError(INVALID_CREDENTIALS_MESSAGE)
        if not verify_password(user.password_hash, password):
            raise InvalidCredentialsError(INVALID_CREDENTIALS_MESSAGE)
        session = self.sessions.create_session(user.id)
        logger.info("User {} logged in", user.id)
        return session

    def _unknown_user_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = hash_password(secrets.token_urlsafe(16), time_cost=self.time_cost)
        return self._dummy_hash

    def validate(self, session_id: Optional[str]) -> SessionCheck:
        if not session_id:
            return SessionCheck(SessionStatus.ABSENT)
        session = self.sessions.get_session(session_id)
        if session is None:
            return SessionCheck(SessionStatus.ABSENT)

        if session.expires_at <= self.clock():
            try:
                self.sessions.delete_session(session.id)
            except StoreWriteError as exc:
                logger.warning("Could not reap expired session {}: {}", redact(session_id), exc.message)
            else:
                logger.info("Expired session {} removed", redact(session_id))
            return SessionCheck(SessionStatus.EXPIRED, session=session)

        user = self.users.get_user_by_id(session.user_id)
        if user is None:
            logger.warning("Session {} references missing user {}", redact(session_id), session.user_id)
            return SessionCheck(SessionStatus.ORPHANED, session=session)

        try:
            session = self.sessions.refresh_session(session.id)
        except StoreWriteError as exc:
            logger.warning("Could not refresh session {}: {}", redact(session_id), exc.message)
        return SessionCheck(SessionStatus.VALID, user=user, session=session)

    def logout(self, session_id: Optional[str]) -> bool:
        if not session_id:
            return False
        try:
            self.sessions.delete_session(session_id)
        except StoreWriteError as exc:
            logger.info("Logout for unknown session {}: {}", redact(session_id), exc.message)
            return False
        return True
