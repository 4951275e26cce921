# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass
from typing import Callable, Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from cookieauth.core.errors import NotFoundError, StoreReadError, StoreWriteError
from cookieauth.infra.db import Database, SessionRow

SESSION_ID_ALPHABET = string.ascii_uppercase
DEFAULT_SESSION_ID_LENGTH = 32
DEFAULT_TTL_MS = 60 * 60 * 1000  # 1 hour

Clock = Callable[[], int]


def now_ms() -> int:
    return int(time.time() * 1000)


def generate_session_id(length: int = DEFAULT_SESSION_ID_LENGTH) -> str:
    return "".join(secrets.choice(SESSION_ID_ALPHABET) for _ in range(length))


def redact(session_id: str) -> str:
    """Loggable form of a session id (its first characters only)."""
    return (session_id or "")[:6] + "..."


@dataclass(frozen=True)
class SessionRecord:
    id: str
    user_id: int
    expires_at: int  # epoch millis


def _to_record(row: SessionRow) -> SessionRecord:
    return SessionRecord(id=row.id, user_id=row.user_id, expires_at=int(row.expires_at))


class SessionStore:
    """Session rows keyed by an opaque random id.

    Expiry is absolute (epoch millis). Creation sets ``now + ttl_ms`` and each
    refresh resets it to ``now + refresh_ttl_ms``.
    """

    def __init__(
        self,
        db: Database,
        *,
        ttl_ms: int = DEFAULT_TTL_MS,
        refresh_ttl_ms: Optional[int] = None,
        id_length: int = DEFAULT_SESSION_ID_LENGTH,
        id_attempts: int = 5,
        clock: Clock = now_ms,
    ) -> None:
        self.db = db
        self.ttl_ms = ttl_ms
        self.refresh_ttl_ms = refresh_ttl_ms or ttl_ms
        self.id_length = id_length
        self.id_attempts = max(1, id_attempts)
        self.clock = clock

    def create_session(self, user_id: int) -> SessionRecord:
        for attempt in range(1, self.id_attempts + 1):
            row = SessionRow(
                id=generate_session_id(self.id_length),
                user_id=user_id,
                expires_at=self.clock() + self.ttl_ms,
            )
            with self.db.session() as s:
                s.add(row)
                try:
                    s.commit()
                except IntegrityError:
                    s.rollback()
                    logger.warning("Session id collision for user {} (attempt {})", user_id, attempt)
                    continue
                except SQLAlchemyError as exc:
                    s.rollback()
                    logger.error("Failed session creation - user {}: {}", user_id, exc)
                    raise StoreWriteError("Failed session creation") from exc
                return _to_record(row)
        logger.error("Failed session creation - user {}: no free id after {} attempts", user_id, self.id_attempts)
        raise StoreWriteError("Failed session creation")

    def get_session(self, session_id: str) -> Optional[SessionRecord]:
        if not session_id:
            return None
        with self.db.session() as s:
            try:
                row = s.get(SessionRow, session_id)
            except SQLAlchemyError as exc:
                logger.error("Session lookup failed - session {}: {}", redact(session_id), exc)
                raise StoreReadError("Session lookup failed") from exc
            return _to_record(row) if row is not None else None

    def refresh_session(self, session_id: str) -> SessionRecord:
        expires_at = self.clock() + self.refresh_ttl_ms
        with self.db.session() as s:
            try:
                changed = (
                    s.query(SessionRow)
                    .filter(SessionRow.id == session_id)
                    .update({SessionRow.expires_at: expires_at}, synchronize_session=False)
                )
                if changed == 0:
                    s.rollback()
                    logger.warning("Session {} not found for refresh", redact(session_id))
                    raise NotFoundError("Failed to update session")
                if changed != 1:
                    s.rollback()
                    logger.error("Failed session refresh - session {}: {} rows", redact(session_id), changed)
                    raise StoreWriteError("Failed to update session")
                s.commit()
            except SQLAlchemyError as exc:
                s.rollback()
                logger.error("Failed session refresh - session {}: {}", redact(session_id), exc)
                raise StoreWriteError("Failed to update session") from exc
            row = s.get(SessionRow, session_id)
            if row is None:
                # Deleted between the update and this read.
                raise NotFoundError("Failed to update session")
            return _to_record(row)

    def delete_session(self, session_id: str) -> None:
        with self.db.session() as s:
            try:
                changed = (
                    s.query(SessionRow)
                    .filter(SessionRow.id == session_id)
                    .delete(synchronize_session=False)
                )
                if changed == 0:
                    s.rollback()
                    logger.warning("Session {} not found for deletion", redact(session_id))
                    raise NotFoundError("Failed session deletion")
                if changed != 1:
                    s.rollback()
                    logger.error("Failed session deletion - session {}: {} rows", redact(session_id), changed)
                    raise StoreWriteError("Failed session deletion")
                s.commit()
            except SQLAlchemyError as exc:
                s.rollback()
                logger.error("Failed session deletion - session {}: {}", redact(session_id), exc)
                raise StoreWriteError("Failed session deletion") from exc

    def purge_expired(self) -> int:
        """Delete every expired row; returns how many went. Not used on the request path."""
        now = self.clock()
        with self.db.session() as s:
            try:
                count = (
                    s.query(SessionRow)
                    .filter(SessionRow.expires_at <= now)
                    .delete(synchronize_session=False)
                )
                s.commit()
            except SQLAlchemyError as exc:
                s.rollback()
                logger.error("Expired session purge failed: {}", exc)
                raise StoreWriteError("Expired session purge failed") from exc
        logger.info("Purged {} expired sessions", count)
        return count
