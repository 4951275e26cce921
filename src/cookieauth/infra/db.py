# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Relational storage: schema plus the store handle shared by the auth stores.

One ``Database`` is built per app and injected into ``UserStore`` and
``SessionStore``; each store call opens its own short-lived ORM session.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator

from loguru import logger
from sqlalchemy import BigInteger, Boolean, Column, ForeignKey, Integer, String, create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from cookieauth.core.errors import StorageInitError

Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column("firstName", String, nullable=False, default="")
    last_name = Column("lastName", String, nullable=False, default="")
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column("hashedPassword", String, nullable=False)
    deleted = Column(Boolean, nullable=False, default=False)


class SessionRow(Base):
    __tablename__ = "sessions"

    id = Column(String, primary_key=True)
    user_id = Column("userID", Integer, ForeignKey("users.id"), nullable=False, index=True)
    # epoch millis
    expires_at = Column("expireTime", BigInteger, nullable=False, index=True)


def _absolute_sqlite_url(url: str) -> str:
    # Relative sqlite paths would otherwise follow the process cwd.
    if url.startswith("sqlite:///") and not url.startswith("sqlite:////"):
        rel_path = url[len("sqlite:///"):]
        if rel_path and rel_path != ":memory:":
            return "sqlite:///" + os.path.abspath(rel_path)
    return url


class Database:
    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = _absolute_sqlite_url(url)
        if self.url.startswith("sqlite"):
            self.engine = create_engine(
                self.url,
                echo=echo,
                connect_args={"check_same_thread": False, "timeout": 30},
            )
            if ":memory:" not in self.url:
                event.listen(self.engine, "connect", _sqlite_wal)
        else:
            self.engine = create_engine(self.url, echo=echo, pool_pre_ping=True)
        self._factory = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False
        )

    def init(self) -> None:
        """Create missing tables. Failure here is fatal."""
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as exc:
            logger.error("Database initialization failed ({}): {}", self.url, exc)
            raise StorageInitError(f"Cannot initialise database at {self.url}") from exc
        logger.info("Database ready: {}", self.url)

    @contextmanager
    def session(self) -> Iterator[Session]:
        db = self._factory()
        try:
            yield db
        finally:
            db.close()

    def dispose(self) -> None:
        self.engine.dispose()


def _sqlite_wal(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
    finally:
        cursor.close()
