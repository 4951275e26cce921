# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from cookieauth.core.errors import DuplicateEmailError, StoreReadError, StoreWriteError
from cookieauth.infra.db import Database, UserRow


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


@dataclass(frozen=True)
class UserRecord:
    id: int
    first_name: str
    last_name: str
    email: str
    password_hash: str

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.email


def _to_record(row: UserRow) -> UserRecord:
    return UserRecord(
        id=row.id,
        first_name=row.first_name or "",
        last_name=row.last_name or "",
        email=row.email,
        password_hash=row.password_hash,
    )


class UserStore:
    """Credential store over the ``users`` table.

    Emails are lower-cased on the way in and on lookup, which together with
    the unique index gives one user per email regardless of casing. Rows
    flagged ``deleted`` keep their email reserved but are invisible to
    lookups.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    def create_user(self, *, first_name: str, last_name: str, email: str, password_hash: str) -> UserRecord:
        email = normalize_email(email)
        with self.db.session() as s:
            try:
                taken = s.query(UserRow.id).filter(UserRow.email == email).first() is not None
            except SQLAlchemyError as exc:
                logger.error("Duplicate check failed for {}: {}", email, exc)
                raise StoreWriteError("User creation failed") from exc
            if taken:
                raise DuplicateEmailError("Email already in use")
            row = UserRow(
                first_name=(first_name or "").strip(),
                last_name=(last_name or "").strip(),
                email=email,
                password_hash=password_hash,
                deleted=False,
            )
            s.add(row)
            try:
                s.commit()
            except IntegrityError as exc:
                s.rollback()
                # Lost a race against a concurrent signup for the same email.
                try:
                    taken = s.query(UserRow.id).filter(UserRow.email == email).first() is not None
                except SQLAlchemyError:
                    taken = False
                if taken:
                    raise DuplicateEmailError("Email already in use") from exc
                logger.error("Failed user creation for {}: {}", email, exc)
                raise StoreWriteError("User creation failed") from exc
            except SQLAlchemyError as exc:
                s.rollback()
                logger.error("Failed user creation for {}: {}", email, exc)
                raise StoreWriteError("User creation failed") from exc
            return _to_record(row)

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        e = normalize_email(email)
        if not e:
            return None
        with self.db.session() as s:
            try:
                row = s.query(UserRow).filter(UserRow.email == e, UserRow.deleted.is_(False)).first()
            except SQLAlchemyError as exc:
                logger.error("User lookup failed for {}: {}", e, exc)
                raise StoreReadError("User lookup failed") from exc
            return _to_record(row) if row is not None else None

    def get_user_by_id(self, user_id: int) -> Optional[UserRecord]:
        with self.db.session() as s:
            try:
                row = s.query(UserRow).filter(UserRow.id == user_id, UserRow.deleted.is_(False)).first()
            except SQLAlchemyError as exc:
                logger.error("User lookup failed for id {}: {}", user_id, exc)
                raise StoreReadError("User lookup failed") from exc
            return _to_record(row) if row is not None else None
