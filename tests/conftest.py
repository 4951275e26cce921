import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from cookieauth.app import create_app
from cookieauth.auth.lifecycle import SessionLifecycle
from cookieauth.auth.session import SessionStore
from cookieauth.auth.users import UserStore
from cookieauth.core.config import Settings
from cookieauth.infra.db import Database


class FakeClock:
    """Epoch-millis clock that only moves when told to."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    # argon2 time_cost=1 keeps the suite fast; 1h TTL as in production.
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'auth.sqlite'}",
        session_ttl_seconds=3600,
        argon2_time_cost=1,
    )


@pytest.fixture()
def db(settings: Settings):
    database = Database(settings.database_url)
    database.init()
    yield database
    database.dispose()


@pytest.fixture()
def users(db: Database) -> UserStore:
    return UserStore(db)


@pytest.fixture()
def sessions(db: Database, settings: Settings, clock: FakeClock) -> SessionStore:
    return SessionStore(
        db,
        ttl_ms=settings.session_ttl_ms,
        refresh_ttl_ms=settings.refresh_ttl_ms,
        id_length=settings.session_id_length,
        clock=clock,
    )


@pytest.fixture()
def lifecycle(users: UserStore, sessions: SessionStore, clock: FakeClock, settings: Settings) -> SessionLifecycle:
    return SessionLifecycle(users, sessions, clock=clock, time_cost=settings.argon2_time_cost)


@pytest.fixture()
def client(settings: Settings, clock: FakeClock):
    app = create_app(settings, clock=clock)
    with TestClient(app) as c:
        yield c
