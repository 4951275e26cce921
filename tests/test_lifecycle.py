import pytest

import cookieauth.auth.lifecycle as lifecycle_module
from cookieauth.auth.lifecycle import INVALID_CREDENTIALS_MESSAGE, SessionStatus
from cookieauth.core.errors import (
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidInputError,
    StoreWriteError,
)
from cookieauth.infra.db import SessionRow, UserRow


def _signup(lifecycle, email="1234@gmail.com", password="1234"):
    return lifecycle.signup(first_name="Test", last_name="User", email=email, password=password)


def _session_count(db):
    with db.session() as s:
        return s.query(SessionRow).count()


def test_signup_hashes_password_and_issues_no_session(lifecycle, db):
    user = _signup(lifecycle, email="New@Example.com")
    assert user.email == "new@example.com"
    assert user.password_hash.startswith("$argon2")
    assert user.password_hash != "1234"
    assert _session_count(db) == 0


def test_signup_twice_fails_with_duplicate(lifecycle):
    _signup(lifecycle, email="dup@example.com")
    with pytest.raises(DuplicateEmailError):
        _signup(lifecycle, email="DUP@example.com")


def test_login_issues_session_within_ttl(lifecycle, clock, settings):
    user = _signup(lifecycle)
    created_at = clock()
    session = lifecycle.login("1234@GMAIL.com", "1234")
    assert session.user_id == user.id
    assert created_at < session.expires_at <= created_at + settings.session_ttl_ms


def test_login_failures_are_indistinguishable(lifecycle):
    _signup(lifecycle)
    with pytest.raises(InvalidCredentialsError) as wrong_password:
        lifecycle.login("1234@gmail.com", "nope")
    with pytest.raises(InvalidCredentialsError) as unknown_email:
        lifecycle.login("ghost@gmail.com", "1234")
    assert wrong_password.value.message == unknown_email.value.message == INVALID_CREDENTIALS_MESSAGE


def test_validate_absent(lifecycle):
    assert lifecycle.validate("").status is SessionStatus.ABSENT
    assert lifecycle.validate(None).status is SessionStatus.ABSENT
    check = lifecycle.validate("NOSUCHSESSIONIDATALLXX")
    assert check.status is SessionStatus.ABSENT
    assert not check.authenticated


def test_validate_valid_session_refreshes(lifecycle, sessions, clock):
    user = _signup(lifecycle)
    session = lifecycle.login("1234@gmail.com", "1234")
    clock.advance(600)
    check = lifecycle.validate(session.id)
    assert check.status is SessionStatus.VALID
    assert check.authenticated
    assert check.user.id == user.id
    assert check.session.expires_at > session.expires_at
    assert sessions.get_session(session.id).expires_at == check.session.expires_at


def test_sliding_window_keeps_active_session_alive(lifecycle, clock):
    _signup(lifecycle)
    session = lifecycle.login("1234@gmail.com", "1234")
    for _ in range(5):
        clock.advance(50 * 60)
        assert lifecycle.validate(session.id).authenticated


def test_validate_expired_session_deletes_row(lifecycle, sessions, clock, settings):
    _signup(lifecycle)
    session = lifecycle.login("1234@gmail.com", "1234")
    clock.advance(settings.session_ttl_seconds + 1)
    check = lifecycle.validate(session.id)
    assert check.status is SessionStatus.EXPIRED
    assert not check.authenticated
    assert sessions.get_session(session.id) is None
    assert lifecycle.validate(session.id).status is SessionStatus.ABSENT


def test_expiry_boundary_is_expired(lifecycle, clock, settings):
    _signup(lifecycle)
    session = lifecycle.login("1234@gmail.com", "1234")
    clock.advance(settings.session_ttl_seconds)
    assert lifecycle.validate(session.id).status is SessionStatus.EXPIRED


def test_orphaned_session_is_unauthenticated(lifecycle, sessions, db):
    user = _signup(lifecycle)
    session = lifecycle.login("1234@gmail.com", "1234")
    with db.session() as s:
        s.query(UserRow).filter(UserRow.id == user.id).delete()
        s.commit()
    check = lifecycle.validate(session.id)
    assert check.status is SessionStatus.ORPHANED
    assert check.user is None
    assert not check.authenticated
    # not refreshed
    assert sessions.get_session(session.id).expires_at == session.expires_at


def test_refresh_failure_still_authenticates(lifecycle, sessions, monkeypatch):
    _signup(lifecycle)
    session = lifecycle.login("1234@gmail.com", "1234")

    def _boom(session_id):
        raise StoreWriteError("Failed to update session")

    monkeypatch.setattr(sessions, "refresh_session", _boom)
    check = lifecycle.validate(session.id)
    assert check.authenticated
    assert check.session == session


def test_reap_failure_is_not_fatal(lifecycle, sessions, clock, monkeypatch):
    _signup(lifecycle)
    session = lifecycle.login("1234@gmail.com", "1234")
    clock.advance(7200)

    def _boom(session_id):
        raise StoreWriteError("Failed session deletion")

    monkeypatch.setattr(sessions, "delete_session", _boom)
    assert lifecycle.validate(session.id).status is SessionStatus.EXPIRED


def test_logout_removes_session(lifecycle, sessions):
    _signup(lifecycle)
    session = lifecycle.login("1234@gmail.com", "1234")
    assert lifecycle.logout(session.id) is True
    assert sessions.get_session(session.id) is None
    assert lifecycle.logout(session.id) is False
    assert lifecycle.logout("") is False


def test_unknown_email_still_pays_for_a_hash_check(lifecycle, monkeypatch):
    _signup(lifecycle)
    calls = []

    def _counting(password_hash, password):
        calls.append(password_hash)
        return real_verify(password_hash, password)

    real_verify = lifecycle_module.verify_password
    monkeypatch.setattr(lifecycle_module, "verify_password", _counting)

    with pytest.raises(InvalidCredentialsError):
        lifecycle.login("ghost@gmail.com", "1234")
    assert len(calls) == 1
    assert calls[0].startswith("$argon2")

    with pytest.raises(InvalidCredentialsError):
        lifecycle.login("1234@gmail.com", "nope")
    assert len(calls) == 2


@pytest.mark.parametrize("email,password", [("a@b.com", ""), ("", "1234"), ("   ", "1234")])
def test_signup_rejects_missing_email_or_password(lifecycle, db, email, password):
    with pytest.raises(InvalidInputError) as exc:
        _signup(lifecycle, email=email, password=password)
    assert exc.value.message == "Email and password are required"
    with db.session() as s:
        assert s.query(UserRow).count() == 0
