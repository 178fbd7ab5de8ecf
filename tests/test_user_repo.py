from datetime import timedelta

import pytest
from sqlalchemy import inspect
from sqlmodel import Session

from conftest import START
from tours_api.core.reset_tokens import ResetTokenManager
from tours_api.models.user import User
from tours_api.repositories.user_repo import DuplicateEmailError, UserRepository

repo = UserRepository()


@pytest.fixture()
def user(db):
    with Session(db) as s:
        created = repo.create(s, User(name="Bob", email=" Bob@X.com ", password_hash="$2b$04$hash"))
        return created.id


def test_create_normalizes_email(db, user):
    with Session(db) as s:
        assert repo.get_by_id(s, user).email == "bob@x.com"
        assert repo.get_by_email(s, "BOB@x.com").id == user


def test_duplicate_email_is_reported(db, user):
    with Session(db) as s:
        with pytest.raises(DuplicateEmailError):
            repo.create(s, User(name="Other", email="bob@x.com", password_hash="h"))


def test_password_hash_is_only_loaded_on_request(db, user):
    with Session(db) as s:
        assert "password_hash" in inspect(repo.get_by_id(s, user)).unloaded

    with Session(db) as s:
        loaded = repo.get_by_email(s, "bob@x.com", include_password=True)
        assert "password_hash" not in inspect(loaded).unloaded
        assert loaded.password_hash == "$2b$04$hash"


def test_inactive_users_are_invisible(db, user):
    with Session(db) as s:
        repo.deactivate(s, repo.get_by_id(s, user))

    with Session(db) as s:
        assert repo.get_by_id(s, user) is None
        assert repo.get_by_email(s, "bob@x.com") is None


def test_update_fields_refuses_credential_columns(db, user):
    with Session(db) as s:
        bob = repo.get_by_id(s, user)
        with pytest.raises(ValueError):
            repo.update_fields(s, bob, {"password_hash": "plaintext"})
        with pytest.raises(ValueError):
            repo.update_fields(s, bob, {"password_reset_token": None})


def test_set_password_stamps_change_time(db, user):
    changed_at = START - timedelta(seconds=1)
    with Session(db) as s:
        bob = repo.set_password(s, repo.get_by_id(s, user), "$2b$04$new", changed_at)
        assert bob.changed_password_after(int(START.timestamp()) - 2)
        assert not bob.changed_password_after(int(START.timestamp()))


def _start_reset(db, user_id) -> str:
    reset = ResetTokenManager(ttl=timedelta(minutes=10)).issue(START)
    with Session(db) as s:
        repo.set_password_reset(s, repo.get_by_id(s, user_id), reset.digest, reset.expires_at)
    return reset.digest


def test_find_by_reset_digest_respects_expiry(db, user):
    digest = _start_reset(db, user)

    with Session(db) as s:
        assert repo.find_by_reset_digest(s, digest, START + timedelta(minutes=9, seconds=59)).id == user
        assert repo.find_by_reset_digest(s, digest, START + timedelta(minutes=10, seconds=1)) is None
        assert repo.find_by_reset_digest(s, "0" * 64, START) is None


def _redeem(s, digest, now, password_hash="$2b$04$reset"):
    return repo.redeem_reset_atomically(
        s, digest, now, password_hash=password_hash, changed_at=now - timedelta(seconds=1)
    )


def test_redeem_reset_consumes_token_once(db, user):
    digest = _start_reset(db, user)
    now = START + timedelta(minutes=1)

    with Session(db) as first, Session(db) as second:
        redeemed = _redeem(first, digest, now)
        assert redeemed is not None and redeemed.id == user
        assert _redeem(second, digest, now, password_hash="$2b$04$other") is None

    with Session(db) as s:
        bob = repo.get_by_id(s, user, include_password=True)
        assert bob.password_reset_token is None
        assert bob.password_reset_expires is None
        assert bob.password_hash == "$2b$04$reset"


def test_redeem_reset_writes_password_in_the_same_statement(db, user):
    digest = _start_reset(db, user)
    now = START + timedelta(minutes=1)

    with Session(db) as s:
        bob = _redeem(s, digest, now)
        assert bob.changed_password_after(int(now.timestamp()) - 2)
        assert not bob.changed_password_after(int(now.timestamp()))
        assert repo.get_by_id(s, user, include_password=True).password_hash == "$2b$04$reset"


def test_redeem_reset_rejects_expired_token(db, user):
    digest = _start_reset(db, user)

    with Session(db) as s:
        assert _redeem(s, digest, START + timedelta(minutes=10, seconds=1)) is None
        # Still pending: an expired token is not cleared by a failed redemption
        assert repo.get_by_id(s, user).password_reset_token == digest
        assert repo.get_by_id(s, user, include_password=True).password_hash == "$2b$04$hash"


def test_clear_password_reset(db, user):
    _start_reset(db, user)

    with Session(db) as s:
        bob = repo.clear_password_reset(s, repo.get_by_id(s, user))
        assert bob.password_reset_token is None
        assert bob.password_reset_expires is None
