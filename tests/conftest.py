import os

# Settings are read once at import time; configure them before the app loads.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-not-for-production"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENVIRONMENT"] = "development"
os.environ["EXIT_ON_UNEXPECTED_ERROR"] = "false"
os.environ["SMTP_HOST"] = ""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from tours_api.core.clock import get_clock
from tours_api.core.errors import DeliveryError
from tours_api.core.notifier import get_notifier
from tours_api.database import engine
from tours_api.main import app
from tours_api.repositories.user_repo import UserRepository

API = "/api/v1/users"

# In the past on purpose: cookies minted by the app are already expired
# for the test client's cookie jar, so requests only carry the
# credentials a test passes explicitly.
START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FrozenClock:
    def __init__(self, start: datetime = START):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class RecordingNotifier:
    """Captures outgoing emails instead of sending them."""

    def __init__(self):
        self.welcome: list[tuple[str, str]] = []
        self.resets: list[tuple[str, str]] = []
        self.fail_welcome = False
        self.fail_reset = False

    def send_welcome(self, user, url):
        if self.fail_welcome:
            raise DeliveryError()
        self.welcome.append((user.email, url))

    def send_password_reset(self, user, reset_url):
        if self.fail_reset:
            raise DeliveryError()
        self.resets.append((user.email, reset_url))

    def last_reset_token(self) -> str:
        return self.resets[-1][1].rsplit("/", 1)[-1]


@pytest.fixture()
def db():
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture()
def session(db):
    with Session(db) as s:
        yield s


@pytest.fixture()
def clock():
    return FrozenClock()


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def client(db, clock, notifier):
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def signup(client):
    """Sign a user up over HTTP and return the response."""

    def _signup(
        name: str = "Alice Walker",
        email: str = "a@x.com",
        password: str = "pass1234",
        password_confirm: str | None = None,
    ):
        return client.post(
            f"{API}/signup",
            json={
                "name": name,
                "email": email,
                "password": password,
                "passwordConfirm": password if password_confirm is None else password_confirm,
            },
        )

    return _signup


@pytest.fixture()
def set_role(db):
    """Change a user's role directly in the store."""

    def _set_role(email: str, role: str) -> None:
        repo = UserRepository()
        with Session(db) as s:
            user = repo.get_by_email(s, email)
            repo.update_fields(s, user, {"role": role})

    return _set_role


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
