from sqlmodel import Session, select

from conftest import API, bearer
from tours_api.models.user import User


def test_read_me(signup, client):
    token = signup(name="  Alice Walker ").json()["token"]

    r = client.get(f"{API}/me", headers=bearer(token))

    assert r.status_code == 200
    user = r.json()["data"]["user"]
    assert user["name"] == "Alice Walker"
    assert "password_hash" not in user


def test_update_me_changes_profile(signup, client):
    token = signup().json()["token"]

    r = client.patch(f"{API}/updateMe", headers=bearer(token), json={"name": "Alice W", "email": "New@X.com"})

    assert r.status_code == 200
    assert r.json()["data"]["user"]["name"] == "Alice W"
    assert r.json()["data"]["user"]["email"] == "new@x.com"
    assert client.post(f"{API}/login", json={"email": "new@x.com", "password": "pass1234"}).status_code == 200


def test_update_me_rejects_password_fields(signup, client):
    token = signup().json()["token"]

    r = client.patch(
        f"{API}/updateMe",
        headers=bearer(token),
        json={"password": "newpass123", "passwordConfirm": "newpass123"},
    )

    assert r.status_code == 400
    assert r.json()["code"] == "PasswordFieldNotAllowed"
    assert client.post(f"{API}/login", json={"email": "a@x.com", "password": "pass1234"}).status_code == 200


def test_update_me_rejects_role_escalation(signup, client):
    token = signup().json()["token"]

    r = client.patch(f"{API}/updateMe", headers=bearer(token), json={"role": "admin"})

    assert r.status_code == 400
    assert client.get(f"{API}/me", headers=bearer(token)).json()["data"]["user"]["role"] == "user"


def test_update_me_rejects_taken_email(signup, client):
    signup(email="taken@x.com")
    token = signup(email="mine@x.com").json()["token"]

    r = client.patch(f"{API}/updateMe", headers=bearer(token), json={"email": "taken@x.com"})

    assert r.status_code == 400
    assert r.json()["code"] == "DuplicateEmail"


def test_delete_me_soft_deletes(signup, client, db):
    token = signup().json()["token"]

    assert client.delete(f"{API}/deleteMe", headers=bearer(token)).status_code == 204

    with Session(db) as s:
        row = s.exec(select(User).where(User.email == "a@x.com")).one()
        assert row.active is False


def test_health_check(client):
    assert client.get("/").json() == {"status": "ok", "service": "tours-api"}
