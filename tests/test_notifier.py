import smtplib

import pytest

from tours_api.core import notifier as notifier_module
from tours_api.core.email_client import send_email
from tours_api.core.errors import DeliveryError
from tours_api.core.notifier import EmailNotifier
from tours_api.models.user import User


@pytest.fixture()
def user():
    return User(name="Alice Walker", email="a@x.com", password_hash="h")


@pytest.fixture()
def outbox(monkeypatch):
    sent = []
    monkeypatch.setattr(notifier_module, "send_email", lambda **kwargs: sent.append(kwargs))
    return sent


def test_password_reset_email_carries_reset_url(user, outbox):
    EmailNotifier().send_password_reset(user, "http://testserver/api/v1/users/resetPassword/abc")

    (mail,) = outbox
    assert mail["to_email"] == "a@x.com"
    assert "10 minutes" in mail["subject"]
    assert "http://testserver/api/v1/users/resetPassword/abc" in mail["text_body"]
    assert mail["text_body"].startswith("Hi Alice,")


def test_welcome_email(user, outbox):
    EmailNotifier().send_welcome(user, "http://testserver/me")

    (mail,) = outbox
    assert mail["subject"].startswith("Welcome")
    assert "http://testserver/me" in mail["html_body"]


@pytest.mark.parametrize("exc", [RuntimeError("SMTP_HOST is not configured"), smtplib.SMTPException("refused"), OSError("down")])
def test_transport_failures_become_delivery_errors(user, monkeypatch, exc):
    def failing_send(**kwargs):
        raise exc

    monkeypatch.setattr(notifier_module, "send_email", failing_send)

    with pytest.raises(DeliveryError):
        EmailNotifier().send_password_reset(user, "http://x/reset")


def test_send_email_requires_smtp_settings():
    with pytest.raises(RuntimeError):
        send_email(to_email="a@x.com", subject="s", text_body="b")
