# tours_api/core/notifier.py
import logging
import smtplib
from typing import Protocol

from tours_api.core.email_client import send_email
from tours_api.core.errors import DeliveryError
from tours_api.models.user import User

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send_welcome(self, user: User, url: str) -> None: ...

    def send_password_reset(self, user: User, reset_url: str) -> None: ...


class EmailNotifier:
    """
    Account emails sent over SMTP.

    Any transport failure is reported as DeliveryError; callers decide
    whether that is fatal for their workflow.
    """

    def _send(self, user: User, subject: str, text_body: str, html_body: str) -> None:
        try:
            send_email(
                to_email=user.email,
                subject=subject,
                text_body=text_body,
                html_body=html_body,
            )
        except (RuntimeError, smtplib.SMTPException, OSError) as exc:
            logger.warning("Email %r to user %s failed: %s", subject, user.id, exc)
            raise DeliveryError() from exc

    def send_welcome(self, user: User, url: str) -> None:
        first_name = user.name.split(" ")[0]
        self._send(
            user,
            subject="Welcome to the Tours Marketplace family!",
            text_body=(
                f"Hi {first_name},\n\n"
                "Welcome aboard! Complete your profile here:\n"
                f"{url}\n"
            ),
            html_body=(
                f"<p>Hi {first_name},</p>"
                "<p>Welcome aboard! Complete your profile "
                f'<a href="{url}">here</a>.</p>'
            ),
        )

    def send_password_reset(self, user: User, reset_url: str) -> None:
        first_name = user.name.split(" ")[0]
        self._send(
            user,
            subject="Your password reset token (valid for only 10 minutes)",
            text_body=(
                f"Hi {first_name},\n\n"
                "Forgot your password? Submit a PATCH request with your new "
                f"password and passwordConfirm to: {reset_url}\n"
                "If you didn't forget your password, please ignore this email!\n"
            ),
            html_body=(
                f"<p>Hi {first_name},</p>"
                "<p>Forgot your password? Submit a PATCH request with your new "
                f"password and passwordConfirm to: <code>{reset_url}</code></p>"
                "<p>If you didn't forget your password, please ignore this email!</p>"
            ),
        )


_email_notifier = EmailNotifier()


def get_notifier() -> Notifier:
    """FastAPI dependency; overridden in tests with a recording fake."""
    return _email_notifier
