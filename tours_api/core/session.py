# tours_api/core/session.py
from datetime import datetime, timedelta, timezone

from fastapi import Request, Response

from tours_api.core.config import get_settings

settings = get_settings()

COOKIE_NAME = "jwt"
LOGGED_OUT = "loggedout"


class SessionTransport:
    """
    Moves the session token between HTTP messages and the application.

    Inbound: `Authorization: Bearer <token>` wins, the `jwt` cookie is
    the fallback. Outbound: an http-only cookie, secure in production.
    """

    def __init__(self, cookie_ttl: timedelta, secure: bool):
        self.cookie_ttl = cookie_ttl
        self.secure = secure

    def extract(self, request: Request) -> str | None:
        authorization = request.headers.get("authorization")
        if authorization and authorization.startswith("Bearer"):
            parts = authorization.split()
            if len(parts) == 2 and parts[1]:
                return parts[1]
            return None

        token = request.cookies.get(COOKIE_NAME)
        if not token or token == LOGGED_OUT:
            return None
        return token

    def attach(self, response: Response, token: str, now: datetime) -> None:
        response.set_cookie(
            key=COOKIE_NAME,
            value=token,
            expires=(now + self.cookie_ttl).astimezone(timezone.utc),
            httponly=True,
            secure=self.secure,
        )

    def clear(self, response: Response, now: datetime) -> None:
        """
        Overwrite the session cookie so browsers drop it.

        The cookie keeps a non-empty sentinel value and gets an expiry in
        the past plus Max-Age=0.
        """
        response.set_cookie(
            key=COOKIE_NAME,
            value=LOGGED_OUT,
            max_age=0,
            expires=(now - timedelta(seconds=10)).astimezone(timezone.utc),
            httponly=True,
            secure=self.secure,
        )


session_transport = SessionTransport(
    cookie_ttl=timedelta(days=settings.JWT_COOKIE_EXPIRES_IN_DAYS),
    secure=settings.is_production,
)
