# tours_api/core/auth.py
import uuid
from datetime import datetime
from typing import Iterable

from fastapi import Depends, Request
from sqlmodel import Session

from tours_api.core.clock import Clock, get_clock
from tours_api.core.errors import AppError, AuthenticationError, AuthorizationError
from tours_api.core.session import session_transport
from tours_api.core.tokens import token_issuer
from tours_api.database import get_session
from tours_api.models.user import User
from tours_api.repositories.user_repo import UserRepository
from tours_api.schemas.user import ROLES

repo = UserRepository()


def authenticate_token(session: Session, token: str, now: datetime) -> User:
    """
    Resolve the subject of a session token.

    Flow:
      1. Verify signature and expiry.
      2. Load the subject (active users only).
      3. Reject tokens issued before the last password change.

    Raises:
        AuthenticationError: InvalidToken | ExpiredToken | UserNotFound | StaleToken
    """
    claims = token_issuer.verify(token, now)

    try:
        subject_id = uuid.UUID(claims.subject_id)
    except ValueError:
        raise AuthenticationError("InvalidToken", "Invalid token. Please log in again!")

    user = repo.get_by_id(session, subject_id)
    if user is None:
        raise AuthenticationError(
            "UserNotFound",
            "The user belonging to this token does no longer exist.",
        )

    if user.changed_password_after(claims.issued_at):
        raise AuthenticationError(
            "StaleToken",
            "User recently changed password! Please log in again.",
        )

    return user


def require_auth(
    request: Request,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> User:
    """
    Enforce authentication.

    The token comes from the Authorization header or the jwt cookie. On
    success the user is also stored on `request.state.user`.

    Raises:
        AuthenticationError(401): missing, invalid, expired or stale token,
        or the user no longer exists.
    """
    token = session_transport.extract(request)
    if token is None:
        raise AuthenticationError(
            "MissingCredentials",
            "You are not logged in! Please log in to get access.",
        )

    user = authenticate_token(session, token, clock.now())
    request.state.user = user
    return user


def get_current_user(
    request: Request,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
) -> User | None:
    """
    Best-effort variant of `require_auth` for routes open to anonymous users.

    Runs the same checks but any failure simply means "not logged in".

    Returns:
        User instance if authenticated, else None.
    """
    token = session_transport.extract(request)
    if token is None:
        return None

    try:
        user = authenticate_token(session, token, clock.now())
    except AppError:
        return None

    request.state.user = user
    return user


def restrict_to(roles: Iterable[str]):
    """
    Build a dependency that lets through only the given roles.

    Runs after `require_auth`, so the subject is always authenticated.

    Usage:

        @router.get("/x", dependencies=[Depends(restrict_to(["admin", "lead-guide"]))])

    Raises:
        AuthorizationError(403): if the user's role is not allowed.
    """
    allowed = tuple(dict.fromkeys(roles))
    unknown = [role for role in allowed if role not in ROLES]
    if unknown:
        raise ValueError(f"Unknown roles: {unknown}")

    def role_checker(user: User = Depends(require_auth)) -> User:
        if user.role not in allowed:
            raise AuthorizationError()
        return user

    return role_checker


require_admin = restrict_to(["admin"])
