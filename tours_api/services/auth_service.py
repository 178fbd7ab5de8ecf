# tours_api/services/auth_service.py
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable

from fastapi import Response
from sqlmodel import Session

from tours_api.core.clock import Clock
from tours_api.core.errors import (
    AuthenticationError,
    DeliveryError,
    NotFoundError,
    ResetError,
    ValidationError,
)
from tours_api.core.notifier import Notifier
from tours_api.core.reset_tokens import ResetTokenManager, reset_token_manager
from tours_api.core.security import PasswordHasher, password_hasher
from tours_api.core.session import SessionTransport, session_transport
from tours_api.core.tokens import TokenIssuer, token_issuer
from tours_api.models.user import User
from tours_api.repositories.user_repo import DuplicateEmailError, UserRepository

logger = logging.getLogger(__name__)

# password_changed_at is stamped this far in the past so a token minted
# right after the write is never older than the change.
PASSWORD_CHANGED_SKEW = timedelta(seconds=1)


@dataclass
class AuthResult:
    user: User
    token: str


class AuthService:
    """
    Credential lifecycle workflows.

    Responsibilities:
      - signup / login / logout
      - forgot / reset / update password
      - every password write stamps password_changed_at one
        PASSWORD_CHANGED_SKEW in the past; reset does it inside the
        redeeming UPDATE
    """

    def __init__(
        self,
        repo: UserRepository,
        clock: Clock,
        notifier: Notifier,
        hasher: PasswordHasher = password_hasher,
        issuer: TokenIssuer = token_issuer,
        reset_tokens: ResetTokenManager = reset_token_manager,
        transport: SessionTransport = session_transport,
    ):
        self.repo = repo
        self.clock = clock
        self.notifier = notifier
        self.hasher = hasher
        self.issuer = issuer
        self.reset_tokens = reset_tokens
        self.transport = transport

    # ----- Helpers -----

    def _issue(self, user: User) -> AuthResult:
        return AuthResult(user=user, token=self.issuer.sign(user.id, self.clock.now()))

    @staticmethod
    def _ensure_confirmed(password: str, password_confirm: str) -> None:
        if password != password_confirm:
            raise ValidationError("PasswordMismatch", "Passwords are not the same!")

    def _set_password(self, session: Session, user: User, password_hash: str) -> User:
        return self.repo.set_password(
            session,
            user,
            password_hash=password_hash,
            changed_at=self.clock.now() - PASSWORD_CHANGED_SKEW,
        )

    # ----- Workflows -----

    def signup(
        self,
        session: Session,
        name: str,
        email: str,
        password: str,
        password_confirm: str,
        welcome_url: str,
    ) -> AuthResult:
        """
        Create an account and log it in.

        The welcome email is best-effort: a delivery failure is logged and
        the account is kept.
        """
        self._ensure_confirmed(password, password_confirm)

        user = User(name=name, email=email, password_hash=self.hasher.hash(password))
        try:
            user = self.repo.create(session, user)
        except DuplicateEmailError:
            raise ValidationError(
                "DuplicateEmail",
                f"Duplicate field value: {email}. Please use another value!",
            )

        try:
            self.notifier.send_welcome(user, welcome_url)
        except DeliveryError:
            logger.warning("Welcome email for user %s could not be delivered", user.id)

        return self._issue(user)

    def login(self, session: Session, email: str, password: str) -> AuthResult:
        """
        Check credentials and issue a session token.

        Unknown email and wrong password raise the same error.
        """
        user = self.repo.get_by_email(session, email, include_password=True)
        if user is None:
            self.hasher.dummy_verify()
            raise AuthenticationError("InvalidCredentials", "Incorrect email or password")

        if not self.hasher.verify(password, user.password_hash):
            raise AuthenticationError("InvalidCredentials", "Incorrect email or password")

        return self._issue(user)

    def logout(self, response: Response) -> None:
        self.transport.clear(response, self.clock.now())

    def forgot_password(
        self,
        session: Session,
        email: str,
        build_reset_url: Callable[[str], str],
    ) -> None:
        """
        Start a password reset.

        The plaintext token only ever leaves through the notifier. If
        delivery fails, the pending reset is cleared before the error
        propagates.
        """
        user = self.repo.get_by_email(session, email)
        if user is None:
            raise NotFoundError("UserNotFound", "There is no user with that email address.")

        reset = self.reset_tokens.issue(self.clock.now())
        user = self.repo.set_password_reset(session, user, reset.digest, reset.expires_at)

        try:
            self.notifier.send_password_reset(user, build_reset_url(reset.plaintext))
        except Exception:
            logger.error("Password reset email for user %s failed, clearing reset", user.id)
            self.repo.clear_password_reset(session, user)
            raise

    def reset_password(
        self,
        session: Session,
        token: str,
        password: str,
        password_confirm: str,
    ) -> AuthResult:
        """
        Redeem a reset token and set a new password.

        Input is validated and hashed before the token is consumed, so a
        typo in the confirmation does not burn the token.
        """
        self._ensure_confirmed(password, password_confirm)
        password_hash = self.hasher.hash(password)

        now = self.clock.now()
        user = self.repo.redeem_reset_atomically(
            session,
            self.reset_tokens.digest(token),
            now,
            password_hash=password_hash,
            changed_at=now - PASSWORD_CHANGED_SKEW,
        )
        if user is None:
            raise ResetError()

        return self._issue(user)

    def update_password(
        self,
        session: Session,
        current_user: User,
        password_current: str,
        password: str,
        password_confirm: str,
    ) -> AuthResult:
        user = self.repo.get_by_id(session, current_user.id, include_password=True)
        if user is None:
            raise AuthenticationError(
                "UserNotFound",
                "The user belonging to this token does no longer exist.",
            )

        if not self.hasher.verify(password_current, user.password_hash):
            raise AuthenticationError("InvalidCredentials", "Your current password is wrong.")

        self._ensure_confirmed(password, password_confirm)

        user = self._set_password(session, user, self.hasher.hash(password))
        return self._issue(user)
