# tours_api/repositories/user_repo.py
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import defer
from sqlmodel import Session, select

from tours_api.models.user import User

# Credential columns that only the dedicated methods below may write.
_PROTECTED_FIELDS = frozenset(
    {"password_hash", "password_changed_at", "password_reset_token", "password_reset_expires"}
)


class DuplicateEmailError(Exception):
    """Raised when inserting a user whose email is already taken."""


class UserRepository:
    """
    Data access layer for User.

    Responsibilities:
      - Pure DB operations (CRUD + queries)
      - No FastAPI, no HTTP, no business logic

    Every read goes through `_select`, which filters out soft-deleted
    users and leaves the password hash unloaded unless asked for.
    """

    def _select(self, include_password: bool = False):
        stmt = select(User).where(User.active == True)  # noqa: E712
        if not include_password:
            stmt = stmt.options(defer(User.password_hash))
        return stmt

    # ----- Reads -----

    def get_by_id(
        self,
        session: Session,
        user_id: uuid.UUID,
        include_password: bool = False,
    ) -> User | None:
        """Return an active User by primary key, or None."""
        stmt = self._select(include_password).where(User.id == user_id)
        return session.exec(stmt).first()

    def get_by_email(
        self,
        session: Session,
        email: str,
        include_password: bool = False,
    ) -> User | None:
        """Return an active User by (normalized) email, or None."""
        stmt = self._select(include_password).where(User.email == email.strip().lower())
        return session.exec(stmt).first()

    def find_by_reset_digest(
        self,
        session: Session,
        digest: str,
        now: datetime,
    ) -> User | None:
        """Return the active User holding a non-expired reset token with this digest."""
        stmt = self._select().where(
            User.password_reset_token == digest,
            User.password_reset_expires > now,
        )
        return session.exec(stmt).first()

    # ----- Writes -----

    def create(self, session: Session, user: User) -> User:
        """Insert a new User and return the persisted row."""
        user.email = user.email.strip().lower()
        session.add(user)
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise DuplicateEmailError(user.email) from exc
        session.refresh(user)
        return user

    def update_fields(self, session: Session, user: User, fields: dict[str, Any]) -> User:
        """
        Persist plain profile changes.

        Credential columns are refused here; passwords only change through
        `set_password`, which also stamps `password_changed_at`.
        """
        protected = _PROTECTED_FIELDS.intersection(fields)
        if protected:
            raise ValueError(f"Use the credential methods to change {sorted(protected)}")

        for key, value in fields.items():
            if key == "email" and value is not None:
                value = value.strip().lower()
            setattr(user, key, value)

        session.add(user)
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise DuplicateEmailError(user.email) from exc
        session.refresh(user)
        return user

    def set_password(
        self,
        session: Session,
        user: User,
        password_hash: str,
        changed_at: datetime,
    ) -> User:
        user.password_hash = password_hash
        user.password_changed_at = changed_at
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    def set_password_reset(
        self,
        session: Session,
        user: User,
        digest: str,
        expires_at: datetime,
    ) -> User:
        user.password_reset_token = digest
        user.password_reset_expires = expires_at
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    def clear_password_reset(self, session: Session, user: User) -> User:
        user.password_reset_token = None
        user.password_reset_expires = None
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    def redeem_reset_atomically(
        self,
        session: Session,
        digest: str,
        now: datetime,
        password_hash: str,
        changed_at: datetime,
    ) -> User | None:
        """
        Consume a reset token and set the new password in a single
        conditional UPDATE.

        The row matches only while it still holds `digest` and the token
        has not expired. The same statement writes the new hash and
        clears both reset columns, so the token is never spent without
        the password changing. Of two concurrent redemptions only one can
        match.

        Returns:
            The redeemed User, or None if nothing matched.
        """
        stmt = (
            update(User)
            .where(
                User.password_reset_token == digest,
                User.password_reset_expires > now,
                User.active == True,  # noqa: E712
            )
            .values(
                password_hash=password_hash,
                password_changed_at=changed_at,
                password_reset_token=None,
                password_reset_expires=None,
            )
            .returning(User.id)
            .execution_options(synchronize_session=False)
        )
        user_id = session.exec(stmt).scalar_one_or_none()
        session.commit()

        if user_id is None:
            return None
        return self.get_by_id(session, user_id)

    def deactivate(self, session: Session, user: User) -> None:
        """Soft delete: the row stays, reads stop returning it."""
        user.active = False
        session.add(user)
        session.commit()
