# tours_api/services/user_service.py
import uuid

from sqlmodel import Session

from tours_api.core.errors import NotFoundError, ValidationError
from tours_api.models.user import User
from tours_api.repositories.user_repo import DuplicateEmailError, UserRepository
from tours_api.schemas.user import UserRoleUpdate, UserUpdate


class UserService:
    """
    Business logic for account self-service and admin user management.

    Responsibilities:
      - keep password changes out of profile updates
      - soft delete accounts
      - orchestrate repository operations
    """

    def __init__(self, repo: UserRepository):
        self.repo = repo

    # ----- Self profile -----

    def get_me(self, current_user: User) -> User:
        """Return the current authenticated user."""
        return current_user

    def update_me(
        self,
        session: Session,
        current_user: User,
        payload: UserUpdate,
    ) -> User:
        """
        Partial update for profile edits (name, email).

        Rules:
          - password fields are rejected; /updateMyPassword handles them
          - email stays unique
        """
        if payload.password is not None or payload.password_confirm is not None:
            raise ValidationError(
                "PasswordFieldNotAllowed",
                "This route is not for password updates. Please use /updateMyPassword.",
            )

        fields = payload.model_dump(include={"name", "email"}, exclude_none=True)
        if not fields:
            return current_user

        try:
            return self.repo.update_fields(session, current_user, fields)
        except DuplicateEmailError:
            raise ValidationError(
                "DuplicateEmail",
                f"Duplicate field value: {fields.get('email')}. Please use another value!",
            )

    def delete_me(self, session: Session, current_user: User) -> None:
        """Deactivate the account; existing tokens stop resolving."""
        self.repo.deactivate(session, current_user)

    # ----- Admin operations -----

    def get_user(self, session: Session, user_id: uuid.UUID) -> User:
        """
        Get an active user by id (admin only).

        Raises:
            NotFoundError(404): if not found.
        """
        user = self.repo.get_by_id(session, user_id)
        if not user:
            raise NotFoundError("UserNotFound", "No user found with that ID")
        return user

    def update_role(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: UserRoleUpdate,
    ) -> User:
        """
        Change user's role (admin only).

        Role validation is enforced by the schema (Literal).
        """
        user = self.get_user(session, user_id)
        return self.repo.update_fields(session, user, {"role": payload.role})
