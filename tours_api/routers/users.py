# tours_api/routers/users.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from tours_api.core.auth import get_current_user, require_admin, require_auth
from tours_api.database import get_session
from tours_api.models.user import User
from tours_api.repositories.user_repo import UserRepository
from tours_api.schemas.user import (
    UserEnvelope,
    UserRead,
    UserResponse,
    UserRoleUpdate,
    UserUpdate,
)
from tours_api.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])

repo = UserRepository()
service = UserService(repo)


def _user_response(user: User | None) -> UserResponse:
    return UserResponse(
        data=UserEnvelope(user=UserRead.model_validate(user) if user else None)
    )


# -------- Self profile --------


@router.get("/me", response_model=UserResponse)
def read_me(current_user: User = Depends(require_auth)):
    """
    Return the authenticated user's profile.

    Auth:
      - Requires a valid session token.
    """
    return _user_response(service.get_me(current_user))


@router.get("/session", response_model=UserResponse)
def read_session(current_user: User | None = Depends(get_current_user)):
    """
    Who is logged in, if anyone.

    Never fails on a bad or missing token; the user is simply null.
    """
    return _user_response(current_user)


@router.patch("/updateMe", response_model=UserResponse)
def update_me(
    payload: UserUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Update the authenticated user's profile (partial update).

    Editable: `name`, `email`. Passwords go through /updateMyPassword.
    """
    return _user_response(service.update_me(session, current_user, payload))


@router.delete("/deleteMe", status_code=status.HTTP_204_NO_CONTENT)
def delete_me(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """Deactivate the authenticated user's account (soft delete)."""
    service.delete_me(session, current_user)


# -------- Admin endpoints --------


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    dependencies=[Depends(require_admin)],
)
def get_user(
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Get a specific user by id (admin only).
    """
    return _user_response(service.get_user(session, user_id))


@router.patch(
    "/{user_id}/role",
    response_model=UserResponse,
    dependencies=[Depends(require_admin)],
)
def change_role(
    user_id: uuid.UUID,
    payload: UserRoleUpdate,
    session: Session = Depends(get_session),
):
    """
    Update a user's role (admin only).

    Allowed roles: user, guide, lead-guide, admin.
    """
    return _user_response(service.update_role(session, user_id, payload))
