# tours_api/routers/auth.py
from fastapi import APIRouter, Depends, Request, Response, status
from sqlmodel import Session

from tours_api.core.auth import require_auth
from tours_api.core.clock import Clock, get_clock
from tours_api.core.config import get_settings
from tours_api.core.notifier import Notifier, get_notifier
from tours_api.core.session import session_transport
from tours_api.database import get_session
from tours_api.models.user import User
from tours_api.repositories.user_repo import UserRepository
from tours_api.schemas.user import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    ResetPasswordRequest,
    SignupRequest,
    UpdatePasswordRequest,
    UserEnvelope,
    UserRead,
)
from tours_api.services.auth_service import AuthResult, AuthService

settings = get_settings()

router = APIRouter(prefix="/users", tags=["Auth"])

repo = UserRepository()


def get_auth_service(
    clock: Clock = Depends(get_clock),
    notifier: Notifier = Depends(get_notifier),
) -> AuthService:
    return AuthService(repo, clock=clock, notifier=notifier)


def _send_token(response: Response, result: AuthResult, clock: Clock) -> AuthResponse:
    """Set the session cookie and build the success envelope."""
    session_transport.attach(response, result.token, clock.now())
    return AuthResponse(
        token=result.token,
        data=UserEnvelope(user=UserRead.model_validate(result.user)),
    )


def _base_url(request: Request) -> str:
    return str(request.base_url).rstrip("/")


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(
    payload: SignupRequest,
    request: Request,
    response: Response,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
    service: AuthService = Depends(get_auth_service),
):
    """
    Create an account, send the welcome email and log the user in.
    """
    result = service.signup(
        session,
        name=payload.name,
        email=payload.email,
        password=payload.password,
        password_confirm=payload.password_confirm,
        welcome_url=f"{_base_url(request)}/me",
    )
    return _send_token(response, result, clock)


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    response: Response,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
    service: AuthService = Depends(get_auth_service),
):
    """
    Log in with email and password.

    Wrong password and unknown email get the same 401.
    """
    result = service.login(session, payload.email, payload.password)
    return _send_token(response, result, clock)


@router.get("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    service: AuthService = Depends(get_auth_service),
):
    """Overwrite the session cookie with an expired sentinel."""
    service.logout(response)
    return MessageResponse()


@router.post("/forgotPassword", response_model=MessageResponse)
def forgot_password(
    payload: ForgotPasswordRequest,
    request: Request,
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_auth_service),
):
    """
    Email a single-use reset link valid for 10 minutes.

    The token is never part of the response.
    """
    base = _base_url(request)
    service.forgot_password(
        session,
        payload.email,
        build_reset_url=lambda token: f"{base}{settings.API_V1_STR}/users/resetPassword/{token}",
    )
    return MessageResponse(message="Token sent to email!")


@router.patch("/resetPassword/{token}", response_model=AuthResponse)
def reset_password(
    token: str,
    payload: ResetPasswordRequest,
    response: Response,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
    service: AuthService = Depends(get_auth_service),
):
    result = service.reset_password(
        session,
        token=token,
        password=payload.password,
        password_confirm=payload.password_confirm,
    )
    return _send_token(response, result, clock)


@router.patch("/updateMyPassword", response_model=AuthResponse)
def update_my_password(
    payload: UpdatePasswordRequest,
    response: Response,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(require_auth),
    service: AuthService = Depends(get_auth_service),
):
    """
    Change the password of the logged-in user and reissue the token.

    Auth:
      - Requires a valid session token.
    """
    result = service.update_password(
        session,
        current_user,
        password_current=payload.password_current,
        password=payload.password,
        password_confirm=payload.password_confirm,
    )
    return _send_token(response, result, clock)
