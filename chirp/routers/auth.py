"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from chirp.database import get_db
from chirp.dependencies import (
    clear_auth_cookies,
    get_current_user,
    get_optional_user,
    set_auth_cookie,
    set_remember_cookies,
)
from chirp.models.user import User
from chirp.rate_limit import limiter
from chirp.schemas.auth import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    TokenResponse,
)
from chirp.services.credentials import AuthResult, get_credential_service
from chirp.services.jwt import get_jwt_service

logger = logging.getLogger("chirp")

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


def _login_response(response: Response, result: AuthResult) -> TokenResponse:
    token = get_jwt_service().create_token(
        user_id=result.user_id,  # type: ignore[arg-type]
        email=result.email,  # type: ignore[arg-type]
        name=result.name,  # type: ignore[arg-type]
    )
    set_auth_cookie(response, token)
    return TokenResponse(token=token, email=result.email, name=result.name)  # type: ignore[arg-type]


@router.post("/register", response_model=RegisterResponse, status_code=201)
@limiter.limit("5/minute")
def register(
    request: Request,
    body: RegisterRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> RegisterResponse:
    """Register a new account. The activation link is mailed after the response."""
    result = get_credential_service().register(
        db, body.name, body.email, body.password, body.gender, defer=background_tasks.add_task
    )
    user = result.user
    return RegisterResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        message="Please check your email to activate your account.",
    )


@router.get("/activate", response_model=TokenResponse)
@limiter.limit("10/minute")
def activate(
    request: Request, response: Response, email: str, token: str, db: Session = Depends(get_db)
) -> TokenResponse:
    """Activate an account with the mailed token and sign the user in."""
    result = get_credential_service().activate_account(db, email, token)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)
    return _login_response(response, result)


@router.post("/login", response_model=TokenResponse)
@limiter.limit("10/minute")
def login(request: Request, response: Response, body: LoginRequest, db: Session = Depends(get_db)) -> TokenResponse:
    """Authenticate and receive a session token. Optionally remember the session."""
    service = get_credential_service()
    result = service.authenticate(db, body.email, body.password)

    if not result.success:
        raise HTTPException(status_code=401, detail=result.error)

    user = db.get(User, result.user_id)
    if body.remember_me:
        remember_token = service.remember(db, user)  # type: ignore[arg-type]
        set_remember_cookies(response, user.id, remember_token)  # type: ignore[union-attr]
    else:
        service.forget(db, user)  # type: ignore[arg-type]

    return _login_response(response, result)


@router.post("/logout")
def logout(response: Response, user: User | None = Depends(get_optional_user), db: Session = Depends(get_db)) -> dict:
    """Forget any remembered session and clear cookies."""
    if user:
        get_credential_service().forget(db, user)
    clear_auth_cookies(response)
    return {"detail": "Logged out"}


@router.get("/verify")
def verify_token(token: str) -> dict:
    """Verify a session token and return its payload."""
    payload = get_jwt_service().decode_token(token)

    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    return {
        "valid": True,
        "user_id": payload["sub"],
        "email": payload["email"],
        "name": payload["name"],
    }


@router.post("/forgot-password")
@limiter.limit("3/minute")
def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> dict:
    """Request a password reset. The link is mailed if the account exists."""
    get_credential_service().request_password_reset(db, body.email, defer=background_tasks.add_task)
    return {"message": "If an account exists with that email, a password reset link has been sent."}


@router.post("/reset-password", response_model=TokenResponse)
@limiter.limit("5/minute")
def reset_password(
    request: Request,
    response: Response,
    body: ResetPasswordRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> TokenResponse:
    """Reset password using a valid token. Signs the user in on success."""
    result = get_credential_service().reset_password(
        db, body.email, body.token, body.new_password, defer=background_tasks.add_task
    )

    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)

    return _login_response(response, result)


@router.post("/change-password")
@limiter.limit("5/minute")
def change_password(
    request: Request,
    body: ChangePasswordRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    """Change the password of the signed-in user."""
    get_credential_service().change_password(
        db, user, body.current_password, body.new_password, defer=background_tasks.add_task
    )
    return {"detail": "Password updated"}
