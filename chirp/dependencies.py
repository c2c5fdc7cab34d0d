"""Authentication dependencies for FastAPI routes."""

from fastapi import Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from chirp.config import get_settings
from chirp.database import get_db
from chirp.models.user import User
from chirp.services.credentials import get_credential_service
from chirp.services.jwt import get_jwt_service

AUTH_COOKIE_NAME = "chirp_session"
REMEMBER_USER_COOKIE = "chirp_user_id"
REMEMBER_TOKEN_COOKIE = "chirp_remember_token"
COOKIE_MAX_AGE = 8 * 60 * 60  # 8 hours


def _session_token(request: Request) -> str | None:
    # Check Authorization header first
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:]
    # Fall back to cookie
    return request.cookies.get(AUTH_COOKIE_NAME)


def _user_from_session(request: Request, db: Session) -> User | None:
    token = _session_token(request)
    if not token:
        return None
    payload = get_jwt_service().decode_token(token)
    if not payload:
        return None
    return db.get(User, int(payload["sub"]))


def _user_from_remember_cookies(request: Request, db: Session) -> User | None:
    signed_id = request.cookies.get(REMEMBER_USER_COOKIE)
    token = request.cookies.get(REMEMBER_TOKEN_COOKIE)
    if not signed_id or not token:
        return None
    user_id = get_jwt_service().unsign_user_id(signed_id)
    if user_id is None:
        return None
    return get_credential_service().authenticate_remembered(db, user_id, token)


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> User | None:
    """Resolve the caller from the session token, then from the remember cookies."""
    return _user_from_session(request, db) or _user_from_remember_cookies(request, db)


def get_current_user(user: User | None = Depends(get_optional_user)) -> User:
    """Require an authenticated caller. Raises 401 if there is none."""
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin privileges required")
    return user


def set_auth_cookie(response: Response, token: str) -> None:
    """Set the session cookie."""
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=get_settings().is_production,
        max_age=COOKIE_MAX_AGE,
    )


def set_remember_cookies(response: Response, user_id: int, remember_token: str) -> None:
    """Set the long-lived cookies that restore a session without a password."""
    settings = get_settings()
    max_age = settings.REMEMBER_COOKIE_DAYS * 24 * 60 * 60
    for key, value in (
        (REMEMBER_USER_COOKIE, get_jwt_service().sign_user_id(user_id)),
        (REMEMBER_TOKEN_COOKIE, remember_token),
    ):
        response.set_cookie(
            key=key,
            value=value,
            httponly=True,
            samesite="lax",
            secure=settings.is_production,
            max_age=max_age,
        )


def clear_auth_cookies(response: Response) -> None:
    """Clear the session and remember cookies."""
    for key in (AUTH_COOKIE_NAME, REMEMBER_USER_COOKIE, REMEMBER_TOKEN_COOKIE):
        response.delete_cookie(key=key)
