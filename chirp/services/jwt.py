"""JWT Token Service."""

from datetime import datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from chirp.clock import utcnow
from chirp.config import get_settings

SESSION_PURPOSE = "session"
REMEMBER_PURPOSE = "remember"


class JWTService:
    """Handles JWT session tokens and the signed user id of the remember cookie."""

    def __init__(self) -> None:
        settings = get_settings()
        self.secret_key = settings.JWT_SECRET_KEY
        self.algorithm = settings.JWT_ALGORITHM
        self.expire_minutes = settings.JWT_EXPIRE_MINUTES
        self.remember_days = settings.REMEMBER_COOKIE_DAYS

    def _encode(self, payload: dict[str, Any], expire: datetime) -> str:
        return jwt.encode({**payload, "exp": expire}, self.secret_key, algorithm=self.algorithm)

    def create_token(self, user_id: int, email: str, name: str) -> str:
        """Create a session token for the given user."""
        expire = utcnow() + timedelta(minutes=self.expire_minutes)
        payload = {
            "sub": str(user_id),
            "email": email,
            "name": name,
            "purpose": SESSION_PURPOSE,
        }
        return self._encode(payload, expire)

    def sign_user_id(self, user_id: int) -> str:
        """Sign a user id for the long-lived remember cookie."""
        expire = utcnow() + timedelta(days=self.remember_days)
        return self._encode({"sub": str(user_id), "purpose": REMEMBER_PURPOSE}, expire)

    def decode_token(self, token: str, purpose: str = SESSION_PURPOSE) -> dict[str, Any] | None:
        """Decode and validate a JWT token. Returns None if invalid or issued for another purpose."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None
        if payload.get("purpose") != purpose:
            return None
        return payload

    def unsign_user_id(self, token: str) -> int | None:
        payload = self.decode_token(token, purpose=REMEMBER_PURPOSE)
        if not payload:
            return None
        try:
            return int(payload["sub"])
        except (KeyError, ValueError):
            return None


_jwt_service: JWTService | None = None


def get_jwt_service() -> JWTService:
    """Get singleton JWT service instance."""
    global _jwt_service
    if _jwt_service is None:
        _jwt_service = JWTService()
    return _jwt_service
