"""Credential service: passwords, remember tokens, activation and password reset.

Every token handed out here is a random URL-safe string returned to the
caller exactly once. Only its bcrypt digest is stored on the user row.
"""

import enum
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import bcrypt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chirp.clock import Clock, utcnow
from chirp.config import Settings, get_settings
from chirp.models.user import Gender, User
from chirp.services.mailer import MailMessage, Mailer, get_mailer
from chirp.services.validation import FieldError, UserCandidate, ValidationError, validate_or_raise

logger = logging.getLogger("chirp")

EMAIL_TAKEN = FieldError("email", "has already been taken")

# Schedules a call for later, e.g. BackgroundTasks.add_task.
Deferrer = Callable[..., Any]


class TokenKind(str, enum.Enum):
    REMEMBER = "remember"
    ACTIVATION = "activation"
    RESET = "reset"


@dataclass
class AuthResult:
    """Result of an authentication attempt."""

    success: bool
    error: str | None = None
    user_id: int | None = None
    email: str | None = None
    name: str | None = None

    @classmethod
    def ok(cls, user: User) -> "AuthResult":
        return cls(success=True, user_id=user.id, email=user.email, name=user.name)

    @classmethod
    def fail(cls, error: str) -> "AuthResult":
        return cls(success=False, error=error)


@dataclass
class RegistrationResult:
    user: User
    activation_token: str


def normalize_email(email: str) -> str:
    return email.strip().lower()


class CredentialService:
    """Handles registration, authentication and the token lifecycles of a user."""

    def __init__(
        self,
        settings: Settings | None = None,
        mailer: Mailer | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self.settings = settings or get_settings()
        self._mailer = mailer
        self.clock = clock
        self._dummy_digest: str | None = None

    @property
    def mailer(self) -> Mailer:
        if self._mailer is None:
            self._mailer = get_mailer()
        return self._mailer

    @property
    def dummy_digest(self) -> str:
        """Digest at the configured cost, checked when no user matches a login."""
        if self._dummy_digest is None:
            self._dummy_digest = self.digest(self.new_token())
        return self._dummy_digest

    def _deliver(self, message: MailMessage, defer: Deferrer | None) -> None:
        if defer is None:
            self.mailer.deliver_safely(message)
        else:
            defer(self.mailer.deliver_safely, message)

    # --- Primitives ---

    def digest(self, plaintext: str) -> str:
        """Salted bcrypt digest. The work factor is embedded in the result."""
        salt = bcrypt.gensalt(rounds=self.settings.bcrypt_rounds)
        return bcrypt.hashpw(plaintext.encode("utf-8"), salt).decode("utf-8")

    @staticmethod
    def new_token() -> str:
        """Random URL-safe token with 256 bits of entropy."""
        return secrets.token_urlsafe(32)

    @staticmethod
    def verify(plaintext: str, digest: str | None) -> bool:
        if not digest or plaintext is None:
            return False
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), digest.encode("utf-8"))
        except ValueError:
            # Malformed digest or over-long input.
            return False

    def authenticated(self, user: User, kind: TokenKind, token: str | None) -> bool:
        """Check a token against the stored digest of the given kind. Never raises."""
        return self.verify(token, getattr(user, f"{TokenKind(kind).value}_digest"))  # type: ignore[arg-type]

    def find_by_email(self, db: Session, email: str) -> User | None:
        return db.query(User).filter(User.email == normalize_email(email)).first()

    # --- Registration and login ---

    def register(
        self,
        db: Session,
        name: str,
        email: str,
        password: str,
        gender: str | None = None,
        defer: Deferrer | None = None,
    ) -> RegistrationResult:
        """Create an unactivated user and mail out the activation token.

        Mail goes through ``defer`` when given, otherwise it is sent inline.
        Raises ValidationError on invalid input or an email already in use.
        """
        validate_or_raise(
            UserCandidate(name=name or "", email=email or "", password=password or "", gender=gender),
            self.settings,
        )
        email = normalize_email(email)
        if self.find_by_email(db, email):
            raise ValidationError([EMAIL_TAKEN])

        activation_token = self.new_token()
        user = User(
            name=name.strip(),
            email=email,
            password_digest=self.digest(password),
            gender=Gender(gender) if gender else None,
            activated=False,
            activation_digest=self.digest(activation_token),
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email.
            db.rollback()
            raise ValidationError([EMAIL_TAKEN]) from None
        db.refresh(user)
        logger.info("Registered user id=%s", user.id)

        self._deliver(self.mailer.account_activation(user, activation_token), defer)
        return RegistrationResult(user=user, activation_token=activation_token)

    def authenticate(self, db: Session, email: str, password: str) -> AuthResult:
        """Authenticate a user by email and password."""
        user = self.find_by_email(db, email)
        if not user:
            self.verify(password, self.dummy_digest)
            return AuthResult.fail("Invalid email or password")
        if not self.verify(password, user.password_digest):
            return AuthResult.fail("Invalid email or password")

        if not user.activated:
            return AuthResult.fail("Account not activated. Check your email for the activation link.")

        return AuthResult.ok(user)

    # --- Remember me ---

    def remember(self, db: Session, user: User) -> str:
        """Store a new remember digest and return its token for the client cookie."""
        token = self.new_token()
        user.remember_digest = self.digest(token)
        db.commit()
        return token

    def forget(self, db: Session, user: User) -> None:
        """Invalidate every outstanding remember token for the user."""
        user.remember_digest = None
        db.commit()

    def authenticate_remembered(self, db: Session, user_id: int, token: str | None) -> User | None:
        user = db.get(User, user_id)
        if user and self.authenticated(user, TokenKind.REMEMBER, token):
            return user
        return None

    # --- Activation ---

    def activate(self, db: Session, user: User) -> bool:
        """Mark the account activated and burn the activation digest.

        Issued as a conditional update so that of several concurrent attempts
        only one performs the transition. Returns True for that one.
        """
        rows = (
            db.query(User)
            .filter(User.id == user.id, User.activated.is_(False))
            .update(
                {User.activated: True, User.activation_digest: None, User.activated_at: self.clock()},
                synchronize_session=False,
            )
        )
        db.commit()
        db.refresh(user)
        return rows == 1

    def activate_account(self, db: Session, email: str, token: str) -> AuthResult:
        user = self.find_by_email(db, email)
        if not user or user.activated or not self.authenticated(user, TokenKind.ACTIVATION, token):
            return AuthResult.fail("Invalid activation link")

        if not self.activate(db, user):
            return AuthResult.fail("Invalid activation link")

        logger.info("Activated user id=%s", user.id)
        return AuthResult.ok(user)

    # --- Password reset ---

    def create_reset_digest(self, db: Session, user: User) -> str:
        """Issue a reset token, replacing any earlier one. Returns the token."""
        token = self.new_token()
        user.reset_digest = self.digest(token)
        user.reset_sent_at = self.clock()
        db.commit()
        return token

    def password_reset_expired(self, user: User) -> bool:
        if user.reset_sent_at is None:
            return True
        window = timedelta(hours=self.settings.PASSWORD_RESET_EXPIRE_HOURS)
        return user.reset_sent_at < self.clock() - window

    def request_password_reset(self, db: Session, email: str, defer: Deferrer | None = None) -> str | None:
        """Generate a password reset token for the given email and mail it.

        Returns the token if an activated user exists, None otherwise.
        Caller should not reveal whether the user was found.
        """
        user = self.find_by_email(db, email)
        if not user or not user.activated:
            return None

        token = self.create_reset_digest(db, user)
        self._deliver(self.mailer.password_reset(user, token), defer)
        return token

    def reset_password(
        self, db: Session, email: str, token: str, new_password: str, defer: Deferrer | None = None
    ) -> AuthResult:
        """Reset a user's password using a valid, unexpired reset token.

        Raises ValidationError when the new password itself is unacceptable.
        """
        user = self.find_by_email(db, email)
        if not user or not user.activated or not self.authenticated(user, TokenKind.RESET, token):
            return AuthResult.fail("Invalid or expired reset link")

        if self.password_reset_expired(user):
            return AuthResult.fail("Reset link has expired. Please request a new one.")

        validate_or_raise(UserCandidate(password=new_password or ""), self.settings)

        user.password_digest = self.digest(new_password)
        user.reset_digest = None
        user.reset_sent_at = None
        db.commit()
        logger.info("Password reset for user id=%s", user.id)

        self._deliver(self.mailer.password_changed(user), defer)
        return AuthResult.ok(user)

    # --- Account changes ---

    def change_password(
        self,
        db: Session,
        user: User,
        current_password: str | None,
        new_password: str,
        defer: Deferrer | None = None,
    ) -> None:
        """Change the password of a signed-in user, who must re-enter the current one."""
        validate_or_raise(
            UserCandidate(
                password=new_password or "",
                current_password=current_password,
                require_current_password=True,
            ),
            self.settings,
        )
        if not self.verify(current_password, user.password_digest):  # type: ignore[arg-type]
            raise ValidationError([FieldError("current_password", "is incorrect")])

        user.password_digest = self.digest(new_password)
        db.commit()
        logger.info("Password changed for user id=%s", user.id)

        self._deliver(self.mailer.password_changed(user), defer)

    def update_profile(
        self,
        db: Session,
        user: User,
        name: str | None = None,
        email: str | None = None,
        gender: str | None = None,
    ) -> User:
        """Update name, email or gender. Fields left as None are unchanged."""
        validate_or_raise(UserCandidate(name=name, email=email, gender=gender), self.settings)

        if email is not None:
            email = normalize_email(email)
            if email != user.email:
                existing = self.find_by_email(db, email)
                if existing and existing.id != user.id:
                    raise ValidationError([EMAIL_TAKEN])
                user.email = email
        if name is not None:
            user.name = name.strip()
        if gender is not None:
            user.gender = Gender(gender)

        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ValidationError([EMAIL_TAKEN]) from None
        db.refresh(user)
        return user


_credential_service: CredentialService | None = None


def get_credential_service() -> CredentialService:
    """Get singleton credential service instance."""
    global _credential_service
    if _credential_service is None:
        _credential_service = CredentialService()
    return _credential_service
