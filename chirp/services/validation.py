"""Validation pipeline for user and micropost writes.

Each validator is a pure function ``(candidate, settings) -> list[FieldError]``.
The pipeline runs every validator in order and collects all errors, so the
caller can report every problem at once before anything is persisted.
"""

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from chirp.config import Settings
from chirp.models.user import Gender

VALID_EMAIL_REGEX = re.compile(r"^[\w+\-.]+@[a-z\d\-.]+\.[a-z]+$", re.IGNORECASE | re.ASCII)

# bcrypt only looks at the first 72 bytes of a password.
BCRYPT_MAX_BYTES = 72


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


class ValidationError(Exception):
    """Raised when a write fails validation. Nothing has been persisted."""

    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = errors
        super().__init__("; ".join(f"{e.field} {e.message}" for e in errors))

    def to_dict(self) -> list[dict[str, str]]:
        return [{"field": e.field, "message": e.message} for e in self.errors]


@dataclass
class UserCandidate:
    """Proposed user attributes.

    ``None`` means "not being changed"; only supplied fields are checked,
    except on creation where ``name``, ``email`` and ``password`` are filled in.
    """

    name: str | None = None
    email: str | None = None
    password: str | None = None
    gender: str | None = None
    current_password: str | None = None
    require_current_password: bool = False


Validator = Callable[[UserCandidate, Settings], list[FieldError]]


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def validate_name(candidate: UserCandidate, settings: Settings) -> list[FieldError]:
    if candidate.name is None:
        return []
    if _blank(candidate.name):
        return [FieldError("name", "can't be blank")]
    if len(candidate.name.strip()) > settings.USER_MAX_LENGTH_NAME:
        return [FieldError("name", f"is too long (maximum is {settings.USER_MAX_LENGTH_NAME} characters)")]
    return []


def validate_email(candidate: UserCandidate, settings: Settings) -> list[FieldError]:
    if candidate.email is None:
        return []
    email = candidate.email.strip()
    if not email:
        return [FieldError("email", "can't be blank")]
    errors = []
    if len(email) > settings.USER_MAX_LENGTH_EMAIL:
        errors.append(FieldError("email", f"is too long (maximum is {settings.USER_MAX_LENGTH_EMAIL} characters)"))
    if not VALID_EMAIL_REGEX.match(email):
        errors.append(FieldError("email", "is invalid"))
    return errors


def validate_password(candidate: UserCandidate, settings: Settings) -> list[FieldError]:
    if candidate.password is None:
        return []
    if _blank(candidate.password):
        return [FieldError("password", "can't be blank")]
    if (
        len(candidate.password) > settings.USER_MAX_LENGTH_PASSWORD
        or len(candidate.password.encode("utf-8")) > BCRYPT_MAX_BYTES
    ):
        return [FieldError("password", f"is too long (maximum is {settings.USER_MAX_LENGTH_PASSWORD} characters)")]
    return []


def validate_current_password(candidate: UserCandidate, settings: Settings) -> list[FieldError]:
    # A missing current password is reported against "password", matching
    # how the account forms display it.
    if candidate.require_current_password and _blank(candidate.current_password):
        return [FieldError("password", "current password can't be blank")]
    return []


def validate_gender(candidate: UserCandidate, settings: Settings) -> list[FieldError]:
    if candidate.gender is None:
        return []
    if candidate.gender not in {g.value for g in Gender}:
        return [FieldError("gender", "is not included in the list")]
    return []


USER_VALIDATORS: tuple[Validator, ...] = (
    validate_name,
    validate_email,
    validate_password,
    validate_current_password,
    validate_gender,
)


def run_validators(
    candidate: UserCandidate, settings: Settings, validators: Sequence[Validator] = USER_VALIDATORS
) -> list[FieldError]:
    """Run validators in order and collect every error."""
    errors: list[FieldError] = []
    for validator in validators:
        errors.extend(validator(candidate, settings))
    return errors


def validate_or_raise(
    candidate: UserCandidate, settings: Settings, validators: Sequence[Validator] = USER_VALIDATORS
) -> None:
    errors = run_validators(candidate, settings, validators)
    if errors:
        raise ValidationError(errors)


def validate_micropost_content(content: str | None, settings: Settings) -> list[FieldError]:
    if _blank(content):
        return [FieldError("content", "can't be blank")]
    if len(content) > settings.MICROPOST_MAX_LENGTH:  # type: ignore[arg-type]
        return [FieldError("content", f"is too long (maximum is {settings.MICROPOST_MAX_LENGTH} characters)")]
    return []
