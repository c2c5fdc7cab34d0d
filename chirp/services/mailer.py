"""Account mail: activation, password reset and password-changed notices.

The mailer only renders messages; a backend delivers them. Delivery is a
best-effort side effect of a credential change, so ``deliver_safely`` logs
failures instead of raising them.
"""

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Protocol
from urllib.parse import urlencode

from jinja2 import DictLoader, Environment, StrictUndefined

from chirp.config import Settings, get_settings
from chirp.models.user import User

logger = logging.getLogger("chirp")

TEMPLATES = {
    "account_activation.txt": (
        "Hi {{ name }},\n\n"
        "Welcome to Chirp! Click the link below to activate your account:\n\n"
        "{{ link }}\n"
    ),
    "password_reset.txt": (
        "Hi {{ name }},\n\n"
        "To reset your password click the link below:\n\n"
        "{{ link }}\n\n"
        "This link will expire in {{ expire_hours }} hours.\n\n"
        "If you did not request your password to be reset, please ignore this email\n"
        "and your password will stay as it is.\n"
    ),
    "password_changed.txt": (
        "Hi {{ name }},\n\n"
        "The password for your Chirp account ({{ email }}) was just changed.\n\n"
        "If this wasn't you, reset your password right away:\n\n"
        "{{ link }}\n"
    ),
}


@dataclass
class MailMessage:
    to: str
    subject: str
    body: str


class MailBackend(Protocol):
    def send(self, message: MailMessage) -> None: ...


class ConsoleMailBackend:
    """Writes messages to the application log. For development."""

    def send(self, message: MailMessage) -> None:
        logger.info("MAIL to=%s subject=%r\n%s", message.to, message.subject, message.body)


class SmtpMailBackend:
    """Delivers messages through an SMTP relay."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def send(self, message: MailMessage) -> None:
        email = EmailMessage()
        email["From"] = self.settings.MAIL_FROM
        email["To"] = message.to
        email["Subject"] = message.subject
        email.set_content(message.body)

        with smtplib.SMTP(self.settings.SMTP_HOST, self.settings.SMTP_PORT, timeout=10) as smtp:
            if self.settings.SMTP_USE_TLS:
                smtp.starttls()
            if self.settings.SMTP_USERNAME:
                smtp.login(self.settings.SMTP_USERNAME, self.settings.SMTP_PASSWORD)
            smtp.send_message(email)


def build_backend(settings: Settings) -> MailBackend:
    if settings.MAIL_BACKEND == "smtp":
        return SmtpMailBackend(settings)
    return ConsoleMailBackend()


class Mailer:
    """Renders account mail and hands it to a backend."""

    def __init__(self, backend: MailBackend | None = None, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.backend = backend or build_backend(self.settings)
        self.env = Environment(loader=DictLoader(TEMPLATES), undefined=StrictUndefined, autoescape=False)

    def _link(self, path: str, **params: str) -> str:
        base = self.settings.APP_BASE_URL.rstrip("/")
        return f"{base}{path}?{urlencode(params)}"

    def _render(self, template: str, **context) -> str:
        return self.env.get_template(template).render(**context)

    def account_activation(self, user: User, token: str) -> MailMessage:
        link = self._link("/api/v1/auth/activate", token=token, email=user.email)
        return MailMessage(
            to=user.email,
            subject="Account activation",
            body=self._render("account_activation.txt", name=user.name, link=link),
        )

    def password_reset(self, user: User, token: str) -> MailMessage:
        link = self._link("/reset-password", token=token, email=user.email)
        return MailMessage(
            to=user.email,
            subject="Password reset",
            body=self._render(
                "password_reset.txt",
                name=user.name,
                link=link,
                expire_hours=self.settings.PASSWORD_RESET_EXPIRE_HOURS,
            ),
        )

    def password_changed(self, user: User) -> MailMessage:
        return MailMessage(
            to=user.email,
            subject="Your password was changed",
            body=self._render(
                "password_changed.txt",
                name=user.name,
                email=user.email,
                link=self._link("/forgot-password", email=user.email),
            ),
        )

    def deliver_safely(self, message: MailMessage) -> bool:
        """Send a message; log and swallow delivery errors. Returns True on success."""
        try:
            self.backend.send(message)
        except Exception:
            logger.exception("Mail delivery failed: to=%s subject=%r", message.to, message.subject)
            return False
        return True


_mailer: Mailer | None = None


def get_mailer() -> Mailer:
    """Get singleton mailer instance."""
    global _mailer
    if _mailer is None:
        _mailer = Mailer()
    return _mailer
