"""Templated account emails and the transports that deliver them."""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass, field
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any
from urllib.parse import urlencode

from jinja2 import Environment

from errors import InvalidInput, TransportError

logger = logging.getLogger(__name__)

WELCOME = "welcome"
PASSWORD_RESET = "password_reset"
VERIFICATION_CODE = "verification_code"

TEMPLATES: dict[str, tuple[str, str]] = {
    WELCOME: (
        "Welcome to the LMS Platform",
        """
<h3>Welcome to the LMS!</h3>
<p>Your account has been created successfully. Here are your login credentials:</p>
<ul>
  <li><strong>Email:</strong> {{ to }}</li>
  <li><strong>Temporary Password:</strong> {{ temp_password }}</li>
  <li><strong>Role:</strong> {{ role }}</li>
</ul>
<p>Please log in and change your password as soon as possible.</p>
<p>- LMS Team</p>
""",
    ),
    PASSWORD_RESET: (
        "Password Reset Request",
        """
<p>You requested a password reset. Your code is {{ token }}</p>
<p><a href="{{ reset_link }}">Reset Password</a></p>
""",
    ),
    VERIFICATION_CODE: (
        "Verification code",
        """
<h3>Verification code</h3>
<p>Your code: <strong>{{ code }}</strong></p>
<p>This code is valid for {{ valid_minutes }} minutes.</p>
""",
    ),
}

_environment = Environment(autoescape=True)


@dataclass
class MailMessage:
    """A rendered email ready for a transport."""

    kind: str
    sender: str
    to: str
    subject: str
    html: str
    params: dict[str, Any] = field(default_factory=dict)


class OutboxTransport:
    """Keep messages in memory instead of sending them."""

    def __init__(self):
        self.outbox: list[MailMessage] = []

    def deliver(self, message: MailMessage) -> None:
        self.outbox.append(message)


class SmtpTransport:
    """Deliver messages through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        timeout: float = 10,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

        if username and not password:
            logger.warning("SMTP username configured without a password; sending will likely fail.")

    def deliver(self, message: MailMessage) -> None:
        mime = MIMEMultipart("alternative")
        mime["From"] = message.sender
        mime["To"] = message.to
        mime["Subject"] = message.subject
        mime.attach(MIMEText(message.html, "html"))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username:
                    server.login(self.username, self.password or "")
                server.send_message(mime, to_addrs=[message.to])
        except (smtplib.SMTPException, OSError) as exc:
            raise TransportError(f"Failed to send {message.kind} email: {exc}") from exc


class MailGateway:
    """Render account emails and hand them to a transport."""

    def __init__(self, transport, sender: str, frontend_url: str = "http://localhost:3000"):
        self.transport = transport
        self.sender = sender
        self.frontend_url = frontend_url.rstrip("/")

    def send(self, kind: str, recipient: str, params: dict[str, Any]) -> MailMessage:
        """Render the ``kind`` template for ``recipient`` and dispatch it."""

        try:
            subject, body = TEMPLATES[kind]
        except KeyError:
            raise InvalidInput(f"Unknown email template: {kind}.") from None

        try:
            html = _environment.from_string(body).render(to=recipient, **params)
            message = MailMessage(
                kind=kind,
                sender=self.sender,
                to=recipient,
                subject=subject,
                html=html,
                params=dict(params),
            )
            self.transport.deliver(message)
        except TransportError:
            raise
        except Exception as exc:
            raise TransportError(f"Failed to send {kind} email: {exc}") from exc

        logger.info("Sent %s email to %s", kind, recipient)
        return message

    def send_welcome(self, to: str, temp_password: str, role: str) -> MailMessage:
        return self.send(WELCOME, to, {"temp_password": temp_password, "role": role})

    def send_password_reset(self, to: str, token: str) -> MailMessage:
        query = urlencode({"token": token, "email": to})
        reset_link = f"{self.frontend_url}/ResetPasswordPage?{query}"
        return self.send(PASSWORD_RESET, to, {"token": token, "reset_link": reset_link})

    def send_verification_code(self, to: str, code: str, valid_minutes: int = 5) -> MailMessage:
        return self.send(VERIFICATION_CODE, to, {"code": code, "valid_minutes": valid_minutes})


def build_transport(config) -> Any:
    """Return the transport selected by ``MAIL_BACKEND``."""

    backend = (config.get("MAIL_BACKEND") or "smtp").lower()
    if backend == "outbox":
        return OutboxTransport()
    if backend == "smtp":
        return SmtpTransport(
            host=config.get("MAIL_SERVER"),
            port=int(config.get("MAIL_PORT", 587)),
            username=config.get("MAIL_USERNAME"),
            password=config.get("MAIL_PASSWORD"),
            use_tls=bool(config.get("MAIL_USE_TLS", True)),
            timeout=float(config.get("MAIL_TIMEOUT", 10)),
        )
    raise ValueError(f"Unsupported MAIL_BACKEND: {backend}")
