"""Outbound email transport with encrypted SMTP credentials.

The SMTP password may be stored encrypted with Fernet (AES-128-CBC) using a
key derived from SECRET_KEY; tokens are recognised by their ``gAAAAA`` prefix.
"""

import base64
import hashlib
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate, make_msgid
from typing import Protocol

from cryptography.fernet import Fernet

from ..config import Settings, settings

logger = logging.getLogger(__name__)


# ── Credential encryption ─────────────────────────────────────────────


def _derive_fernet_key(secret: str) -> bytes:
    """Derive a Fernet key from the app SECRET_KEY using SHA-256."""
    digest = hashlib.sha256(secret.encode()).digest()
    return base64.urlsafe_b64encode(digest)


def encrypt_value(plaintext: str) -> str:
    f = Fernet(_derive_fernet_key(settings.secret_key))
    return f.encrypt(plaintext.encode()).decode()


def decrypt_value(ciphertext: str) -> str:
    f = Fernet(_derive_fernet_key(settings.secret_key))
    return f.decrypt(ciphertext.encode()).decode()


# ── Transports ────────────────────────────────────────────────────────


class EmailTransport(Protocol):
    """Accepts one message and reports whether it was handed to the relay."""

    def send(self, recipient: str, subject: str, html_body: str, text_body: str = "") -> bool: ...


class SmtpEmailTransport:
    def __init__(self, config: Settings = settings) -> None:
        self._config = config

    def _password(self) -> str:
        password = self._config.smtp_password
        if password.startswith("gAAAAA"):
            password = decrypt_value(password)
        return password

    def build_message(self, recipient: str, subject: str, html_body: str, text_body: str = "") -> MIMEMultipart:
        """Build a multipart message with the usual anti-spam headers."""
        cfg = self._config
        msg = MIMEMultipart("alternative")
        msg["From"] = formataddr((cfg.mail_sender_name, cfg.mail_from))
        msg["To"] = recipient
        msg["Reply-To"] = cfg.mail_from
        msg["Date"] = formatdate(localtime=True)
        msg["Message-ID"] = make_msgid(domain=cfg.mail_from.split("@")[-1] if "@" in cfg.mail_from else "local")
        msg["X-Mailer"] = "FoodSaveHub/1.0"
        msg["Subject"] = subject
        if text_body:
            msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))
        return msg

    def send(self, recipient: str, subject: str, html_body: str, text_body: str = "") -> bool:
        """Send via SMTP with STARTTLS. Returns True on success."""
        msg = self.build_message(recipient, subject, html_body, text_body)
        try:
            with smtplib.SMTP(self._config.smtp_host, self._config.smtp_port, timeout=15) as server:
                server.ehlo()
                server.starttls()
                server.ehlo()
                server.login(self._config.smtp_user, self._password())
                server.send_message(msg)
        except Exception:
            logger.exception("Failed to send email to %s", recipient)
            return False
        return True


class NullEmailTransport:
    """Used when SMTP is not configured: nothing is sent, every send fails."""

    def send(self, recipient: str, subject: str, html_body: str, text_body: str = "") -> bool:
        logger.debug("SMTP not configured, skipping email to %s", recipient)
        return False


def create_email_transport(config: Settings = settings) -> EmailTransport:
    if not config.smtp_configured:
        return NullEmailTransport()
    return SmtpEmailTransport(config)
