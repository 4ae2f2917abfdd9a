# firewood/core/email_client.py
"""
SMTP delivery for order emails.

The notifier renders subject/text/html and hands them to `send_email`;
this module only knows how to reach the mail server.

Configuration comes from the environment and is read on every send, so a
fixed .env can be picked up without restarting workers:

    SMTP_HOST=smtp.gmail.com
    SMTP_PORT=465
    SMTP_USERNAME=orders@verringtonfirewood.co.uk   (alias: SMTP_USER)
    SMTP_PASSWORD=<app password>                    (alias: SMTP_PASS)
    SMTP_FROM_EMAIL=orders@verringtonfirewood.co.uk (alias: MAIL_FROM)
    SMTP_FROM_NAME=Verrington Firewood
    SMTP_REPLY_TO=hello@verringtonfirewood.co.uk
    SMTP_USE_SSL=true     (implicit TLS, port 465)
    SMTP_USE_TLS=false    (STARTTLS, port 587)
"""

from __future__ import annotations

import logging
import os
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 30

_TRUTHY = {"1", "true", "yes", "y"}


class EmailConfigError(RuntimeError):
    """SMTP host or credentials are missing."""


def _env(*names: str, default: str | None = None) -> str | None:
    # First non-empty value among the given names
    for name in names:
        value = os.getenv(name)
        if value and value.strip():
            return value.strip()
    return default


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class SmtpConfig:
    host: str
    port: int
    username: str | None
    password: str | None
    from_email: str
    from_name: str
    reply_to: str | None
    use_ssl: bool
    use_tls: bool

    @property
    def sender(self) -> str:
        if not self.from_email:
            return self.username or ""
        return formataddr((self.from_name, self.from_email))


def load_smtp_config() -> SmtpConfig:
    username = _env("SMTP_USERNAME", "SMTP_USER")
    return SmtpConfig(
        host=_env("SMTP_HOST", default="smtp.gmail.com"),
        port=int(_env("SMTP_PORT", default="465")),
        username=username,
        password=_env("SMTP_PASSWORD", "SMTP_PASS"),
        from_email=_env("SMTP_FROM_EMAIL", "MAIL_FROM", default=username or ""),
        from_name=_env("SMTP_FROM_NAME", default="Verrington Firewood"),
        reply_to=_env("SMTP_REPLY_TO"),
        use_ssl=_env_flag("SMTP_USE_SSL", default=True),
        use_tls=_env_flag("SMTP_USE_TLS", default=False),
    )


def build_message(
    config: SmtpConfig,
    to_email: str,
    subject: str,
    text_body: str,
    html_body: str | None = None,
) -> EmailMessage:
    """
    Plain-text message with an optional HTML alternative.
    """
    msg = EmailMessage()
    msg["From"] = config.sender
    msg["To"] = to_email
    msg["Subject"] = subject
    if config.reply_to:
        msg["Reply-To"] = config.reply_to

    msg.set_content(text_body)
    if html_body:
        msg.add_alternative(html_body, subtype="html")
    return msg


def _connect(config: SmtpConfig) -> smtplib.SMTP:
    if config.use_ssl:
        return smtplib.SMTP_SSL(config.host, config.port, timeout=SMTP_TIMEOUT_SECONDS)

    server = smtplib.SMTP(config.host, config.port, timeout=SMTP_TIMEOUT_SECONDS)
    if config.use_tls:
        try:
            server.starttls()
        except (smtplib.SMTPException, OSError):
            server.close()
            raise
    return server


def send_email(
    to_email: str,
    subject: str,
    text_body: str,
    html_body: str | None = None,
) -> None:
    """
    Send one email. Single attempt, no retry.

    Raises:
        EmailConfigError: SMTP host or credentials not configured.
        smtplib.SMTPException / OSError: connection or delivery failed.
    """
    config = load_smtp_config()
    if not (config.host and config.username and config.password):
        raise EmailConfigError("SMTP_HOST, SMTP_USERNAME and SMTP_PASSWORD must be set")

    msg = build_message(config, to_email, subject, text_body, html_body)

    server = _connect(config)
    try:
        server.login(config.username, config.password)
        server.send_message(msg)
    finally:
        try:
            server.quit()
        except (smtplib.SMTPException, OSError):
            logger.debug("SMTP quit failed after send to %s", to_email)
