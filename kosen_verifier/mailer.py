"""Delivery of verification codes over an authenticated SMTP relay."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Final

import aiosmtplib

from .errors import NotificationError

DEFAULT_SMTP_HOST: Final[str] = "smtp.gmail.com"
DEFAULT_SMTP_PORT: Final[int] = 587
MAIL_SUBJECT: Final[str] = "Discord Verification Code"

log: Final = logging.getLogger("kosen-verifier")


@dataclass(frozen=True, slots=True)
class SmtpSettings:
    sender: str
    password: str
    host: str = DEFAULT_SMTP_HOST
    port: int = DEFAULT_SMTP_PORT
    start_tls: bool = True
    timeout: float = 30.0


def build_code_message(sender: str, recipient: str, code: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = recipient
    message["Subject"] = MAIL_SUBJECT
    message.set_content(f"あなたの認証コードは: {code} です.")
    return message


class EmailNotifier:
    """Send a single code mail per call. Failures surface as NotificationError."""

    def __init__(self, settings: SmtpSettings, *, send=aiosmtplib.send) -> None:
        self._settings = settings
        self._send = send

    async def send_code(self, recipient: str, code: str) -> None:
        settings = self._settings
        try:
            message = build_code_message(settings.sender, recipient, code)
        except ValueError as exc:
            raise NotificationError(f"Unusable recipient address {recipient!r}: {exc}") from exc
        try:
            await self._send(
                message,
                recipients=[recipient],
                hostname=settings.host,
                port=settings.port,
                username=settings.sender,
                password=settings.password,
                start_tls=settings.start_tls,
                timeout=settings.timeout,
            )
        except aiosmtplib.SMTPException as exc:
            raise NotificationError(f"SMTP relay rejected mail to {recipient}: {exc}") from exc
        except (OSError, asyncio.TimeoutError) as exc:
            raise NotificationError(f"Could not reach SMTP relay {settings.host}: {exc}") from exc
        log.info("Sent verification code to %s via %s", recipient, settings.host)
