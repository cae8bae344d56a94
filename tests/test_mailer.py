"""Tests for kosen_verifier.mailer."""

import asyncio
from unittest import mock

import aiosmtplib
import pytest

from kosen_verifier.errors import NotificationError, TransportError
from kosen_verifier.mailer import (
    MAIL_SUBJECT,
    EmailNotifier,
    SmtpSettings,
    build_code_message,
)

SETTINGS = SmtpSettings(sender="bot@gmail.com", password="app-password")


def test_settings_defaults():
    assert SETTINGS.host == "smtp.gmail.com"
    assert SETTINGS.port == 587
    assert SETTINGS.start_tls is True


def test_build_code_message():
    message = build_code_message("bot@gmail.com", "alice@sub.kosen-ac.jp", "482913")

    assert message["From"] == "bot@gmail.com"
    assert message["To"] == "alice@sub.kosen-ac.jp"
    assert message["Subject"] == MAIL_SUBJECT
    assert "482913" in message.get_content()


@pytest.mark.asyncio
async def test_send_code_submits_to_relay():
    send = mock.AsyncMock()
    notifier = EmailNotifier(SETTINGS, send=send)

    await notifier.send_code("alice@sub.kosen-ac.jp", "482913")

    send.assert_awaited_once()
    message = send.call_args.args[0]
    assert message["To"] == "alice@sub.kosen-ac.jp"
    assert send.call_args.kwargs == {
        "recipients": ["alice@sub.kosen-ac.jp"],
        "hostname": "smtp.gmail.com",
        "port": 587,
        "username": "bot@gmail.com",
        "password": "app-password",
        "start_tls": True,
        "timeout": 30.0,
    }


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        aiosmtplib.SMTPAuthenticationError(535, "bad credentials"),
        aiosmtplib.SMTPRecipientsRefused([]),
        ConnectionRefusedError("refused"),
        asyncio.TimeoutError(),
    ],
)
async def test_send_failures_become_notification_error(error):
    notifier = EmailNotifier(SETTINGS, send=mock.AsyncMock(side_effect=error))

    with pytest.raises(NotificationError) as excinfo:
        await notifier.send_code("alice@sub.kosen-ac.jp", "482913")

    assert isinstance(excinfo.value, TransportError)
    assert excinfo.value.__cause__ is error


@pytest.mark.asyncio
async def test_envelope_recipient_is_explicit():
    send = mock.AsyncMock()
    notifier = EmailNotifier(SETTINGS, send=send)

    await notifier.send_code("alice,bob@kosen-ac.jp", "482913")

    assert send.call_args.kwargs["recipients"] == ["alice,bob@kosen-ac.jp"]


@pytest.mark.asyncio
async def test_header_injection_becomes_notification_error():
    send = mock.AsyncMock()
    notifier = EmailNotifier(SETTINGS, send=send)

    with pytest.raises(NotificationError) as excinfo:
        await notifier.send_code("x\nBcc: victim@kosen-ac.jp", "482913")

    assert isinstance(excinfo.value.__cause__, ValueError)
    send.assert_not_awaited()
