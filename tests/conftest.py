from __future__ import annotations

from unittest import mock

import discord
import pytest

MEMBER_ID = 111
GUILD_ID = 9000
VERIFIED_ROLE_ID = 5000
SCHOOL_ROLE_ID = 5123


def http_error(cls: type[discord.HTTPException], status: int, text: str):
    response = mock.MagicMock()
    response.status = status
    response.reason = text
    return cls(response, text)


def make_member(member_id: int = MEMBER_ID, name: str = "alice") -> mock.MagicMock:
    member = mock.MagicMock(spec=discord.Member)
    member.id = member_id
    member.name = name
    member.mention = f"<@{member_id}>"
    member.add_roles = mock.AsyncMock()
    return member


def make_interaction(user, *, guild=None, channel=None) -> mock.MagicMock:
    interaction = mock.MagicMock()
    interaction.user = user
    interaction.guild = guild
    interaction.channel = channel
    interaction.response.defer = mock.AsyncMock()
    interaction.followup.send = mock.AsyncMock()
    return interaction


def replies(interaction: mock.MagicMock) -> list[str]:
    return [call.args[0] for call in interaction.followup.send.call_args_list]


class FakeNotifier:
    """Records sent codes instead of talking to an SMTP relay."""

    def __init__(self, error: Exception | None = None) -> None:
        self.sent: list[tuple[str, str]] = []
        self.error = error

    async def send_code(self, recipient: str, code: str) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append((recipient, code))


@pytest.fixture
def member() -> mock.MagicMock:
    return make_member()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()
