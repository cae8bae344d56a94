"""Tests for operator log channel resolution."""

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from kosen_verifier.logging_utils import report_verification, resolve_log_channel
from tests.conftest import http_error, make_member

LOG_CHANNEL_ID = 67890


def make_bot(fetch_result=None, fetch_error=None):
    bot = MagicMock()
    bot.fetch_channel = AsyncMock(return_value=fetch_result, side_effect=fetch_error)
    return bot


class TestResolveLogChannel:
    @pytest.mark.asyncio
    async def test_no_id(self):
        bot = make_bot()
        assert await resolve_log_channel(bot, None, MagicMock()) is None
        assert await resolve_log_channel(bot, 0, MagicMock()) is None
        bot.fetch_channel.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_from_guild_cache(self):
        guild = MagicMock()
        text_channel = MagicMock(spec=discord.TextChannel)
        guild.get_channel.return_value = text_channel

        result = await resolve_log_channel(make_bot(), LOG_CHANNEL_ID, guild)

        assert result is text_channel
        guild.get_channel.assert_called_once_with(LOG_CHANNEL_ID)

    @pytest.mark.asyncio
    async def test_fetch_from_api(self):
        guild = MagicMock()
        guild.get_channel.return_value = None
        text_channel = MagicMock(spec=discord.TextChannel)
        text_channel.guild.id = guild.id
        bot = make_bot(fetch_result=text_channel)

        result = await resolve_log_channel(bot, LOG_CHANNEL_ID, guild)

        assert result is text_channel
        bot.fetch_channel.assert_awaited_once_with(LOG_CHANNEL_ID)

    @pytest.mark.asyncio
    async def test_fetch_other_guild_rejected(self):
        guild = MagicMock()
        guild.id = 1
        guild.get_channel.return_value = None
        text_channel = MagicMock(spec=discord.TextChannel)
        text_channel.guild.id = 2

        result = await resolve_log_channel(make_bot(fetch_result=text_channel), LOG_CHANNEL_ID, guild)

        assert result is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            http_error(discord.NotFound, 404, "Unknown Channel"),
            http_error(discord.Forbidden, 403, "Missing Access"),
            http_error(discord.HTTPException, 500, "Server Error"),
        ],
    )
    async def test_fetch_fails(self, error):
        guild = MagicMock()
        guild.get_channel.return_value = None

        result = await resolve_log_channel(make_bot(fetch_error=error), LOG_CHANNEL_ID, guild)

        assert result is None

    @pytest.mark.asyncio
    async def test_not_text_channel(self):
        guild = MagicMock()
        guild.get_channel.return_value = None
        voice_channel = MagicMock(spec=discord.VoiceChannel)
        voice_channel.guild.id = guild.id

        result = await resolve_log_channel(make_bot(fetch_result=voice_channel), LOG_CHANNEL_ID, guild)

        assert result is None


class TestReportVerification:
    @pytest.mark.asyncio
    async def test_sends_line(self):
        guild = MagicMock()
        text_channel = MagicMock(spec=discord.TextChannel)
        text_channel.send = AsyncMock()
        guild.get_channel.return_value = text_channel
        member = make_member()

        await report_verification(make_bot(), LOG_CHANNEL_ID, guild, member, "sub.kosen-ac.jp")

        text_channel.send.assert_awaited_once_with("<@111> verified with sub.kosen-ac.jp.")

    @pytest.mark.asyncio
    async def test_skips_without_channel(self):
        bot = make_bot()
        await report_verification(bot, None, MagicMock(), make_member(), "kosen-ac.jp")
        bot.fetch_channel.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_send_failure_is_swallowed(self):
        guild = MagicMock()
        text_channel = MagicMock(spec=discord.TextChannel)
        text_channel.send = AsyncMock(side_effect=http_error(discord.Forbidden, 403, "no"))
        guild.get_channel.return_value = text_channel

        await report_verification(make_bot(), LOG_CHANNEL_ID, guild, make_member(), None)

        text_channel.send.assert_awaited_once_with("<@111> verified with unknown domain.")
