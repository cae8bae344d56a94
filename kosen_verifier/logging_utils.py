"""Operator audit channel: one line per completed verification."""

from __future__ import annotations

import logging
from typing import Final

import discord

log: Final = logging.getLogger("kosen-verifier")


async def resolve_log_channel(
    bot: discord.Client,
    admin_log_channel_id: int | None,
    guild: discord.Guild,
) -> discord.TextChannel | None:
    """Find the audit channel for ``guild``; None when unconfigured or unusable."""
    if not admin_log_channel_id:
        return None

    cached = guild.get_channel(admin_log_channel_id)
    if isinstance(cached, discord.TextChannel):
        return cached

    try:
        channel = await bot.fetch_channel(admin_log_channel_id)
    except discord.NotFound:
        log.warning("Audit channel %s does not exist", admin_log_channel_id)
        return None
    except discord.Forbidden:
        log.warning("Bot cannot see audit channel %s", admin_log_channel_id)
        return None
    except discord.HTTPException as exc:
        log.warning("Fetching audit channel %s failed: %s", admin_log_channel_id, exc)
        return None

    if not isinstance(channel, discord.TextChannel):
        log.warning("Audit channel %s cannot hold messages", admin_log_channel_id)
        return None
    if channel.guild.id != guild.id:
        log.warning(
            "Audit channel %s is in guild %s, not %s",
            admin_log_channel_id,
            channel.guild.id,
            guild.id,
        )
        return None
    return channel


async def report_verification(
    bot: discord.Client,
    admin_log_channel_id: int | None,
    guild: discord.Guild,
    member: discord.Member,
    domain: str | None,
) -> None:
    log_chan = await resolve_log_channel(bot, admin_log_channel_id, guild)
    if log_chan is None:
        return
    try:
        await log_chan.send(f"{member.mention} verified with {domain or 'unknown domain'}.")
    except discord.Forbidden:
        log.warning("Bot cannot post in audit channel %s", log_chan.id)
    except discord.HTTPException as exc:
        log.exception("Posting audit line for %s failed: %s", member, exc)
