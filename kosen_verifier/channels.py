"""Welcome prompt, private onboarding channels, and their deferred deletion."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Final

import discord

START_BUTTON_CUSTOM_ID: Final[str] = "start_verification_button"
CHANNEL_NAME_PREFIX: Final[str] = "認証-"
CHANNEL_TOPIC_PREFIX: Final[str] = "verification:"
DEFAULT_DELETE_DELAY_SECONDS: Final[float] = 10.0
PROMPT_HISTORY_LIMIT: Final[int] = 10
EMBED_COLOR: Final[int] = 0x5865F2

log: Final = logging.getLogger("kosen-verifier")

ButtonHandler = Callable[[discord.Interaction], Awaitable[None]]


def channel_name_for(member: discord.abc.User) -> str:
    return f"{CHANNEL_NAME_PREFIX}{member.name}"


def channel_topic_for(member: discord.abc.User) -> str:
    return f"{CHANNEL_TOPIC_PREFIX}{member.id}"


def is_verification_channel_of(channel: object, member: discord.abc.User) -> bool:
    return (
        isinstance(channel, discord.TextChannel)
        and channel.topic == channel_topic_for(member)
    )


def prompt_embed() -> discord.Embed:
    return discord.Embed(
        title="高専学生認証システム",
        description=(
            "全てのチャンネルを閲覧するためには、高専生であることを認証する必要があります.\n"
            "下記のボタンからプライベートチャンネルを作成し、手順に従って認証を完了させてください."
        ),
        color=EMBED_COLOR,
    )


def instructions_embed() -> discord.Embed:
    embed = discord.Embed(
        title="ようこそ! ",
        description=(
            "このチャンネルはボットとあなた専用のプライベートチャンネルです.\n"
            "手順に従って認証を完了させてください."
        ),
        color=EMBED_COLOR,
    )
    embed.add_field(
        name="Step 1: Emailの登録",
        value="`/verify`コマンドを使って高専のMicrosoftアドレスを入力してください",
        inline=False,
    )
    embed.add_field(
        name="Step 2: 認証コードの入力",
        value="`/code` コマンドを使って送信された認証コードを入力してください.",
        inline=False,
    )
    embed.set_footer(
        text="This channel will be deleted automatically upon successful verification."
    )
    return embed


class VerificationPromptView(discord.ui.View):
    """Persistent view holding the start button; re-registered on every start."""

    def __init__(self, on_start: ButtonHandler) -> None:
        super().__init__(timeout=None)
        self._on_start = on_start

    @discord.ui.button(
        label="Tap Here to Start Verification",
        style=discord.ButtonStyle.primary,
        custom_id=START_BUTTON_CUSTOM_ID,
        emoji="✅",
    )
    async def start_verification(
        self, interaction: discord.Interaction, _: discord.ui.Button
    ) -> None:
        await self._on_start(interaction)


async def post_or_refresh_prompt(
    channel: discord.TextChannel,
    bot_user: discord.abc.User,
    view: discord.ui.View,
) -> discord.Message | None:
    """Edit the bot's recent prompt in ``channel`` or post a new one."""
    existing: discord.Message | None = None
    try:
        async for message in channel.history(limit=PROMPT_HISTORY_LIMIT):
            if message.author.id == bot_user.id:
                existing = message
                break
    except discord.HTTPException as exc:
        log.warning("Could not get messages in welcome channel %s: %s", channel.id, exc)
        return None

    try:
        if existing is None:
            message = await channel.send(embed=prompt_embed(), view=view)
        else:
            message = await existing.edit(embed=prompt_embed(), view=view)
    except discord.HTTPException as exc:
        log.exception("Failed to publish verification prompt: %s", exc)
        return None
    log.info("Verification button setup/update complete.")
    return message


def find_verification_channel(
    guild: discord.Guild, member: discord.abc.User
) -> discord.TextChannel | None:
    for channel in guild.text_channels:
        if is_verification_channel_of(channel, member):
            return channel
    return None


async def open_verification_channel(
    guild: discord.Guild,
    member: discord.Member,
    category: discord.CategoryChannel | None = None,
) -> discord.TextChannel:
    """Create a text channel only ``member`` and the bot can see.

    Raises discord.HTTPException when the channel cannot be created; the
    instructions embed is best effort.
    """
    overwrites = {
        guild.default_role: discord.PermissionOverwrite(view_channel=False),
        member: discord.PermissionOverwrite(view_channel=True),
        guild.me: discord.PermissionOverwrite(view_channel=True, send_messages=True),
    }
    channel = await guild.create_text_channel(
        channel_name_for(member),
        category=category,
        overwrites=overwrites,
        topic=channel_topic_for(member),
        reason=f"Verification channel for {member}",
    )
    log.info("Created verification channel %s for %s", channel.id, member)
    try:
        await channel.send(embed=instructions_embed())
    except discord.HTTPException as exc:
        log.warning("Failed to post instructions in %s: %s", channel.id, exc)
    return channel


class ChannelReaper:
    """Deletes channels after a delay without blocking the caller."""

    def __init__(self, delay: float = DEFAULT_DELETE_DELAY_SECONDS) -> None:
        self.delay = delay
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def schedule(self, channel: discord.abc.GuildChannel) -> asyncio.Task[None]:
        task = asyncio.create_task(self._delete_later(channel))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _delete_later(self, channel: discord.abc.GuildChannel) -> None:
        await asyncio.sleep(self.delay)
        try:
            await channel.delete(reason="Verification completed")
        except discord.NotFound:
            log.debug("Verification channel %s already deleted", channel.id)
        except discord.HTTPException as exc:
            log.warning("Failed to delete channel %s: %s", channel.id, exc)
        except Exception as exc:  # pylint: disable=broad-except
            log.exception("Unexpected error deleting channel %s: %s", channel.id, exc)
        else:
            log.info("Deleted verification channel %s", channel.id)

    async def drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
