#!/usr/bin/env python3
"""Discord gateway bot for Kosen email-domain verification
---------------------------------------------------------
* `/verify email:` mails a six digit code to an address under the allowed
  root domain.
* `/code code:` checks the code, grants the verified role and, when the
  domain is mapped, the school role.
* A persistent button in the welcome channel opens a private channel per
  member; it is deleted a few seconds after successful verification.

Required env-vars: DISCORD_BOT_TOKEN, DISCORD_GUILD_ID,
DISCORD_VERIFIED_ROLE_ID, GMAIL_ADDRESS, GMAIL_APP_PASSWORD,
DISCORD_WELCOME_CHANNEL_ID
Optional: DISCORD_PRIVATE_CATEGORY_ID, ROLE_MAP_PATH, ALLOWED_ROOT_DOMAIN,
SMTP_HOST, SMTP_PORT, SMTP_START_TLS, SMTP_TIMEOUT_SECONDS,
CHANNEL_DELETE_DELAY_SECONDS, CODE_TTL_SECONDS, ADMIN_LOG_CHANNEL_ID, LOG_LEVEL
"""

from __future__ import annotations

import asyncio
import logging
import os
from enum import Enum
from typing import Final

import discord
from discord import app_commands

from bots.config import BotConfig
from kosen_verifier.channels import (
    ChannelReaper,
    VerificationPromptView,
    find_verification_channel,
    is_verification_channel_of,
    open_verification_channel,
    post_or_refresh_prompt,
)
from kosen_verifier.codes import is_well_formed
from kosen_verifier.errors import (
    CodeExpiredError,
    CodeMismatchError,
    InvalidEmailError,
    NoPendingVerificationError,
    NotificationError,
    RandomSourceError,
    RoleGrantError,
)
from kosen_verifier.logging_utils import report_verification
from kosen_verifier.mailer import EmailNotifier
from kosen_verifier.roles import RoleApplier
from kosen_verifier.store import VerificationStore
from kosen_verifier.workflow import Notifier, VerificationWorkflow

log: Final = logging.getLogger("kosen-verifier")

# ---------- User-facing messages ----------
MSG_INVALID_EMAIL: Final[str] = (
    "エラー: `{root}`で終わる有効な高専のメールアドレスを入力してください."
)
MSG_INTERNAL_ERROR: Final[str] = "エラー: 内部エラーが発生しました. 管理者に連絡してください."
MSG_MAIL_FAILED: Final[str] = (
    "エラー: 認証メールの送信に失敗しました. 時間をおいてお試しください."
)
MSG_CODE_SENT: Final[str] = (
    "6桁の認証番号を送信しました. メールを確認し、`/code` コマンドで認証を完了させてください."
)
MSG_MALFORMED_CODE: Final[str] = "エラー: 認証コードは6桁の数字です."
MSG_NO_PENDING: Final[str] = (
    "エラー: 認証待ちの記録がありません. まず `/verify` コマンドを実行してください."
)
MSG_WRONG_CODE: Final[str] = "エラー: 認証コードが間違っています."
MSG_EXPIRED_CODE: Final[str] = (
    "エラー: 認証コードの有効期限が切れました. `/verify` コマンドをもう一度実行してください."
)
MSG_BASE_ROLE_FAILED: Final[str] = (
    "エラー: 学生ロールの付与に失敗しました. 管理者に連絡してください."
)
MSG_DOMAIN_ROLE_FAILED: Final[str] = (
    "エラー: 学校ロールの付与に失敗しました. 管理者に連絡してください."
)
MSG_SUCCESS: Final[str] = "認証に成功しました!"
MSG_SUCCESS_CHANNEL: Final[str] = (
    "認証に成功しました! このチャンネルは{delay}秒後に自動的に消えます."
)
MSG_GUILD_ONLY: Final[str] = "エラー: このコマンドはサーバー内でのみ使用できます."
MSG_CHANNEL_EXISTS: Final[str] = "既に認証チャンネルがあります: {mention}"
MSG_CHANNEL_CREATED: Final[str] = "認証チャンネルを作成しました: {mention}"
MSG_CHANNEL_FAILED: Final[str] = (
    "エラー: 認証チャンネルの作成に失敗しました. 管理者に連絡してください."
)


class InteractionKind(Enum):
    START = "start"
    CONFIRM = "confirm"
    BUTTON = "button"


async def _reply(interaction: discord.Interaction, content: str) -> None:
    await interaction.followup.send(content, ephemeral=True)


class VerificationRuntime:
    """Owns the Discord client and every piece of verification state."""

    def __init__(
        self,
        config: BotConfig,
        *,
        client: discord.Client | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        intents = discord.Intents.default()
        intents.guilds = True

        self.config = config
        self.bot = client or discord.Client(intents=intents)
        self.tree = app_commands.CommandTree(self.bot)
        self.store = VerificationStore()
        self.workflow = VerificationWorkflow(
            store=self.store,
            notifier=notifier or EmailNotifier(config.smtp),
            applier=RoleApplier(config.verified_role_id, config.role_map),
            root_domain=config.root_domain,
            code_ttl=config.code_ttl,
        )
        self.reaper = ChannelReaper(config.channel_delete_delay)
        self.prompt_view: VerificationPromptView | None = None
        self._commands_synced = False

        self._register_commands()
        self.bot.event(self.on_ready)

    # ---------- Command registration ----------
    def _register_commands(self) -> None:
        guild = discord.Object(id=self.config.guild_id)

        @self.tree.command(
            name="verify",
            description="Start verification with your Kosen email.",
            guild=guild,
        )
        @app_commands.describe(email="Your Kosen email address")
        async def verify(interaction: discord.Interaction, email: str) -> None:
            await self.dispatch(InteractionKind.START, interaction, email)

        @self.tree.command(
            name="code",
            description="Enter the verification code sent to your email.",
            guild=guild,
        )
        @app_commands.describe(code="The 6-digit verification code")
        async def code(interaction: discord.Interaction, code: str) -> None:
            await self.dispatch(InteractionKind.CONFIRM, interaction, code)

    async def _on_start_button(self, interaction: discord.Interaction) -> None:
        await self.dispatch(InteractionKind.BUTTON, interaction)

    # ---------- Dispatch ----------
    async def dispatch(
        self,
        kind: InteractionKind,
        interaction: discord.Interaction,
        value: str | None = None,
    ) -> None:
        if kind is InteractionKind.START:
            await self.handle_start(interaction, value or "")
        elif kind is InteractionKind.CONFIRM:
            await self.handle_confirm(interaction, value or "")
        elif kind is InteractionKind.BUTTON:
            await self.handle_start_button(interaction)
        else:
            raise ValueError(f"Unhandled interaction kind: {kind!r}")

    # ---------- /verify ----------
    async def handle_start(self, interaction: discord.Interaction, email: str) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)

        try:
            await self.workflow.start(interaction.user.id, email)
        except InvalidEmailError:
            await _reply(interaction, MSG_INVALID_EMAIL.format(root=self.config.root_domain))
            return
        except RandomSourceError as exc:
            log.error("Failed to generate code: %s", exc)
            await _reply(interaction, MSG_INTERNAL_ERROR)
            return
        except NotificationError as exc:
            log.error("Failed to send email: %s", exc)
            await _reply(interaction, MSG_MAIL_FAILED)
            return

        await _reply(interaction, MSG_CODE_SENT)

    # ---------- /code ----------
    async def handle_confirm(self, interaction: discord.Interaction, code: str) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)

        member = interaction.user
        if interaction.guild is None or not isinstance(member, discord.Member):
            await _reply(interaction, MSG_GUILD_ONLY)
            return

        if not is_well_formed(code):
            await _reply(interaction, MSG_MALFORMED_CODE)
            return

        try:
            result = await self.workflow.confirm(member, code)
        except NoPendingVerificationError:
            await _reply(interaction, MSG_NO_PENDING)
            return
        except CodeExpiredError:
            await _reply(interaction, MSG_EXPIRED_CODE)
            return
        except CodeMismatchError:
            await _reply(interaction, MSG_WRONG_CODE)
            return
        except RoleGrantError as exc:
            log.error("Failed to add general role: %s", exc)
            await _reply(interaction, MSG_BASE_ROLE_FAILED)
            return

        if result.domain_role_failed:
            await _reply(interaction, MSG_DOMAIN_ROLE_FAILED)

        channel = interaction.channel
        owns_channel = is_verification_channel_of(channel, member)
        if owns_channel:
            await _reply(
                interaction,
                MSG_SUCCESS_CHANNEL.format(delay=int(self.reaper.delay)),
            )
        else:
            await _reply(interaction, MSG_SUCCESS)

        await report_verification(
            self.bot,
            self.config.admin_log_channel_id,
            interaction.guild,
            member,
            result.domain,
        )

        if owns_channel:
            self.reaper.schedule(channel)

    # ---------- Start button ----------
    async def handle_start_button(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)

        guild = interaction.guild
        member = interaction.user
        if guild is None or not isinstance(member, discord.Member):
            await _reply(interaction, MSG_GUILD_ONLY)
            return

        existing = find_verification_channel(guild, member)
        if existing is not None:
            await _reply(interaction, MSG_CHANNEL_EXISTS.format(mention=existing.mention))
            return

        try:
            channel = await open_verification_channel(
                guild, member, self._private_category(guild)
            )
        except discord.HTTPException as exc:
            log.exception("Failed to create private channel: %s", exc)
            await _reply(interaction, MSG_CHANNEL_FAILED)
            return

        await _reply(interaction, MSG_CHANNEL_CREATED.format(mention=channel.mention))

    def _private_category(self, guild: discord.Guild) -> discord.CategoryChannel | None:
        category_id = self.config.private_category_id
        if not category_id:
            return None
        category = guild.get_channel(category_id)
        if isinstance(category, discord.CategoryChannel):
            return category
        log.warning("Private category %s not found or not a category", category_id)
        return None

    # ---------- Welcome prompt ----------
    async def publish_prompt(self) -> discord.Message | None:
        channel_id = self.config.welcome_channel_id
        channel = self.bot.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self.bot.fetch_channel(channel_id)
            except discord.HTTPException as exc:
                log.warning("Cannot fetch welcome channel %s: %s", channel_id, exc)
                return None
        if not isinstance(channel, discord.TextChannel):
            log.warning("Welcome channel %s is not a text channel", channel_id)
            return None
        if self.prompt_view is None:
            self.prompt_view = VerificationPromptView(self._on_start_button)
        return await post_or_refresh_prompt(channel, self.bot.user, self.prompt_view)

    # ---------- Lifecycle ----------
    async def on_ready(self) -> None:
        if not self._commands_synced:
            log.info("Registering commands...")
            await self.tree.sync(guild=discord.Object(id=self.config.guild_id))
            self._commands_synced = True
            log.info("Commands successfully registered.")

        if self.prompt_view is None:
            self.prompt_view = VerificationPromptView(self._on_start_button)
        self.bot.add_view(self.prompt_view)
        await self.publish_prompt()

        log.info("Bot ready as %s", self.bot.user)

    async def run(self) -> None:
        async with self.bot:
            try:
                await self.bot.start(self.config.bot_token)
            finally:
                # Deletions need the HTTP session, which closes with the client.
                await self.reaper.drain()


async def main() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    config = BotConfig.load()
    runtime = VerificationRuntime(config)
    await runtime.run()


def run_cli() -> None:
    asyncio.run(main())


__all__ = ["InteractionKind", "VerificationRuntime", "main", "run_cli"]


if __name__ == "__main__":
    run_cli()
