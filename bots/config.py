"""Configuration helpers for the verification runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta

from kosen_verifier.channels import DEFAULT_DELETE_DELAY_SECONDS
from kosen_verifier.domains import DEFAULT_ROOT_DOMAIN, DomainRoleMap
from kosen_verifier.errors import ConfigurationError
from kosen_verifier.mailer import DEFAULT_SMTP_HOST, DEFAULT_SMTP_PORT, SmtpSettings

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

REQUIRED_VARS = (
    "DISCORD_BOT_TOKEN",
    "DISCORD_GUILD_ID",
    "DISCORD_VERIFIED_ROLE_ID",
    "GMAIL_ADDRESS",
    "GMAIL_APP_PASSWORD",
    "DISCORD_WELCOME_CHANNEL_ID",
)


def env_bool(name: str, *, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return default


def env_int(name: str, *, default: int | None = None) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_float(name: str, *, default: float | None = None) -> float | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _ttl(raw: str | None) -> timedelta | None:
    if not raw:
        return None
    try:
        seconds = int(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"CODE_TTL_SECONDS must be a whole number of seconds, got {raw!r}"
        ) from exc
    return timedelta(seconds=seconds) if seconds > 0 else None


def _snowflake(name: str, raw: str | None) -> int | None:
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a numeric Discord id, got {raw!r}") from exc


@dataclass(frozen=True, slots=True)
class BotConfig:
    bot_token: str
    guild_id: int
    verified_role_id: int
    welcome_channel_id: int
    smtp: SmtpSettings
    private_category_id: int | None = None
    admin_log_channel_id: int | None = None
    root_domain: str = DEFAULT_ROOT_DOMAIN
    role_map: DomainRoleMap = field(default_factory=DomainRoleMap)
    channel_delete_delay: float = DEFAULT_DELETE_DELAY_SECONDS
    code_ttl: timedelta | None = None

    @classmethod
    def load(cls) -> BotConfig:
        missing = [name for name in REQUIRED_VARS if not os.getenv(name)]
        if missing:
            raise ConfigurationError("Missing env vars: " + ", ".join(missing))

        role_map_path = os.getenv("ROLE_MAP_PATH")
        role_map = DomainRoleMap.from_file(role_map_path) if role_map_path else DomainRoleMap()

        smtp = SmtpSettings(
            sender=os.environ["GMAIL_ADDRESS"],
            password=os.environ["GMAIL_APP_PASSWORD"],
            host=os.getenv("SMTP_HOST") or DEFAULT_SMTP_HOST,
            port=env_int("SMTP_PORT", default=DEFAULT_SMTP_PORT),
            start_tls=env_bool("SMTP_START_TLS", default=True),
            timeout=env_float("SMTP_TIMEOUT_SECONDS", default=30.0),
        )

        return cls(
            bot_token=os.environ["DISCORD_BOT_TOKEN"],
            guild_id=_snowflake("DISCORD_GUILD_ID", os.getenv("DISCORD_GUILD_ID")),
            verified_role_id=_snowflake(
                "DISCORD_VERIFIED_ROLE_ID", os.getenv("DISCORD_VERIFIED_ROLE_ID")
            ),
            welcome_channel_id=_snowflake(
                "DISCORD_WELCOME_CHANNEL_ID", os.getenv("DISCORD_WELCOME_CHANNEL_ID")
            ),
            smtp=smtp,
            private_category_id=_snowflake(
                "DISCORD_PRIVATE_CATEGORY_ID", os.getenv("DISCORD_PRIVATE_CATEGORY_ID")
            ),
            admin_log_channel_id=_snowflake(
                "ADMIN_LOG_CHANNEL_ID", os.getenv("ADMIN_LOG_CHANNEL_ID")
            ),
            root_domain=os.getenv("ALLOWED_ROOT_DOMAIN") or DEFAULT_ROOT_DOMAIN,
            role_map=role_map,
            channel_delete_delay=env_float(
                "CHANNEL_DELETE_DELAY_SECONDS", default=DEFAULT_DELETE_DELAY_SECONDS
            ),
            code_ttl=_ttl(os.getenv("CODE_TTL_SECONDS")),
        )
