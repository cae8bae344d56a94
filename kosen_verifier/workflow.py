"""Start/Confirm state machine: NoRecord -> Pending -> (Verified | NoRecord)."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Callable, Final, Protocol

import discord

from .codes import codes_match, generate_code
from .domains import DEFAULT_ROOT_DOMAIN, is_allowed_email
from .errors import (
    CodeExpiredError,
    CodeMismatchError,
    InvalidEmailError,
    NoPendingVerificationError,
)
from .roles import GrantResult
from .store import PendingVerification, VerificationStore

log: Final = logging.getLogger("kosen-verifier")


class Notifier(Protocol):
    async def send_code(self, recipient: str, code: str) -> None: ...


class Applier(Protocol):
    async def apply(self, member: discord.Member, email: str) -> GrantResult: ...


class VerificationWorkflow:
    def __init__(
        self,
        *,
        store: VerificationStore,
        notifier: Notifier,
        applier: Applier,
        root_domain: str = DEFAULT_ROOT_DOMAIN,
        code_factory: Callable[[], str] = generate_code,
        code_ttl: timedelta | None = None,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.applier = applier
        self.root_domain = root_domain
        self._code_factory = code_factory
        self.code_ttl = code_ttl

    async def start(self, subject_id: int, email: str) -> PendingVerification:
        """Issue a fresh code for ``subject_id`` and mail it to ``email``.

        Any earlier pending record for the subject is replaced. If the mail
        fails, the new record stays stored and NotificationError propagates;
        running Start again regenerates and resends.
        """
        if not is_allowed_email(email, self.root_domain):
            raise InvalidEmailError(email, self.root_domain)

        record = PendingVerification(
            subject_id=subject_id, code=self._code_factory(), email=email
        )
        await self.store.put(record)
        log.info("Issued verification code for %s", subject_id)
        await self.notifier.send_code(email, record.code)
        return record

    async def confirm(self, member: discord.Member, submitted_code: str) -> GrantResult:
        """Check ``submitted_code`` and apply roles on a match.

        A wrong code leaves the record in place. RoleGrantError from the base
        role grant propagates and also leaves the record in place.
        """
        record = await self.store.get(member.id)
        if record is None:
            raise NoPendingVerificationError(member.id)
        if record.is_expired(self.code_ttl):
            await self.store.remove(member.id, expected=record)
            raise CodeExpiredError(member.id)
        if not codes_match(record.code, submitted_code):
            raise CodeMismatchError(member.id)

        result = await self.applier.apply(member, record.email)
        await self.store.remove(member.id, expected=record)
        log.info("Verified %s", member.id)
        return result
