from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Final

import discord

from .domains import DomainRoleMap, email_domain
from .errors import RoleGrantError

log: Final = logging.getLogger("kosen-verifier")

GRANT_REASON: Final[str] = "Passed email domain verification"


@dataclass(frozen=True, slots=True)
class GrantResult:
    base_role_id: int
    domain: str | None = None
    domain_role_id: int | None = None
    domain_role_granted: bool = False

    @property
    def domain_role_failed(self) -> bool:
        return self.domain_role_id is not None and not self.domain_role_granted


class RoleApplier:
    """Grant the verified role, then the domain role on a best-effort basis."""

    def __init__(self, base_role_id: int, role_map: DomainRoleMap | None = None) -> None:
        self.base_role_id = base_role_id
        self.role_map = role_map or DomainRoleMap()

    async def apply(self, member: discord.Member, email: str) -> GrantResult:
        try:
            await member.add_roles(discord.Object(id=self.base_role_id), reason=GRANT_REASON)
        except discord.Forbidden as exc:
            log.warning("Forbidden when adding verified role to %s", member)
            raise RoleGrantError(
                self.base_role_id, "Bot lacks Manage Roles or the role hierarchy is wrong"
            ) from exc
        except discord.HTTPException as exc:
            log.exception("HTTPException adding verified role to %s: %s", member, exc)
            raise RoleGrantError(self.base_role_id, str(exc)) from exc

        domain = email_domain(email)
        domain_role_id = self.role_map.role_for(domain) if domain else None
        if domain_role_id is None:
            log.info("No role mapping found for domain: %s", domain)
            return GrantResult(base_role_id=self.base_role_id, domain=domain)

        try:
            await member.add_roles(discord.Object(id=domain_role_id), reason=GRANT_REASON)
        except discord.HTTPException as exc:
            # Forbidden is an HTTPException too; the base grant stands either way.
            log.warning(
                "Failed to add domain role %s to %s: %s", domain_role_id, member, exc
            )
            granted = False
        else:
            granted = True
        return GrantResult(
            base_role_id=self.base_role_id,
            domain=domain,
            domain_role_id=domain_role_id,
            domain_role_granted=granted,
        )
