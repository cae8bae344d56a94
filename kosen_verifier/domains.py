"""Email domain allow-list and the per-domain role table."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from .errors import ConfigurationError

DEFAULT_ROOT_DOMAIN: Final[str] = "kosen-ac.jp"

log: Final = logging.getLogger("kosen-verifier")


def email_domain(email: str) -> str | None:
    """Return the part after ``@``, or None unless there is exactly one ``@``.

    Addresses containing whitespace or control characters are rejected so
    they can never reach a mail header.
    """
    if any(ch.isspace() or not ch.isprintable() for ch in email):
        return None
    parts = email.split("@")
    if len(parts) != 2 or not parts[1]:
        return None
    return parts[1].lower()


def is_allowed_domain(domain: str, root_domain: str = DEFAULT_ROOT_DOMAIN) -> bool:
    domain = domain.lower()
    root_domain = root_domain.lower()
    return domain == root_domain or domain.endswith("." + root_domain)


def is_allowed_email(email: str, root_domain: str = DEFAULT_ROOT_DOMAIN) -> bool:
    domain = email_domain(email)
    if domain is None:
        return False
    return is_allowed_domain(domain, root_domain)


@dataclass(frozen=True, slots=True)
class DomainRoleMap:
    """Read-only mapping of email domain to an extra Discord role id."""

    roles: Mapping[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.roles)

    def role_for(self, domain: str) -> int | None:
        return self.roles.get(domain.lower())

    @classmethod
    def from_mapping(cls, raw: object) -> DomainRoleMap:
        if not isinstance(raw, dict):
            raise ConfigurationError("Role map must be a JSON object of domain -> role id")
        roles: dict[str, int] = {}
        for domain, role_id in raw.items():
            try:
                roles[str(domain).lower()] = int(role_id)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(
                    f"Role id for {domain!r} is not numeric: {role_id!r}"
                ) from exc
        return cls(roles=roles)

    @classmethod
    def from_file(cls, path: str | Path) -> DomainRoleMap:
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigurationError(f"Could not read role map {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Could not parse role map {path}: {exc}") from exc
        role_map = cls.from_mapping(raw)
        log.info("Loaded %d domain role mappings from %s", len(role_map), path)
        return role_map
