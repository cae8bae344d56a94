from __future__ import annotations

import hmac
import secrets
from typing import Callable, Final

from .errors import RandomSourceError

CODE_LENGTH: Final[int] = 6
CODE_SPACE: Final[int] = 10**CODE_LENGTH


def generate_code(randbelow: Callable[[int], int] = secrets.randbelow) -> str:
    """Return a zero-padded six digit code drawn uniformly from 000000-999999."""
    try:
        value = randbelow(CODE_SPACE)
    except (OSError, NotImplementedError) as exc:
        raise RandomSourceError("Entropy source unavailable") from exc
    return f"{value:0{CODE_LENGTH}d}"


def is_well_formed(code: str) -> bool:
    return len(code) == CODE_LENGTH and code.isascii() and code.isdigit()


def codes_match(expected: str, submitted: str) -> bool:
    """Exact comparison in constant time."""
    return hmac.compare_digest(expected.encode(), submitted.encode())
