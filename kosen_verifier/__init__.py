"""Email-domain verification core for the Kosen Discord gate.

The Discord runtime in ``bots.verification`` wires these pieces together;
everything here can be exercised without a gateway connection.
"""

from .errors import (
    CodeExpiredError,
    CodeMismatchError,
    ConfigurationError,
    InvalidEmailError,
    NoPendingVerificationError,
    NotificationError,
    RandomSourceError,
    RoleGrantError,
    TransportError,
    ValidationError,
    VerificationError,
)

__all__ = [
    "CodeExpiredError",
    "CodeMismatchError",
    "ConfigurationError",
    "InvalidEmailError",
    "NoPendingVerificationError",
    "NotificationError",
    "RandomSourceError",
    "RoleGrantError",
    "TransportError",
    "ValidationError",
    "VerificationError",
]
