"""Exception taxonomy for the verification workflow."""

from __future__ import annotations


class VerificationError(Exception):
    """Base class for every error raised by the verification core."""


class ValidationError(VerificationError):
    """User input was rejected. Reported to the user, no state change."""


class InvalidEmailError(ValidationError):
    def __init__(self, email: str, root_domain: str) -> None:
        super().__init__(f"{email!r} is not an address under {root_domain}")
        self.email = email
        self.root_domain = root_domain


class NoPendingVerificationError(ValidationError):
    def __init__(self, subject_id: int) -> None:
        super().__init__(f"No pending verification for {subject_id}")
        self.subject_id = subject_id


class CodeMismatchError(ValidationError):
    def __init__(self, subject_id: int) -> None:
        super().__init__(f"Submitted code does not match for {subject_id}")
        self.subject_id = subject_id


class CodeExpiredError(ValidationError):
    def __init__(self, subject_id: int) -> None:
        super().__init__(f"Verification code for {subject_id} has expired")
        self.subject_id = subject_id


class TransportError(VerificationError):
    """An external call (mail relay, Discord API) failed. Never retried."""


class NotificationError(TransportError):
    pass


class RoleGrantError(TransportError):
    def __init__(self, role_id: int, message: str) -> None:
        super().__init__(message)
        self.role_id = role_id


class ConfigurationError(VerificationError):
    """Startup configuration is missing or malformed. Fatal."""


class RandomSourceError(VerificationError):
    """The system entropy source could not produce a code."""
