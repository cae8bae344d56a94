"""Discord runtime for the Kosen email verification gate."""

__all__ = ["config", "verification"]
