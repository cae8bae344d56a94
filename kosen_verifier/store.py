from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class PendingVerification:
    subject_id: int
    code: str
    email: str
    issued_at: datetime = field(default_factory=utc_now)

    def is_expired(self, ttl: timedelta | None, now: datetime | None = None) -> bool:
        if ttl is None:
            return False
        return (now or utc_now()) - self.issued_at >= ttl


class VerificationStore:
    """In-memory map of subject id to its single pending verification.

    Each operation takes the lock for its own duration only; callers never
    hold it across mail or Discord calls.
    """

    def __init__(self) -> None:
        self._records: dict[int, PendingVerification] = {}
        self._lock = asyncio.Lock()

    async def put(self, record: PendingVerification) -> None:
        async with self._lock:
            self._records[record.subject_id] = record

    async def get(self, subject_id: int) -> PendingVerification | None:
        async with self._lock:
            return self._records.get(subject_id)

    async def remove(
        self, subject_id: int, *, expected: PendingVerification | None = None
    ) -> bool:
        """Delete the record for ``subject_id``.

        With ``expected`` the record is only deleted if it is still that exact
        record, so a Start that raced in after a read is not lost.
        """
        async with self._lock:
            current = self._records.get(subject_id)
            if current is None:
                return False
            if expected is not None and current is not expected:
                return False
            del self._records[subject_id]
            return True

    async def count(self) -> int:
        async with self._lock:
            return len(self._records)
