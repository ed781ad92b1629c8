"""Time sources for the ledger."""

import threading
from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


class ManualClock:
    """Clock that only moves when told to.

    Used to replay histories with controlled timestamps; the ledger requires
    timestamps per account to be non-decreasing, so ``set`` refuses to go back.
    """

    def __init__(self, start: datetime) -> None:
        if start.tzinfo is None:
            raise ValueError("ManualClock needs a timezone-aware start")
        self._now = start
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        return self._now

    def set(self, moment: datetime) -> datetime:
        with self._lock:
            if moment < self._now:
                raise ValueError(f"Clock cannot move back from {self._now} to {moment}")
            self._now = moment
            return self._now

    def advance(self, **kwargs: float) -> datetime:
        """Move forward by a ``timedelta(**kwargs)``."""
        with self._lock:
            self._now = self._now + timedelta(**kwargs)
            return self._now
