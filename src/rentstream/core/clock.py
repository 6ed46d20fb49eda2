"""Injectable time source used by expiry checks."""

from __future__ import annotations

from datetime import datetime

from rentstream.db.time import utcnow


class Clock:
    """Wall-clock time source returning timezone-aware UTC datetimes."""

    def now(self) -> datetime:
        return utcnow()

    def timestamp(self) -> int:
        """Return the current Unix time in whole seconds."""
        return int(self.now().timestamp())


system_clock = Clock()
