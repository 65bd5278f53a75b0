"""In-memory record of when each digest was last sent.

One ledger per digest category, each with its own cool-down. Entries are
keyed by (recipient, donation) and live only as long as the process: after a
restart a digest may be sent again early, which is accepted.
"""

import threading
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta


def utcnow() -> datetime:
    return datetime.now(UTC)


class NotificationLedger:
    def __init__(self, cooldown: timedelta, clock: Callable[[], datetime] = utcnow) -> None:
        self.cooldown = cooldown
        self._clock = clock
        self._sent: dict[tuple[str, int], datetime] = {}
        # Ticks run in worker threads and manual triggers in the request threadpool
        self._lock = threading.Lock()

    def now(self) -> datetime:
        return self._clock()

    def last_sent(self, recipient_id: str, donation_id: int) -> datetime | None:
        with self._lock:
            return self._sent.get((recipient_id, donation_id))

    def is_due(self, recipient_id: str, donation_id: int, now: datetime | None = None) -> bool:
        """True if never sent, or last sent at least one cool-down ago."""
        last = self.last_sent(recipient_id, donation_id)
        if last is None:
            return True
        return (now or self.now()) - last >= self.cooldown

    def stamp(self, recipient_id: str, donation_ids: Iterable[int], at: datetime | None = None) -> None:
        at = at or self.now()
        with self._lock:
            for donation_id in donation_ids:
                self._sent[(recipient_id, donation_id)] = at

    def clear(self) -> None:
        with self._lock:
            self._sent.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sent)
