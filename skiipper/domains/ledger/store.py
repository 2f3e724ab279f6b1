"""In-memory registry of per-session ledgers."""

from __future__ import annotations

import logging
import secrets
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Optional, Tuple

from skiipper.domains.ledger.ledger import SavingsLedger

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    ledger: SavingsLedger
    touched_at: float


class LedgerStore:
    """Holds one ``SavingsLedger`` per browser session.

    Ledgers are only read or mutated inside ``checkout`` while the store lock
    is held. Entries idle for longer than ``ttl_seconds`` are dropped, and the
    least recently used entry goes when ``max_sessions`` is reached.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_sessions: int = 10000,
        factory: Callable[[], SavingsLedger] = SavingsLedger,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_sessions = max_sessions
        self._factory = factory
        self._clock = clock
        self._entries: Dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @contextmanager
    def checkout(self, ledger_id: Optional[str]) -> Iterator[Tuple[str, SavingsLedger]]:
        """Yield ``(ledger_id, ledger)``, creating a fresh ledger for unknown or expired ids."""
        with self._lock:
            now = self._clock()
            self._evict_expired(now)
            entry = self._entries.get(ledger_id) if ledger_id else None
            if entry is None:
                ledger_id, entry = self._create(now)
            entry.touched_at = now
            yield ledger_id, entry.ledger

    def discard(self, ledger_id: str) -> bool:
        with self._lock:
            return self._entries.pop(ledger_id, None) is not None

    def _create(self, now: float) -> Tuple[str, _Entry]:
        if len(self._entries) >= self.max_sessions:
            oldest = min(self._entries, key=lambda key: self._entries[key].touched_at)
            del self._entries[oldest]
            logger.warning("Ledger store full; evicted least recently used session")
        ledger_id = secrets.token_urlsafe(16)
        entry = _Entry(ledger=self._factory(), touched_at=now)
        self._entries[ledger_id] = entry
        return ledger_id, entry

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if now - entry.touched_at > self.ttl_seconds]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info("Evicted %d idle ledger sessions", len(expired))
