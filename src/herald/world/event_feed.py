"""Authoritative event feed contract.

The host may expose a log of definitive events ("X was killed by a
dragon").  Herald queries it by subject name before falling back to
heuristics.  The contract is versioned; a host without a feed passes
None and every lookup is permanently "no match".
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Protocol

FEED_CONTRACT_VERSION = 1


@dataclass(frozen=True)
class FeedRecord:
    """One entry in the host's event log."""

    code: str      # e.g. "dragonkill", "starvedeath"
    subject: str   # display name of the entity the event concerns
    message: str = ""


class EventFeed(Protocol):
    """Read-only lookup into the host's event log."""

    contract_version: int

    def records_for(self, subject: str) -> list[FeedRecord]:
        ...


class InMemoryEventFeed:
    """Bounded in-process event log, newest last."""

    contract_version = FEED_CONTRACT_VERSION

    def __init__(self, max_records: int = 200) -> None:
        self._records: list[FeedRecord] = []
        self._max = max_records
        self._lock = threading.Lock()

    def append(self, record: FeedRecord) -> None:
        with self._lock:
            self._records.append(record)
            if len(self._records) > self._max:
                del self._records[: len(self._records) - self._max]

    def records_for(self, subject: str) -> list[FeedRecord]:
        with self._lock:
            return [r for r in self._records if r.subject == subject]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
