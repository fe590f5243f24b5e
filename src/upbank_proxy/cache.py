"""
In-memory TTL cache for the flattened transaction dataset.

Holds a single CacheEntry (rows + CSV text). A refresh builds a complete new
entry and swaps it in with one assignment, so readers never observe rows and
CSV from different fetches. Concurrent misses share one refresh.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Tuple

from upbank_proxy.csv_export import to_csv
from upbank_proxy.logging_config import get_logger
from upbank_proxy.schemas import FlatTransaction
from upbank_proxy.sources import TransactionSource
from upbank_proxy.transform import flatten

logger = get_logger("upbank_proxy.cache")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheEntry:
    rows: Tuple[FlatTransaction, ...]
    csv_text: str
    fetched_at: datetime


class TransactionCache:
    def __init__(
        self,
        source: TransactionSource,
        ttl: timedelta = timedelta(minutes=30),
        clock: Clock = utc_now,
    ):
        self.source = source
        self.ttl = ttl
        self.clock = clock
        self._entry: Optional[CacheEntry] = None
        self._lock = asyncio.Lock()

    def is_fresh(self, entry: Optional[CacheEntry]) -> bool:
        if entry is None:
            return False
        return self.clock() - entry.fetched_at < self.ttl

    def peek(self) -> Optional[CacheEntry]:
        return self._entry

    def invalidate(self) -> None:
        self._entry = None

    async def _refresh(self) -> CacheEntry:
        started = self.clock()
        raw = await self.source.fetch_all_transactions()
        rows = tuple(flatten(raw))
        entry = CacheEntry(rows=rows, csv_text=to_csv(rows), fetched_at=self.clock())
        self._entry = entry
        logger.info(
            "Transaction cache refreshed from %s: %d rows in %.2fs",
            self.source.name,
            len(rows),
            (entry.fetched_at - started).total_seconds(),
        )
        return entry

    async def get_or_refresh(self) -> CacheEntry:
        """
        Return the cached entry while it is fresh, otherwise refresh it.
        """
        entry = self._entry
        if self.is_fresh(entry):
            return entry

        async with self._lock:
            # another caller may have refreshed while we waited
            entry = self._entry
            if self.is_fresh(entry):
                return entry
            logger.info("Transaction cache miss; refreshing")
            return await self._refresh()
