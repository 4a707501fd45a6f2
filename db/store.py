"""
In-memory dataset store.
Lookup by id for the lifetime of the process, bounded by an LRU limit and an
optional TTL so uploads cannot grow memory without limit.
Uses STORE_MAX_ENTRIES / STORE_TTL_SECONDS from the environment.
"""
import logging
import os
import threading
import time
from collections import OrderedDict
from typing import Callable, Optional, Tuple

from dotenv import load_dotenv

from db.models import Dataset

load_dotenv()

logger = logging.getLogger(__name__)

STORE_MAX_ENTRIES = int(os.getenv("STORE_MAX_ENTRIES", "128"))
STORE_TTL_SECONDS = float(os.getenv("STORE_TTL_SECONDS", "0"))


class DatasetStore:
    """
    Thread-safe get/put/delete over immutable Datasets.
    - max_entries: evict least recently used beyond this count (0 = unbounded).
    - ttl_seconds: entries older than this are dropped on access (0 = never).
    """

    def __init__(
        self,
        max_entries: int = STORE_MAX_ENTRIES,
        ttl_seconds: float = STORE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, Dataset]]" = OrderedDict()
        self._lock = threading.Lock()

    def _expired(self, stored_at: float) -> bool:
        return self.ttl_seconds > 0 and self._clock() - stored_at > self.ttl_seconds

    def get(self, dataset_id: str) -> Optional[Dataset]:
        """Return the dataset or None. Marks it most recently used."""
        with self._lock:
            entry = self._entries.get(dataset_id)
            if entry is None:
                return None
            stored_at, dataset = entry
            if self._expired(stored_at):
                del self._entries[dataset_id]
                logger.info("store_expired: id=%s", dataset_id)
                return None
            self._entries.move_to_end(dataset_id)
            return dataset

    def put(self, dataset: Dataset) -> None:
        with self._lock:
            self._entries[dataset.id] = (self._clock(), dataset)
            self._entries.move_to_end(dataset.id)
            while self.max_entries > 0 and len(self._entries) > self.max_entries:
                evicted_id, _ = self._entries.popitem(last=False)
                logger.info("store_evicted: id=%s", evicted_id)

    def delete(self, dataset_id: str) -> bool:
        """Remove a dataset. Returns False if it was not stored."""
        with self._lock:
            return self._entries.pop(dataset_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, dataset_id: str) -> bool:
        return self.get(dataset_id) is not None


_store: Optional[DatasetStore] = None


def get_store() -> DatasetStore:
    """Process-wide store (lazy)."""
    global _store
    if _store is None:
        _store = DatasetStore()
    return _store
