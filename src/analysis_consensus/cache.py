"""Result cache keyed by analysis input content.

Bounded, insertion-ordered and time-expiring. Entries are promoted on read,
so eviction removes the least recently used entry. Expiry is checked lazily
when an entry is read.
"""

import json
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Union

from .config import CacheConfig
from .schema import AnalysisInput, ClassificationResult


def content_hash(text: str) -> int:
    """32-bit signed rolling hash (h * 31 + code) over a string."""
    h = 0
    for char in text:
        h = (h * 31 + ord(char)) & 0xFFFFFFFF
    return h - 0x100000000 if h >= 0x80000000 else h


def make_key(analysis_input: Union[AnalysisInput, Mapping[str, Any]]) -> str:
    """Derive the cache key for an analysis input.

    The key combines the description, file count, sorted file names and a
    hash of the concatenated file contents. Distinct inputs may collide on
    the hash; the names and count keep that rare.
    """
    if not isinstance(analysis_input, AnalysisInput):
        analysis_input = AnalysisInput.model_validate(analysis_input)

    files = analysis_input.files
    key_data = {
        "description": analysis_input.description,
        "file_count": len(files),
        "file_names": sorted(f.name for f in files),
        "content_hash": str(content_hash("".join(f.content for f in files))),
    }
    return json.dumps(key_data)


@dataclass
class CacheEntry:
    key: str
    result: ClassificationResult
    inserted_at: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now - self.inserted_at >= self.ttl


class ResultCache:
    """Thread-safe LRU cache of classification results with a TTL.

    Results are deep-copied on the way in and on the way out, so callers
    never share state with the cache.
    """

    def __init__(
        self,
        max_entries: int = 100,
        ttl_seconds: float = 30 * 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @classmethod
    def from_config(
        cls, config: CacheConfig, clock: Callable[[], float] = time.monotonic
    ) -> "ResultCache":
        return cls(max_entries=config.max_entries, ttl_seconds=config.ttl_seconds, clock=clock)

    def get(
        self, analysis_input: Union[AnalysisInput, Mapping[str, Any]]
    ) -> Optional[ClassificationResult]:
        """Look up a cached result; None on miss or expiry."""
        key = make_key(analysis_input)

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.expired(self._clock()):
                del self._entries[key]
                entry = None

            if entry is None:
                self._misses += 1
                return None

            self._entries.move_to_end(key)
            self._hits += 1
            return entry.result.model_copy(deep=True)

    def set(
        self,
        analysis_input: Union[AnalysisInput, Mapping[str, Any]],
        result: ClassificationResult,
    ) -> None:
        """Store a result, evicting the oldest entry when full."""
        key = make_key(analysis_input)
        entry = CacheEntry(
            key=key,
            result=result.model_copy(deep=True),
            inserted_at=self._clock(),
            ttl=self.ttl_seconds,
        )

        with self._lock:
            if key in self._entries:
                # Replaced in place: keeps its position, never evicts
                self._entries[key] = entry
                return

            while len(self._entries) >= self.max_entries:
                self._entries.popitem(last=False)
            self._entries[key] = entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "size": len(self._entries),
                "max_entries": self.max_entries,
                "ttl_seconds": self.ttl_seconds,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self._hits / lookups if lookups else 0.0,
            }
