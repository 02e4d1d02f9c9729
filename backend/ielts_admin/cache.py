"""Cache for AI completion output, keyed on a digest of the normalized input."""

from __future__ import annotations
import hashlib
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple


@dataclass(frozen=True)
class CacheKey:
    digest: str
    normalized: str


def normalize_input(text: str) -> str:
    return " ".join((text or "").split())


def derive_key(prompt: str, text: str) -> CacheKey:
    normalized = normalize_input(prompt) + "\x00" + normalize_input(text)
    digest = hashlib.sha256(normalized.encode("utf-8")).hexdigest()
    return CacheKey(digest=digest, normalized=normalized)


class CompletionCache(Protocol):
    def get(self, key: CacheKey) -> Optional[str]: ...

    def put(self, key: CacheKey, value: str) -> None: ...


class MemoryCache:
    """Bounded LRU; a hit also requires the stored input to match, so two
    inputs that share a digest never read each other's output."""

    def __init__(self, max_entries: int = 256) -> None:
        self.max_entries = max(1, max_entries)
        self._entries: "OrderedDict[str, Tuple[str, str]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key.digest)
            if entry is None or entry[0] != key.normalized:
                return None
            self._entries.move_to_end(key.digest)
            return entry[1]

    def put(self, key: CacheKey, value: str) -> None:
        with self._lock:
            self._entries[key.digest] = (key.normalized, value)
            self._entries.move_to_end(key.digest)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
