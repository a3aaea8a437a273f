"""Owned cache for geocode verification results."""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Optional

from ..naming import city_state_key
from .models import VerificationResult


class VerificationCache:
    """Thread-safe cache keyed by normalized city and state code.

    Instances are created by whoever owns the verifier (one per process, one
    per test) and can be cleared explicitly. ``max_entries`` bounds memory by
    evicting the least recently used entry.
    """

    def __init__(self, max_entries: int | None = 10_000) -> None:
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, VerificationResult]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    @staticmethod
    def key_for(city: str, state: str) -> str:
        return city_state_key(city, state)

    def get(self, city: str, state: str) -> Optional[VerificationResult]:
        key = self.key_for(city, state)
        with self._lock:
            result = self._entries.get(key)
            if result is not None:
                self._entries.move_to_end(key)
            return result

    def put(self, city: str, state: str, result: VerificationResult) -> None:
        key = self.key_for(city, state)
        with self._lock:
            self._entries[key] = result
            self._entries.move_to_end(key)
            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
