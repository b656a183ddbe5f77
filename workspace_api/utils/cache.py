import copy
import threading
import time
from collections import OrderedDict
from typing import Any, Hashable, NamedTuple, Tuple


class CacheItem(NamedTuple):
    value: Any
    expires: float


class TTLCache:
    """
    In-memory response cache with per-entry expiry and LRU eviction.

    Values are deep-copied on the way in and out so callers can mutate what they
    get back without corrupting later hits. A hit pushes the expiry out to at
    least `refresh` seconds from now.
    """

    def __init__(
        self, max_items: int = 1000, refresh: float = 60.0, enabled: bool = True
    ) -> None:
        if max_items <= 0:
            raise ValueError("max_items must be positive")
        self.max_items = max_items
        self.refresh = refresh
        self.enabled = enabled
        self._data: "OrderedDict[Hashable, CacheItem]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired(time.monotonic())
            return len(self._data)

    def __contains__(self, key: Hashable) -> bool:
        if not self.enabled:
            return False
        with self._lock:
            item = self._data.get(key)
            return item is not None and item.expires > time.monotonic()

    def get(self, key: Hashable) -> Tuple[Any, bool]:
        if not self.enabled:
            return None, False
        now = time.monotonic()
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None, False
            if item.expires <= now:
                del self._data[key]
                return None, False
            self._data[key] = CacheItem(item.value, max(item.expires, now + self.refresh))
            self._data.move_to_end(key)
            return copy.deepcopy(item.value), True

    def set(self, key: Hashable, value: Any, ttl: float) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._data[key] = CacheItem(copy.deepcopy(value), time.monotonic() + ttl)
            self._data.move_to_end(key)
            while len(self._data) > self.max_items:
                self._data.popitem(last=False)

    def delete(self, key: Hashable) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def _purge_expired(self, now: float) -> None:
        for key in [k for k, item in self._data.items() if item.expires <= now]:
            del self._data[key]
