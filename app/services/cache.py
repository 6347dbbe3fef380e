# app/services/cache.py
from collections import OrderedDict
from typing import Optional

from app.core.logger import logger


class ReverseGeocodeCache:
    """
    Process-wide memo of coordinate -> place name.

    Keys are coordinates rounded to 3 decimals (~110 m), so nearby points
    share one entry. Size is bounded; the least recently used entry is
    evicted first. Concurrent writers store the same value for the same key,
    so lost updates are harmless.
    """

    def __init__(self, max_entries: int = 10_000) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, str]" = OrderedDict()

    @staticmethod
    def make_key(lat: float, lng: float) -> str:
        return f"{lat:.3f},{lng:.3f}"

    def get(self, lat: float, lng: float) -> Optional[str]:
        key = self.make_key(lat, lng)
        value = self._entries.get(key)
        if value is not None:
            self._entries.move_to_end(key)
        return value

    def set(self, lat: float, lng: float, name: str) -> None:
        key = self.make_key(lat, lng)
        self._entries[key] = name
        self._entries.move_to_end(key)

        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Reverse-geocode cache full, evicted {}", evicted)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
