# app/core/cache.py

import time
from typing import Any, Awaitable, Callable, Optional

from loguru import logger


class TTLCache:
    """
    In-memory key/value cache with per-entry TTL.

    Expiry is checked on read against a monotonic clock; nothing runs in the
    background. One instance is created by the application and handed to
    whoever needs it, so tests can build their own.
    """

    def __init__(self, default_ttl: int = 3600, clock: Callable[[], float] = time.monotonic) -> None:
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        self._entries[key] = (value, self._clock() + ttl)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def delete_prefix(self, prefix: str) -> None:
        for key in [k for k in self._entries if k.startswith(prefix)]:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        ttl: Optional[int] = None,
    ) -> Any:
        """Return the cached value, or await ``factory`` and cache a non-None result."""
        cached = self.get(key)
        if cached is not None:
            logger.debug(f"Cache HIT: {key}")
            return cached

        logger.debug(f"Cache MISS: {key}")
        value = await factory()
        if value is not None:
            self.set(key, value, ttl)
        return value


class CacheKeys:
    FACULTIES = "faculties:all"

    @staticmethod
    def faculty(faculty_id) -> str:
        return f"faculty:{faculty_id}"

    @staticmethod
    def departments(faculty_id) -> str:
        return f"departments:faculty:{faculty_id}"

    @staticmethod
    def level(level_id) -> str:
        return f"level:{level_id}"
