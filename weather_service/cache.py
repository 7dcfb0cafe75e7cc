"""
Expiring in-memory cache with a fixed TTL and periodic sweep.
"""
import asyncio
import logging
import threading
import time
from typing import Any, Dict, Optional

from weather_service.metrics import cache_lookup_counter, cache_swept_counter

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class ExpiringCache:
    def __init__(self, ttl_seconds: int = 86400):
        self.ttl_seconds = ttl_seconds
        self._ttl_ms = ttl_seconds * 1000
        self._cache: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        """Get cached value, dropping the entry if it has expired."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                cache_lookup_counter.labels(result="miss").inc()
                return None

            if now_ms() > entry["expiry"]:
                del self._cache[key]
                cache_lookup_counter.labels(result="expired").inc()
                return None

        cache_lookup_counter.labels(result="hit").inc()
        return entry["value"]

    def set(self, key: str, value: Any) -> None:
        """Cache value, replacing any existing entry for key."""
        with self._lock:
            self._cache[key] = {"value": value, "expiry": now_ms() + self._ttl_ms}

    def delete(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> None:
        """Clear all cached data."""
        with self._lock:
            self._cache.clear()

    def sweep(self) -> int:
        """Remove every expired entry and return how many were removed."""
        now = now_ms()
        with self._lock:
            expired = [key for key, entry in self._cache.items() if now > entry["expiry"]]
            for key in expired:
                del self._cache[key]

        if expired:
            cache_swept_counter.inc(len(expired))
        logger.debug(f"Cache sweep removed {len(expired)} expired entries")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)


async def run_sweeper(cache: ExpiringCache, check_period_seconds: float) -> None:
    """Sweep expired entries every check period until cancelled."""
    while True:
        await asyncio.sleep(check_period_seconds)
        try:
            cache.sweep()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Cache sweep failed")
