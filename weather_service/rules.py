"""
Weather retrieval rules: cache freshness, upstream refresh and degraded fallbacks.
"""
import logging
from typing import Optional

from weather_service.cache import ExpiringCache, now_ms
from weather_service.errors import LocationNotFoundError, UpstreamError
from weather_service.metrics import weather_lookup_counter
from weather_service.models import CachedReading, ReadingStatus, WeatherReading, cache_key
from weather_service.provider import WeatherApiClient

logger = logging.getLogger(__name__)

FRESH_MS = 15 * 60 * 1000
STALE_MS = 60 * 60 * 1000

# Failures that a cached reading may stand in for
RECOVERABLE_ERRORS = (UpstreamError, LocationNotFoundError)


class WeatherService:
    def __init__(self, cache: ExpiringCache, client: WeatherApiClient):
        self.cache = cache
        self.client = client

    def retrieve(self, location: str, unit: str) -> WeatherReading:
        """
        Return the current reading for a location, serving from cache when
        fresh and falling back to cached data when the upstream fails.

        Tiers by cache age:
          < 15 min   -> cached reading, "online", no upstream call
          > 60 min   -> refetch; on failure cached reading as "outdated"
          otherwise  -> refetch; on failure cached reading as "offline",
                        or the error when nothing is cached
        """
        try:
            reading = self._retrieve(location, unit)
        except Exception:
            weather_lookup_counter.labels(status="error").inc()
            raise

        weather_lookup_counter.labels(status=reading.status.value).inc()
        return reading

    def _retrieve(self, location: str, unit: str) -> WeatherReading:
        cached: Optional[CachedReading] = self.cache.get(cache_key(location, unit))

        if cached is not None:
            age_ms = now_ms() - cached.cache_time

            if age_ms < FRESH_MS:
                return cached.to_reading(ReadingStatus.ONLINE)

            if age_ms > STALE_MS:
                try:
                    return self._fetch_and_store(location, unit)
                except RECOVERABLE_ERRORS as e:
                    self._log_fallback(location, unit, ReadingStatus.OUTDATED, e)
                    return cached.to_reading(ReadingStatus.OUTDATED)

        try:
            return self._fetch_and_store(location, unit)
        except RECOVERABLE_ERRORS as e:
            if cached is None:
                raise
            self._log_fallback(location, unit, ReadingStatus.OFFLINE, e)
            return cached.to_reading(ReadingStatus.OFFLINE)

    def _fetch_and_store(self, location: str, unit: str) -> WeatherReading:
        reading = self.client.fetch_current(location, unit)
        self.cache.set(
            cache_key(location, unit),
            CachedReading(
                temperature=reading.temperature,
                unit=reading.unit,
                location=reading.location,
                timestamp=reading.timestamp,
                cache_time=now_ms(),
            ),
        )
        return reading

    def _log_fallback(self, location: str, unit: str, status: ReadingStatus, error: Exception):
        logger.warning(
            f"Serving {status.value} reading for '{location}' after fetch failure: {error!r}",
            extra={"location": location, "unit": unit, "status": status.value},
        )
