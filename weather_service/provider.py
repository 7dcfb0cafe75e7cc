"""
Current-conditions client for the upstream weather API.
"""
import logging
import math
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import requests

from weather_service.errors import (
    ImplausibleReadingError,
    LocationNotFoundError,
    UpstreamError,
    WeatherServiceError,
)
from weather_service.metrics import upstream_fetch_counter, upstream_fetch_duration
from weather_service.models import FAHRENHEIT, ReadingStatus, WeatherReading

logger = logging.getLogger(__name__)

MIN_TEMPERATURE_C = -90.0
MAX_TEMPERATURE_C = 60.0


class WeatherApiClient:
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.weatherapi.com/v1",
        timeout: float = 10.0,
    ):
        self.api_key = api_key
        self.current_url = f"{base_url.rstrip('/')}/current.json"
        self.timeout = timeout

    def fetch_current(self, location: str, unit: str) -> WeatherReading:
        """
        Fetch current conditions for a free-text location.

        Raises UpstreamError, LocationNotFoundError or ImplausibleReadingError.
        """
        if not self.api_key:
            upstream_fetch_counter.labels(outcome="not_configured").inc()
            raise UpstreamError("weatherApiKeyNotConfigured")

        start_time = time.time()
        try:
            params = {"key": self.api_key, "q": location, "aqi": "no"}
            response = requests.get(self.current_url, params=params, timeout=self.timeout)

            if not response.ok:
                if response.status_code == 400:
                    raise LocationNotFoundError("locationNotFound")
                logger.warning(
                    f"Weather API returned HTTP {response.status_code} for '{location}'"
                )
                raise UpstreamError("weatherApiRequestFailed")

            reading = self._parse_current(response.json(), unit)

        except WeatherServiceError as e:
            outcome = "implausible" if isinstance(e, ImplausibleReadingError) else e.kind.value.lower()
            upstream_fetch_counter.labels(outcome=outcome).inc()
            raise
        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            logger.error(f"Weather API error: {e}")
            upstream_fetch_counter.labels(outcome="failed").inc()
            raise UpstreamError("weatherApiRequestFailed") from e
        finally:
            upstream_fetch_duration.observe(time.time() - start_time)

        upstream_fetch_counter.labels(outcome="success").inc()
        return reading

    def _parse_current(self, data: Dict[str, Any], unit: str) -> WeatherReading:
        """Transform the provider payload into a reading."""
        current = data["current"]
        place = data["location"]

        temp_c = float(current["temp_c"])
        if unit == FAHRENHEIT:
            temperature = float(current["temp_f"])
            unit_symbol = "°F"
        else:
            temperature = temp_c
            unit_symbol = "°C"

        if not MIN_TEMPERATURE_C <= temp_c <= MAX_TEMPERATURE_C:
            logger.warning(f"Weather API returned implausible temperature {temp_c}°C")
            raise ImplausibleReadingError("temperatureOutOfRange")

        region = place.get("region") or place.get("country")
        return WeatherReading(
            temperature=round_half_up(temperature),
            unit=unit_symbol,
            location=f"{place['name']}, {region}",
            timestamp=self._iso_timestamp(current, place.get("tz_id")),
            status=ReadingStatus.ONLINE,
        )

    def _iso_timestamp(self, current: Dict[str, Any], tz_id: Optional[str] = None) -> str:
        """
        Convert the provider's last-updated time to ISO-8601 UTC.

        `last_updated` is wall-clock time at the location; it is read in the
        location's `tz_id` and only taken as UTC when no zone is given.
        """
        epoch = current.get("last_updated_epoch")
        if epoch is not None:
            updated = datetime.fromtimestamp(int(epoch), tz=timezone.utc)
        else:
            local = datetime.strptime(current["last_updated"], "%Y-%m-%d %H:%M")
            updated = local.replace(tzinfo=_zone(tz_id)).astimezone(timezone.utc)
        return updated.strftime("%Y-%m-%dT%H:%M:%S.") + f"{updated.microsecond // 1000:03d}Z"


def round_half_up(value: float, digits: int = 1) -> float:
    """Round to the given number of decimals, halves going up."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _zone(tz_id: Optional[str]):
    if not tz_id:
        return timezone.utc
    try:
        return ZoneInfo(tz_id)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown time zone '{tz_id}', reading last_updated as UTC")
        return timezone.utc
