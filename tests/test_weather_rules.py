"""
Tests for the weather retrieval rules (cache tiers and fallbacks).
"""
from unittest.mock import Mock, patch

import pytest

from weather_service.cache import ExpiringCache, now_ms
from weather_service.errors import (
    ImplausibleReadingError,
    LocationNotFoundError,
    UpstreamError,
)
from weather_service.models import CachedReading, ReadingStatus, WeatherReading, cache_key
from weather_service.provider import WeatherApiClient
from weather_service.rules import WeatherService

MINUTE_MS = 60 * 1000


def _fresh_reading(temperature=18.2):
    return WeatherReading(
        temperature=temperature,
        unit="°C",
        location="London, City of London",
        timestamp="2024-01-15T15:00:00.000Z",
        status=ReadingStatus.ONLINE,
    )


class TestWeatherService:
    def setup_method(self):
        """Setup test fixtures."""
        self.cache = ExpiringCache(ttl_seconds=86400)
        self.client = Mock(spec=WeatherApiClient)
        self.service = WeatherService(self.cache, self.client)

    def _seed(self, age_minutes, location="London", unit="celsius", temperature=12.5):
        cached = CachedReading(
            temperature=temperature,
            unit="°C",
            location="London, City of London",
            timestamp="2024-01-15T14:30:00.000Z",
            cache_time=now_ms() - int(age_minutes * MINUTE_MS),
        )
        self.cache.set(cache_key(location, unit), cached)
        return cached


class TestFreshCache(TestWeatherService):
    def test_fresh_reading_served_without_upstream_call(self):
        cached = self._seed(age_minutes=10)

        reading = self.service.retrieve("London", "celsius")

        assert reading.status == ReadingStatus.ONLINE
        assert reading.temperature == cached.temperature
        assert reading.unit == cached.unit
        assert reading.location == cached.location
        assert reading.timestamp == cached.timestamp
        self.client.fetch_current.assert_not_called()

    def test_cache_is_keyed_by_unit(self):
        self._seed(age_minutes=1, unit="celsius")
        self.client.fetch_current.return_value = _fresh_reading()

        self.service.retrieve("London", "fahrenheit")

        self.client.fetch_current.assert_called_once_with("London", "fahrenheit")


class TestStaleCache(TestWeatherService):
    def test_stale_reading_outdated_when_upstream_fails(self):
        cached = self._seed(age_minutes=70)
        self.client.fetch_current.side_effect = UpstreamError("weatherApiRequestFailed")

        reading = self.service.retrieve("London", "celsius")

        assert reading.status == ReadingStatus.OUTDATED
        assert reading.temperature == cached.temperature

    def test_stale_reading_outdated_when_location_rejected(self):
        self._seed(age_minutes=70)
        self.client.fetch_current.side_effect = LocationNotFoundError("locationNotFound")

        reading = self.service.retrieve("London", "celsius")

        assert reading.status == ReadingStatus.OUTDATED

    def test_stale_reading_replaced_when_upstream_succeeds(self):
        self._seed(age_minutes=70)
        self.client.fetch_current.return_value = _fresh_reading(temperature=18.2)

        reading = self.service.retrieve("London", "celsius")

        assert reading.status == ReadingStatus.ONLINE
        assert reading.temperature == 18.2

        stored = self.cache.get(cache_key("London", "celsius"))
        assert stored.temperature == 18.2
        assert now_ms() - stored.cache_time < MINUTE_MS

    def test_stale_reading_does_not_hide_implausible_reading(self):
        self._seed(age_minutes=70)
        self.client.fetch_current.side_effect = ImplausibleReadingError("temperatureOutOfRange")

        with pytest.raises(ImplausibleReadingError):
            self.service.retrieve("London", "celsius")


class TestAgingCache(TestWeatherService):
    @pytest.mark.parametrize("age_minutes", [15, 30, 59])
    def test_aging_reading_offline_when_upstream_fails(self, age_minutes):
        cached = self._seed(age_minutes=age_minutes)
        self.client.fetch_current.side_effect = UpstreamError("weatherApiRequestFailed")

        reading = self.service.retrieve("London", "celsius")

        assert reading.status == ReadingStatus.OFFLINE
        assert reading.temperature == cached.temperature

    def test_exactly_sixty_minutes_is_offline_not_outdated(self):
        with patch("weather_service.cache.time.time", return_value=10_000.0):
            self.cache.set(
                cache_key("London", "celsius"),
                CachedReading(
                    temperature=12.5,
                    unit="°C",
                    location="London, City of London",
                    timestamp="2024-01-15T14:30:00.000Z",
                    cache_time=10_000_000 - 60 * MINUTE_MS,
                ),
            )
            self.client.fetch_current.side_effect = UpstreamError("weatherApiRequestFailed")

            reading = self.service.retrieve("London", "celsius")

        assert reading.status == ReadingStatus.OFFLINE

    def test_aging_reading_refreshed_when_upstream_succeeds(self):
        self._seed(age_minutes=30)
        self.client.fetch_current.return_value = _fresh_reading(temperature=19.0)

        reading = self.service.retrieve("London", "celsius")

        assert reading.status == ReadingStatus.ONLINE
        assert reading.temperature == 19.0
        assert self.cache.get(cache_key("London", "celsius")).temperature == 19.0

    def test_aging_reading_does_not_hide_implausible_reading(self):
        self._seed(age_minutes=30)
        self.client.fetch_current.side_effect = ImplausibleReadingError("temperatureOutOfRange")

        with pytest.raises(ImplausibleReadingError):
            self.service.retrieve("London", "celsius")


class TestEmptyCache(TestWeatherService):
    def test_upstream_error_propagates(self):
        self.client.fetch_current.side_effect = UpstreamError("weatherApiRequestFailed")

        with pytest.raises(UpstreamError):
            self.service.retrieve("London", "celsius")

    def test_location_not_found_propagates(self):
        self.client.fetch_current.side_effect = LocationNotFoundError("locationNotFound")

        with pytest.raises(LocationNotFoundError):
            self.service.retrieve("Nowhereville", "celsius")

    def test_fresh_fetch_is_cached(self):
        self.client.fetch_current.return_value = _fresh_reading()

        reading = self.service.retrieve("London", "celsius")

        assert reading.status == ReadingStatus.ONLINE
        stored = self.cache.get(cache_key("London", "celsius"))
        assert isinstance(stored, CachedReading)
        assert stored.temperature == reading.temperature

        # Second lookup is served from cache
        self.service.retrieve("London", "celsius")
        assert self.client.fetch_current.call_count == 1

    def test_failed_fetch_leaves_cache_empty(self):
        self.client.fetch_current.side_effect = UpstreamError("weatherApiRequestFailed")

        with pytest.raises(UpstreamError):
            self.service.retrieve("London", "celsius")

        assert self.cache.get(cache_key("London", "celsius")) is None


class TestWithRealClient:
    """End-to-end through the real client with requests.get mocked."""

    def setup_method(self):
        self.cache = ExpiringCache(ttl_seconds=86400)
        self.service = WeatherService(self.cache, WeatherApiClient(api_key="test-key"))

    @staticmethod
    def _response(temp_c, temp_f):
        response = Mock()
        response.ok = True
        response.status_code = 200
        response.json.return_value = {
            "location": {"name": "London", "region": "City of London", "country": "UK"},
            "current": {"temp_c": temp_c, "temp_f": temp_f, "last_updated": "2024-01-15 14:30"},
        }
        return response

    @patch("requests.get")
    def test_celsius_reading_rounded(self, mock_get):
        mock_get.return_value = self._response(21.34, 70.4)

        reading = self.service.retrieve("London", "celsius")

        assert reading.temperature == 21.3
        assert reading.unit == "°C"
        assert reading.status == ReadingStatus.ONLINE

    @patch("requests.get")
    def test_out_of_range_temperature_fails_with_empty_cache(self, mock_get):
        mock_get.return_value = self._response(65.0, 149.0)

        with pytest.raises(ImplausibleReadingError):
            self.service.retrieve("London", "celsius")

    @patch("requests.get")
    def test_out_of_range_temperature_fails_with_stale_cache(self, mock_get):
        self.cache.set(
            cache_key("London", "celsius"),
            CachedReading(
                temperature=12.5,
                unit="°C",
                location="London, City of London",
                timestamp="2024-01-15T14:30:00.000Z",
                cache_time=now_ms() - 90 * MINUTE_MS,
            ),
        )
        mock_get.return_value = self._response(65.0, 149.0)

        with pytest.raises(ImplausibleReadingError):
            self.service.retrieve("London", "celsius")

    def test_missing_api_key_with_aging_cache_serves_offline(self):
        service = WeatherService(self.cache, WeatherApiClient(api_key=None))
        self.cache.set(
            cache_key("London", "celsius"),
            CachedReading(
                temperature=12.5,
                unit="°C",
                location="London, City of London",
                timestamp="2024-01-15T14:30:00.000Z",
                cache_time=now_ms() - 20 * MINUTE_MS,
            ),
        )

        reading = service.retrieve("London", "celsius")

        assert reading.status == ReadingStatus.OFFLINE
