"""
Data models for weather readings.
"""
from enum import Enum

from pydantic import BaseModel, ConfigDict

CELSIUS = "celsius"
FAHRENHEIT = "fahrenheit"
SUPPORTED_UNITS = (CELSIUS, FAHRENHEIT)


class ReadingStatus(str, Enum):
    ONLINE = "online"
    OUTDATED = "outdated"
    OFFLINE = "offline"


class WeatherReading(BaseModel):
    model_config = ConfigDict(frozen=True)

    temperature: float
    unit: str
    location: str
    timestamp: str
    status: ReadingStatus


class CachedReading(BaseModel):
    model_config = ConfigDict(frozen=True)

    temperature: float
    unit: str
    location: str
    timestamp: str
    cache_time: int  # epoch milliseconds

    def to_reading(self, status: ReadingStatus) -> WeatherReading:
        return WeatherReading(
            temperature=self.temperature,
            unit=self.unit,
            location=self.location,
            timestamp=self.timestamp,
            status=status,
        )


def cache_key(location: str, unit: str) -> str:
    """Generate cache key for a (location, unit) pair."""
    return f"weather_{location}_{unit}"
