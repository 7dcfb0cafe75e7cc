"""
Configuration read from environment variables.
"""
import os
from dataclasses import dataclass
from typing import List, Optional

DEFAULT_WEATHER_API_URL = "https://api.weatherapi.com/v1"


def _env_csv(name: str, default: str = "") -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    weather_api_key: Optional[str]
    weather_api_url: str = DEFAULT_WEATHER_API_URL
    weather_api_timeout_seconds: float = 10.0
    cache_ttl_seconds: int = 86400
    cache_check_period_seconds: float = 600.0
    cors_origins: tuple = ("*",)
    log_level: str = "INFO"
    environment: str = "local"


def load_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings(
        weather_api_key=os.getenv("WEATHER_API_KEY") or None,
        weather_api_url=os.getenv("WEATHER_API_URL", DEFAULT_WEATHER_API_URL).rstrip("/"),
        weather_api_timeout_seconds=float(os.getenv("WEATHER_API_TIMEOUT_SECONDS", "10")),
        cache_ttl_seconds=int(os.getenv("CACHE_TTL_SECONDS", "86400")),
        cache_check_period_seconds=float(os.getenv("CACHE_CHECK_PERIOD_SECONDS", "600")),
        cors_origins=tuple(_env_csv("CORS_ORIGINS", "*")),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        environment=os.getenv("DEPLOYMENT_ENV", "local"),
    )
