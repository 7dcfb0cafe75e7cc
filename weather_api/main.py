"""
FastAPI application exposing the current-weather endpoint.
"""
import asyncio
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager, suppress

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from weather_service.cache import ExpiringCache, run_sweeper
from weather_service.config import load_settings
from weather_service.errors import WeatherServiceError
from weather_service.metrics import (
    get_content_type,
    get_metrics,
    health_check_counter,
    request_counter,
    request_duration,
    set_app_info,
)
from weather_service.models import CELSIUS, SUPPORTED_UNITS
from weather_service.provider import WeatherApiClient
from weather_service.rules import WeatherService

from .logging_config import log_lookup, setup_logging
from .responses import ErrorResponse, WeatherSuccessResponse, error_response, success_response

APP_VERSION = "1.0.0"
WEATHER_PATH = "/api/v1/external/weather"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan event handler."""
    # Startup
    settings = load_settings()
    setup_logging(settings.log_level)
    logger.info("Weather proxy starting up")

    if settings.weather_api_key:
        logger.info("WEATHER_API_KEY is configured")
    else:
        logger.warning("WEATHER_API_KEY is not set; upstream fetches will fail")

    cache = ExpiringCache(ttl_seconds=settings.cache_ttl_seconds)
    client = WeatherApiClient(
        api_key=settings.weather_api_key,
        base_url=settings.weather_api_url,
        timeout=settings.weather_api_timeout_seconds,
    )
    app.state.weather_cache = cache
    app.state.weather_service = WeatherService(cache, client)

    sweep_task = asyncio.create_task(
        run_sweeper(cache, settings.cache_check_period_seconds), name="cache-sweeper"
    )
    app.state.sweep_task = sweep_task

    set_app_info(version=APP_VERSION, environment=settings.environment)
    logger.info(
        f"Configuration: WEATHER_API_URL={settings.weather_api_url}, "
        f"CACHE_TTL_SECONDS={settings.cache_ttl_seconds}, "
        f"CACHE_CHECK_PERIOD_SECONDS={settings.cache_check_period_seconds}"
    )
    logger.info("Weather proxy startup complete")

    try:
        yield
    finally:
        # Shutdown
        logger.info("Weather proxy shutting down")
        sweep_task.cancel()
        with suppress(asyncio.CancelledError):
            await sweep_task
        cache.clear()
        logger.info("Weather proxy shutdown complete")


app = FastAPI(
    title="Weather Proxy API",
    description="Current weather lookups with caching and offline fallback",
    version=APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(load_settings().cors_origins),
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """
    Tag each request with an id and collect Prometheus metrics for it.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    if request.url.path == "/metrics":
        return await call_next(request)

    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    endpoint = request.url.path
    if endpoint not in (WEATHER_PATH, "/health"):
        endpoint = "other"

    request_counter.labels(
        method=request.method, endpoint=endpoint, status_code=response.status_code
    ).inc()
    request_duration.labels(method=request.method, endpoint=endpoint).observe(duration)

    response.headers["X-Request-ID"] = request_id
    return response


def get_weather_service(request: Request) -> WeatherService:
    return request.app.state.weather_service


def _single_param(request: Request, name: str):
    """Return the parameter value, or None when absent, empty or repeated."""
    values = request.query_params.getlist(name)
    if len(values) != 1 or not values[0]:
        return None
    return values[0]


def _error(message: str, code: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content=error_response(message, code, status_code)
    )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    health_check_counter.labels(status="ok").inc()
    return {"ok": True}


@app.get("/metrics")
async def metrics_endpoint():
    """Prometheus metrics endpoint."""
    return Response(content=get_metrics(), media_type=get_content_type())


@app.get(
    WEATHER_PATH,
    response_model=WeatherSuccessResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
def get_weather(request: Request, service: WeatherService = Depends(get_weather_service)):
    """
    Current temperature for a location.

    Query parameters: location (required), unit (celsius | fahrenheit, default celsius).
    """
    request_id = request.state.request_id
    start_time = time.time()

    location = _single_param(request, "location")
    if location is None:
        return _error("locationRequired", "VALIDATION_ERROR", status.HTTP_400_BAD_REQUEST)

    unit = CELSIUS
    if "unit" in request.query_params:
        unit = _single_param(request, "unit")
    if unit not in SUPPORTED_UNITS:
        return _error("invalidUnit", "VALIDATION_ERROR", status.HTTP_400_BAD_REQUEST)

    try:
        reading = service.retrieve(location, unit)
    except WeatherServiceError as e:
        duration_ms = int((time.time() - start_time) * 1000)
        log_lookup(
            logger, request_id, location, unit, duration_ms, "error",
            error=f"{e.kind.value}/{e.message}",
        )
        return _error(e.message, e.kind.value, e.kind.http_status)

    duration_ms = int((time.time() - start_time) * 1000)
    log_lookup(logger, request_id, location, unit, duration_ms, reading.status.value)
    return success_response(reading.model_dump(mode="json"))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Generic fallback for errors the handlers do not map."""
    logger.exception(
        f"Unexpected error: {exc}",
        extra={"request_id": getattr(request.state, "request_id", None)},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response(
            "internalServerError",
            "INTERNAL_SERVER_ERROR",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        ),
    )


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run("weather_api.main:app", host="0.0.0.0", port=port, log_level="info", reload=False)
