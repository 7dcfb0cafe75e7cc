"""
Error taxonomy for weather lookups.
"""
from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    LOCATION_NOT_FOUND = "LOCATION_NOT_FOUND"
    EXTERNAL_API_ERROR = "EXTERNAL_API_ERROR"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS = {
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.LOCATION_NOT_FOUND: 404,
    ErrorKind.EXTERNAL_API_ERROR: 503,
}


class WeatherServiceError(Exception):
    """Base error carrying a kind and a machine-readable message key."""

    kind: ErrorKind = ErrorKind.EXTERNAL_API_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.value}: {self.message})"


class ValidationError(WeatherServiceError):
    kind = ErrorKind.VALIDATION_ERROR


class LocationNotFoundError(WeatherServiceError):
    kind = ErrorKind.LOCATION_NOT_FOUND


class UpstreamError(WeatherServiceError):
    kind = ErrorKind.EXTERNAL_API_ERROR


class ImplausibleReadingError(ValidationError):
    """Upstream payload failed validation; reported to clients as an upstream failure."""

    kind = ErrorKind.EXTERNAL_API_ERROR

    def __init__(self, detail: str, message: str = "weatherApiRequestFailed"):
        super().__init__(message)
        self.detail = detail

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.value}: {self.message}, {self.detail})"
