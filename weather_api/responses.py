"""
Standard response envelopes.
"""
from typing import Any, Dict

from pydantic import BaseModel

from weather_service.models import WeatherReading


class WeatherSuccessResponse(BaseModel):
    data: WeatherReading
    status: str = "success"


class ErrorResponse(BaseModel):
    code: str
    message: str
    status: int


def success_response(data: Any) -> Dict[str, Any]:
    return {"data": data, "status": "success"}


def error_response(message: str, code: str, status: int) -> Dict[str, Any]:
    return {"code": code, "message": message, "status": status}
