"""Open-Meteo weather forecasts."""

from typing import Any

import httpx
import structlog

logger = structlog.get_logger()

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"


async def get_forecast(latitude: float, longitude: float, timeout: float = 30.0) -> dict[str, Any]:
    """Current temperature, hourly temperatures and sunrise/sunset for a location."""
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "current": "temperature_2m",
        "hourly": "temperature_2m",
        "daily": "sunrise,sunset",
        "timezone": "auto",
    }
    async with httpx.AsyncClient(timeout=timeout) as client:
        try:
            response = await client.get(OPEN_METEO_URL, params=params)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("weather_request_error", latitude=latitude, longitude=longitude, error=str(e))
            raise
    return response.json()
