"""Weather tool."""

from typing import Any

from pydantic import BaseModel

from agentchat.ai.tools.base import ToolContext, ToolDefinition
from agentchat.integrations.weather import get_forecast


class WeatherParams(BaseModel):
    latitude: float
    longitude: float


async def _get_weather(params: WeatherParams, context: ToolContext) -> dict[str, Any]:
    return await get_forecast(params.latitude, params.longitude)


def weather_tool() -> ToolDefinition:
    return ToolDefinition(
        name="getWeather",
        description="Get the current weather at a location",
        parameters=WeatherParams,
        execute=_get_weather,
    )
