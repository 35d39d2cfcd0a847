"""Weather forecast from Open-Meteo.

No API key is needed. The forecast is passed to the summarizer as compact
JSON; the prompt decides what is worth mentioning.
"""

import asyncio
import json
import logging

import aiohttp
from pydantic import ValidationError

from config import Config
from fetchers.utils import get_json, http_session
from models.sources import WeatherForecast

logger = logging.getLogger(__name__)

FORECAST_URL = "https://api.open-meteo.com/v1/forecast"

DAILY_FIELDS = [
    "precipitation_probability_max", "temperature_2m_max", "temperature_2m_min",
    "sunrise", "sunset", "sunshine_duration", "uv_index_max", "precipitation_hours",
    "precipitation_sum", "wind_speed_10m_max", "wind_gusts_10m_max",
]

HOURLY_FIELDS = [
    "temperature_2m", "precipitation_probability", "precipitation", "rain",
    "showers", "cloud_cover", "wind_speed_10m",
]


def forecast_params(config: Config) -> dict[str, str]:
    return {
        "latitude": str(config.latitude),
        "longitude": str(config.longitude),
        "timezone": "auto",
        "forecast_days": "1",
        "daily": ",".join(DAILY_FIELDS),
        "hourly": ",".join(HOURLY_FIELDS),
    }


def format_forecast(forecast: WeatherForecast) -> str:
    payload = {"timezone": forecast.timezone, "daily": forecast.daily, "hourly": forecast.hourly}
    return "Weather: " + json.dumps(payload, separators=(",", ":"))


async def fetch_weather(config: Config) -> str:
    """Fetch today's forecast for the configured coordinates."""
    try:
        async with http_session(config.http_timeout_seconds) as session:
            raw = await get_json(session, FORECAST_URL, **forecast_params(config))
        return format_forecast(WeatherForecast.model_validate(raw))
    except ValidationError as e:
        logger.warning("Weather payload invalid | errors=%d", e.error_count())
    except ValueError as e:
        logger.warning("Weather payload is not JSON | error=%s", e)
    except asyncio.TimeoutError:
        logger.warning("Weather request timed out after %ds", config.http_timeout_seconds)
    except aiohttp.ClientError as e:
        logger.warning("Weather fetch failed | error=%s type=%s", e, type(e).__name__)
    return ""
