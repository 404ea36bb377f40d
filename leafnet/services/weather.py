"""
Weather Service - OpenWeatherMap Integration
Fetches current conditions and the 5-day / 3-hour forecast for a farm location.
"""

import logging
import httpx
from typing import Any, Dict, List, Optional, Union
from dataclasses import dataclass, field

from ..config import Settings
from .http import build_client, get_json
from .units import local_time_label, round_half_up

logger = logging.getLogger(__name__)

PLACEHOLDER = "--"

Number = Union[int, float]


@dataclass
class ForecastEntry:
    """One 3-hour forecast slot."""
    time: str
    temp: int
    condition: str
    rain: Number


@dataclass
class WeatherView:
    """Current conditions plus a short forecast strip."""
    temperature: Union[Number, str]
    condition: str
    humidity: Union[Number, str]
    wind_speed: Union[Number, str]  # km/h
    rainfall: Union[Number, str]  # mm, last hour
    uv: Union[Number, str]
    prediction: str
    icon: str
    forecast: List[ForecastEntry] = field(default_factory=list)

    @classmethod
    def unavailable(cls) -> "WeatherView":
        """Fallback shown when the provider cannot be reached or parsed."""
        return cls(
            temperature=PLACEHOLDER,
            condition="Unable to fetch weather data",
            humidity=PLACEHOLDER,
            wind_speed=PLACEHOLDER,
            rainfall=PLACEHOLDER,
            uv=PLACEHOLDER,
            prediction="Please check your API key and connection",
            icon=PLACEHOLDER,
            forecast=[],
        )


def _rain(entry: Dict[str, Any], window: str) -> Number:
    rain = entry.get("rain")
    if not rain:
        return 0
    return rain.get(window) or 0


class WeatherService:
    """OpenWeatherMap client producing WeatherView objects."""

    FORECAST_SLOTS = 8

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.base_url = settings.openweather_url.rstrip("/")
        self.api_key = settings.openweather_api_key
        self.time_format = settings.time_format
        self._owns_client = client is None
        self.client = client or build_client(settings)

    def _params(self, lat: float, lon: float) -> Dict[str, Any]:
        return {"lat": lat, "lon": lon, "appid": self.api_key, "units": "metric"}

    async def get_weather(self, lat: float, lon: float) -> WeatherView:
        """
        Fetch current conditions and forecast for a location.

        Never raises: any transport, status or shape problem yields
        WeatherView.unavailable().
        """
        try:
            current = await get_json(self.client, f"{self.base_url}/weather", self._params(lat, lon))
            forecast = await get_json(self.client, f"{self.base_url}/forecast", self._params(lat, lon))
            return self._build_view(current, forecast)
        except Exception as e:
            logger.error(f"OpenWeather API error for ({lat}, {lon}): {e!r}")
            return WeatherView.unavailable()

    def _build_view(self, current: Dict[str, Any], forecast: Dict[str, Any]) -> WeatherView:
        slots = forecast["list"]
        next_description = slots[1]["weather"][0]["description"]

        return WeatherView(
            temperature=current["main"]["temp"],
            condition=current["weather"][0]["description"],
            humidity=current["main"]["humidity"],
            wind_speed=current["wind"]["speed"] * 3.6,  # m/s -> km/h
            rainfall=_rain(current, "1h"),
            uv=0,  # UV needs a separate One Call request
            prediction=f"{next_description} expected in next 6 hours",
            icon=current["weather"][0]["icon"],
            forecast=[
                ForecastEntry(
                    time=local_time_label(item["dt"], self.time_format),
                    temp=round_half_up(item["main"]["temp"]),
                    condition=item["weather"][0]["description"],
                    rain=_rain(item, "3h"),
                )
                for item in slots[: self.FORECAST_SLOTS]
            ],
        )

    async def close(self):
        """Close the HTTP client if this service created it."""
        if self._owns_client:
            await self.client.aclose()
