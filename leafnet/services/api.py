"""
APIService - the aggregation layer.

One object exposing every provider operation the dashboard needs. Each
operation resolves to a fully populated view (or a fallback string for the AI
bridges) and never raises.
"""

import logging
import httpx
from typing import Optional

from ..config import Settings
from .agro import AgroService, NDVIView, SoilView
from .gemini import GeminiService
from .http import build_client
from .weather import WeatherService, WeatherView

logger = logging.getLogger(__name__)


class APIService:
    """Facade over the weather, soil/satellite and generative-AI providers."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._owns_client = client is None
        self.client = client or build_client(settings)

        self.weather = WeatherService(settings, self.client)
        self.agro = AgroService(settings, self.client)
        self.gemini = GeminiService(settings, self.client)

        for key in settings.missing_keys:
            logger.warning(f"{key} is not configured; calls to that provider will fall back")

    async def get_weather_data(self, lat: float, lon: float) -> WeatherView:
        return await self.weather.get_weather(lat, lon)

    async def get_soil_data(self, lat: float, lon: float) -> SoilView:
        return await self.agro.get_soil(lat, lon)

    async def get_ndvi_data(self, lat: float, lon: float) -> NDVIView:
        return await self.agro.get_ndvi(lat, lon)

    async def chat(self, message: str, context: str = "") -> str:
        return await self.gemini.chat(message, context)

    async def analyze_image(self, image: bytes, mime_type: str, prompt: str) -> str:
        return await self.gemini.analyze_image(image, mime_type, prompt)

    async def close(self):
        """Close the shared HTTP client."""
        if self._owns_client:
            await self.client.aclose()
