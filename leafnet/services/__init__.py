"""Services package for Leaf Network."""

from .weather import WeatherService, WeatherView, ForecastEntry
from .agro import AgroService, SoilView, NDVIView
from .gemini import GeminiService
from .api import APIService

__all__ = [
    "WeatherService",
    "WeatherView",
    "ForecastEntry",
    "AgroService",
    "SoilView",
    "NDVIView",
    "GeminiService",
    "APIService",
]
