"""
DashboardRefresher - keeps the latest weather / soil / NDVI snapshot.

Refreshes run weather -> soil -> NDVI in turn and replace the whole snapshot.
Only one refresh runs at a time; triggers arriving while one is in flight are
skipped and get the current snapshot back.
"""

import asyncio
import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..services.api import APIService
from ..services.agro import NDVIView, SoilView
from ..services.weather import WeatherView

logger = logging.getLogger(__name__)

Listener = Callable[["DashboardSnapshot"], Awaitable[None]]


@dataclass
class DashboardSnapshot:
    """Everything the dashboard cards show for one refresh."""
    weather: WeatherView
    soil: SoilView
    ndvi: NDVIView
    lat: float
    lon: float
    refreshed_at: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_chat_context(weather: WeatherView, soil: SoilView) -> str:
    """Free-text farm context handed to the chat assistant."""
    return (
        f"Current Weather: {weather.temperature}°C, {weather.condition}, Humidity: {weather.humidity}%\n"
        f"Soil Data: pH {soil.ph}, Nitrogen {soil.nitrogen}, Phosphorus {soil.phosphorus}, "
        f"Potassium {soil.potassium}\n"
        "Farm Location: User's registered farm location"
    )


class DashboardRefresher:
    """Single-flight refresh of the dashboard snapshot."""

    def __init__(self, api: APIService, lat: float, lon: float):
        self.api = api
        self.lat = lat
        self.lon = lon
        self.snapshot: Optional[DashboardSnapshot] = None
        self._lock = asyncio.Lock()
        self._listeners: List[Listener] = []

    @property
    def in_flight(self) -> bool:
        return self._lock.locked()

    def subscribe(self, listener: Listener):
        """Call `listener` with every new snapshot."""
        self._listeners.append(listener)

    async def refresh(self) -> Optional[DashboardSnapshot]:
        """
        Run one refresh unless another is already running.

        Returns:
            The new snapshot, or the current one if this trigger was skipped.
        """
        if self._lock.locked():
            logger.warning("Dashboard refresh already in flight; skipping trigger")
            return self.snapshot

        async with self._lock:
            logger.info(f"Refreshing dashboard for ({self.lat}, {self.lon})")
            weather = await self.api.get_weather_data(self.lat, self.lon)
            soil = await self.api.get_soil_data(self.lat, self.lon)
            ndvi = await self.api.get_ndvi_data(self.lat, self.lon)

            self.snapshot = DashboardSnapshot(
                weather=weather,
                soil=soil,
                ndvi=ndvi,
                lat=self.lat,
                lon=self.lon,
                refreshed_at=datetime.now().isoformat(),
            )
            logger.info("Dashboard refresh complete")

        for listener in self._listeners:
            try:
                await listener(self.snapshot)
            except Exception as e:
                logger.error(f"Dashboard listener failed: {e!r}")

        return self.snapshot

    async def current(self) -> DashboardSnapshot:
        """Latest snapshot, refreshing first if there is none yet."""
        if self.snapshot is None:
            if self.in_flight:
                # wait for the running refresh instead of returning nothing
                async with self._lock:
                    pass
            else:
                await self.refresh()
        return self.snapshot

    def chat_context(self) -> str:
        if self.snapshot is None:
            return "No live farm data loaded yet."
        return build_chat_context(self.snapshot.weather, self.snapshot.soil)

    async def run_forever(self, interval: float, immediate: bool = True):
        """Refresh every `interval` seconds until cancelled."""
        if immediate:
            await self.refresh()
        while True:
            await asyncio.sleep(interval)
            await self.refresh()
