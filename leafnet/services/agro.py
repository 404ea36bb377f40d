"""
Agro Service - AgroMonitoring Integration
Soil metrics and Sentinel/Landsat NDVI for a small field polygon around the farm.
"""

import logging
import time
import httpx
from typing import Any, Dict, List, Optional, Union
from dataclasses import dataclass

from ..config import Settings
from .http import build_client, get_json, post_json
from .units import local_date_label, one_decimal, round_half_up

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"

# Used field by field when the provider leaves a metric out
SOIL_DEFAULTS = {
    "ph": 6.8,
    "nitrogen": 45,
    "phosphorus": 23,
    "potassium": 67,
    "organic_matter": 3.2,
    "moisture": 78,
    "t10": 22,  # soil temperature at 10 cm
}

DEFAULT_NDVI = 0.75
NDVI_WINDOW_SECONDS = 30 * 24 * 60 * 60

SOIL_POLYGON_HALF_SIZE = 0.001
NDVI_POLYGON_HALF_SIZE = 0.002


@dataclass
class SoilView:
    """Soil chemistry and conditions for the farm polygon."""
    ph: str
    nitrogen: Union[int, str]
    phosphorus: Union[int, str]
    potassium: Union[int, str]
    organic: str
    moisture: Union[int, str]
    temperature: Union[int, str]

    @classmethod
    def unavailable(cls) -> "SoilView":
        return cls(
            ph=NOT_AVAILABLE,
            nitrogen=NOT_AVAILABLE,
            phosphorus=NOT_AVAILABLE,
            potassium=NOT_AVAILABLE,
            organic=NOT_AVAILABLE,
            moisture=NOT_AVAILABLE,
            temperature=NOT_AVAILABLE,
        )


@dataclass
class NDVIView:
    """Latest vegetation index reading.

    status tells the three outcomes apart: "ok" (an image was found),
    "empty" (no images, or the provider answered with an error body) and
    "failed" (a call raised or a body could not be decoded).
    """
    ndvi: Union[float, str]
    date: str
    cloud_coverage: Union[float, str]
    status: str = "ok"

    @classmethod
    def empty(cls) -> "NDVIView":
        return cls(ndvi=DEFAULT_NDVI, date=NOT_AVAILABLE, cloud_coverage=NOT_AVAILABLE, status="empty")

    @classmethod
    def failed(cls) -> "NDVIView":
        return cls(ndvi=NOT_AVAILABLE, date=NOT_AVAILABLE, cloud_coverage=NOT_AVAILABLE, status="failed")


def square_polygon(name: str, lat: float, lon: float, half_size: float) -> Dict[str, Any]:
    """GeoJSON Feature for a closed square ring centred on (lat, lon)."""
    ring = [
        [lon - half_size, lat - half_size],
        [lon + half_size, lat - half_size],
        [lon + half_size, lat + half_size],
        [lon - half_size, lat + half_size],
        [lon - half_size, lat - half_size],
    ]
    return {
        "name": name,
        "geo_json": {
            "type": "Feature",
            "properties": {},
            "geometry": {"type": "Polygon", "coordinates": [ring]},
        },
    }


class AgroService:
    """AgroMonitoring client for soil and NDVI views."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.base_url = settings.agro_url.rstrip("/")
        self.api_key = settings.agro_api_key
        self.date_format = settings.date_format
        self._owns_client = client is None
        self.client = client or build_client(settings)

    async def register_polygon(
        self, name: str, lat: float, lon: float, half_size: float, check: bool = True
    ) -> Optional[str]:
        """
        Register a field boundary with the provider.

        Args:
            check: When False an error reply is not raised; the id is then
                whatever the reply carries, usually None.

        Returns:
            The provider's polygon id, used by soil and imagery queries.
        """
        data = await post_json(
            self.client,
            f"{self.base_url}/polygons",
            square_polygon(name, lat, lon, half_size),
            params={"appid": self.api_key},
            check=check,
        )
        if check:
            return data["id"]
        return data.get("id") if isinstance(data, dict) else None

    async def get_soil(self, lat: float, lon: float) -> SoilView:
        """
        Fetch soil metrics for a ~0.002 degree square around the point.

        Missing metrics take SOIL_DEFAULTS; any failed call collapses the
        whole view to "N/A".
        """
        try:
            polygon_id = await self.register_polygon("Farm Field", lat, lon, SOIL_POLYGON_HALF_SIZE)
            soil = await get_json(
                self.client,
                f"{self.base_url}/soil",
                {"polyid": polygon_id, "appid": self.api_key},
            )
            return self._build_soil(soil)
        except Exception as e:
            logger.error(f"AgroMonitoring soil error for ({lat}, {lon}): {e!r}")
            return SoilView.unavailable()

    def _build_soil(self, soil: Dict[str, Any]) -> SoilView:
        def value(key: str):
            return soil.get(key) or SOIL_DEFAULTS[key]

        return SoilView(
            ph=one_decimal(value("ph")),
            nitrogen=round_half_up(value("nitrogen")),
            phosphorus=round_half_up(value("phosphorus")),
            potassium=round_half_up(value("potassium")),
            organic=one_decimal(value("organic_matter")),
            moisture=round_half_up(value("moisture")),
            temperature=round_half_up(value("t10")),
        )

    async def get_ndvi(self, lat: float, lon: float, now: Optional[float] = None) -> NDVIView:
        """
        Most recent satellite NDVI reading over the trailing 30 days.

        Provider error replies are not raised here. An error body is not a
        list of images, so it reads as an empty search; only transport
        errors and undecodable bodies count as failures.

        Args:
            lat: Latitude
            lon: Longitude
            now: Window end in unix seconds (defaults to the current time)
        """
        end = int(now if now is not None else time.time())
        start = end - NDVI_WINDOW_SECONDS
        try:
            polygon_id = await self.register_polygon(
                "NDVI Field", lat, lon, NDVI_POLYGON_HALF_SIZE, check=False
            )
            images = await get_json(
                self.client,
                f"{self.base_url}/image/search",
                {"start": start, "end": end, "polyid": polygon_id, "appid": self.api_key},
                check=False,
            )
        except Exception as e:
            logger.error(f"AgroMonitoring NDVI error for ({lat}, {lon}): {e!r}")
            return NDVIView.failed()

        if not isinstance(images, list):
            logger.warning(f"AgroMonitoring NDVI search for ({lat}, {lon}) answered {images!r}")
            return NDVIView.empty()

        if not images:
            logger.info(f"No satellite images for ({lat}, {lon}) in the last 30 days")
            return NDVIView.empty()

        try:
            return self._build_ndvi(images)
        except Exception as e:
            logger.error(f"AgroMonitoring NDVI parse error for ({lat}, {lon}): {e!r}")
            return NDVIView.failed()

    def _build_ndvi(self, images: List[Dict[str, Any]]) -> NDVIView:
        latest = images[0]
        stats = latest.get("stats") or {}
        ndvi_stats = stats.get("ndvi")
        mean = ndvi_stats.get("mean") if isinstance(ndvi_stats, dict) else None

        return NDVIView(
            ndvi=mean or DEFAULT_NDVI,
            date=local_date_label(latest["dt"], self.date_format),
            cloud_coverage=latest.get("cl") or 0,
        )

    async def close(self):
        """Close the HTTP client if this service created it."""
        if self._owns_client:
            await self.client.aclose()
