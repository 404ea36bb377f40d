import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from leafnet.config import Settings

CAPTURE_DT = 1_700_000_000


def make_settings(**overrides) -> Settings:
    values = dict(
        gemini_api_key="gemini-test-key",
        openweather_api_key="ow-test-key",
        agro_api_key="agro-test-key",
        gemini_url="https://gemini.test/v1beta/models/gemini-pro:generateContent",
        openweather_url="https://weather.test/data/2.5",
        agro_url="https://agro.test/agro/1.0",
        refresh_on_startup=False,
    )
    values.update(overrides)
    return Settings(**values)


def forecast_slot(dt: int, temp: float, description: str, rain: Optional[float] = None) -> Dict[str, Any]:
    slot = {"dt": dt, "main": {"temp": temp}, "weather": [{"description": description}]}
    if rain is not None:
        slot["rain"] = {"3h": rain}
    return slot


def gemini_reply(text: str) -> Dict[str, Any]:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class FakeProviders:
    """Routes requests to canned provider replies and records them.

    Each route value is either a JSON-able body (served with 200), an
    httpx.Response, or a callable taking the request.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.routes: Dict[str, Any] = {
            "/data/2.5/weather": {
                "main": {"temp": 28.5, "humidity": 70},
                "wind": {"speed": 3},
                "weather": [{"description": "clear sky", "icon": "01d"}],
            },
            "/data/2.5/forecast": {
                "list": [
                    forecast_slot(CAPTURE_DT + i * 10800, 27.5 + i, "light rain" if i == 1 else "few clouds",
                                  rain=0.4 if i == 1 else None)
                    for i in range(10)
                ]
            },
            "/agro/1.0/polygons": {"id": "poly-123"},
            "/agro/1.0/soil": {},
            "/agro/1.0/image/search": [
                {"dt": CAPTURE_DT, "cl": 12.5, "stats": {"ndvi": {"mean": 0.62}}},
                {"dt": CAPTURE_DT - 86400, "cl": 80, "stats": {"ndvi": {"mean": 0.4}}},
            ],
            "/v1beta/models/gemini-pro:generateContent": gemini_reply("Irrigate in the early morning."),
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"message": "not found"})
        if callable(route):
            route = route(request)
        if isinstance(route, httpx.Response):
            return route
        return httpx.Response(200, json=route)

    def calls(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def body(self, request: httpx.Request) -> Any:
        return json.loads(request.content)


def raise_connect_error(request: httpx.Request):
    raise httpx.ConnectError("connection refused", request=request)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def providers() -> FakeProviders:
    return FakeProviders()


@pytest.fixture
def client_factory(providers) -> Callable[[], httpx.AsyncClient]:
    def factory() -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(providers.handler))
    return factory
