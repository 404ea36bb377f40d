import asyncio
from datetime import datetime

import httpx
import pytest

from leafnet.services.weather import WeatherService, WeatherView

from conftest import CAPTURE_DT, raise_connect_error

LAT, LON = 10.0889, 76.0795


def fetch(settings, client, lat=LAT, lon=LON) -> WeatherView:
    return asyncio.run(WeatherService(settings, client).get_weather(lat, lon))


def test_current_conditions_scenario(settings, client_factory):
    view = fetch(settings, client_factory())

    assert view.temperature == 28.5
    assert view.condition == "clear sky"
    assert view.humidity == 70
    assert view.wind_speed == 3 * 3.6
    assert view.wind_speed == pytest.approx(10.8)
    assert view.rainfall == 0
    assert view.uv == 0
    assert view.icon == "01d"
    assert "light rain" in view.prediction
    assert view.prediction == "light rain expected in next 6 hours"


def test_wind_speed_is_exact_conversion(settings, providers, client_factory):
    providers.routes["/data/2.5/weather"]["wind"]["speed"] = 7.25
    view = fetch(settings, client_factory())
    assert view.wind_speed == 7.25 * 3.6


def test_forecast_is_first_eight_slots(settings, client_factory):
    view = fetch(settings, client_factory())

    assert len(view.forecast) == 8
    first, second = view.forecast[0], view.forecast[1]
    assert first.time == datetime.fromtimestamp(CAPTURE_DT).strftime("%H:%M")
    # 27.5 rounds half up
    assert first.temp == 28
    assert first.condition == "few clouds"
    assert first.rain == 0
    assert second.rain == 0.4
    assert second.temp == 29


def test_rainfall_reads_last_hour(settings, providers, client_factory):
    providers.routes["/data/2.5/weather"]["rain"] = {"1h": 2.3}
    view = fetch(settings, client_factory())
    assert view.rainfall == 2.3


def test_requests_carry_key_and_metric_units(settings, providers, client_factory):
    fetch(settings, client_factory())

    current = providers.calls("/data/2.5/weather")[0]
    forecast = providers.calls("/data/2.5/forecast")[0]
    for request in (current, forecast):
        assert request.url.params["appid"] == "ow-test-key"
        assert request.url.params["units"] == "metric"
        assert float(request.url.params["lat"]) == LAT
        assert float(request.url.params["lon"]) == LON


def test_bad_key_falls_back(settings, providers, client_factory):
    providers.routes["/data/2.5/weather"] = httpx.Response(401, json={"cod": 401, "message": "Invalid API key"})
    view = fetch(settings, client_factory())

    assert view == WeatherView.unavailable()
    assert view.temperature == "--"
    assert view.prediction == "Please check your API key and connection"
    assert view.forecast == []


def test_short_forecast_falls_back(settings, providers, client_factory):
    providers.routes["/data/2.5/forecast"] = {"list": providers.routes["/data/2.5/forecast"]["list"][:1]}
    assert fetch(settings, client_factory()) == WeatherView.unavailable()


def test_malformed_body_falls_back(settings, providers, client_factory):
    providers.routes["/data/2.5/weather"] = {"main": {}}
    assert fetch(settings, client_factory()) == WeatherView.unavailable()


def test_network_failure_falls_back_after_retry(settings, providers, client_factory):
    providers.routes["/data/2.5/weather"] = raise_connect_error
    view = fetch(settings, client_factory())

    assert view == WeatherView.unavailable()
    assert len(providers.calls("/data/2.5/weather")) == 2
    assert providers.calls("/data/2.5/forecast") == []
