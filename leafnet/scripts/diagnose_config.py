"""Check provider keys and call each provider once, without the web server."""

import asyncio
from datetime import datetime

from ..config import get_settings
from ..services.api import APIService


async def run_diagnostics():
    settings = get_settings()
    api = APIService(settings)
    lat, lon = settings.farm_lat, settings.farm_lon

    print(f"🔍 Starting Provider Diagnostics at {datetime.now().isoformat()}")
    print("-" * 50)

    print("\n1️⃣  CONFIGURATION CHECK")
    # Don't print actual keys, just presence
    print(f"OpenWeather key: {'✅ Loaded' if settings.openweather_api_key else '❌ Missing'}")
    print(f"AgroMonitoring key: {'✅ Loaded' if settings.agro_api_key else '❌ Missing'}")
    print(f"Gemini key: {'✅ Loaded' if settings.gemini_api_key else '❌ Missing'}")

    try:
        print("\n2️⃣  WEATHER CHECK")
        weather = await api.get_weather_data(lat, lon)
        if weather.temperature == "--":
            print(f"⚠️ Weather fell back: {weather.prediction}")
        else:
            print(f"✅ Weather: {weather.temperature}°C, {weather.condition}, {len(weather.forecast)} forecast slots")

        print("\n3️⃣  SOIL CHECK")
        soil = await api.get_soil_data(lat, lon)
        if soil.ph == "N/A":
            print("⚠️ Soil fell back to N/A (see log for the provider error)")
        else:
            print(f"✅ Soil: pH {soil.ph}, moisture {soil.moisture}%, {soil.temperature}°C at 10 cm")

        print("\n4️⃣  NDVI CHECK")
        ndvi = await api.get_ndvi_data(lat, lon)
        print(f"{'✅' if ndvi.status == 'ok' else '⚠️'} NDVI {ndvi.ndvi} on {ndvi.date} ({ndvi.status})")

        print("\n5️⃣  GEMINI CHECK")
        reply = await api.chat("Reply with exactly 'System Functional'.")
        print(f"LLM Raw Output: '{reply}'")
    finally:
        await api.close()

    print("\n" + "-" * 50)
    print("Diagnostics Complete.")


if __name__ == "__main__":
    asyncio.run(run_diagnostics())
