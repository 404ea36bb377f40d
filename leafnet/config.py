"""
Leaf Network - Configuration Module
Loads environment variables and provides typed configuration.
"""

from pathlib import Path
from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)


class Settings(BaseSettings):
    """Application settings with validation."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Provider keys
    gemini_api_key: str = ""
    openweather_api_key: str = ""
    agro_api_key: str = ""

    # Provider endpoints
    gemini_url: str = "https://generativelanguage.googleapis.com/v1beta/models/gemini-pro:generateContent"
    openweather_url: str = "https://api.openweathermap.org/data/2.5"
    agro_url: str = "http://api.agromonitoring.com/agro/1.0"

    # Default farm location (Kerala, India)
    farm_lat: float = 10.0889
    farm_lon: float = 76.0795

    # Dashboard refresh
    refresh_interval_seconds: float = 600.0
    refresh_on_startup: bool = True

    http_timeout_seconds: float = 30.0

    # Chat and diagnosis sessions (in memory)
    session_ttl_seconds: float = 7 * 24 * 60 * 60
    max_sessions: int = 1000

    # Display formats for provider timestamps
    date_format: str = "%d/%m/%Y"
    time_format: str = "%H:%M"

    # Server
    backend_host: str = "0.0.0.0"
    backend_port: int = 8000
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    log_level: str = "INFO"

    @property
    def missing_keys(self) -> List[str]:
        """Names of provider keys that are not configured."""
        keys = {
            "gemini_api_key": self.gemini_api_key,
            "openweather_api_key": self.openweather_api_key,
            "agro_api_key": self.agro_api_key,
        }
        return [name for name, value in keys.items() if not value]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
