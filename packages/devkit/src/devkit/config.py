from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class ServiceSettings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore")

    SERVICE_NAME: str = "service"
    DATABASE_URL: str | None = None
    LOG_LEVEL: str = "INFO"
    GEOCODER_ENABLED: bool = True
    GEOCODER_BASE_URL: str = "https://nominatim.openstreetmap.org"
    GEOCODER_USER_AGENT: str = "SeminarTracker/1.0"
    GEOCODER_TIMEOUT_SECONDS: float = 5.0
    CORS_ALLOW_ORIGINS: list[str] = ["*"]


def load_settings(service_name: str) -> ServiceSettings:
    return ServiceSettings(SERVICE_NAME=service_name)
