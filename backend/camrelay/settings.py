from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime configuration, read from the environment (and an optional .env file).

    Field names map to upper-case environment variables, e.g. CAMERA_HOST.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    camera_host: str = "http://10.0.0.42"
    camera_username: str | None = None
    camera_password: str | None = None
    camera_auth: Literal["basic", "digest"] = "digest"
    camera_id: int = Field(default=1, ge=1)
    camera_max_magnification: float = Field(default=3.9, ge=1.0)
    camera_geolocation_path: str = "/axis-cgi/geolocation/get.cgi"
    camera_temperature_path: str = "/axis-cgi/temperaturecontrol.cgi?action=statusall"

    upstream_timeout_s: float = Field(default=5.0, gt=0)
    status_ttl_s: float = Field(default=2.0, gt=0)
    capabilities_ttl_s: float = Field(default=300.0, gt=0)
    viewer_ttl_s: float = Field(default=65.0, gt=0)
    live_status_interval_s: float = Field(default=2.0, gt=0)
    live_presence_interval_s: float = Field(default=20.0, gt=0)

    # Handed to the browser via /api/config.
    api_base: str = ""
    stream_url: str = "http://localhost:1984/api/stream.m3u8?src=axis&mp4"

    log_level: str = "INFO"
    log_json: bool = False

    @property
    def has_credentials(self) -> bool:
        return bool(self.camera_username and self.camera_password)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
