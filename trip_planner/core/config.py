import json
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    env: Literal["dev", "prod"] = "dev"
    project_name: str = "Trip Planner"
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"

    frontend_origins: list[str] = Field(default_factory=list)

    nominatim_base_url: str = "https://nominatim.openstreetmap.org"
    nominatim_user_agent: str = "TripPlanner/1.0 (geocoder)"
    osrm_base_url: str = "https://router.project-osrm.org"
    osrm_profile: str = "driving"
    provider_timeout_sec: float = 8.0

    suggest_debounce_ms: int = 150
    suggest_min_chars: int = 2
    suggest_limit: int = 8
    suggest_cache_capacity: int = 50

    cost_per_km: float = 1.3
    currency: str = "TND"

    @field_validator("frontend_origins", mode="before")
    @classmethod
    def parse_origins(cls, value: object) -> list[str]:
        def _normalize_origin(origin_value: object) -> str:
            # Browser `Origin` header never includes a trailing slash.
            return str(origin_value).strip().rstrip("/")

        if isinstance(value, str):
            if not value.strip():
                return []
            if value.strip().startswith("["):
                try:
                    parsed = json.loads(value)
                    if isinstance(parsed, list):
                        return [_normalize_origin(origin) for origin in parsed if _normalize_origin(origin)]
                except json.JSONDecodeError:
                    pass
            return [_normalize_origin(origin) for origin in value.split(",") if _normalize_origin(origin)]
        if isinstance(value, list):
            return [_normalize_origin(item) for item in value if _normalize_origin(item)]
        return []

    @model_validator(mode="after")
    def apply_frontend_origin_defaults(self) -> "Settings":
        if self.frontend_origins:
            self.frontend_origins = list(dict.fromkeys(self.frontend_origins))
            return self

        if self.env == "dev":
            self.frontend_origins = [
                "http://localhost:3000",
                "http://127.0.0.1:3000",
            ]
        return self

    @field_validator("suggest_min_chars", "suggest_limit", "suggest_cache_capacity")
    @classmethod
    def require_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
