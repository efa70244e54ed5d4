"""Runtime configuration for HexClaim."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven runtime settings and game tuning constants."""

    model_config = SettingsConfigDict(env_prefix="HEXCLAIM_", env_file=".env", extra="ignore")

    app_name: str = "hexclaim"
    log_level: str = "INFO"

    cell_resolution: int = Field(
        default=10,
        description="H3 resolution used for zones; 10 gives hexagons roughly 50m across.",
    )
    points_per_zone: int = 100
    cache_bonus: int = 500
    zones_per_level: int = Field(default=5, gt=0)

    cache_count: int = 3
    cache_min_distance_m: float = 300.0
    cache_max_distance_m: float = 550.0

    readiness_interval_seconds: float = 0.1
    readiness_timeout_seconds: float = 5.0

    location_min_distance_m: float = 7.0
    location_timeout_seconds: float = 10.0
    fallback_lat: float = 27.7172
    fallback_lng: float = 85.3240

    store_path: str = Field(
        default="~/.hexclaim/progress.json",
        description="JSON file holding captured zone ids and the player score.",
    )


settings = Settings()
