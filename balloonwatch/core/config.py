"""
Application configuration using Pydantic settings.
"""
from functools import lru_cache
from pydantic_settings import BaseSettings

from balloonwatch.core.exceptions import ConfigError

BALLOON_ALT_UNITS = ("km", "ft", "m")
REFRESH_MODES = ("background", "on_request")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Balloon feed (WindBorne)
    balloon_feed_base_url: str = "https://a.windbornesystems.com/treasure"
    balloon_alt_unit: str = "km"
    balloon_hour_offsets: list[int] = [0, 1]  # Current hour, then one fallback

    # Aircraft feed (OpenSky)
    aircraft_feed_url: str = "https://opensky-network.org/api/states/all"

    # Envelope / correlation
    ground_buffer_m: float = 1000.0
    top_buffer_m: float = 100.0
    correlation_radius_km: float = 50.0
    bbox_padding_deg: float = 2.0

    # HTTP
    fetch_timeout_seconds: float = 15.0
    user_agent: str = "BalloonWatch/1.0 (balloon-aircraft-correlator)"

    # Polling
    polling_interval: int = 300
    refresh_mode: str = "background"
    min_refresh_interval: int = 30

    # Logging / error reporting
    log_level: str = "INFO"
    sentry_dsn: str = ""

    # Server
    port: int = 3000

    class Config:
        env_file = ".env"
        extra = "ignore"


def validate_settings(settings: Settings) -> Settings:
    """Reject configurations that cannot produce a usable correlation run."""
    if settings.balloon_alt_unit not in BALLOON_ALT_UNITS:
        raise ConfigError(
            f"Unknown balloon altitude unit: {settings.balloon_alt_unit!r}",
            field="balloon_alt_unit",
        )
    if settings.refresh_mode not in REFRESH_MODES:
        raise ConfigError(
            f"Unknown refresh mode: {settings.refresh_mode!r}",
            field="refresh_mode",
        )
    offsets = settings.balloon_hour_offsets
    if len(offsets) != 2 or offsets[0] == offsets[1]:
        raise ConfigError(
            "balloon_hour_offsets must name two distinct hours: latest, then one fallback",
            field="balloon_hour_offsets",
        )
    if any(h < 0 or h > 23 for h in settings.balloon_hour_offsets):
        raise ConfigError("Balloon hour offsets must be between 0 and 23", field="balloon_hour_offsets")

    for name in ("ground_buffer_m", "top_buffer_m", "correlation_radius_km", "bbox_padding_deg"):
        if getattr(settings, name) < 0:
            raise ConfigError(f"{name} must not be negative", field=name)
    if settings.bbox_padding_deg > 90:
        raise ConfigError("bbox_padding_deg must not exceed 90", field="bbox_padding_deg")
    if settings.fetch_timeout_seconds <= 0:
        raise ConfigError("fetch_timeout_seconds must be positive", field="fetch_timeout_seconds")
    if settings.polling_interval <= 0:
        raise ConfigError("polling_interval must be positive", field="polling_interval")
    return settings


@lru_cache
def get_settings() -> Settings:
    """Get cached, validated settings instance."""
    return validate_settings(Settings())
