"""Core package containing configuration, exceptions, and utilities."""
from balloonwatch.core.config import get_settings, validate_settings, Settings
from balloonwatch.core.exceptions import (
    BalloonWatchError,
    NetworkError,
    ParseError,
    ValidationError,
    EnvelopeUndefined,
    ConfigError,
)
from balloonwatch.core.utils import (
    haversine_km,
    is_number,
    is_finite_number,
    finite_or_none,
    is_valid_position,
    altitude_to_meters,
    utcnow,
    isoformat_z,
    fetch_json,
)

__all__ = [
    "get_settings",
    "validate_settings",
    "Settings",
    "BalloonWatchError",
    "NetworkError",
    "ParseError",
    "ValidationError",
    "EnvelopeUndefined",
    "ConfigError",
    "haversine_km",
    "is_number",
    "is_finite_number",
    "finite_or_none",
    "is_valid_position",
    "altitude_to_meters",
    "utcnow",
    "isoformat_z",
    "fetch_json",
]
