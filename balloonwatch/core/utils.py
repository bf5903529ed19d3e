"""
Utility functions for distance calculations, validation, and upstream requests.
"""
import logging
import math
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from balloonwatch.core.exceptions import NetworkError, ParseError

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0  # Mean Earth radius

# Multipliers from a raw balloon altitude unit to meters
ALTITUDE_UNIT_TO_M = {
    "km": 1000.0,
    "ft": 0.3048,
    "m": 1.0,
}


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate great-circle distance in kilometers using Haversine formula."""
    lat1_rad, lat2_rad = math.radians(lat1), math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2)

    # Rounding can push a past 1.0 for near-antipodal points
    a = min(1.0, max(0.0, a))

    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def is_number(value: Any) -> bool:
    """True for int/float values. Booleans are not numbers here."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_finite_number(value: Any) -> bool:
    """True for int/float values that are neither NaN nor infinite."""
    return is_number(value) and math.isfinite(value)


def finite_or_none(value: Any) -> Optional[float]:
    """Return value as float if it is a finite number, else None."""
    if is_finite_number(value):
        return float(value)
    return None


def is_valid_position(lat: Any, lon: Any) -> bool:
    """Check if coordinates are finite numbers within WGS84 bounds."""
    if not is_finite_number(lat) or not is_finite_number(lon):
        return False
    if not (-90 <= lat <= 90) or not (-180 <= lon <= 180):
        return False
    return True


def altitude_to_meters(alt_raw: Any, unit: str) -> Optional[float]:
    """Convert a raw balloon altitude to meters. Non-numeric input gives None."""
    if not is_finite_number(alt_raw):
        return None
    return float(alt_raw) * ALTITUDE_UNIT_TO_M[unit]


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def isoformat_z(dt: Optional[datetime]) -> Optional[str]:
    """Format a UTC datetime as ISO 8601 with a Z suffix."""
    if dt is None:
        return None
    return dt.astimezone(timezone.utc).replace(tzinfo=None).isoformat() + "Z"


async def fetch_json(
    client: httpx.AsyncClient,
    url: str,
    params: Optional[dict] = None,
) -> Any:
    """
    GET a JSON document from an upstream feed.

    Raises:
        NetworkError: connection failure, timeout or non-2xx status
        ParseError: body is not valid JSON
    """
    try:
        response = await client.get(url, params=params)
    except httpx.TimeoutException as e:
        raise NetworkError(f"Timed out fetching {url}", url=url) from e
    except httpx.HTTPError as e:
        raise NetworkError(f"Request failed for {url}: {e}", url=url) from e

    if response.status_code < 200 or response.status_code >= 300:
        raise NetworkError(
            f"HTTP {response.status_code} {response.reason_phrase} from {url}",
            url=url,
            status_code=response.status_code,
        )

    try:
        return response.json()
    except ValueError as e:
        raise ParseError(f"Invalid JSON from {url}: {e}", url=url) from e
