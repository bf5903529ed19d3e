"""
Query envelope derived from the current balloon swarm.

The bounding box scopes the OpenSky query; the altitude window scopes which
returned aircraft are considered for correlation.
"""
import logging
import math
from typing import Iterable, Optional

from balloonwatch.core.config import Settings
from balloonwatch.core.exceptions import EnvelopeUndefined
from balloonwatch.core.utils import is_finite_number
from balloonwatch.models import AltitudeWindow, SpatialEnvelope, TelemetryPoint

logger = logging.getLogger(__name__)


def compute_bounding_box(points: Iterable[TelemetryPoint], pad_deg: float = 2.0) -> Optional[SpatialEnvelope]:
    """
    Smallest lat/lon box covering all points, padded by ``pad_deg`` and
    clamped to [-90, 90] / [-180, 180].

    Points with non-numeric coordinates are ignored. Returns None when no
    point has usable coordinates.
    """
    min_lat = math.inf
    max_lat = -math.inf
    min_lon = math.inf
    max_lon = -math.inf

    for p in points:
        if not is_finite_number(p.lat) or not is_finite_number(p.lon):
            continue
        min_lat = min(min_lat, p.lat)
        max_lat = max(max_lat, p.lat)
        min_lon = min(min_lon, p.lon)
        max_lon = max(max_lon, p.lon)

    if not math.isfinite(min_lat):
        return None

    return SpatialEnvelope(
        min_lat=max(-90.0, min_lat - pad_deg),
        min_lon=max(-180.0, min_lon - pad_deg),
        max_lat=min(90.0, max_lat + pad_deg),
        max_lon=min(180.0, max_lon + pad_deg),
    )


def compute_altitude_range(points: Iterable[TelemetryPoint]) -> Optional[tuple[float, float]]:
    """Observed (min, max) balloon altitude in meters, or None."""
    min_alt = math.inf
    max_alt = -math.inf

    for p in points:
        if not is_finite_number(p.alt_m):
            continue
        min_alt = min(min_alt, p.alt_m)
        max_alt = max(max_alt, p.alt_m)

    if not math.isfinite(min_alt):
        return None
    return min_alt, max_alt


def compute_altitude_window(
    points: Iterable[TelemetryPoint],
    ground_buffer: float = 1000.0,
    top_buffer: float = 100.0,
) -> Optional[AltitudeWindow]:
    """
    Altitude corridor between the ground buffer and just below the highest
    balloon.

    Returns None if there are no valid altitudes, either bound is not finite,
    or the buffers leave no room (``ground_buffer >= max_alt - top_buffer``).
    Callers must skip correlation entirely in that case.
    """
    alt_range = compute_altitude_range(points)
    if alt_range is None:
        return None

    min_alt = ground_buffer
    max_alt = alt_range[1] - top_buffer

    if not math.isfinite(min_alt) or not math.isfinite(max_alt):
        return None
    if min_alt >= max_alt:
        return None

    return AltitudeWindow(min_alt=min_alt, max_alt=max_alt)


def build_envelope(
    points: list[TelemetryPoint],
    settings: Settings,
) -> tuple[SpatialEnvelope, AltitudeWindow]:
    """
    Build both halves of the envelope.

    Raises:
        EnvelopeUndefined: if either the bounding box or the window is missing
    """
    bbox = compute_bounding_box(points, settings.bbox_padding_deg)
    if bbox is None:
        raise EnvelopeUndefined("No balloon has usable coordinates", missing="bounding_box")

    window = compute_altitude_window(points, settings.ground_buffer_m, settings.top_buffer_m)
    if window is None:
        raise EnvelopeUndefined(
            "Balloon altitudes leave no corridor between ground and ceiling buffers",
            missing="altitude_window",
        )

    logger.debug(f"Envelope: bbox={bbox.to_dict()} window={window.to_dict()}")
    return bbox, window
