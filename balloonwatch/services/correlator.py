"""
Nearest-balloon correlation for filtered aircraft.

Every aircraft is compared against every balloon (O(balloons x aircraft)).
That is fine for tens of balloons and a bbox-limited aircraft set; if either
side grows into the thousands this needs a spatial index (grid buckets or a
k-d tree) in front of the haversine pass.
"""
import logging
from typing import Iterable, Optional, Sequence

from balloonwatch.core.utils import haversine_km, is_valid_position
from balloonwatch.models import AircraftState, CorrelationResult, TelemetryPoint

logger = logging.getLogger(__name__)

DEFAULT_RADIUS_KM = 50.0


def find_nearest_balloon(
    aircraft: AircraftState,
    balloons: Sequence[TelemetryPoint],
) -> Optional[tuple[TelemetryPoint, float]]:
    """
    Balloon with the smallest great-circle distance to ``aircraft``.

    Ties go to the balloon that comes first in ``balloons``: the comparison
    is strict, so a later balloon at exactly the same distance never replaces
    an earlier one. The normalizer keeps balloons in upstream feed order,
    which makes the result reproducible for a given snapshot.

    Returns (balloon, distance_km), or None if no balloon has a valid position.
    """
    nearest: Optional[TelemetryPoint] = None
    nearest_km = float("inf")

    for balloon in balloons:
        if not is_valid_position(balloon.lat, balloon.lon):
            continue
        distance = haversine_km(balloon.lat, balloon.lon, aircraft.lat, aircraft.lon)
        if distance < nearest_km:
            nearest_km = distance
            nearest = balloon

    if nearest is None:
        return None
    return nearest, nearest_km


def correlate(
    balloons: Sequence[TelemetryPoint],
    aircraft: Iterable[AircraftState],
    radius_km: float = DEFAULT_RADIUS_KM,
) -> list[CorrelationResult]:
    """Pair each aircraft with its nearest balloon if it lies within ``radius_km``."""
    results = []
    if not balloons:
        return results

    for ac in aircraft:
        if not is_valid_position(ac.lat, ac.lon):
            continue
        match = find_nearest_balloon(ac, balloons)
        if match is None:
            continue
        balloon, distance_km = match
        if distance_km <= radius_km:
            results.append(CorrelationResult(
                aircraft=ac,
                nearest_balloon_id=balloon.id,
                distance_km=distance_km,
            ))

    logger.debug(f"Correlated {len(results)} aircraft within {radius_km} km of a balloon")
    return results
