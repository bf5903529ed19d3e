"""
Altitude corridor filter for aircraft candidates.
"""
import math
from typing import Iterable, Optional

from balloonwatch.core.exceptions import EnvelopeUndefined
from balloonwatch.core.utils import is_number
from balloonwatch.models import AircraftState, AltitudeWindow


def is_within_window(aircraft: AircraftState, window: AltitudeWindow) -> bool:
    """Airborne, finite altitude, and inside the window (both ends inclusive)."""
    if aircraft.on_ground:
        return False
    if not is_number(aircraft.alt_m) or not math.isfinite(aircraft.alt_m):
        return False
    return window.contains(aircraft.alt_m)


def filter_by_altitude(
    aircraft: Iterable[AircraftState],
    window: Optional[AltitudeWindow],
) -> list[AircraftState]:
    """
    Keep airborne aircraft whose altitude lies in ``window``, preserving order.

    Raises:
        EnvelopeUndefined: if window is None. No window means no correlation
            attempt, not "no filtering".
    """
    if window is None:
        raise EnvelopeUndefined("Altitude filter called without a window", missing="altitude_window")
    return [ac for ac in aircraft if is_within_window(ac, window)]
