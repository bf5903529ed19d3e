"""Services package."""
from balloonwatch.services.envelope import (
    compute_bounding_box, compute_altitude_range, compute_altitude_window, build_envelope
)
from balloonwatch.services.normalizer import (
    decode_balloon, decode_aircraft, normalize_balloons, normalize_aircraft
)
from balloonwatch.services.altitude_filter import filter_by_altitude
from balloonwatch.services.correlator import find_nearest_balloon, correlate
from balloonwatch.services.feeds import BalloonFeed, AircraftFeed, BalloonFetchResult
from balloonwatch.services.poll_cycle import (
    CycleStage, SnapshotStore, PollCycle, create_poll_cycle, get_poll_cycle
)

__all__ = [
    # Envelope
    "compute_bounding_box",
    "compute_altitude_range",
    "compute_altitude_window",
    "build_envelope",
    # Normalizer
    "decode_balloon",
    "decode_aircraft",
    "normalize_balloons",
    "normalize_aircraft",
    # Filter / correlation
    "filter_by_altitude",
    "find_nearest_balloon",
    "correlate",
    # Feeds
    "BalloonFeed",
    "AircraftFeed",
    "BalloonFetchResult",
    # Orchestration
    "CycleStage",
    "SnapshotStore",
    "PollCycle",
    "create_poll_cycle",
    "get_poll_cycle",
]
