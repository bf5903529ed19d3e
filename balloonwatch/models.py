"""
Domain records for balloon telemetry, aircraft state and correlation snapshots.

All records are frozen dataclasses: they are built once by the normalizer or
the poll cycle and never mutated afterwards. ``to_dict()`` produces the JSON
shape served by the API.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from balloonwatch.core.utils import isoformat_z


@dataclass(frozen=True)
class TelemetryPoint:
    """A balloon position for one polling hour."""

    id: str
    lon: float
    lat: float
    alt_m: Optional[float]
    alt_raw: Optional[float]
    hour_offset: int
    category: str = "Balloon"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.id,
            "lon": self.lon,
            "lat": self.lat,
            "alt": self.alt_raw,
            "alt_m": self.alt_m,
            "hourAgo": self.hour_offset,
            "mag": 1,
            "category": self.category,
        }


@dataclass(frozen=True)
class AircraftState:
    """A normalized OpenSky state vector."""

    id: str
    lon: float
    lat: float
    alt_m: float
    altitude_source: str  # "geometric" or "barometric"
    on_ground: bool = False
    icao24: Optional[str] = None
    callsign: Optional[str] = None
    origin_country: Optional[str] = None
    velocity: Optional[float] = None
    true_track: Optional[float] = None
    vertical_rate: Optional[float] = None
    squawk: Optional[str] = None
    aircraft_category: Optional[int] = None
    time_position: Optional[int] = None
    last_contact: Optional[int] = None
    category: str = "Flight"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "icao24": self.icao24,
            "callsign": self.callsign,
            "origin_country": self.origin_country,
            "lon": self.lon,
            "lat": self.lat,
            "alt_m": self.alt_m,
            "altitude_source": self.altitude_source,
            "on_ground": self.on_ground,
            "velocity": self.velocity,
            "true_track": self.true_track,
            "vertical_rate": self.vertical_rate,
            "squawk": self.squawk,
            "category": self.category,
            "aircraft_category": self.aircraft_category,
            "time_position": self.time_position,
            "last_contact": self.last_contact,
        }


@dataclass(frozen=True)
class SpatialEnvelope:
    """Axis-aligned lat/lon bounding box, already padded and clamped."""

    min_lat: float
    min_lon: float
    max_lat: float
    max_lon: float

    def __post_init__(self):
        if self.min_lat > self.max_lat or self.min_lon > self.max_lon:
            raise ValueError(f"Inverted bounding box: {self}")

    def contains(self, lat: float, lon: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon

    def as_query_params(self) -> dict:
        """OpenSky ``states/all`` bounding box parameters."""
        return {
            "lamin": str(self.min_lat),
            "lamax": str(self.max_lat),
            "lomin": str(self.min_lon),
            "lomax": str(self.max_lon),
        }

    def to_dict(self) -> dict:
        return {
            "min_lat": self.min_lat,
            "min_lon": self.min_lon,
            "max_lat": self.max_lat,
            "max_lon": self.max_lon,
        }


@dataclass(frozen=True)
class AltitudeWindow:
    """Altitude corridor in meters. Always non-empty: min_alt < max_alt."""

    min_alt: float
    max_alt: float

    def __post_init__(self):
        if not self.min_alt < self.max_alt:
            raise ValueError(f"Collapsed altitude window: {self}")

    def contains(self, alt_m: float) -> bool:
        return self.min_alt <= alt_m <= self.max_alt

    def to_dict(self) -> dict:
        return {"min_alt": self.min_alt, "max_alt": self.max_alt}


@dataclass(frozen=True)
class CorrelationResult:
    """An aircraft paired with its nearest balloon inside the radius."""

    aircraft: AircraftState
    nearest_balloon_id: str
    distance_km: float

    def to_dict(self) -> dict:
        data = self.aircraft.to_dict()
        data["nearest_balloon_id"] = self.nearest_balloon_id
        data["distance_to_balloon_km"] = self.distance_km
        return data


class SkipReason(str, Enum):
    """Why the normalizer dropped a raw record."""

    WRONG_SHAPE = "wrong_shape"
    INVALID_POSITION = "invalid_position"
    NO_ALTITUDE = "no_altitude"


@dataclass(frozen=True)
class Skipped:
    """Tagged result of a decode step that rejected a record."""

    index: int
    reason: SkipReason
    detail: str = ""


DecodedBalloon = Union[TelemetryPoint, Skipped]
DecodedAircraft = Union[AircraftState, Skipped]


@dataclass(frozen=True)
class NormalizedBatch:
    """Records that survived decoding, in upstream order, plus the skips."""

    records: tuple = ()
    skipped: tuple = ()

    def skip_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for s in self.skipped:
            counts[s.reason.value] = counts.get(s.reason.value, 0) + 1
        return counts


class SnapshotStatus(str, Enum):
    """Outcome of the poll cycle that produced a snapshot."""

    EMPTY = "empty"              # Nothing published yet / no balloon data ever
    OK = "ok"                    # Full cycle succeeded
    STALE = "stale"              # Balloon feed failed, previous balloons kept
    NO_ENVELOPE = "no_envelope"  # Balloons gave no bbox or altitude window
    DEGRADED = "degraded"        # Aircraft feed failed, correlation skipped


@dataclass(frozen=True)
class FeedFailure:
    """Typed description of an upstream failure surfaced to API clients."""

    kind: str
    source: str
    message: str

    @classmethod
    def from_exception(cls, source: str, exc: Exception) -> "FeedFailure":
        return cls(kind=getattr(exc, "kind", "error"), source=source, message=str(exc))

    def to_dict(self) -> dict:
        return {"kind": self.kind, "source": self.source, "message": self.message}


@dataclass(frozen=True)
class Snapshot:
    """One fully-formed result of a poll cycle."""

    version: int = 0
    status: SnapshotStatus = SnapshotStatus.EMPTY
    balloons: tuple = ()
    aircraft: tuple = ()
    correlations: tuple = ()
    envelope: Optional[SpatialEnvelope] = None
    altitude_window: Optional[AltitudeWindow] = None
    balloon_hour_offset: Optional[int] = None
    balloons_fetched_at: Optional[datetime] = None
    generated_at: Optional[datetime] = None
    failures: tuple = field(default_factory=tuple)

    @property
    def degraded(self) -> bool:
        return self.status in (SnapshotStatus.STALE, SnapshotStatus.DEGRADED)

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "status": self.status.value,
            "balloons": [b.to_dict() for b in self.balloons],
            "aircraft": [a.to_dict() for a in self.aircraft],
            "correlations": [c.to_dict() for c in self.correlations],
            "envelope": self.envelope.to_dict() if self.envelope else None,
            "altitude_window": self.altitude_window.to_dict() if self.altitude_window else None,
            "balloon_hour_offset": self.balloon_hour_offset,
            "balloons_fetched_at": isoformat_z(self.balloons_fetched_at),
            "generated_at": isoformat_z(self.generated_at),
            "failures": [f.to_dict() for f in self.failures],
        }
