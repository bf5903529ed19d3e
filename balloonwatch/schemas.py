"""
Pydantic schemas for API responses with OpenAPI documentation.
"""
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


# ============================================================================
# Telemetry Schemas
# ============================================================================

class BalloonPoint(BaseModel):
    """Normalized balloon position."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "b-0-12",
                "name": "b-0-12",
                "lon": -105.27,
                "lat": 40.01,
                "alt": 14.2,
                "alt_m": 14200.0,
                "hourAgo": 0,
                "mag": 1,
                "category": "Balloon"
            }
        }
    )

    id: str = Field(..., description="Balloon id (b-{hour}-{index})")
    name: str = Field(..., description="Display name, same as id")
    lon: float = Field(..., description="Longitude in decimal degrees")
    lat: float = Field(..., description="Latitude in decimal degrees")
    alt: Optional[float] = Field(None, description="Altitude as reported by the feed")
    alt_m: Optional[float] = Field(None, description="Altitude in meters")
    hourAgo: int = Field(..., description="Hour offset of the source snapshot")
    mag: int = Field(1, description="Marker magnitude for map rendering")
    category: str = Field("Balloon", description="Feature category")


class FlightState(BaseModel):
    """Normalized aircraft state vector."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "a1b2c3",
                "icao24": "a1b2c3",
                "callsign": "UAL123",
                "origin_country": "United States",
                "lon": -105.1,
                "lat": 40.2,
                "alt_m": 10668.0,
                "altitude_source": "geometric",
                "on_ground": False,
                "velocity": 231.5,
                "true_track": 270.0,
                "vertical_rate": 0.0,
                "category": "Flight"
            }
        }
    )

    id: str = Field(..., description="ICAO24, callsign, or flight-{index}")
    icao24: Optional[str] = Field(None, description="ICAO 24-bit hex address")
    callsign: Optional[str] = Field(None, description="Trimmed callsign")
    origin_country: Optional[str] = Field(None, description="Country of registration")
    lon: float = Field(..., description="Longitude in decimal degrees")
    lat: float = Field(..., description="Latitude in decimal degrees")
    alt_m: float = Field(..., description="Altitude in meters")
    altitude_source: str = Field(..., description="geometric or barometric")
    on_ground: bool = Field(False, description="Surface position report")
    velocity: Optional[float] = Field(None, description="Ground speed in m/s")
    true_track: Optional[float] = Field(None, description="Track in degrees clockwise from north")
    vertical_rate: Optional[float] = Field(None, description="Vertical rate in m/s")
    squawk: Optional[str] = Field(None, description="Transponder code")
    category: str = Field("Flight", description="Feature category")
    aircraft_category: Optional[int] = Field(None, description="OpenSky aircraft category")
    time_position: Optional[int] = Field(None, description="Unix time of last position update")
    last_contact: Optional[int] = Field(None, description="Unix time of last message")


class NearbyFlight(FlightState):
    """Aircraft correlated with its nearest balloon."""
    nearest_balloon_id: str = Field(..., description="Id of the nearest balloon")
    distance_to_balloon_km: float = Field(..., description="Great-circle distance to that balloon in km")


class EnvelopeSchema(BaseModel):
    """Padded bounding box used for the aircraft query."""
    min_lat: float
    min_lon: float
    max_lat: float
    max_lon: float


class AltitudeWindowSchema(BaseModel):
    """Altitude corridor in meters."""
    min_alt: float
    max_alt: float


class FeedFailureSchema(BaseModel):
    """Typed upstream failure attached to a degraded or stale snapshot."""
    kind: str = Field(..., description="network, parse, ...")
    source: str = Field(..., description="Feed that failed, e.g. balloons:00 or aircraft")
    message: str = Field(..., description="Failure message")


# ============================================================================
# Response Schemas
# ============================================================================

class SnapshotMeta(BaseModel):
    """Fields shared by every snapshot-derived response."""
    status: str = Field(..., description="ok, stale, degraded, no_envelope, or empty")
    version: int = Field(0, description="Monotonic snapshot version")
    generated_at: Optional[str] = Field(None, description="ISO 8601 time the snapshot was published")
    failures: list[FeedFailureSchema] = Field(default_factory=list, description="Upstream failures in the last cycle")


class BalloonsResponse(SnapshotMeta):
    """Balloons and the aircraft correlated with them."""
    balloons: list[BalloonPoint] = Field(default_factory=list, description="Current balloon positions")
    nearbyFlights: list[NearbyFlight] = Field(default_factory=list, description="Aircraft within the correlation radius")


class FlightsResponse(SnapshotMeta):
    """Aircraft inside the balloon envelope."""
    flights: list[FlightState] = Field(default_factory=list, description="Aircraft inside the altitude window")


class SnapshotResponse(SnapshotMeta):
    """Complete current snapshot."""
    balloons: list[BalloonPoint] = Field(default_factory=list)
    aircraft: list[FlightState] = Field(default_factory=list)
    correlations: list[NearbyFlight] = Field(default_factory=list)
    envelope: Optional[EnvelopeSchema] = None
    altitude_window: Optional[AltitudeWindowSchema] = None
    balloon_hour_offset: Optional[int] = Field(None, description="Hour offset the balloons came from")
    balloons_fetched_at: Optional[str] = Field(None, description="ISO 8601 time of the last balloon fetch")


# ============================================================================
# System Schemas
# ============================================================================

class HealthResponse(BaseModel):
    """Service health derived from the last poll cycle."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "snapshot_status": "ok",
                "snapshot_version": 42,
                "stage": "idle",
                "cycles_run": 42,
                "last_cycle_ms": 812.4,
                "generated_at": "2024-12-21T12:00:00Z",
                "timestamp": "2024-12-21T12:00:05Z"
            }
        }
    )

    status: str = Field(..., description="healthy, degraded, or unhealthy")
    snapshot_status: str = Field(..., description="Status of the current snapshot")
    snapshot_version: int = Field(0, description="Current snapshot version")
    stage: str = Field(..., description="Current poll cycle stage")
    cycles_run: int = Field(0, description="Cycles completed since startup")
    last_cycle_ms: Optional[float] = Field(None, description="Duration of the last cycle")
    generated_at: Optional[str] = Field(None, description="ISO 8601 time of the current snapshot")
    timestamp: str = Field(..., description="ISO 8601 timestamp of response")


class ConfigResponse(BaseModel):
    """Effective correlation configuration."""
    balloon_feed_base_url: str
    balloon_alt_unit: str
    balloon_hour_offsets: list[int]
    aircraft_feed_url: str
    ground_buffer_m: float
    top_buffer_m: float
    correlation_radius_km: float
    bbox_padding_deg: float
    fetch_timeout_seconds: float
    polling_interval: int
    refresh_mode: str
    min_refresh_interval: int


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional details")
