"""
Normalization of raw balloon triples and OpenSky state vectors.

Each raw record goes through an explicit decode step that returns either a
typed record or a ``Skipped`` marker with the reason. Batch functions never
fail because of an individual record; they only raise ParseError when the
batch itself is not a list.
"""
import logging
from dataclasses import replace
from typing import Any, Optional

from balloonwatch.core.exceptions import ParseError, ValidationError
from balloonwatch.core.utils import (
    altitude_to_meters, finite_or_none, is_finite_number, is_number, is_valid_position
)
from balloonwatch.models import (
    AircraftState, DecodedAircraft, DecodedBalloon, NormalizedBatch,
    SkipReason, Skipped, TelemetryPoint
)

logger = logging.getLogger(__name__)

# OpenSky state vector field positions
ICAO24 = 0
CALLSIGN = 1
ORIGIN_COUNTRY = 2
TIME_POSITION = 3
LAST_CONTACT = 4
LONGITUDE = 5
LATITUDE = 6
BARO_ALTITUDE = 7
ON_GROUND = 8
VELOCITY = 9
TRUE_TRACK = 10
VERTICAL_RATE = 11
SENSORS = 12
GEO_ALTITUDE = 13
SQUAWK = 14
SPI = 15
POSITION_SOURCE = 16
AIRCRAFT_CATEGORY = 17

MIN_STATE_FIELDS = ON_GROUND + 1


def _field(record: list, index: int) -> Any:
    """Read an optional trailing field from a short tuple."""
    return record[index] if index < len(record) else None


def _require_sequence(record: Any, min_len: int) -> list:
    if not isinstance(record, (list, tuple)):
        raise ValidationError("Record is not an array", field="record", value=record)
    if len(record) < min_len:
        raise ValidationError(f"Record has fewer than {min_len} fields", field="record", value=record)
    return list(record)


def _require_position(lat: Any, lon: Any) -> tuple[float, float]:
    if not is_number(lat) or not is_number(lon):
        raise ValidationError("Coordinates are not numeric", field="position", value=(lon, lat))
    if not is_valid_position(lat, lon):
        raise ValidationError("Coordinates out of range", field="position", value=(lon, lat))
    return float(lat), float(lon)


def _clean_str(value: Any) -> Optional[str]:
    """Trimmed string, or None for non-strings and blanks."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _optional_int(value: Any) -> Optional[int]:
    if is_finite_number(value):
        return int(value)
    return None


def select_altitude(geo_altitude: Any, baro_altitude: Any) -> Optional[tuple[float, str]]:
    """
    Geometric altitude if finite, else barometric if finite, else None.

    Returns (meters, source) where source is "geometric" or "barometric".
    """
    if is_finite_number(geo_altitude):
        return float(geo_altitude), "geometric"
    if is_finite_number(baro_altitude):
        return float(baro_altitude), "barometric"
    return None


def derive_aircraft_id(icao24: Any, callsign: Any, index: int) -> str:
    """First non-blank of ICAO24, callsign, then ``flight-{index}``."""
    return _clean_str(icao24) or _clean_str(callsign) or f"flight-{index}"


def decode_balloon(record: Any, index: int, hour_offset: int, unit: str = "km") -> DecodedBalloon:
    """Decode one ``[lon, lat, alt?]`` triple."""
    try:
        values = _require_sequence(record, 2)
        lat, lon = _require_position(values[1], values[0])
    except ValidationError as e:
        reason = SkipReason.WRONG_SHAPE if e.field == "record" else SkipReason.INVALID_POSITION
        return Skipped(index=index, reason=reason, detail=e.message)

    alt_raw = _field(values, 2)
    if not is_finite_number(alt_raw):
        alt_raw = None

    return TelemetryPoint(
        id=f"b-{hour_offset}-{index}",
        lon=lon,
        lat=lat,
        alt_m=altitude_to_meters(alt_raw, unit),
        alt_raw=alt_raw,
        hour_offset=hour_offset,
    )


def decode_aircraft(record: Any, index: int) -> DecodedAircraft:
    """Decode one OpenSky state vector."""
    try:
        values = _require_sequence(record, MIN_STATE_FIELDS)
        lat, lon = _require_position(values[LATITUDE], values[LONGITUDE])
    except ValidationError as e:
        reason = SkipReason.WRONG_SHAPE if e.field == "record" else SkipReason.INVALID_POSITION
        return Skipped(index=index, reason=reason, detail=e.message)

    altitude = select_altitude(_field(values, GEO_ALTITUDE), values[BARO_ALTITUDE])
    if altitude is None:
        return Skipped(index=index, reason=SkipReason.NO_ALTITUDE, detail="No finite geometric or barometric altitude")
    alt_m, alt_source = altitude

    callsign = _clean_str(values[CALLSIGN])
    squawk = _field(values, SQUAWK)

    return AircraftState(
        id=derive_aircraft_id(values[ICAO24], callsign, index),
        lon=lon,
        lat=lat,
        alt_m=alt_m,
        altitude_source=alt_source,
        on_ground=values[ON_GROUND] is True,
        icao24=_clean_str(values[ICAO24]),
        callsign=callsign,
        origin_country=_clean_str(values[ORIGIN_COUNTRY]),
        velocity=finite_or_none(_field(values, VELOCITY)),
        true_track=finite_or_none(_field(values, TRUE_TRACK)),
        vertical_rate=finite_or_none(_field(values, VERTICAL_RATE)),
        squawk=squawk if isinstance(squawk, str) else None,
        aircraft_category=_optional_int(_field(values, AIRCRAFT_CATEGORY)),
        time_position=_optional_int(values[TIME_POSITION]),
        last_contact=_optional_int(values[LAST_CONTACT]),
    )


def _unique_id(record_id: str, index: int, seen_ids: set[str]) -> str:
    """Suffix a colliding id with its raw index until it is unused."""
    candidate = record_id
    while candidate in seen_ids:
        candidate = f"{candidate}-{index}"
    return candidate


def _collect(decoded: list) -> NormalizedBatch:
    """Split decode results (one per raw index) into records and skips, enforcing unique ids."""
    records = []
    skipped = []
    seen_ids: set[str] = set()

    for index, item in enumerate(decoded):
        if isinstance(item, Skipped):
            skipped.append(item)
            continue
        if item.id in seen_ids:
            unique = _unique_id(item.id, index, seen_ids)
            logger.warning(f"Record {index} reuses id {item.id!r}, renamed to {unique!r}")
            item = replace(item, id=unique)
        seen_ids.add(item.id)
        records.append(item)

    for s in skipped:
        logger.debug(f"Skipped record {s.index}: {s.reason.value} {s.detail}")

    return NormalizedBatch(records=tuple(records), skipped=tuple(skipped))


def normalize_balloons(raw: Any, hour_offset: int, unit: str = "km") -> NormalizedBatch:
    """
    Normalize a WindBorne snapshot into TelemetryPoints.

    Raises:
        ParseError: if the snapshot is not a JSON array
    """
    if not isinstance(raw, list):
        raise ParseError(f"Balloon snapshot {hour_offset:02d}.json is not an array (got {type(raw).__name__})")

    batch = _collect([decode_balloon(r, i, hour_offset, unit) for i, r in enumerate(raw)])
    logger.info(
        f"Snapshot T-{hour_offset}h: {len(batch.records)} valid balloon points "
        f"({len(batch.skipped)} skipped)"
    )
    return batch


def normalize_aircraft(states: Any) -> NormalizedBatch:
    """
    Normalize OpenSky ``states`` into AircraftStates.

    A ``None`` states list (OpenSky's answer for an empty box) is an empty
    batch.

    Raises:
        ParseError: if states is neither None nor a list
    """
    if states is None:
        return NormalizedBatch()
    if not isinstance(states, list):
        raise ParseError(f"Aircraft states is not an array (got {type(states).__name__})")

    batch = _collect([decode_aircraft(s, i) for i, s in enumerate(states)])
    logger.debug(f"Normalized {len(batch.records)} aircraft, skipped {batch.skip_counts()}")
    return batch
