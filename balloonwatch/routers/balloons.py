"""
Balloon and aircraft API endpoints.

Endpoints read the current immutable snapshot. In ``on_request`` refresh mode
they first trigger a poll cycle, coalesced to at most one per
``min_refresh_interval`` seconds.
"""
import logging

import sentry_sdk
from fastapi import APIRouter, Depends

from balloonwatch.models import Snapshot
from balloonwatch.schemas import BalloonsResponse, FlightsResponse, SnapshotResponse
from balloonwatch.services.poll_cycle import PollCycle, get_poll_cycle

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Balloons"])


async def current_snapshot(cycle: PollCycle = Depends(get_poll_cycle)) -> Snapshot:
    """Current snapshot, refreshed first when running in on_request mode."""
    if cycle.settings.refresh_mode != "on_request":
        return cycle.store.current

    try:
        return await cycle.refresh(max_age=cycle.settings.min_refresh_interval)
    except Exception as e:
        logger.error(f"Request-triggered poll cycle failed: {e}")
        sentry_sdk.capture_exception(e)
        return cycle.store.current


def _meta(data: dict) -> dict:
    return {
        "status": data["status"],
        "version": data["version"],
        "generated_at": data["generated_at"],
        "failures": data["failures"],
    }


@router.get(
    "/api/balloons",
    response_model=BalloonsResponse,
    summary="Get Balloons and Nearby Flights",
    description="""
Current balloon positions plus every aircraft whose nearest balloon lies within
the correlation radius (default 50 km).

Each nearby flight carries:
- **nearest_balloon_id**: id of the closest balloon
- **distance_to_balloon_km**: great-circle distance to it

`status` is `ok` for a full cycle, `stale` when the balloon feed failed and the
previous snapshot is being served, `degraded` when the aircraft feed failed,
and `no_envelope` when the balloons gave no usable altitude corridor.
    """,
)
async def get_balloons(snapshot: Snapshot = Depends(current_snapshot)):
    """Balloons with their correlated aircraft."""
    data = snapshot.to_dict()
    return BalloonsResponse(
        **_meta(data),
        balloons=data["balloons"],
        nearbyFlights=data["correlations"],
    )


@router.get(
    "/api/flights",
    response_model=FlightsResponse,
    summary="Get Flights in Balloon Envelope",
    description="Aircraft inside the balloon bounding box and altitude window, correlated or not.",
)
async def get_flights(snapshot: Snapshot = Depends(current_snapshot)):
    """Aircraft that passed the altitude filter."""
    data = snapshot.to_dict()
    return FlightsResponse(**_meta(data), flights=data["aircraft"])


@router.get(
    "/api/v1/snapshot",
    response_model=SnapshotResponse,
    summary="Get Full Snapshot",
    description="The complete current snapshot including envelope, altitude window and failures.",
)
async def get_snapshot(snapshot: Snapshot = Depends(current_snapshot)):
    """Whole snapshot."""
    return SnapshotResponse(**snapshot.to_dict())
