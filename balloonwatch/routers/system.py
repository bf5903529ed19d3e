"""
System status and health API endpoints.
"""
from fastapi import APIRouter, Depends

from balloonwatch.core.utils import isoformat_z, utcnow
from balloonwatch.models import SnapshotStatus
from balloonwatch.schemas import ConfigResponse, HealthResponse
from balloonwatch.services.poll_cycle import PollCycle, get_poll_cycle

router = APIRouter(prefix="/api/v1", tags=["System"])

_HEALTH_BY_STATUS = {
    SnapshotStatus.OK: "healthy",
    SnapshotStatus.NO_ENVELOPE: "degraded",
    SnapshotStatus.STALE: "degraded",
    SnapshotStatus.DEGRADED: "degraded",
    SnapshotStatus.EMPTY: "unhealthy",
}


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="""
Health derived from the current snapshot:

- `healthy`: last cycle completed normally
- `degraded`: serving stale balloons, aircraft feed down, or no altitude corridor
- `unhealthy`: no balloon data has ever been published
    """,
)
async def health_check(cycle: PollCycle = Depends(get_poll_cycle)):
    """Health of the poll cycle and current snapshot."""
    snapshot = cycle.store.current
    return HealthResponse(
        status=_HEALTH_BY_STATUS[snapshot.status],
        snapshot_status=snapshot.status.value,
        snapshot_version=snapshot.version,
        stage=cycle.stage.value,
        cycles_run=cycle.cycles_run,
        last_cycle_ms=cycle.last_duration_ms,
        generated_at=isoformat_z(snapshot.generated_at),
        timestamp=isoformat_z(utcnow()),
    )


@router.get(
    "/config",
    response_model=ConfigResponse,
    summary="Get Configuration",
    description="Effective feed, envelope and correlation settings.",
)
async def get_config(cycle: PollCycle = Depends(get_poll_cycle)):
    """Current configuration (no secrets)."""
    return ConfigResponse(**cycle.settings.model_dump(include=set(ConfigResponse.model_fields)))
