"""
Poll cycle orchestration and the published snapshot.

One cycle runs the stages in strict order:

    IDLE -> FETCH_BALLOONS -> BUILD_ENVELOPE -> FETCH_AIRCRAFT -> NORMALIZE
         -> FILTER -> CORRELATE -> PUBLISH -> IDLE

Cycles are serialized by an asyncio.Lock, so only one cycle writes at a time.
The result is an immutable Snapshot swapped into the SnapshotStore with a
single reference assignment as the last step; readers never need the lock.
A cycle cancelled mid-flight (shutdown) therefore publishes nothing.

Failure policy:
- Balloon feed fails for every configured hour offset: the previous snapshot
  is kept and republished as ``stale`` with the failures attached. If nothing
  was ever published the result is an ``empty`` snapshot.
- Balloons give no bounding box or altitude window: ``no_envelope``, balloons
  kept, aircraft and correlations empty.
- Aircraft feed fails (network or parse): ``degraded``, balloons and envelope
  kept, aircraft and correlations empty, failure attached. No retry; the next
  cycle tries again.
"""
import asyncio
import logging
import time
from dataclasses import replace
from enum import Enum
from typing import Optional

import sentry_sdk

from balloonwatch.core.config import Settings, get_settings
from balloonwatch.core.exceptions import BalloonWatchError, EnvelopeUndefined
from balloonwatch.core.utils import utcnow
from balloonwatch.models import FeedFailure, Snapshot, SnapshotStatus
from balloonwatch.services.altitude_filter import filter_by_altitude
from balloonwatch.services.correlator import correlate
from balloonwatch.services.envelope import build_envelope
from balloonwatch.services.feeds import AircraftFeed, BalloonFeed
from balloonwatch.services.normalizer import normalize_aircraft

logger = logging.getLogger(__name__)


class CycleStage(str, Enum):
    """Poll cycle states."""

    IDLE = "idle"
    FETCH_BALLOONS = "fetch_balloons"
    BUILD_ENVELOPE = "build_envelope"
    FETCH_AIRCRAFT = "fetch_aircraft"
    NORMALIZE = "normalize"
    FILTER = "filter"
    CORRELATE = "correlate"
    PUBLISH = "publish"


class SnapshotStore:
    """Holds the single current Snapshot. Publishing is one reference swap."""

    def __init__(self, initial: Optional[Snapshot] = None):
        self._current = initial or Snapshot()

    @property
    def current(self) -> Snapshot:
        return self._current

    def next_version(self) -> int:
        return self._current.version + 1

    def publish(self, snapshot: Snapshot) -> Snapshot:
        if snapshot.version <= self._current.version:
            raise ValueError(
                f"Snapshot version {snapshot.version} is not newer than {self._current.version}"
            )
        self._current = snapshot
        return snapshot


class PollCycle:
    """
    Runs fetch -> envelope -> fetch -> normalize -> filter -> correlate ->
    publish against the two upstream feeds.

    Usage:
        cycle = PollCycle(settings)
        snapshot = await cycle.run()
        cycle.store.current  # latest published snapshot
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        balloon_feed: Optional[BalloonFeed] = None,
        aircraft_feed: Optional[AircraftFeed] = None,
        store: Optional[SnapshotStore] = None,
    ):
        self.settings = settings or get_settings()
        self.balloon_feed = balloon_feed or BalloonFeed(self.settings)
        self.aircraft_feed = aircraft_feed or AircraftFeed(self.settings)
        self.store = store or SnapshotStore()
        self.stage = CycleStage.IDLE
        self.cycles_run = 0
        self.last_duration_ms: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def run(self) -> Snapshot:
        """Run one full cycle, waiting for any cycle already in progress."""
        async with self._lock:
            return await self._run_locked()

    async def refresh(self, max_age: Optional[float] = None) -> Snapshot:
        """
        Run a cycle unless the current snapshot is younger than ``max_age``
        seconds. Concurrent callers queue on the lock and then reuse the
        snapshot the first one produced.
        """
        async with self._lock:
            current = self.store.current
            if max_age and current.generated_at is not None:
                age = (utcnow() - current.generated_at).total_seconds()
                if age < max_age:
                    return current
            return await self._run_locked()

    async def _run_locked(self) -> Snapshot:
        start = time.monotonic()
        try:
            with sentry_sdk.start_span(op="poll_cycle", description="Balloon/aircraft poll cycle"):
                snapshot = await self._execute()
        finally:
            self.stage = CycleStage.IDLE

        self.cycles_run += 1
        self.last_duration_ms = round((time.monotonic() - start) * 1000, 1)
        logger.info(
            f"Poll cycle v{snapshot.version} {snapshot.status.value}: "
            f"{len(snapshot.balloons)} balloons, {len(snapshot.aircraft)} aircraft, "
            f"{len(snapshot.correlations)} correlations ({self.last_duration_ms}ms)"
        )
        return snapshot

    def _publish(self, snapshot: Snapshot) -> Snapshot:
        self.stage = CycleStage.PUBLISH
        return self.store.publish(snapshot)

    def _report_failures(self, failures: list[FeedFailure]) -> None:
        sentry_sdk.set_context("poll_cycle_failures", {
            "failures": [f.to_dict() for f in failures],
        })

    async def _execute(self) -> Snapshot:
        previous = self.store.current
        version = self.store.next_version()
        settings = self.settings

        # Balloons, with ordered hour-offset fallback
        self.stage = CycleStage.FETCH_BALLOONS
        fetched = await self.balloon_feed.fetch_with_fallback(settings.balloon_hour_offsets)
        failures = list(fetched.failures)

        if not fetched.ok:
            logger.error(f"Balloon feed unavailable for offsets {settings.balloon_hour_offsets}")
            self._report_failures(failures)
            if previous.balloons:
                return self._publish(replace(
                    previous,
                    version=version,
                    status=SnapshotStatus.STALE,
                    generated_at=utcnow(),
                    failures=tuple(failures),
                ))
            return self._publish(Snapshot(
                version=version,
                status=SnapshotStatus.EMPTY,
                generated_at=utcnow(),
                failures=tuple(failures),
            ))

        balloons = fetched.batch.records
        balloons_fetched_at = utcnow()
        base = Snapshot(
            version=version,
            balloons=balloons,
            balloon_hour_offset=fetched.hour_offset,
            balloons_fetched_at=balloons_fetched_at,
            failures=tuple(failures),
        )

        # Envelope
        self.stage = CycleStage.BUILD_ENVELOPE
        try:
            bbox, window = build_envelope(list(balloons), settings)
        except EnvelopeUndefined as e:
            logger.info(f"Skipping aircraft correlation: {e.message}")
            return self._publish(replace(base, status=SnapshotStatus.NO_ENVELOPE, generated_at=utcnow()))

        base = replace(base, envelope=bbox, altitude_window=window)

        # Aircraft
        try:
            self.stage = CycleStage.FETCH_AIRCRAFT
            states = await self.aircraft_feed.fetch_raw(bbox)

            self.stage = CycleStage.NORMALIZE
            batch = normalize_aircraft(states)
        except BalloonWatchError as e:
            logger.error(f"Aircraft feed failed: {e}")
            sentry_sdk.capture_exception(e)
            failures.append(FeedFailure.from_exception("aircraft", e))
            self._report_failures(failures)
            return self._publish(replace(
                base,
                status=SnapshotStatus.DEGRADED,
                generated_at=utcnow(),
                failures=tuple(failures),
            ))

        self.stage = CycleStage.FILTER
        candidates = filter_by_altitude(batch.records, window)
        logger.debug(
            f"{len(candidates)} of {len(batch.records)} aircraft inside "
            f"{window.min_alt:.0f}-{window.max_alt:.0f} m"
        )

        self.stage = CycleStage.CORRELATE
        correlations = correlate(balloons, candidates, settings.correlation_radius_km)

        return self._publish(replace(
            base,
            status=SnapshotStatus.OK,
            aircraft=tuple(candidates),
            correlations=tuple(correlations),
            generated_at=utcnow(),
        ))


# Global instance (created during app startup)
_poll_cycle: Optional[PollCycle] = None


def create_poll_cycle(settings: Optional[Settings] = None, **kwargs) -> PollCycle:
    """Create the process-wide poll cycle."""
    global _poll_cycle
    _poll_cycle = PollCycle(settings, **kwargs)
    return _poll_cycle


def get_poll_cycle() -> PollCycle:
    """Get the process-wide poll cycle, creating it on first use."""
    global _poll_cycle
    if _poll_cycle is None:
        _poll_cycle = PollCycle()
    return _poll_cycle
