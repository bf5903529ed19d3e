"""
Upstream feed clients.

- BalloonFeed: WindBorne hourly snapshots at ``{base}/{HH}.json``, with an
  ordered fallback over hour offsets.
- AircraftFeed: OpenSky ``states/all`` scoped to a bounding box.

Both raise NetworkError / ParseError; the poll cycle decides what a failure
means for the published snapshot.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import httpx

from balloonwatch.core.config import Settings
from balloonwatch.core.exceptions import BalloonWatchError, ParseError
from balloonwatch.core.utils import fetch_json
from balloonwatch.models import FeedFailure, NormalizedBatch, SpatialEnvelope
from balloonwatch.services.normalizer import normalize_aircraft, normalize_balloons

logger = logging.getLogger(__name__)


class _FeedClient:
    """Shared GET logic: use the injected client, or a short-lived one."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._client = client

    async def _get_json(self, url: str, params: Optional[dict] = None) -> Any:
        if self._client is not None:
            return await fetch_json(self._client, url, params)

        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.settings.fetch_timeout_seconds),
            headers={"User-Agent": self.settings.user_agent, "Accept": "application/json"},
        ) as client:
            return await fetch_json(client, url, params)


@dataclass(frozen=True)
class BalloonFetchResult:
    """Outcome of walking the hour-offset fallback list."""

    hour_offset: Optional[int]
    batch: Optional[NormalizedBatch]
    failures: tuple = ()

    @property
    def ok(self) -> bool:
        return self.batch is not None


class BalloonFeed(_FeedClient):
    """WindBorne balloon constellation feed."""

    def snapshot_url(self, hour_offset: int) -> str:
        return f"{self.settings.balloon_feed_base_url.rstrip('/')}/{hour_offset:02d}.json"

    async def fetch(self, hour_offset: int = 0) -> NormalizedBatch:
        """
        Fetch and normalize one hourly snapshot.

        Raises:
            NetworkError: feed unreachable or non-2xx
            ParseError: body is not a JSON array
        """
        url = self.snapshot_url(hour_offset)
        raw = await self._get_json(url)
        try:
            return normalize_balloons(raw, hour_offset, self.settings.balloon_alt_unit)
        except ParseError as e:
            e.url = url
            e.details["url"] = url
            raise

    async def fetch_with_fallback(self, hour_offsets: Optional[Sequence[int]] = None) -> BalloonFetchResult:
        """
        Try each hour offset in order and return the first that succeeds.

        With the default ``[0, 1]`` this is the current hour plus exactly one
        retry against the previous hour.
        """
        offsets = list(hour_offsets if hour_offsets is not None else self.settings.balloon_hour_offsets)
        failures = []

        for hour_offset in offsets:
            try:
                batch = await self.fetch(hour_offset)
            except BalloonWatchError as e:
                logger.warning(f"Failed to fetch balloons at T-{hour_offset}h: {e.message}")
                failures.append(FeedFailure.from_exception(f"balloons:{hour_offset:02d}", e))
                continue

            if failures:
                logger.info(f"Balloon feed recovered at T-{hour_offset}h with {len(batch.records)} points")
            return BalloonFetchResult(hour_offset=hour_offset, batch=batch, failures=tuple(failures))

        return BalloonFetchResult(hour_offset=None, batch=None, failures=tuple(failures))


class AircraftFeed(_FeedClient):
    """OpenSky Network state vectors."""

    async def fetch_raw(self, bbox: SpatialEnvelope) -> Optional[list]:
        """
        Raw ``states`` list for the bounding box (None when OpenSky has none).

        Raises:
            NetworkError: feed unreachable or non-2xx
            ParseError: body is not a JSON object
        """
        url = self.settings.aircraft_feed_url
        data = await self._get_json(url, params=bbox.as_query_params())
        if not isinstance(data, dict):
            raise ParseError(f"Aircraft response is not an object (got {type(data).__name__})", url=url)
        return data.get("states")

    async def fetch(self, bbox: SpatialEnvelope) -> NormalizedBatch:
        """Fetch and normalize aircraft inside ``bbox``."""
        states = await self.fetch_raw(bbox)
        try:
            return normalize_aircraft(states)
        except ParseError as e:
            e.url = self.settings.aircraft_feed_url
            e.details["url"] = e.url
            raise
