"""Tests for the upstream feed clients"""
import httpx
import pytest

from balloonwatch.core.exceptions import NetworkError, ParseError
from balloonwatch.models import SpatialEnvelope
from balloonwatch.services.feeds import AircraftFeed, BalloonFeed

BBOX = SpatialEnvelope(min_lat=38.0, min_lon=-107.0, max_lat=42.0, max_lon=-103.0)


def client_for(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
class TestBalloonFeed:
    """Tests for BalloonFeed"""

    async def test_snapshot_url_zero_padded(self, test_settings):
        feed = BalloonFeed(test_settings)
        assert feed.snapshot_url(0) == "http://balloons.test/treasure/00.json"
        assert feed.snapshot_url(7) == "http://balloons.test/treasure/07.json"

    async def test_fetch_normalizes(self, test_settings, sample_balloon_snapshot):
        async with client_for(lambda r: httpx.Response(200, json=sample_balloon_snapshot)) as client:
            batch = await BalloonFeed(test_settings, client=client).fetch(0)
        assert len(batch.records) == 3
        assert batch.records[0].alt_m == pytest.approx(5000)

    async def test_fetch_not_array(self, test_settings):
        async with client_for(lambda r: httpx.Response(200, json={"oops": 1})) as client:
            with pytest.raises(ParseError) as exc_info:
                await BalloonFeed(test_settings, client=client).fetch(0)
        assert exc_info.value.url.endswith("/00.json")

    async def test_fallback_to_previous_hour(self, test_settings, sample_balloon_snapshot):
        requested = []

        def handler(request):
            requested.append(request.url.path)
            if request.url.path.endswith("/00.json"):
                return httpx.Response(500)
            return httpx.Response(200, json=sample_balloon_snapshot)

        async with client_for(handler) as client:
            result = await BalloonFeed(test_settings, client=client).fetch_with_fallback([0, 1])

        assert result.ok
        assert result.hour_offset == 1
        assert requested == ["/treasure/00.json", "/treasure/01.json"]
        assert result.batch.records[0].id == "b-1-0"
        assert [f.source for f in result.failures] == ["balloons:00"]
        assert result.failures[0].kind == "network"

    async def test_no_fallback_when_first_succeeds(self, test_settings, sample_balloon_snapshot):
        requested = []

        def handler(request):
            requested.append(request.url.path)
            return httpx.Response(200, json=sample_balloon_snapshot)

        async with client_for(handler) as client:
            result = await BalloonFeed(test_settings, client=client).fetch_with_fallback([0, 1])

        assert result.hour_offset == 0
        assert result.failures == ()
        assert requested == ["/treasure/00.json"]

    async def test_exactly_one_retry(self, test_settings):
        requested = []

        def handler(request):
            requested.append(request.url.path)
            return httpx.Response(200, text="not json")

        async with client_for(handler) as client:
            result = await BalloonFeed(test_settings, client=client).fetch_with_fallback()

        assert not result.ok
        assert len(requested) == 2
        assert [f.kind for f in result.failures] == ["parse", "parse"]


@pytest.mark.asyncio
class TestAircraftFeed:
    """Tests for AircraftFeed"""

    async def test_bbox_query(self, test_settings, sample_states_response):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, json=sample_states_response)

        async with client_for(handler) as client:
            batch = await AircraftFeed(test_settings, client=client).fetch(BBOX)

        assert len(batch.records) == 3
        params = dict(seen[0].params)
        assert params == {"lamin": "38.0", "lamax": "42.0", "lomin": "-107.0", "lomax": "-103.0"}
        assert seen[0].path == "/api/states/all"

    async def test_null_states(self, test_settings):
        async with client_for(lambda r: httpx.Response(200, json={"time": 1, "states": None})) as client:
            batch = await AircraftFeed(test_settings, client=client).fetch(BBOX)
        assert batch.records == ()

    async def test_not_an_object(self, test_settings):
        async with client_for(lambda r: httpx.Response(200, json=[1, 2])) as client:
            with pytest.raises(ParseError):
                await AircraftFeed(test_settings, client=client).fetch(BBOX)

    async def test_rate_limited(self, test_settings):
        async with client_for(lambda r: httpx.Response(429)) as client:
            with pytest.raises(NetworkError) as exc_info:
                await AircraftFeed(test_settings, client=client).fetch(BBOX)
        assert exc_info.value.status_code == 429
