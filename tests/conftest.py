"""
Shared pytest fixtures for BalloonWatch tests.

Provides settings, sample upstream payloads, httpx mock transports for the
two feeds, a PollCycle wired to them, and an ASGI test client.
"""
import os
import pytest
import pytest_asyncio
from typing import AsyncGenerator, Callable
import httpx
from httpx import AsyncClient, ASGITransport

# Set test environment variables before importing app
os.environ.setdefault('BALLOON_FEED_BASE_URL', 'http://balloons.test/treasure')
os.environ.setdefault('AIRCRAFT_FEED_URL', 'http://opensky.test/api/states/all')
os.environ.setdefault('REFRESH_MODE', 'background')
os.environ.setdefault('SENTRY_DSN', '')

from balloonwatch.main import app
from balloonwatch.core.config import Settings
from balloonwatch.models import AircraftState, TelemetryPoint
from balloonwatch.services.feeds import AircraftFeed, BalloonFeed
from balloonwatch.services.poll_cycle import PollCycle, get_poll_cycle

BALLOON_BASE = "http://balloons.test/treasure"
AIRCRAFT_URL = "http://opensky.test/api/states/all"


@pytest.fixture(scope="session")
def anyio_backend():
    """Use asyncio for async tests."""
    return "asyncio"


@pytest.fixture
def test_settings() -> Settings:
    """Settings pointing at the mock feeds, with default correlation values."""
    return Settings(
        balloon_feed_base_url=BALLOON_BASE,
        aircraft_feed_url=AIRCRAFT_URL,
        balloon_alt_unit="km",
        balloon_hour_offsets=[0, 1],
        ground_buffer_m=1000,
        top_buffer_m=100,
        correlation_radius_km=50,
        bbox_padding_deg=2,
        refresh_mode="background",
        _env_file=None,
    )


# =============================================================================
# Record Builders
# =============================================================================

def make_state(
    icao24="a1b2c3",
    callsign="UAL123  ",
    lon=-105.0,
    lat=40.0,
    baro_altitude=5000.0,
    on_ground=False,
    geo_altitude=None,
    **overrides,
) -> list:
    """Build an 18-field OpenSky state vector."""
    state = [
        icao24,           # 0 icao24
        callsign,         # 1 callsign
        "United States",  # 2 origin_country
        1703001200,       # 3 time_position
        1703001234,       # 4 last_contact
        lon,              # 5 longitude
        lat,              # 6 latitude
        baro_altitude,    # 7 baro_altitude
        on_ground,        # 8 on_ground
        230.5,            # 9 velocity
        270.0,            # 10 true_track
        0.0,              # 11 vertical_rate
        None,             # 12 sensors
        geo_altitude,     # 13 geo_altitude
        "1200",           # 14 squawk
        False,            # 15 spi
        0,                # 16 position_source
        3,                # 17 category
    ]
    positions = {"velocity": 9, "true_track": 10, "vertical_rate": 11, "squawk": 14, "aircraft_category": 17}
    for key, value in overrides.items():
        state[positions[key]] = value
    return state


def make_balloon(id="b-0-0", lon=-105.0, lat=40.0, alt_m=15000.0, hour_offset=0) -> TelemetryPoint:
    return TelemetryPoint(
        id=id,
        lon=lon,
        lat=lat,
        alt_m=alt_m,
        alt_raw=alt_m / 1000 if alt_m is not None else None,
        hour_offset=hour_offset,
    )


def make_aircraft(id="a1b2c3", lon=-105.0, lat=40.0, alt_m=5000.0, on_ground=False) -> AircraftState:
    return AircraftState(
        id=id,
        lon=lon,
        lat=lat,
        alt_m=alt_m,
        altitude_source="geometric",
        on_ground=on_ground,
        icao24=id,
    )


# =============================================================================
# Sample Upstream Data
# =============================================================================

@pytest.fixture
def sample_balloon_snapshot():
    """WindBorne {HH}.json body: [lon, lat, alt_km] triples, one malformed."""
    return [
        [-105.0, 40.0, 5.0],
        [-104.5, 40.5, 7.0],
        ["bad", 40.0, 3.0],
        [-103.0, 41.0],
    ]


@pytest.fixture
def sample_states_response():
    """OpenSky states/all body around the sample balloons."""
    return {
        "time": 1703001234,
        "states": [
            make_state(icao24="low001", callsign="LOW1", lon=-105.0, lat=40.0, baro_altitude=500.0),
            make_state(icao24="mid001", callsign="MID1", lon=-105.05, lat=40.05, baro_altitude=5000.0),
            make_state(icao24="high01", callsign="HIGH1", lon=-105.0, lat=40.0, baro_altitude=9000.0),
        ],
    }


# =============================================================================
# Mock Transports
# =============================================================================

def feed_transport(
    balloon_bodies: dict,
    aircraft_body=None,
    aircraft_status: int = 200,
    calls: list | None = None,
) -> httpx.MockTransport:
    """
    MockTransport serving both feeds.

    ``balloon_bodies`` maps an hour offset to a JSON body, an int status code,
    or an exception instance to raise. Requested URLs are appended to ``calls``.
    """
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request.url)
        if request.url.host == "balloons.test":
            hour = int(request.url.path.rsplit("/", 1)[-1].split(".")[0])
            body = balloon_bodies.get(hour, 404)
            if isinstance(body, Exception):
                raise body
            if isinstance(body, int):
                return httpx.Response(body)
            if isinstance(body, str):
                return httpx.Response(200, text=body)
            return httpx.Response(200, json=body)
        if isinstance(aircraft_body, Exception):
            raise aircraft_body
        if aircraft_status != 200:
            return httpx.Response(aircraft_status)
        return httpx.Response(200, json=aircraft_body)

    return httpx.MockTransport(handler)


@pytest.fixture
def make_cycle(test_settings) -> Callable[..., PollCycle]:
    """Factory for a PollCycle whose feeds talk to a feed_transport."""
    def factory(balloon_bodies, aircraft_body=None, aircraft_status=200, calls=None, settings=None):
        settings = settings or test_settings
        client = httpx.AsyncClient(
            transport=feed_transport(balloon_bodies, aircraft_body, aircraft_status, calls)
        )
        return PollCycle(
            settings,
            balloon_feed=BalloonFeed(settings, client=client),
            aircraft_feed=AircraftFeed(settings, client=client),
        )

    return factory


@pytest_asyncio.fixture
async def client_for() -> AsyncGenerator[Callable[[PollCycle], AsyncClient], None]:
    """Create async test clients bound to a given PollCycle."""
    clients = []

    def factory(cycle: PollCycle) -> AsyncClient:
        app.dependency_overrides[get_poll_cycle] = lambda: cycle
        ac = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(ac)
        return ac

    yield factory

    for ac in clients:
        await ac.aclose()
    app.dependency_overrides.clear()


@pytest.fixture
def state_factory():
    """Builder for raw OpenSky state vectors."""
    return make_state


@pytest.fixture
def balloon_factory():
    """Builder for TelemetryPoints."""
    return make_balloon


@pytest.fixture
def aircraft_factory():
    """Builder for AircraftStates."""
    return make_aircraft
