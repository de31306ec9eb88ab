# pylint: disable=missing-module-docstring,missing-function-docstring
import asyncio

import httpx
import pytest

from services.routing import Route, RoutingClient
from observability import logger


@pytest.fixture(autouse=True)
def _quiet_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logger, "_print", lambda line: None)


def osm_handler(request: httpx.Request) -> httpx.Response:
    assert request.headers["User-Agent"]
    if request.url.host == "nominatim.openstreetmap.org":
        if request.url.params["q"] == "nowhere":
            return httpx.Response(200, json=[])
        return httpx.Response(200, json=[{"lat": "18.52", "lon": "73.85"}])

    if request.url.host == "router.project-osrm.org":
        assert request.url.path.endswith("/73.8,18.5;73.85,18.52")
        return httpx.Response(200, json={
            "code": "Ok",
            "routes": [{
                "distance": 2400.0,
                "duration": 1800.0,
                "geometry": {"coordinates": [[73.8, 18.5], [73.85, 18.52]]},
            }],
        })

    return httpx.Response(404)


def make_client(handler=osm_handler) -> RoutingClient:  # type: ignore[no-untyped-def]
    return RoutingClient(transport=httpx.MockTransport(handler))


def test_geocode_returns_first_hit() -> None:
    assert asyncio.run(make_client().geocode("Shaniwar Wada")) == (18.52, 73.85)


def test_geocode_without_hits_is_none() -> None:
    assert asyncio.run(make_client().geocode("nowhere")) is None
    assert asyncio.run(make_client().geocode("   ")) is None


def test_route_swaps_to_lat_lon() -> None:
    route = asyncio.run(make_client().route((18.5, 73.8), (18.52, 73.85)))

    assert route == Route(
        coordinates=((18.5, 73.8), (18.52, 73.85)),
        distance_m=2400.0,
        duration_s=1800.0,
    )


def test_failures_return_none() -> None:
    def broken(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    def no_route(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"code": "NoRoute", "routes": []})

    assert asyncio.run(make_client(broken).geocode("Pune")) is None
    assert asyncio.run(make_client(no_route).route((0.0, 0.0), (1.0, 1.0))) is None
