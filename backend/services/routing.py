"""
Walking directions via free public OpenStreetMap services.

- geocode(): Nominatim search, first hit only
- route(): OSRM walking profile, full GeoJSON geometry

Both return None on any failure; callers speak a fallback sentence.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from observability.logger import log_event

from spec import ROUTING_REQUEST_TIMEOUT_S

NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"
OSRM_ROUTE_URL = "https://router.project-osrm.org/route/v1/walking"

# Nominatim's usage policy requires an identifying User-Agent
USER_AGENT = "assistive-vision/0.1"

LatLon = tuple[float, float]


@dataclass(frozen=True)
class Route:
    """A walking route; coordinates are (lat, lon) pairs."""
    coordinates: tuple[LatLon, ...]
    distance_m: float
    duration_s: float


class RoutingClient:
    """Geocoding and routing over httpx."""

    def __init__(
        self,
        *,
        timeout_s: float = ROUTING_REQUEST_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout_s = timeout_s
        self._transport = transport

    async def geocode(self, address: str) -> LatLon | None:
        if not address.strip():
            return None
        try:
            async with self._client() as client:
                response = await client.get(
                    NOMINATIM_URL,
                    params={"format": "json", "q": address},
                )
                response.raise_for_status()
                hits = response.json()
            if not hits:
                return None
            return float(hits[0]["lat"]), float(hits[0]["lon"])
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as exc:
            self._log_error("GEOCODE_ERROR", exc, address=address)
            return None

    async def route(self, start: LatLon, end: LatLon) -> Route | None:
        # OSRM wants lon,lat
        path = f"{start[1]},{start[0]};{end[1]},{end[0]}"
        try:
            async with self._client() as client:
                response = await client.get(
                    f"{OSRM_ROUTE_URL}/{path}",
                    params={"overview": "full", "geometries": "geojson"},
                )
                response.raise_for_status()
                data = response.json()

            if data.get("code") != "Ok" or not data.get("routes"):
                raise ValueError(f"routing failed: {data.get('code')}")

            best = data["routes"][0]
            coordinates = tuple(
                (float(lat), float(lon)) for lon, lat in best["geometry"]["coordinates"]
            )
            return Route(
                coordinates=coordinates,
                distance_m=float(best["distance"]),
                duration_s=float(best["duration"]),
            )
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as exc:
            self._log_error("ROUTE_ERROR", exc, start=start, end=end)
            return None

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout_s,
            transport=self._transport,
            headers={"User-Agent": USER_AGENT},
        )

    @staticmethod
    def _log_error(event_type: str, exc: Exception, **details: object) -> None:
        log_event({
            "event_type": event_type,
            "exception": type(exc).__name__,
            "message": str(exc),
            **details,
        })
