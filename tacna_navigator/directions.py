"""
Tacna Transit Navigator — Detailed path via a driving-directions service
=========================================================================
Turns conceptual waypoints into a road-following polyline. The first
conceptual point is the origin, the last the destination, and every
interior point an ordered waypoint. Only the first candidate route is
used. No retries: a failed lookup is reported immediately and the caller
shows the conceptual waypoints instead.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence

import requests

from .config import settings
from .errors import DirectionsUnavailableError
from .models import ConceptualPath, DetailedPath, PathDisplay, PathSource, RouteCoordinate

log = logging.getLogger("navigator.directions")

DIRECTIONS_FAILED_MESSAGE = (
    "El servicio de mapas no pudo trazar una ruta detallada con los puntos sugeridos. "
    "Se muestran los puntos de la ruta conceptual."
)
AI_FALLBACK_MESSAGE = (
    "La generación automática de la ruta falló; se muestra una línea directa."
)


@dataclass(frozen=True)
class DirectionsResult:
    ok:     bool
    status: str
    routes: List[List[RouteCoordinate]] = field(default_factory=list)


class DirectionsClient(Protocol):
    def route(
        self,
        origin:      RouteCoordinate,
        destination: RouteCoordinate,
        waypoints:   Sequence[RouteCoordinate],
        mode:        str = "driving",
    ) -> DirectionsResult: ...


class OSRMDirectionsClient:
    """OSRM /route/v1 adapter returning full-overview GeoJSON geometry."""

    def __init__(self, osrm_url: Optional[str] = None, timeout: Optional[float] = None, session=None):
        self.osrm_url = (osrm_url or settings.OSRM_URL).rstrip("/")
        self.timeout  = timeout or settings.HTTP_TIMEOUT_S
        self._http    = session or requests.Session()

    def route(self, origin, destination, waypoints, mode="driving") -> DirectionsResult:
        points = [origin, *waypoints, destination]
        # OSRM expects lon,lat pairs
        coord_string = ";".join(f"{p.lng},{p.lat}" for p in points)
        url    = f"{self.osrm_url}/route/v1/{mode}/{coord_string}"
        params = {"overview": "full", "geometries": "geojson", "alternatives": "false"}

        try:
            response = self._http.get(url, params=params, timeout=self.timeout)
            data     = response.json()
        except requests.RequestException as exc:
            raise DirectionsUnavailableError(f"OSRM request failed: {exc}") from exc
        except ValueError as exc:
            raise DirectionsUnavailableError(f"OSRM returned a non-JSON body [{response.status_code}]") from exc

        if not isinstance(data, dict):
            raise DirectionsUnavailableError(
                f"OSRM returned {type(data).__name__} instead of an object [{response.status_code}]"
            )

        code =data.get("code") or f"HTTP_{response.status_code}"
        if response.status_code != 200 or code != "Ok":
            log.warning(f"OSRM returned error: {code} {data.get('message', '')}".rstrip())
            return DirectionsResult(ok=False, status=code)

        try:
            routes = [
                [RouteCoordinate(lat=lat, lng=lon) for lon, lat in r["geometry"]["coordinates"]]
                for r in data.get("routes", [])
            ]
        except (KeyError, TypeError, ValueError) as exc:
            raise DirectionsUnavailableError(f"OSRM geometry is malformed: {exc}") from exc

        return DirectionsResult(ok=True, status=code, routes=routes)


def request_detailed_path(conceptual_path: ConceptualPath, client: DirectionsClient) -> DetailedPath:
    """Road-following points for the conceptual path, in order and unmodified."""
    coords = conceptual_path.coordinates
    if len(coords) < 2:
        raise DirectionsUnavailableError("A detailed path needs at least 2 conceptual points")

    result = client.route(coords[0], coords[-1], list(coords[1:-1]), mode="driving")

    if not result.ok:
        raise DirectionsUnavailableError(f"Directions service returned status {result.status}")
    if not result.routes or not result.routes[0]:
        raise DirectionsUnavailableError("Directions service returned no usable route")

    log.info(f"Detailed path: {len(result.routes[0])} points via {len(coords) - 2} waypoints")
    return list(result.routes[0])


def assemble_display(
    conceptual_path: ConceptualPath,
    detailed_path:   Optional[DetailedPath],
) -> PathDisplay:
    """
    Pick what the map shows: the detailed path when there is one, otherwise
    the conceptual waypoints, with a message explaining any degradation.
    """
    notes = []
    if conceptual_path.is_fallback:
        notes.append(AI_FALLBACK_MESSAGE)

    if detailed_path:
        displayed, source = list(detailed_path), PathSource.DETAILED
    else:
        displayed, source = list(conceptual_path.coordinates), PathSource.CONCEPTUAL
        notes.append(DIRECTIONS_FAILED_MESSAGE)

    return PathDisplay(
        conceptual_path=conceptual_path,
        displayed_path=displayed,
        source=source,
        fallback=conceptual_path.is_fallback,
        message=" ".join(notes) or None,
    )


def resolve_display_path(conceptual_path: ConceptualPath, client: DirectionsClient) -> PathDisplay:
    try:
        detailed = request_detailed_path(conceptual_path, client)
    except DirectionsUnavailableError as exc:
        log.warning(f"Directions unavailable ({exc}) — showing conceptual waypoints.")
        detailed = None
    return assemble_display(conceptual_path, detailed)
