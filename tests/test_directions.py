"""Detailed path requester and the OSRM adapter."""
import pytest
import requests

from tacna_navigator.directions import (
    DIRECTIONS_FAILED_MESSAGE,
    DirectionsResult,
    OSRMDirectionsClient,
    assemble_display,
    request_detailed_path,
    resolve_display_path,
)
from tacna_navigator.errors import DirectionsUnavailableError
from tacna_navigator.models import ConceptualPath, PathSource, RouteCoordinate

from fakes import DESTINATION, ORIGIN, FakeDirections, FakeHttp, FakeResponse, polyline

FOUR_POINTS = ConceptualPath(
    description="Por Av. Bolognesi",
    coordinates=[
        ORIGIN,
        RouteCoordinate(lat=-18.0120, lng=-70.2490),
        RouteCoordinate(lat=-18.0100, lng=-70.2450),
        DESTINATION,
    ],
    reasoning="Evita el centro",
)


# ── request_detailed_path ────────────────────────────────────────────────────

def test_forty_point_polyline_is_returned_unmodified():
    line   = polyline(40)
    client = FakeDirections(DirectionsResult(ok=True, status="Ok", routes=[line]))

    detailed = request_detailed_path(FOUR_POINTS, client)

    assert detailed == line
    assert len(detailed) == 40


def test_endpoints_and_interior_waypoints_are_forwarded_in_order():
    client = FakeDirections()
    request_detailed_path(FOUR_POINTS, client)

    origin, destination, waypoints, mode = client.calls[0]
    assert origin == ORIGIN
    assert destination == DESTINATION
    assert waypoints == FOUR_POINTS.coordinates[1:-1]
    assert mode == "driving"


def test_two_point_path_has_no_waypoints():
    client = FakeDirections()
    request_detailed_path(ConceptualPath(coordinates=[ORIGIN, DESTINATION]), client)
    assert client.calls[0][2] == []


def test_only_first_candidate_route_is_used():
    first, second = polyline(5), polyline(7, start=DESTINATION)
    client = FakeDirections(DirectionsResult(ok=True, status="Ok", routes=[first, second]))
    assert request_detailed_path(FOUR_POINTS, client) == first


@pytest.mark.parametrize(
    "result",
    [
        DirectionsResult(ok=False, status="NoRoute"),
        DirectionsResult(ok=True, status="Ok", routes=[]),
        DirectionsResult(ok=True, status="Ok", routes=[[]]),
    ],
)
def test_unusable_results_raise(result):
    with pytest.raises(DirectionsUnavailableError):
        request_detailed_path(FOUR_POINTS, FakeDirections(result))


def test_each_failure_is_a_single_call():
    client = FakeDirections(DirectionsResult(ok=False, status="NoRoute"))
    with pytest.raises(DirectionsUnavailableError):
        request_detailed_path(FOUR_POINTS, client)
    assert len(client.calls) == 1


# ── degradation to the conceptual path ───────────────────────────────────────

def test_non_success_status_shows_conceptual_coordinates():
    client = FakeDirections(DirectionsResult(ok=False, status="NoRoute"))

    display = resolve_display_path(FOUR_POINTS, client)

    assert display.source is PathSource.CONCEPTUAL
    assert display.displayed_path == FOUR_POINTS.coordinates
    assert DIRECTIONS_FAILED_MESSAGE in display.message


def test_transport_error_shows_conceptual_coordinates():
    client  = FakeDirections(error=DirectionsUnavailableError("timeout"))
    display = resolve_display_path(FOUR_POINTS, client)
    assert display.displayed_path == FOUR_POINTS.coordinates


def test_successful_lookup_shows_detailed_path():
    display = resolve_display_path(FOUR_POINTS, FakeDirections())
    assert display.source is PathSource.DETAILED
    assert len(display.displayed_path) == 40
    assert display.message is None
    assert display.conceptual_path == FOUR_POINTS


def test_fallback_conceptual_path_is_flagged_in_display():
    fallback = ConceptualPath(coordinates=[ORIGIN, DESTINATION], is_fallback=True)
    display  = assemble_display(fallback, polyline(10))
    assert display.fallback
    assert display.message


# ── OSRM adapter ─────────────────────────────────────────────────────────────

def _osrm_ok(points):
    return FakeResponse(200, {
        "code": "Ok",
        "routes": [{"geometry": {"type": "LineString", "coordinates": [[p.lng, p.lat] for p in points]}}],
    })


def test_osrm_request_uses_lon_lat_order():
    http   = FakeHttp(_osrm_ok(polyline(3)))
    client = OSRMDirectionsClient(osrm_url="http://osrm.test/", timeout=5, session=http)

    client.route(ORIGIN, DESTINATION, [RouteCoordinate(lat=-18.0120, lng=-70.2490)])

    call = http.calls[0]
    assert call["url"] == (
        "http://osrm.test/route/v1/driving/"
        "-70.2536,-18.0146;-70.249,-18.012;-70.24,-18.008"
    )
    assert call["params"]["overview"] == "full"
    assert call["params"]["geometries"] == "geojson"
    assert call["timeout"] == 5


def test_osrm_geometry_is_converted_to_lat_lng():
    line   = polyline(12)
    client = OSRMDirectionsClient(osrm_url="http://osrm.test", session=FakeHttp(_osrm_ok(line)))

    result = client.route(ORIGIN, DESTINATION, [])

    assert result.ok
    assert result.routes == [line]


def test_osrm_error_code_is_not_ok():
    response = FakeResponse(400, {"code": "NoRoute", "message": "Impossible route between points"})
    client   = OSRMDirectionsClient(osrm_url="http://osrm.test", session=FakeHttp(response))

    result = client.route(ORIGIN, DESTINATION, [])

    assert not result.ok
    assert result.status == "NoRoute"


def test_osrm_transport_failure_raises():
    http   = FakeHttp(error=requests.ConnectionError("refused"))
    client = OSRMDirectionsClient(osrm_url="http://osrm.test", session=http)
    with pytest.raises(DirectionsUnavailableError):
        client.route(ORIGIN, DESTINATION, [])


def test_osrm_non_json_body_raises():
    client = OSRMDirectionsClient(osrm_url="http://osrm.test", session=FakeHttp(FakeResponse(502, None)))
    with pytest.raises(DirectionsUnavailableError):
        client.route(ORIGIN, DESTINATION, [])


@pytest.mark.parametrize("body", [["not", "an", "object"], "Bad Gateway"])
def test_osrm_non_object_body_raises(body):
    client = OSRMDirectionsClient(osrm_url="http://osrm.test", session=FakeHttp(FakeResponse(200, body)))
    with pytest.raises(DirectionsUnavailableError):
        client.route(ORIGIN, DESTINATION, [])


def test_non_object_body_degrades_to_conceptual_path():
    client  = OSRMDirectionsClient(osrm_url="http://osrm.test", session=FakeHttp(FakeResponse(200, ["oops"])))
    display = resolve_display_path(FOUR_POINTS, client)
    assert display.source is PathSource.CONCEPTUAL
    assert display.displayed_path == FOUR_POINTS.coordinates
