"""Test doubles for the external collaborators."""

from tacna_navigator.directions import DirectionsResult
from tacna_navigator.models import RouteCoordinate

ORIGIN      = RouteCoordinate(lat=-18.0146, lng=-70.2536)
DESTINATION = RouteCoordinate(lat=-18.0080, lng=-70.2400)


def polyline(n, start=ORIGIN, step=0.0002):
    return [RouteCoordinate(lat=start.lat + i * step, lng=start.lng + i * step) for i in range(n)]


def suggested(coords, description="Por Av. Bolognesi", reasoning="Evita el centro"):
    return {
        "suggestedPath": {
            "description": description,
            "coordinates": [{"lat": c.lat, "lng": c.lng} for c in coords],
            "reasoning":   reasoning,
        }
    }


class FakeSuggester:
    """Returns a canned response, or calls it with the request if it is callable."""

    def __init__(self, response=None):
        self.response = response
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if callable(self.response):
            return self.response(request)
        return self.response


class FakeDirections:

    def __init__(self, result=None, error=None):
        self.result = result if result is not None else DirectionsResult(ok=True, status="Ok", routes=[polyline(40)])
        self.error  = error
        self.calls  = []

    def route(self, origin, destination, waypoints, mode="driving"):
        self.calls.append((origin, destination, list(waypoints), mode))
        if self.error is not None:
            raise self.error
        return self.result


class FakeGeocoder:

    def __init__(self, places=None):
        self.places = places or {}
        self.queries = []

    def geocode(self, address):
        self.queries.append(address)
        return self.places.get(address)


class FakeResponse:

    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload    = payload

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload

    def raise_for_status(self):
        import requests
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeHttp:
    """Stands in for requests.Session.get."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error    = error
        self.calls    = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response
