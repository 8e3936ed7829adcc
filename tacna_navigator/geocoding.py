"""
Tacna Transit Navigator — Address geocoding (Nominatim)
Free-text addresses are biased to Tacna, Peru.
"""

import logging
from typing import Optional

import requests

from .config    import settings
from .errors    import GeocodingError
from .models    import RouteCoordinate
from .seed_data import TACNA_BOUNDS

log = logging.getLogger("navigator.geocoding")


class NominatimGeocoder:

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None, session=None):
        self.base_url = (base_url or settings.NOMINATIM_URL).rstrip("/")
        self.timeout  = timeout or settings.HTTP_TIMEOUT_S
        self._http    = session or requests.Session()

    def geocode(self, address: str) -> Optional[RouteCoordinate]:
        """Return the best match for an address in Tacna, or None if nothing matched."""
        lat_min, lng_min, lat_max, lng_max = TACNA_BOUNDS
        params = {
            "q":            f"{address}, Tacna, Peru",
            "format":       "jsonv2",
            "limit":        1,
            "countrycodes": "pe",
            # viewbox is left,top,right,bottom in lon/lat; bias only, not a hard bound
            "viewbox":      f"{lng_min},{lat_max},{lng_max},{lat_min}",
        }
        headers = {"User-Agent": settings.USER_AGENT, "Accept": "application/json"}

        try:
            resp = self._http.get(f"{self.base_url}/search", params=params, headers=headers, timeout=self.timeout)
            resp.raise_for_status()
            results = resp.json()
        except requests.RequestException as exc:
            raise GeocodingError(f"Geocoding request failed: {exc}") from exc
        except ValueError as exc:
            raise GeocodingError("Geocoding service returned a non-JSON body") from exc

        if not results:
            log.info(f"No geocoding match for '{address}'")
            return None

        try:
            best = results[0]
            return RouteCoordinate(lat=float(best["lat"]), lng=float(best["lon"]))
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            # pydantic's ValidationError is a ValueError
            raise GeocodingError(f"Geocoding result is malformed: {exc}") from exc
