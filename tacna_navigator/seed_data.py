"""
Tacna Transit Navigator — Default dataset
Admin routes restored whenever stored data is missing or corrupt.
"""

from typing import Dict, List

from .models import RouteCoordinate, RouteRecord, RouteStatus

ROUTES_STORAGE_KEY = "tacnaTransitRoutes"

# Plaza de Armas de Tacna
TACNA_CENTER = RouteCoordinate(lat=-18.0146, lng=-70.2536)

# (lat_min, lng_min, lat_max, lng_max) — used to bias geocoding
TACNA_BOUNDS = (-18.2, -70.4, -17.8, -70.0)


def _line(*points) -> List[RouteCoordinate]:
    return [RouteCoordinate(lat=lat, lng=lng) for lat, lng in points]


DEFAULT_ROUTES: List[RouteRecord] = [
    RouteRecord(
        id="R001",
        name="Ruta 101 - Circunvalación",
        path_description="Av. Circunvalación -> Av. Jorge Basadre -> Av. Bolognesi",
        status=RouteStatus.OPEN,
        coordinates=_line((-18.0062, -70.2481), (-18.0105, -70.2412), (-18.0174, -70.2398), (-18.0213, -70.2467)),
    ),
    RouteRecord(
        id="R002",
        name="Ruta 20AB - Centro Histórico",
        path_description="Plaza de Armas -> Calle San Martín -> Mercado Central",
        status=RouteStatus.OPEN,
        coordinates=_line((-18.0146, -70.2536), (-18.0128, -70.2508), (-18.0102, -70.2489), (-18.0089, -70.2466)),
    ),
    RouteRecord(
        id="R003",
        name="Ruta Expreso Norte",
        path_description="Terminal Terrestre Norte -> Av. Industrial -> Parque Industrial",
        status=RouteStatus.OPEN,
        coordinates=_line((-17.9987, -70.2393), (-17.9931, -70.2447), (-17.9875, -70.2512), (-17.9822, -70.2580)),
    ),
    RouteRecord(
        id="R004",
        name="Ruta Sur Alimentadora",
        path_description="Barrio Para Grande -> Av. Pinto -> Hospital Hipólito Unanue",
        status=RouteStatus.OPEN,
        coordinates=_line((-18.0305, -70.2571), (-18.0262, -70.2539), (-18.0221, -70.2514), (-18.0189, -70.2493)),
    ),
]

DEFAULT_CONGESTION: Dict[str, int] = {
    "Ruta 101 - Circunvalación":    30,
    "Ruta 20AB - Centro Histórico": 65,
    "Ruta Expreso Norte":           15,
    "Ruta Sur Alimentadora":        40,
}
