"""
Tacna Transit Navigator — Conceptual path request/response contract

build_request()     origin/destination + route context → LLM request
validate_response() LLM output → ConceptualPath, or the direct-line fallback

The LLM is asked to route around blocked areas; nothing here checks the
waypoints geometrically. A response with at least two parseable
coordinates is accepted as-is.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Iterable, Optional

from pydantic import ValidationError as PydanticValidationError

from .errors    import InvalidInputError, ValidationError
from .models    import BlockedRouteInfo, ConceptualPath, ConceptualPathRequest, RouteCoordinate
from .seed_data import TACNA_CENTER

log = logging.getLogger("navigator.contract")

MIN_PATH_POINTS = 2

# The only suggestedPath keys read from a reply
_REPLY_FIELDS = ("description", "coordinates", "reasoning")

# Used when neither origin nor destination is known
FALLBACK_SENTINEL = (TACNA_CENTER, TACNA_CENTER)

FALLBACK_DESCRIPTION = (
    "No fue posible generar automáticamente una ruta que evite todos los bloqueos. "
    "Se muestra una línea directa entre el origen y el destino como alternativa."
)
FALLBACK_REASONING = (
    "La IA no devolvió una ruta válida con al menos dos puntos. "
    "Verifique que las descripciones de las rutas bloqueadas sean claras "
    "o intente nuevamente con otros puntos."
)


def build_request(
    origin:             Optional[RouteCoordinate],
    destination:        Optional[RouteCoordinate],
    blocked_route_info: Iterable[BlockedRouteInfo],
    congestion:         Mapping,
) -> ConceptualPathRequest:
    missing = [name for name, value in (("origin", origin), ("destination", destination)) if value is None]
    if missing:
        raise InvalidInputError(f"Missing {' and '.join(missing)} coordinates")

    return ConceptualPathRequest(
        origin_coord=origin,
        destination_coord=destination,
        blocked_route_info=list(blocked_route_info),
        congestion_data=dict(congestion),
    )


def parse_conceptual_path(raw: Any) -> ConceptualPath:
    """Extract suggestedPath from a raw LLM response. Raises ValidationError."""
    if not isinstance(raw, Mapping):
        raise ValidationError("response is empty or not an object")

    suggested = raw.get("suggestedPath")
    if not isinstance(suggested, Mapping):
        raise ValidationError("suggestedPath is missing")

    coords = suggested.get("coordinates")
    if not isinstance(coords, Sequence) or isinstance(coords, (str, bytes)):
        raise ValidationError("suggestedPath.coordinates is missing")
    if len(coords) < MIN_PATH_POINTS:
        raise ValidationError(f"suggestedPath has {len(coords)} coordinate(s), need {MIN_PATH_POINTS}")

    try:
        return ConceptualPath.model_validate({k: suggested[k] for k in _REPLY_FIELDS if k in suggested})
    except PydanticValidationError as exc:
        raise ValidationError(f"suggestedPath is malformed ({exc.error_count()} error(s))") from exc


def build_fallback_path(
    origin:      Optional[RouteCoordinate],
    destination: Optional[RouteCoordinate],
) -> ConceptualPath:
    """Direct line origin → destination; always at least two points."""
    points = [p for p in (origin, destination) if p is not None]
    if not points:
        points = list(FALLBACK_SENTINEL)
    elif len(points) == 1:
        points = points * 2

    return ConceptualPath(
        description=FALLBACK_DESCRIPTION,
        coordinates=points,
        reasoning=FALLBACK_REASONING,
        is_fallback=True,
    )


def validate_response(
    raw:         Any,
    origin:      Optional[RouteCoordinate] = None,
    destination: Optional[RouteCoordinate] = None,
) -> ConceptualPath:
    try:
        return parse_conceptual_path(raw)
    except ValidationError as exc:
        log.warning(f"AI response rejected ({exc}) — falling back to a direct line.")
        return build_fallback_path(origin, destination)
