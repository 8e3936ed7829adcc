"""
Tacna Transit Navigator — LangGraph State Definition
"""

from typing import Any, Dict, List, Optional, TypedDict

from .models import (
    BlockedRouteInfo,
    ConceptualPath,
    ConceptualPathRequest,
    PathDisplay,
    RouteCoordinate,
)


class PathState(TypedDict, total=False):
    """State flowing through the path-generation graph for one request."""

    # Input
    origin:             Optional[RouteCoordinate]
    destination:        Optional[RouteCoordinate]
    blocked_route_info: List[BlockedRouteInfo]     # projected from blocked admin routes
    congestion_data:    Dict[str, int]             # route name → 0-100

    # Intermediate
    request:            Optional[ConceptualPathRequest]
    raw_response:       Any                        # whatever the LLM returned, possibly None
    conceptual_path:    Optional[ConceptualPath]
    detailed_path:      Optional[List[RouteCoordinate]]
    directions_error:   Optional[str]

    # Output
    display:            Optional[PathDisplay]

    # Execution control
    messages:           List[Any]                  # LangChain message trace
    errors:             List[str]
    status:             str                        # init / processing / complete / error
