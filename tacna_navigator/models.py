"""
Tacna Transit Navigator — Data model

Wire names follow the browser app's camelCase JSON (pathDescription,
suggestedPath, originCoord, ...); Python attributes are snake_case.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class RouteCoordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)


class RouteStatus(str, Enum):
    OPEN    = "open"
    BLOCKED = "blocked"

    def toggled(self) -> "RouteStatus":
        return RouteStatus.BLOCKED if self is RouteStatus.OPEN else RouteStatus.OPEN


class RouteRecord(BaseModel):
    """An operator-managed named path with an open/blocked status."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id:               str = Field(min_length=1, pattern=r"^[A-Za-z0-9_-]+$")
    name:             str = Field(min_length=1)
    path_description: str = Field(alias="pathDescription")
    status:           RouteStatus
    coordinates:      List[RouteCoordinate] = Field(default_factory=list)

    @field_validator("coordinates")
    @classmethod
    def validate_line(cls, coords: List[RouteCoordinate]):
        if len(coords) == 1:
            raise ValueError("A route line needs 0 or at least 2 coordinates, got 1")
        return coords

    def with_status(self, status: RouteStatus) -> "RouteRecord":
        return self.model_copy(update={"status": status})

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def parse_coordinates_string(text: str) -> List[RouteCoordinate]:
    """Parse the admin form's "lat,lng; lat,lng; ..." notation."""
    coords = []
    for pair in (p.strip() for p in text.split(";")):
        if not pair:
            continue
        parts = [s.strip() for s in pair.split(",")]
        if len(parts) != 2:
            raise ValueError(f"Expected 'lat,lng', got '{pair}'")
        coords.append(RouteCoordinate(lat=float(parts[0]), lng=float(parts[1])))
    return coords


# Congestion level per admin route *name* (0-100, higher is worse)
CongestionLevel = Annotated[int, Field(ge=0, le=100)]
CongestionTable = Dict[str, CongestionLevel]
congestion_adapter = TypeAdapter(CongestionTable)


class BlockedRouteInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name:        str
    description: str


def blocked_route_info(records) -> List[BlockedRouteInfo]:
    """Project every blocked record to the {name, description} the LLM sees."""
    return [
        BlockedRouteInfo(name=r.name, description=r.path_description)
        for r in records
        if r.status is RouteStatus.BLOCKED
    ]


class ConceptualPathRequest(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    origin_coord:       RouteCoordinate        = Field(alias="originCoord")
    destination_coord:  RouteCoordinate        = Field(alias="destinationCoord")
    blocked_route_info: List[BlockedRouteInfo] = Field(default_factory=list, alias="blockedRouteInfo")
    congestion_data:    Dict[str, int]         = Field(default_factory=dict, alias="congestionData")


class ConceptualPath(BaseModel):
    """AI-proposed waypoint list; not guaranteed drivable."""

    model_config = ConfigDict(frozen=True)

    description: str = ""
    coordinates: List[RouteCoordinate]
    reasoning:   str = ""
    # Set only on the deterministic fallback; never part of the wire format
    is_fallback: bool = Field(default=False, exclude=True)


DetailedPath = List[RouteCoordinate]


class PathSource(str, Enum):
    DETAILED   = "detailed"
    CONCEPTUAL = "conceptual"


class PathDisplay(BaseModel):
    """What the map shows for one origin/destination pair."""

    conceptual_path: ConceptualPath
    displayed_path:  List[RouteCoordinate]
    source:          PathSource
    fallback:        bool = False
    message:         Optional[str] = None
