"""
Tacna Transit Navigator — FastAPI entry point

Endpoints
─────────
GET    /                                  Health check
GET    /api/v1/routes                     Admin routes (+ data-reset notice)
POST   /api/v1/routes                     Add a route (saved immediately)
POST   /api/v1/routes/from-directions     Add a route traced by the directions service
DELETE /api/v1/routes/{route_id}          Remove a route (saved immediately)
POST   /api/v1/routes/{route_id}/toggle   Flip open ↔ blocked (in memory until save)
POST   /api/v1/routes/save                Persist the current route state
POST   /api/v1/routes/reset               Restore the default routes
GET    /api/v1/congestion                 Congestion per admin route name
POST   /api/v1/navigator/path             Generate a path for an origin/destination
GET    /api/v1/navigator/path             Path currently on the map (null when stale)
GET    /api/v1/navigator/graph            LangGraph diagram (ASCII)
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, field_validator

from .config     import settings
from .directions import DirectionsClient, OSRMDirectionsClient, request_detailed_path
from .errors     import (
    DirectionsUnavailableError,
    DuplicateIdError,
    GeocodingError,
    InvalidInputError,
    StorageError,
)
from .geocoding  import NominatimGeocoder
from .llm        import AnthropicPathSuggester, PathSuggester
from .models     import (
    ConceptualPath,
    RouteCoordinate,
    RouteRecord,
    RouteStatus,
    congestion_adapter,
    parse_coordinates_string,
)
from .seed_data  import DEFAULT_CONGESTION
from .session    import NavigatorSession
from .storage    import InMemoryStorage, JsonFileStorage, KeyValueStorage
from .store      import RouteStore

# ── Logging ───────────────────────────────────────────────────────────────────

LOG_DIR = Path(settings.LOG_DIR)
LOG_DIR.mkdir(parents=True, exist_ok=True)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    handlers=[
        logging.FileHandler(LOG_DIR / "navigator.log"),
        logging.StreamHandler(),
    ],
    format='{"time":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","msg":"%(message)s"}',
)
log = logging.getLogger("navigator")

# ── Pydantic models ───────────────────────────────────────────────────────────

_ROUTE_ID_PATTERN = r"^[A-Za-z0-9_-]+$"


class RouteIn(BaseModel):
    id:              str = Field(min_length=1, pattern=_ROUTE_ID_PATTERN)
    name:            str = Field(min_length=3)
    pathDescription: str = Field(min_length=5)
    # Either a list of points or the "lat,lng; lat,lng; ..." text form
    coordinates:     Union[List[RouteCoordinate], str]

    @field_validator("coordinates")
    @classmethod
    def parse_coordinates(cls, value):
        coords = parse_coordinates_string(value) if isinstance(value, str) else value
        if len(coords) < 2:
            raise ValueError("At least 2 coordinates are required")
        return coords


class RouteFromDirectionsIn(BaseModel):
    id:              str = Field(min_length=1, pattern=_ROUTE_ID_PATTERN)
    name:            str = Field(min_length=3)
    pathDescription: str = Field(min_length=5)
    origin:          RouteCoordinate
    destination:     RouteCoordinate
    waypoints:       List[RouteCoordinate] = []


class PathRequestIn(BaseModel):
    origin:           Optional[RouteCoordinate] = None
    destination:      Optional[RouteCoordinate] = None
    origin_text:      Optional[str] = None   # geocoded when no coordinates are given
    destination_text: Optional[str] = None


# ── Application factory ───────────────────────────────────────────────────────

def _default_storage() -> KeyValueStorage:
    if settings.ROUTES_STORAGE_DIR:
        return JsonFileStorage(settings.ROUTES_STORAGE_DIR)
    return InMemoryStorage()


def create_app(
    storage:    Optional[KeyValueStorage]  = None,
    suggester:  Optional[PathSuggester]    = None,
    directions: Optional[DirectionsClient] = None,
    geocoder=None,
    congestion=None,
) -> FastAPI:
    storage    = storage    or _default_storage()
    suggester  = suggester  or AnthropicPathSuggester()
    directions = directions or OSRMDirectionsClient()
    geocoder   = geocoder   or NominatimGeocoder()
    congestion = congestion_adapter.validate_python(congestion if congestion is not None else DEFAULT_CONGESTION)

    store = RouteStore(storage)
    store.load()
    if store.last_reset and not store.last_reset.first_run:
        log.warning(f"Stored routes were reset to defaults: {store.last_reset.reason}")

    session = NavigatorSession(store, congestion, suggester, directions)

    app = FastAPI(
        title="Tacna Transit Navigator",
        description=(
            "AI-suggested transit paths for Tacna that steer around admin-blocked "
            "routes, traced by a driving-directions service."
        ),
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.store   = store
    app.state.session = session

    def _sync_storage():
        # Pick up writes made by other processes sharing the storage directory
        refresh = getattr(storage, "refresh", None)
        if refresh is not None:
            refresh()

    def _routes_payload(**extra):
        reset = store.last_reset
        return {
            "routes":     [r.to_wire() for r in store.records],
            "data_reset": reset.reason if reset and not reset.first_run else None,
            **extra,
        }

    def _save_or_warn():
        try:
            store.save()
        except StorageError as exc:
            return {"saved": False, "warning": str(exc)}
        return {"saved": True, "warning": None}

    def _add_route(record: RouteRecord):
        try:
            store.add(record)
        except DuplicateIdError as exc:
            raise HTTPException(
                status_code=409,
                detail={"field": exc.field, "message": str(exc)},
            )

    # ── Endpoints ─────────────────────────────────────────────────────────────

    @app.get("/")
    def health():
        return {
            "service":       "Tacna Transit Navigator",
            "version":       "1.0.0",
            "status":        "operational",
            "framework":     "LangGraph",
            "llm_available": getattr(suggester, "available", True),
            "capabilities": [
                "admin_route_management",
                "llm_conceptual_paths",
                "direct_line_fallback",
                "driving_directions",
                "geocoding",
            ],
        }

    @app.get("/api/v1/routes")
    def list_routes():
        _sync_storage()
        return _routes_payload()

    @app.post("/api/v1/routes", status_code=201)
    def add_route(route: RouteIn):
        record = RouteRecord(
            id=route.id,
            name=route.name,
            path_description=route.pathDescription,
            status=RouteStatus.OPEN,
            coordinates=route.coordinates,
        )
        _add_route(record)
        return {"route": record.to_wire(), **_save_or_warn()}

    @app.post("/api/v1/routes/from-directions", status_code=201)
    def add_route_from_directions(route: RouteFromDirectionsIn):
        if store.get(route.id) is not None:
            raise HTTPException(
                status_code=409,
                detail={"field": "id", "message": f"Route id '{route.id}' already exists."},
            )
        trace = ConceptualPath(
            description=route.pathDescription,
            coordinates=[route.origin, *route.waypoints, route.destination],
        )
        try:
            points = request_detailed_path(trace, directions)
        except DirectionsUnavailableError as exc:
            raise HTTPException(status_code=502, detail=str(exc))

        record = RouteRecord(
            id=route.id,
            name=route.name,
            path_description=route.pathDescription,
            status=RouteStatus.OPEN,
            coordinates=points if len(points) >= 2 else trace.coordinates,
        )
        _add_route(record)
        return {"route": record.to_wire(), **_save_or_warn()}

    @app.delete("/api/v1/routes/{route_id}")
    def delete_route(route_id: str):
        store.remove(route_id)
        return {"route_id": route_id, **_save_or_warn()}

    @app.post("/api/v1/routes/{route_id}/toggle")
    def toggle_route(route_id: str):
        if store.get(route_id) is None:
            raise HTTPException(status_code=404, detail=f"Unknown route id '{route_id}'")
        store.toggle_status(route_id)
        return {"route": store.get(route_id).to_wire(), "saved": False}

    @app.post("/api/v1/routes/save")
    def save_routes():
        return _routes_payload(**_save_or_warn())

    @app.post("/api/v1/routes/reset")
    def reset_routes():
        try:
            store.reset_to_defaults()
        except StorageError as exc:
            return _routes_payload(saved=False, warning=str(exc))
        return _routes_payload(saved=True, warning=None)

    @app.get("/api/v1/congestion")
    def get_congestion():
        return {"congestion": session.congestion}

    def _resolve_point(coord, text, label):
        if coord is not None:
            return coord
        if not text:
            return None
        try:
            found = geocoder.geocode(text)
        except GeocodingError as exc:
            raise HTTPException(status_code=502, detail=str(exc))
        if found is None:
            raise HTTPException(status_code=400, detail=f"Could not find {label} '{text}' in Tacna.")
        return found

    @app.post("/api/v1/navigator/path")
    async def generate_path(request: PathRequestIn):
        # File refresh and geocoding use blocking I/O
        await run_in_threadpool(_sync_storage)
        origin      = await run_in_threadpool(_resolve_point, request.origin,      request.origin_text,      "origin")
        destination = await run_in_threadpool(_resolve_point, request.destination, request.destination_text, "destination")

        if origin != session.origin:
            session.set_origin(origin)
        if destination != session.destination:
            session.set_destination(destination)

        try:
            display = await session.generate()
        except InvalidInputError as exc:
            raise HTTPException(status_code=400, detail=str(exc))

        if display is None:
            raise HTTPException(status_code=409, detail="Path request was superseded by a newer change.")
        log.info(f"Path generated: {display.source.value}, fallback={display.fallback}")
        return {"display": display.model_dump(mode="json")}

    @app.get("/api/v1/navigator/path")
    def current_path():
        _sync_storage()
        display = session.display
        return {"display": display.model_dump(mode="json") if display else None}

    @app.get("/api/v1/navigator/graph")
    def get_graph_diagram():
        """Return an ASCII representation of the LangGraph workflow."""
        diagram = """
    Tacna Transit Navigator — Path Generation (LangGraph)
    ═════════════════════════════════════════════════════

    [START]
       │
       ▼
    ┌─────────────────────────────┐
    │  validate_input             │  origin + destination required
    └──────────────┬──────────────┘
                   │ error ──────────────────────► [END]
                   ▼
    ┌─────────────────────────────┐
    │  build_request              │  blocked routes + congestion context
    └──────────────┬──────────────┘
                   ▼
    ┌─────────────────────────────┐
    │  suggest_path               │  LLM conceptual waypoints
    └──────────────┬──────────────┘
                   ▼
    ┌─────────────────────────────┐
    │  validate_response          │  < 2 points → direct-line fallback
    └──────────────┬──────────────┘
                   ▼
    ┌─────────────────────────────┐
    │  request_detailed_path      │  driving directions (OSRM)
    └──────────────┬──────────────┘
                   ▼
    ┌─────────────────────────────┐
    │  assemble_display           │  detailed path, or conceptual on failure
    └──────────────┬──────────────┘
                   ▼
                [END]
    """
        return {"diagram": diagram}

    log.info("Tacna Transit Navigator ready.")
    return app


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run("tacna_navigator.main:create_app", factory=True, host=settings.API_HOST, port=settings.PORT, reload=False)
