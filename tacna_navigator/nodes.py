"""
Tacna Transit Navigator — LangGraph Node Functions

Graph flow:
  validate_input
      │ (error) ──► END
      ▼
  build_request
      ▼
  suggest_path               ← LLM collaborator
      ▼
  validate_response          ← direct-line fallback on unusable output
      ▼
  request_detailed_path      ← directions collaborator
      ▼
  assemble_display
      ▼
     END
"""

import logging

from langchain_core.messages import AIMessage, HumanMessage

from .contract   import build_request, validate_response
from .directions import DirectionsClient, assemble_display, request_detailed_path
from .errors     import DirectionsUnavailableError
from .llm        import PathSuggester
from .state      import PathState

log = logging.getLogger("navigator.nodes")


def _fmt(coord) -> str:
    return f"({coord.lat:.4f}, {coord.lng:.4f})"


# ──────────────────────────────────────────────────────────────────────────────
# NODE 1 — validate_input
# ──────────────────────────────────────────────────────────────────────────────

def validate_input_node(state: PathState) -> PathState:
    """Reject the request before any external call if an endpoint is missing."""
    errors = []
    if state.get("origin") is None:
        errors.append("Origin coordinates are required.")
    if state.get("destination") is None:
        errors.append("Destination coordinates are required.")

    if errors:
        return {**state, "status": "error", "errors": errors}

    msg = HumanMessage(
        content=f"[validate_input] {_fmt(state['origin'])} → {_fmt(state['destination'])}"
    )
    return {**state, "status": "processing", "errors": [], "messages": [msg]}


# ──────────────────────────────────────────────────────────────────────────────
# NODE 2 — build_request
# ──────────────────────────────────────────────────────────────────────────────

def build_request_node(state: PathState) -> PathState:
    request = build_request(
        state["origin"],
        state["destination"],
        state.get("blocked_route_info", []),
        state.get("congestion_data", {}),
    )
    msg = AIMessage(
        content=(
            f"[build_request] {len(request.blocked_route_info)} blocked routes, "
            f"{len(request.congestion_data)} congestion entries"
        )
    )
    return {**state, "request": request, "messages": [msg]}


# ──────────────────────────────────────────────────────────────────────────────
# NODE 3 — suggest_path
# ──────────────────────────────────────────────────────────────────────────────

def suggest_path_node(state: PathState, suggester: PathSuggester) -> PathState:
    """Ask the LLM for conceptual waypoints. Its output is not trusted yet."""
    try:
        raw = suggester(state["request"])
    except Exception as exc:
        log.error(f"Path suggester raised: {exc}")
        raw = None

    msg = AIMessage(
        content=f"[suggest_path] {'response received' if raw is not None else 'no usable response'}"
    )
    return {**state, "raw_response": raw, "messages": [msg]}


# ──────────────────────────────────────────────────────────────────────────────
# NODE 4 — validate_response
# ──────────────────────────────────────────────────────────────────────────────

def validate_response_node(state: PathState) -> PathState:
    conceptual = validate_response(state.get("raw_response"), state["origin"], state["destination"])
    verdict = "fallback direct line" if conceptual.is_fallback else "accepted"
    msg = AIMessage(
        content=f"[validate_response] {verdict} — {len(conceptual.coordinates)} waypoints"
    )
    return {**state, "conceptual_path": conceptual, "messages": [msg]}


# ──────────────────────────────────────────────────────────────────────────────
# NODE 5 — request_detailed_path
# ──────────────────────────────────────────────────────────────────────────────

def request_detailed_path_node(state: PathState, client: DirectionsClient) -> PathState:
    """Route the conceptual waypoints; a failure degrades, it does not abort."""
    try:
        detailed = request_detailed_path(state["conceptual_path"], client)
        error    = None
    except DirectionsUnavailableError as exc:
        log.warning(f"Directions unavailable: {exc}")
        detailed = None
        error    = str(exc)

    msg = AIMessage(
        content=(
            f"[request_detailed_path] {len(detailed)} points"
            if detailed else f"[request_detailed_path] unavailable ({error})"
        )
    )
    return {**state, "detailed_path": detailed, "directions_error": error, "messages": [msg]}


# ──────────────────────────────────────────────────────────────────────────────
# NODE 6 — assemble_display
# ──────────────────────────────────────────────────────────────────────────────

def assemble_display_node(state: PathState) -> PathState:
    display = assemble_display(state["conceptual_path"], state.get("detailed_path"))
    msg = AIMessage(
        content=(
            f"[assemble_display] {display.source.value} path, "
            f"{len(display.displayed_path)} points{' (fallback)' if display.fallback else ''}"
        )
    )
    return {**state, "display": display, "status": "complete", "messages": [msg]}
