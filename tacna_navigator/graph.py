"""
Tacna Transit Navigator — LangGraph StateGraph Definition
build_path_agent() compiles the path-generation pipeline.
"""

from langgraph.graph import END, StateGraph

from .directions import DirectionsClient
from .llm        import PathSuggester
from .nodes import (
    assemble_display_node,
    build_request_node,
    request_detailed_path_node,
    suggest_path_node,
    validate_input_node,
    validate_response_node,
)
from .state import PathState


def _route_after_validate(state: PathState) -> str:
    """Conditional edge after validate_input: skip to END on error."""
    return "error" if state.get("status") == "error" else "ok"


def build_path_agent(suggester: PathSuggester, directions: DirectionsClient):
    """
    Compile and return the path-generation LangGraph.

    Flow:
      validate_input → build_request → suggest_path
                     → validate_response → request_detailed_path
                     → assemble_display → END
    """

    def suggest_path(state: PathState) -> PathState:
        return suggest_path_node(state, suggester)

    def detailed_path(state: PathState) -> PathState:
        return request_detailed_path_node(state, directions)

    graph = StateGraph(PathState)

    # Register nodes
    graph.add_node("validate_input",        validate_input_node)
    graph.add_node("build_request",         build_request_node)
    graph.add_node("suggest_path",          suggest_path)
    graph.add_node("validate_response",     validate_response_node)
    graph.add_node("request_detailed_path", detailed_path)
    graph.add_node("assemble_display",      assemble_display_node)

    # Entry point
    graph.set_entry_point("validate_input")

    # Conditional: abort on missing origin/destination
    graph.add_conditional_edges(
        "validate_input",
        _route_after_validate,
        {"error": END, "ok": "build_request"},
    )

    # Linear pipeline
    graph.add_edge("build_request",         "suggest_path")
    graph.add_edge("suggest_path",          "validate_response")
    graph.add_edge("validate_response",     "request_detailed_path")
    graph.add_edge("request_detailed_path", "assemble_display")
    graph.add_edge("assemble_display",      END)

    return graph.compile()
