"""
Tacna Transit Navigator — NavigatorSession
============================================
Holds one user's origin/destination selection and the path currently on
the map.

A displayed or in-flight suggestion becomes stale whenever the selection
changes or the admin route collection changes (blocked routes feed the
next request). Staleness is tracked with a monotonically increasing
generation counter: generate() captures it when the request starts and
applies the result only if it is still current when the request finishes.
"""

import logging
from typing import Mapping, Optional

from .directions import DirectionsClient
from .errors     import InvalidInputError
from .graph      import build_path_agent
from .llm        import PathSuggester
from .models     import PathDisplay, RouteCoordinate
from .state      import PathState
from .store      import RouteStore, StoreChange

log = logging.getLogger("navigator.session")


class NavigatorSession:

    def __init__(
        self,
        store:      RouteStore,
        congestion: Mapping[str, int],
        suggester:  PathSuggester,
        directions: DirectionsClient,
    ):
        self._store       = store
        self._congestion  = dict(congestion)
        self._agent       = build_path_agent(suggester, directions)
        self._generation  = 0
        self.origin:      Optional[RouteCoordinate] = None
        self.destination: Optional[RouteCoordinate] = None
        self.display:     Optional[PathDisplay]     = None
        self._unsubscribe = store.subscribe(self._on_store_change)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def congestion(self) -> dict:
        return dict(self._congestion)

    # ── Selection ─────────────────────────────────────────────────────────────

    def set_origin(self, coord: Optional[RouteCoordinate]) -> None:
        self.origin = coord
        self.invalidate("origin changed")

    def set_destination(self, coord: Optional[RouteCoordinate]) -> None:
        self.destination = coord
        self.invalidate("destination changed")

    def invalidate(self, reason: str) -> None:
        """Discard the displayed path and any result still in flight."""
        self._generation += 1
        if self.display is not None:
            log.info(f"Clearing displayed path: {reason}")
        self.display = None

    def _on_store_change(self, change: StoreChange) -> None:
        self.invalidate(f"admin routes changed ({change.kind})")

    # ── Path generation ───────────────────────────────────────────────────────

    def apply_result(self, token: int, display: PathDisplay) -> bool:
        if token != self._generation:
            log.info(f"Discarding stale path result (generation {token}, current {self._generation})")
            return False
        self.display = display
        return True

    async def generate(self) -> Optional[PathDisplay]:
        """
        Run the pipeline for the current selection.

        Returns the new display, or None if the selection or the admin
        routes changed while the request was in flight.
        """
        if self.origin is None or self.destination is None:
            raise InvalidInputError("Select both an origin and a destination first.")

        token        = self._generation
        self.display = None

        initial_state: PathState = {
            "origin":             self.origin,
            "destination":        self.destination,
            "blocked_route_info": self._store.blocked_route_info(),
            "congestion_data":    dict(self._congestion),
            "request":            None,
            "raw_response":       None,
            "conceptual_path":    None,
            "detailed_path":      None,
            "directions_error":   None,
            "display":            None,
            "messages":           [],
            "errors":             [],
            "status":             "init",
        }

        result = await self._agent.ainvoke(initial_state)

        if result.get("status") == "error":
            raise InvalidInputError(" ".join(result.get("errors", [])))

        display = result["display"]
        if not self.apply_result(token, display):
            return None
        log.info(f"Path ready: {display.source.value}, {len(display.displayed_path)} points")
        return display

    def close(self) -> None:
        self._unsubscribe()
