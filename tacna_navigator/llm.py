"""
Tacna Transit Navigator — LLM route suggestion
Renders the route-planning prompt and calls the Anthropic Messages API.

The suggester returns the raw decoded JSON (or None); deciding whether it
is usable is contract.validate_response()'s job.
"""

import json
import logging
import re
from typing import Any, Callable, Optional

import anthropic

from .config import settings
from .models import ConceptualPathRequest

log = logging.getLogger("navigator.llm")

# (request) -> raw response object, or None when nothing came back
PathSuggester = Callable[[ConceptualPathRequest], Optional[Any]]

_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


def render_prompt(request: ConceptualPathRequest) -> str:
    origin = request.origin_coord
    dest   = request.destination_coord

    if request.blocked_route_info:
        blocked_lines = "\n".join(
            f'  - Route "{b.name}" (covers: {b.description})' for b in request.blocked_route_info
        )
    else:
        blocked_lines = "  No routes are currently reported as blocked."

    if request.congestion_data:
        congestion = ", ".join(f"{name}: {level}" for name, level in request.congestion_data.items())
    else:
        congestion = "No congestion data available"

    return f"""You are a route planning assistant for Tacna, Peru.

REQUEST
───────
• Origin      : latitude {origin.lat}, longitude {origin.lng}
• Destination : latitude {dest.lat}, longitude {dest.lng}

CONTEXT
───────
• Blocked admin-defined routes. The path must stay completely clear of the
  areas these routes cover, judged from their names and street descriptions:
{blocked_lines}
• Congestion on admin-defined routes (0-100, higher is worse): {congestion}

Your task:
1. Propose one plausible drivable route from origin to destination using
   known streets and avenues of Tacna.
2. Avoid every blocked area. If a straight segment between two consecutive
   waypoints would cross one, insert extra waypoints that detour around it.
   Then prefer less congested routes.
3. Describe the route, naming streets or landmarks where possible.
4. List key waypoints for a driving-directions service. The first point is
   the origin and the last is the destination; include at least 2 points.
5. Explain how the route avoids the blocked areas and handles congestion.

Reply with JSON only, in exactly this shape:
{{"suggestedPath": {{"description": "...", "coordinates": [{{"lat": -18.01, "lng": -70.25}}, ...], "reasoning": "..."}}}}"""


def extract_json_object(text: str) -> Optional[Any]:
    """Return the first JSON object found in an LLM reply, or None."""
    if not text:
        return None
    fenced = _FENCE.search(text)
    if fenced:
        text = fenced.group(1)
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        return json.loads(text[start:end + 1])
    except json.JSONDecodeError as exc:
        log.warning(f"LLM reply is not valid JSON: {exc}")
        return None


class AnthropicPathSuggester:
    """Asks Claude for a conceptual path. Any failure yields None."""

    def __init__(
        self,
        api_key:    Optional[str] = None,
        model:      Optional[str] = None,
        max_tokens: Optional[int] = None,
        client=None,
    ):
        self.api_key    = api_key if api_key is not None else settings.ANTHROPIC_API_KEY
        self.model      = model or settings.ANTHROPIC_MODEL
        self.max_tokens = max_tokens or settings.LLM_MAX_TOKENS
        self._client    = client

    @property
    def available(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self):
        if self._client is None:
            self._client = anthropic.Anthropic(api_key=self.api_key)
        return self._client

    def __call__(self, request: ConceptualPathRequest) -> Optional[Any]:
        if not self.available:
            log.warning("ANTHROPIC_API_KEY not set — skipping AI path suggestion.")
            return None

        try:
            resp = self._get_client().messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": render_prompt(request)}],
            )
        except anthropic.APIError as exc:
            log.error(f"LLM call failed: {exc}")
            return None

        text = "".join(
            block.text for block in resp.content if getattr(block, "type", None) == "text"
        )
        return extract_json_object(text)
