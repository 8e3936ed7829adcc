"""Prompt rendering and the Anthropic-backed suggester."""
from types import SimpleNamespace

import anthropic
import httpx

from tacna_navigator.contract import build_request
from tacna_navigator.llm import AnthropicPathSuggester, extract_json_object, render_prompt
from tacna_navigator.models import BlockedRouteInfo

from fakes import DESTINATION, ORIGIN


def _request(blocked=(), congestion=None):
    return build_request(ORIGIN, DESTINATION, list(blocked), congestion or {})


class FakeMessages:

    def __init__(self, blocks=None, error=None):
        self.blocks = blocks or []
        self.error  = error
        self.calls  = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=self.blocks)


def _client(messages):
    return SimpleNamespace(messages=messages)


def _text(text):
    return SimpleNamespace(type="text", text=text)


# ── render_prompt ────────────────────────────────────────────────────────────

def test_prompt_lists_endpoints_blocked_routes_and_congestion():
    prompt = render_prompt(_request(
        blocked=[BlockedRouteInfo(name="Ruta 20AB - Centro Histórico", description="Plaza de Armas")],
        congestion={"Ruta 101 - Circunvalación": 30, "Ruta Expreso Norte": 15},
    ))

    assert "latitude -18.0146, longitude -70.2536" in prompt
    assert "latitude -18.008, longitude -70.24" in prompt
    assert 'Route "Ruta 20AB - Centro Histórico" (covers: Plaza de Armas)' in prompt
    assert "Ruta 101 - Circunvalación: 30, Ruta Expreso Norte: 15" in prompt
    assert '"suggestedPath"' in prompt


def test_prompt_without_context():
    prompt = render_prompt(_request())
    assert "No routes are currently reported as blocked." in prompt
    assert "No congestion data available" in prompt


# ── extract_json_object ──────────────────────────────────────────────────────

def test_extract_plain_json():
    assert extract_json_object('{"suggestedPath": {"coordinates": []}}') == {"suggestedPath": {"coordinates": []}}


def test_extract_fenced_json():
    reply = 'Here you go:\n```json\n{"a": 1}\n```\nSafe travels.'
    assert extract_json_object(reply) == {"a": 1}


def test_extract_json_surrounded_by_prose():
    assert extract_json_object('Sure! {"a": {"b": 2}} Hope this helps.') == {"a": {"b": 2}}


def test_extract_returns_none_for_garbage():
    assert extract_json_object("") is None
    assert extract_json_object("no braces here") is None
    assert extract_json_object("{not: valid json}") is None


# ── AnthropicPathSuggester ───────────────────────────────────────────────────

def test_suggester_joins_text_blocks_and_decodes():
    messages = FakeMessages([
        SimpleNamespace(type="thinking", thinking="..."),
        _text('{"suggestedPath": {"description": "d", '),
        _text('"coordinates": [], "reasoning": "r"}}'),
    ])
    suggester = AnthropicPathSuggester(api_key="test", model="claude-test", max_tokens=256, client=_client(messages))

    raw = suggester(_request())

    assert raw == {"suggestedPath": {"description": "d", "coordinates": [], "reasoning": "r"}}
    call = messages.calls[0]
    assert call["model"] == "claude-test"
    assert call["max_tokens"] == 256
    assert call["messages"][0]["role"] == "user"
    assert "Tacna" in call["messages"][0]["content"]


def test_suggester_without_key_returns_none():
    suggester = AnthropicPathSuggester(api_key="")
    assert not suggester.available
    assert suggester(_request()) is None


def test_suggester_api_error_returns_none():
    error = anthropic.APIConnectionError(request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))
    suggester = AnthropicPathSuggester(api_key="test", client=_client(FakeMessages(error=error)))
    assert suggester(_request()) is None


def test_suggester_non_json_reply_returns_none():
    suggester = AnthropicPathSuggester(api_key="test", client=_client(FakeMessages([_text("I cannot help with that.")])))
    assert suggester(_request()) is None
