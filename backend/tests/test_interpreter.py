"""Tests for the generative fallback."""
from __future__ import annotations

import json

import httpx
import pytest

from backend.app.constants import UNKNOWN_ARTIFACT_TITLE
from backend.app.core.interpreter import (
    CodeInterpreter,
    InterpreterError,
    card_from_generated,
    unknown_artifact_stub,
)
from backend.app.models.event import EventType, Rarity


def _interpreter(handler) -> CodeInterpreter:
    return CodeInterpreter("http://ollama.test/", "test-model", transport=httpx.MockTransport(handler))


def _generate_response(card) -> httpx.Response:
    return httpx.Response(200, json={"response": json.dumps(card)})


def test_interpreter_forces_code_as_id_and_defaults() -> None:
    sent = {}

    def handler(request: httpx.Request) -> httpx.Response:
        sent["path"] = request.url.path
        sent.update(json.loads(request.content))
        return _generate_response({"id": "WRONG", "title": "Krystal", "stats": [{"label": "MANA", "value": "+7"}]})

    card = _interpreter(handler).interpret_unknown_code("QR-77")
    assert card.id == "QR-77"
    assert card.type is EventType.ITEM
    assert card.rarity is Rarity.COMMON
    assert card.is_locked is False
    assert sent["path"] == "/api/generate"
    assert sent["format"] == "json"
    assert sent["stream"] is False
    assert sent["model"] == "test-model"
    assert "QR-77" in sent["prompt"]


def test_generated_lock_flag_is_ignored() -> None:
    card = card_from_generated("C1", {"title": "x", "isLocked": True, "type": "TRAP"})
    assert card.is_locked is False
    assert card.type is EventType.TRAP


def test_invalid_generated_card_raises() -> None:
    with pytest.raises(InterpreterError):
        card_from_generated("C1", {"stats": "not a list"})


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="boom"),
        httpx.Response(200, text="<html>"),
        httpx.Response(200, json={"response": "hello"}),
        httpx.Response(200, json={"response": "[1, 2]"}),
    ],
)
def test_generator_failures_raise_interpreter_error(response) -> None:
    interpreter = _interpreter(lambda request: response)
    with pytest.raises(InterpreterError):
        interpreter.interpret_unknown_code("QR-1")


def test_unreachable_generator_raises_interpreter_error() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(InterpreterError):
        _interpreter(refuse).interpret_unknown_code("QR-1")


def test_stub_shape() -> None:
    stub = unknown_artifact_stub("ZZZ")
    assert stub.id == "ZZZ"
    assert stub.title == UNKNOWN_ARTIFACT_TITLE
    assert stub.type is EventType.ITEM
    assert stub.is_consumable is False
    assert [(s.label, s.value) for s in stub.stats] == [("HP", "+5")]
