"""Generative fallback for codes no catalog knows about.

The generator is an Ollama-compatible ``/api/generate`` endpoint asked for a
single JSON card. Anything short of a valid card raises
:class:`InterpreterError`; the resolution pipeline then uses the stub.
"""
from __future__ import annotations

import json as _json
import logging
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from backend.app.constants import (
    UNKNOWN_ARTIFACT_DESCRIPTION,
    UNKNOWN_ARTIFACT_FLAVOR,
    UNKNOWN_ARTIFACT_STATS,
    UNKNOWN_ARTIFACT_TITLE,
)
from backend.app.models.event import GameEventBase, ItemEvent, Rarity, Stat, parse_event

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are the data core of a sci-fi board game. Invent one game card for the scanned code. "
    "Reply with a single JSON object with keys: title, description, flavorText, type "
    "(ITEM, ENCOUNTER, TRAP or DILEMMA), rarity (Common, Rare, Epic, Legendary), "
    "stats (list of {label, value}; labels like HP, DMG, GOLD, MANA; values like \"+10\"), "
    "isConsumable (bool). Write title and texts in Czech."
)


class InterpreterError(Exception):
    """The generative fallback could not produce a card."""


class UnknownCodeInterpreter(Protocol):
    def interpret_unknown_code(self, code: str) -> GameEventBase: ...


def unknown_artifact_stub(code: str) -> GameEventBase:
    """Fixed local card used when the generator is unavailable."""
    return ItemEvent(
        id=code,
        title=UNKNOWN_ARTIFACT_TITLE,
        description=UNKNOWN_ARTIFACT_DESCRIPTION,
        flavor_text=UNKNOWN_ARTIFACT_FLAVOR,
        rarity=Rarity.COMMON,
        stats=[Stat(label=label, value=value) for label, value in UNKNOWN_ARTIFACT_STATS],
        is_consumable=False,
        can_be_saved=True,
    )


def card_from_generated(code: str, data: dict[str, Any]) -> GameEventBase:
    """Validate generator output; the scanned code is always the card id."""
    doc = dict(data)
    doc["id"] = code
    doc.setdefault("type", "ITEM")
    doc.setdefault("rarity", "Common")
    # Generated cards are never admin-locked
    doc["isLocked"] = False
    try:
        return parse_event(doc)
    except ValidationError as exc:
        raise InterpreterError(f"Generated card for {code} is invalid: {exc.error_count()} errors") from exc


class CodeInterpreter:
    """Asks a local model to synthesize a card for an unknown code."""

    def __init__(
        self,
        base_url: str,
        model: str,
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.strip().rstrip("/")
        self.model = model
        self.client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self.client.close()

    def _generate(self, code: str) -> dict[str, Any]:
        payload = {
            "model": self.model,
            "system": SYSTEM_PROMPT,
            "prompt": f"Scanned code: {code}\nCreate the card.",
            "stream": False,
            "format": "json",
        }
        try:
            response = self.client.post("/api/generate", json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as exc:
            logger.warning("Card generator request failed for %s: %s", code, exc)
            raise InterpreterError(f"Card generator unavailable: {exc}") from exc
        except ValueError as exc:
            raise InterpreterError("Card generator returned a non-JSON body") from exc

        raw = body.get("response", "") if isinstance(body, dict) else ""
        try:
            data = _json.loads(raw)
        except ValueError as exc:
            raise InterpreterError("Generated card was not valid JSON") from exc
        if not isinstance(data, dict):
            raise InterpreterError("Generated card was not a JSON object")
        return data

    def interpret_unknown_code(self, code: str) -> GameEventBase:
        card = card_from_generated(code, self._generate(code))
        logger.info("Generated card %s (%s)", card.id, card.type.value)
        return card
