"""Shared builders for engine tests."""
from __future__ import annotations

from backend.app.models.event import GameEventBase, parse_event


def make_event(**fields) -> GameEventBase:
    """Build a card from wire-style fields with test defaults."""
    doc = {"id": "TEST-01", "title": "Test", "type": "ITEM"}
    doc.update(fields)
    return parse_event(doc)


class FixedRoll:
    """random.Random stand-in returning a fixed d100 roll."""

    def __init__(self, roll: int) -> None:
        self.roll = roll

    def randint(self, a: int, b: int) -> int:
        return self.roll
