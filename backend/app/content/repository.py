"""Master catalog: the shared, admin-authored set of card templates.

Readers never see a half-updated catalog: a refresh builds a new immutable
snapshot and swaps the reference in one assignment.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Iterable

from backend.app.models.event import GameEventBase, event_key


@dataclass(frozen=True)
class CatalogSnapshot:
    events: tuple[GameEventBase, ...] = ()
    index: dict[str, GameEventBase] = field(default_factory=dict)
    origin: str = "empty"


def build_snapshot(events: Iterable[GameEventBase], origin: str) -> CatalogSnapshot:
    ordered: list[GameEventBase] = []
    index: dict[str, GameEventBase] = {}
    for ev in events:
        key = ev.key
        if key in index:
            # Later duplicates replace earlier ones; ids are unique per scope
            ordered = [e for e in ordered if e.key != key]
        index[key] = ev
        ordered.append(ev)
    return CatalogSnapshot(events=tuple(ordered), index=index, origin=origin)


class MasterCatalog:
    """App-lifetime catalog shared read-only by every session."""

    def __init__(self, events: Iterable[GameEventBase] = (), origin: str = "empty") -> None:
        self._lock = threading.Lock()
        self._snapshot = build_snapshot(events, origin)

    @property
    def snapshot(self) -> CatalogSnapshot:
        return self._snapshot

    @property
    def origin(self) -> str:
        return self._snapshot.origin

    def get(self, event_id: str) -> GameEventBase | None:
        return self._snapshot.index.get(event_key(event_id))

    def contains(self, event_id: str) -> bool:
        return event_key(event_id) in self._snapshot.index

    def all(self) -> tuple[GameEventBase, ...]:
        return self._snapshot.events

    def replace(self, events: Iterable[GameEventBase], origin: str) -> CatalogSnapshot:
        snapshot = build_snapshot(events, origin)
        with self._lock:
            self._snapshot = snapshot
        return snapshot

    def __len__(self) -> int:
        return len(self._snapshot.events)
