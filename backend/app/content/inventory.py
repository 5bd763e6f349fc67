"""Per-user inventory of owned card instances, keyed by case-insensitive id."""
from __future__ import annotations

from typing import Any, Iterable

from backend.app.db.local_cache import LocalCache, inventory_key, safe_read, safe_write
from backend.app.models.event import GameEventBase, event_key, parse_event


class Inventory:
    def __init__(self, user_id: str, events: Iterable[GameEventBase] = ()) -> None:
        self.user_id = user_id
        self._items: dict[str, GameEventBase] = {}
        for ev in events:
            self._items[ev.key] = ev

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, event_id: object) -> bool:
        return isinstance(event_id, str) and event_key(event_id) in self._items

    def get(self, event_id: str) -> GameEventBase | None:
        return self._items.get(event_key(event_id))

    def items(self) -> list[GameEventBase]:
        return list(self._items.values())

    def upsert(self, event: GameEventBase) -> bool:
        """Insert or replace by id; returns True when the id was new."""
        key = event.key
        created = key not in self._items
        self._items[key] = event
        return created

    def remove(self, event_id: str) -> GameEventBase | None:
        return self._items.pop(event_key(event_id), None)

    def replace_all(self, events: Iterable[GameEventBase]) -> None:
        self._items = {ev.key: ev for ev in events}

    def clear(self) -> None:
        self._items = {}

    def to_wire(self) -> list[dict[str, Any]]:
        return [ev.to_wire() for ev in self._items.values()]

    # ------------------------------------------------------------------
    # Local backup
    # ------------------------------------------------------------------

    def save_backup(self, cache: LocalCache | None) -> str | None:
        return safe_write(cache, inventory_key(self.user_id), self.to_wire())

    @classmethod
    def from_backup(cls, user_id: str, cache: LocalCache | None) -> "Inventory":
        return cls(user_id, load_backup_events(user_id, cache))


def load_backup_events(user_id: str, cache: LocalCache | None) -> list[GameEventBase]:
    raw = safe_read(cache, inventory_key(user_id), [])
    events: list[GameEventBase] = []
    for doc in raw if isinstance(raw, list) else []:
        try:
            events.append(parse_event(doc))
        except (ValueError, TypeError):
            continue
    return events
