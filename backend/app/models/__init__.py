"""Application models (cards, player state, typed outcomes)."""
from .event import (
    EventType,
    GameEvent,
    GameEventBase,
    PlayerClass,
    Rarity,
    Stat,
    event_key,
    parse_event,
    parse_events,
)
from .outcomes import (
    InvalidMutation,
    MutationApplied,
    NotFound,
    PersistenceFailure,
    ResolvedEvent,
    SourceUnavailable,
)
from .player import PlayerState

__all__ = [
    "EventType",
    "GameEvent",
    "GameEventBase",
    "PlayerClass",
    "Rarity",
    "Stat",
    "event_key",
    "parse_event",
    "parse_events",
    "InvalidMutation",
    "MutationApplied",
    "NotFound",
    "PersistenceFailure",
    "ResolvedEvent",
    "SourceUnavailable",
    "PlayerState",
]
