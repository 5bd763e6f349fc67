"""Time-of-day and player-class overlays for a card.

``adjust_event`` is pure: it always returns a freshly validated card and never
touches the template it was given (catalog templates are shared between
sessions).
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from backend.app.constants import NIGHT_END_HOUR, NIGHT_START_HOUR
from backend.app.models.event import (
    GameEventBase,
    PlayerClass,
    Stat,
    normalize_event_type,
    normalize_player_class,
    parse_event,
)


def is_night(now: datetime | None = None) -> bool:
    hour = (now or datetime.now()).hour
    return hour >= NIGHT_START_HOUR or hour < NIGHT_END_HOUR


def effective_night(override: bool | None, now: datetime | None = None) -> bool:
    """Admin override wins over the clock when set."""
    if override is not None:
        return override
    return is_night(now)


def _stats_wire(stats: list[Stat]) -> list[dict[str, Any]]:
    return [s.model_dump(by_alias=True, mode="json", exclude_none=True) for s in stats]


def _apply_overlay(
    wire: dict[str, Any],
    title: str | None,
    description: str | None,
    type_name: str | None,
    stats: list[Stat],
) -> None:
    if title:
        wire["title"] = title
    if description:
        wire["description"] = description
    new_type = normalize_event_type(type_name)
    if new_type is not None:
        wire["type"] = new_type.value
    # Empty overlay stats keep the day stats
    if stats:
        wire["stats"] = _stats_wire(stats)


def adjust_event(
    event: GameEventBase,
    night: bool,
    player_class: PlayerClass | str | None = None,
) -> GameEventBase:
    """Return the effective card for the given context.

    Night overlay first, class overlay second, so a class override wins
    over a night override on the same field.
    """
    wire = event.to_wire()

    tv = event.time_variant
    if night and tv is not None and tv.enabled:
        _apply_overlay(wire, tv.night_title, tv.night_description, tv.night_type, tv.night_stats)

    cls = normalize_player_class(player_class)
    variant = event.class_variants.get(cls.value) if cls is not None else None
    if variant is not None:
        _apply_overlay(
            wire,
            variant.override_title,
            variant.override_description,
            variant.override_type,
            variant.bonus_stats,
        )

    return parse_event(wire)
