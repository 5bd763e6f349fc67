"""Stat-string effect parsing and application.

Card stats are hand-authored ``{label, value}`` pairs. The label is matched
by substring against a small keyword table (first table wins) and the value
is parsed leniently; anything that does not parse is informational only.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

from backend.app.constants import (
    DAMAGE_KEYWORDS,
    GOLD_KEYWORDS,
    HP_KEYWORDS,
    MANA_KEYWORDS,
    MAX_PLAYER_HP,
    MAX_PLAYER_MANA,
)
from backend.app.models.event import DilemmaOption, GameEventBase, Stat, TrapEvent
from backend.app.models.outcomes import AppliedEffect, FeedbackKind
from backend.app.models.player import PlayerState


class EffectKind(str, Enum):
    HP = "hp"
    DAMAGE = "damage"
    GOLD = "gold"
    MANA = "mana"


# Order matters: "HP DMG" is an HP stat.
STAT_KEYWORD_TABLE: tuple[tuple[EffectKind, tuple[str, ...]], ...] = (
    (EffectKind.HP, HP_KEYWORDS),
    (EffectKind.DAMAGE, DAMAGE_KEYWORDS),
    (EffectKind.GOLD, GOLD_KEYWORDS),
    (EffectKind.MANA, MANA_KEYWORDS),
)

_TARGET_BY_KIND = {
    EffectKind.HP: "hp",
    EffectKind.DAMAGE: "hp",
    EffectKind.GOLD: "gold",
    EffectKind.MANA: "mana",
}

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class StatEffect:
    kind: EffectKind
    target: str
    delta: int
    label: str = ""


def parse_stat_value(value: Any) -> int | None:
    """Leading signed integer of ``value``; None when there is none."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = _LEADING_INT.match(str(value))
    if not match:
        return None
    return int(match.group(1))


def classify_stat_label(label: str) -> EffectKind | None:
    upper = (label or "").upper()
    for kind, keywords in STAT_KEYWORD_TABLE:
        if any(k in upper for k in keywords):
            return kind
    return None


def stat_effect(stat: Stat) -> StatEffect | None:
    value = parse_stat_value(stat.value)
    if value is None:
        return None
    kind = classify_stat_label(stat.label)
    if kind is None:
        return None
    # Damage always hurts, whatever sign the author typed
    delta = -abs(value) if kind is EffectKind.DAMAGE else value
    return StatEffect(kind=kind, target=_TARGET_BY_KIND[kind], delta=delta, label=stat.label)


def collect_stat_effects(stats: Iterable[Stat]) -> list[StatEffect]:
    effects: list[StatEffect] = []
    for stat in stats:
        eff = stat_effect(stat)
        if eff is not None:
            effects.append(eff)
    return effects


def _clamp(value: int, lo: int, hi: int | None = None) -> int:
    value = max(lo, value)
    if hi is not None:
        value = min(hi, value)
    return value


def _bounded(target: str, value: int) -> int:
    if target == "hp":
        return _clamp(value, 0, MAX_PLAYER_HP)
    if target == "mana":
        return _clamp(value, 0, MAX_PLAYER_MANA)
    if target == "gold":
        return _clamp(value, 0)
    return value


def feedback_for(target: str, delta: int) -> FeedbackKind | None:
    if delta == 0:
        return None
    if target in ("hp", "mana") and delta > 0:
        return FeedbackKind.HEAL
    if target == "hp":
        return FeedbackKind.DAMAGE
    if target == "gold":
        return FeedbackKind.REWARD if delta > 0 else FeedbackKind.SPEND
    return None


def apply_delta(state: PlayerState, target: str, delta: int) -> tuple[PlayerState, AppliedEffect]:
    """Apply one clamped delta; returns the new state and what changed."""
    before = int(getattr(state, target))
    after = _bounded(target, before + delta)
    new_state = state.model_copy(update={target: after})
    return new_state, AppliedEffect(
        target=target,
        delta=delta,
        before=before,
        after=after,
        feedback=feedback_for(target, delta),
    )


def apply_stat_effects(
    effects: Iterable[StatEffect], state: PlayerState
) -> tuple[PlayerState, list[AppliedEffect]]:
    applied: list[AppliedEffect] = []
    for eff in effects:
        state, record = apply_delta(state, eff.target, eff.delta)
        applied.append(record)
    return state, applied


def apply_event_effects(event: GameEventBase, state: PlayerState) -> PlayerState:
    """Run the (already context-adjusted) card stats against ``state``."""
    new_state, _ = apply_stat_effects(collect_stat_effects(event.stats), state)
    return new_state


def dilemma_effect(option: DilemmaOption) -> StatEffect | None:
    """Direct single-field effect of a dilemma choice; not run through the label table."""
    if option.effect_type == "hp":
        return StatEffect(kind=EffectKind.HP, target="hp", delta=option.effect_value, label="dilemma")
    if option.effect_type == "gold":
        return StatEffect(kind=EffectKind.GOLD, target="gold", delta=option.effect_value, label="dilemma")
    return None


def trap_instant_delta(event: GameEventBase) -> int | None:
    """HP delta a trap deals the moment it is scanned.

    First damage stat, else first HP stat, else the configured trap damage.
    """
    if not isinstance(event, TrapEvent):
        return None
    effects = collect_stat_effects(event.stats)
    for kind in (EffectKind.DAMAGE, EffectKind.HP):
        for eff in effects:
            if eff.kind is kind and eff.delta != 0:
                return eff.delta
    if event.trap_config is not None and event.trap_config.damage:
        return -abs(event.trap_config.damage)
    return None
