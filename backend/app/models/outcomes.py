"""Typed outcomes returned to the presentation layer.

Core operations never raise for expected failures; callers branch on these.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from backend.app.models.event import GameEventBase
from backend.app.models.player import PlayerState


class ResolutionSource(str, Enum):
    INVENTORY = "inventory"
    CATALOG = "catalog"
    REMOTE_USER = "remote_user"
    REMOTE_ADMIN = "remote_admin"
    INTERPRETER = "interpreter"
    STUB = "stub"


class Presentation(str, Enum):
    CARD = "card"
    MERCHANT = "merchant"
    PREVIEW = "preview"


class FeedbackKind(str, Enum):
    HEAL = "heal"
    DAMAGE = "damage"
    REWARD = "reward"
    SPEND = "spend"


@dataclass(frozen=True)
class AppliedEffect:
    """One ledger delta; drives exactly one feedback pulse."""
    target: str
    delta: int
    before: int
    after: int
    feedback: FeedbackKind | None


@dataclass(frozen=True)
class SourceUnavailable:
    source: ResolutionSource
    reason: str


@dataclass(frozen=True)
class ResolvedEvent:
    event: GameEventBase
    template: GameEventBase
    source: ResolutionSource
    from_scanner: bool
    presentation: Presentation = Presentation.CARD
    instant_effect: int | None = None
    unavailable: tuple[SourceUnavailable, ...] = ()


@dataclass(frozen=True)
class NotFound:
    code: str
    unavailable: tuple[SourceUnavailable, ...] = ()


@dataclass(frozen=True)
class ScanIgnored:
    code: str
    reason: str


ScanOutcome = Union[ResolvedEvent, NotFound, ScanIgnored]


@dataclass(frozen=True)
class InvalidMutation:
    event_id: str
    action: str
    reason: str


@dataclass(frozen=True)
class PersistenceFailure:
    event_id: str
    action: str
    reason: str
    reverted: bool


@dataclass(frozen=True)
class MutationApplied:
    event_id: str
    action: str
    created: bool | None = None
    event: GameEventBase | None = None
    persistence: PersistenceFailure | None = None


MutationOutcome = Union[MutationApplied, InvalidMutation, PersistenceFailure]


@dataclass(frozen=True)
class UseResult:
    event: GameEventBase
    state: PlayerState
    effects: tuple[AppliedEffect, ...]
    consumed: bool
    retained_locked: bool = False
    removal: MutationOutcome | None = None


@dataclass(frozen=True)
class DilemmaResult:
    option_index: int
    consequence_text: str
    physical_instruction: str | None
    state: PlayerState
    effects: tuple[AppliedEffect, ...] = ()


@dataclass(frozen=True)
class TradeRejected:
    item_id: str
    reason: str


@dataclass(frozen=True)
class TradeCompleted:
    item: GameEventBase
    price: int
    stock_left: int
    stolen: bool = False
    state: PlayerState | None = None
    effects: tuple[AppliedEffect, ...] = ()


TradeOutcome = Union[TradeCompleted, TradeRejected]
