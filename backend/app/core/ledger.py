"""Player state ledger: clamped HP/mana/gold with a durable write per mutation."""
from __future__ import annotations

import logging
from typing import Callable, Iterable

from pydantic import ValidationError

from backend.app.core.effects import (
    EffectKind,
    StatEffect,
    apply_delta,
    collect_stat_effects,
    dilemma_effect,
)
from backend.app.db.local_cache import LocalCache, player_state_key, safe_read, safe_write
from backend.app.models.event import DilemmaOption, GameEventBase, Stat
from backend.app.models.outcomes import AppliedEffect, PersistenceFailure
from backend.app.models.player import PlayerState

logger = logging.getLogger(__name__)

FeedbackSink = Callable[[AppliedEffect], None]


def load_player_state(cache: LocalCache | None, user_id: str) -> PlayerState:
    """Cached snapshot, or first-login defaults when absent or unreadable."""
    raw = safe_read(cache, player_state_key(user_id))
    if not isinstance(raw, dict):
        return PlayerState()
    try:
        return PlayerState.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Discarding invalid player state for %s: %s", user_id, exc)
        return PlayerState()


class PlayerLedger:
    """Mutable per-session player state.

    Each public mutator is one logical mutation: all of its deltas are applied
    in memory, then the snapshot is written once. A failed write leaves the
    in-memory state committed and is reported via ``last_persistence``.
    """

    def __init__(
        self,
        user_id: str,
        cache: LocalCache | None = None,
        feedback: FeedbackSink | None = None,
        state: PlayerState | None = None,
    ) -> None:
        self.user_id = user_id
        self._cache = cache
        self._feedback = feedback
        self._state = state if state is not None else load_player_state(cache, user_id)
        self.last_persistence: PersistenceFailure | None = None

    @property
    def state(self) -> PlayerState:
        return self._state.model_copy()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def apply_effects(self, effects: Iterable[StatEffect]) -> tuple[AppliedEffect, ...]:
        applied: list[AppliedEffect] = []
        state = self._state
        for eff in effects:
            state, record = apply_delta(state, eff.target, eff.delta)
            applied.append(record)
        if not applied:
            return ()
        self._state = state
        self._persist()
        for record in applied:
            self._emit(record)
        return tuple(applied)

    def apply_stats(self, stats: Iterable[Stat]) -> tuple[AppliedEffect, ...]:
        return self.apply_effects(collect_stat_effects(stats))

    def apply_event(self, event: GameEventBase) -> tuple[AppliedEffect, ...]:
        return self.apply_stats(event.stats)

    def apply_dilemma(self, option: DilemmaOption) -> tuple[AppliedEffect, ...]:
        eff = dilemma_effect(option)
        return self.apply_effects([eff] if eff is not None else [])

    def change_hp(self, delta: int) -> AppliedEffect:
        return self.apply_effects([StatEffect(kind=EffectKind.HP, target="hp", delta=delta)])[0]

    def change_mana(self, delta: int) -> AppliedEffect:
        return self.apply_effects([StatEffect(kind=EffectKind.MANA, target="mana", delta=delta)])[0]

    def change_gold(self, delta: int) -> AppliedEffect:
        return self.apply_effects([StatEffect(kind=EffectKind.GOLD, target="gold", delta=delta)])[0]

    def admin_set(self, **values: int) -> PlayerState:
        """Explicit admin override; values are validated against the ledger bounds."""
        merged = {**self._state.model_dump(), **values}
        self._state = PlayerState.model_validate(merged)
        self._persist()
        return self.state

    def reset(self) -> PlayerState:
        self._state = PlayerState()
        self._persist()
        return self.state

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    def _persist(self) -> None:
        error = safe_write(self._cache, player_state_key(self.user_id), self._state.model_dump())
        if error is None:
            self.last_persistence = None
            return
        self.last_persistence = PersistenceFailure(
            event_id="",
            action="player_state",
            reason=error,
            reverted=False,
        )

    def _emit(self, record: AppliedEffect) -> None:
        if self._feedback is None or record.feedback is None:
            return
        try:
            self._feedback(record)
        except Exception as exc:
            # Feedback is presentation-only; the mutation already happened.
            logger.warning("Feedback sink failed for %s: %s", record.target, exc)
