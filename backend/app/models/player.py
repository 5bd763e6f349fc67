"""Player ledger snapshot (persisted per user in the local cache)."""
from __future__ import annotations

from pydantic import BaseModel, Field

from backend.app.constants import (
    INITIAL_GOLD,
    INITIAL_HP,
    INITIAL_MANA,
    MAX_PLAYER_HP,
    MAX_PLAYER_MANA,
)


class PlayerState(BaseModel):
    """Scalar per-user state. HP and mana are capped; gold only has a floor."""

    hp: int = Field(INITIAL_HP, ge=0, le=MAX_PLAYER_HP)
    mana: int = Field(INITIAL_MANA, ge=0, le=MAX_PLAYER_MANA)
    gold: int = Field(INITIAL_GOLD, ge=0)
    # Auxiliary: carried and persisted, not consumed by effect rules
    armor: int = 0
    luck: int = 0
    oxygen: int = 100
