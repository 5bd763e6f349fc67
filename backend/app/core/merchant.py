"""Merchant stalls: class-discounted purchases and steal attempts."""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass

from backend.app.constants import DEFAULT_STEAL_PENALTY_HP, ROGUE_STEAL_BONUS
from backend.app.content.repository import MasterCatalog
from backend.app.core.ledger import PlayerLedger
from backend.app.core.lifecycle import CardLifecycle
from backend.app.models.event import (
    GameEventBase,
    MerchantEvent,
    PlayerClass,
    TradeConfig,
    event_key,
    normalize_player_class,
)
from backend.app.models.outcomes import TradeCompleted, TradeOutcome, TradeRejected

logger = logging.getLogger(__name__)


@dataclass
class Listing:
    item: GameEventBase
    stock: int


class MerchantStall:
    """Stock for one merchant visit. Stock counts live only for the visit."""

    def __init__(self, merchant: MerchantEvent, listings: list[Listing]) -> None:
        self.merchant = merchant
        self.trade = merchant.trade_config or TradeConfig()
        self._listings: dict[str, Listing] = {listing.item.key: listing for listing in listings}

    @classmethod
    def open(cls, merchant: MerchantEvent, catalog: MasterCatalog) -> "MerchantStall":
        listings: list[Listing] = []
        for entry in merchant.merchant_items or []:
            item = catalog.get(entry.id)
            if item is None:
                logger.warning("Merchant %s lists unknown item %s", merchant.id, entry.id)
                continue
            listings.append(Listing(item=item, stock=entry.stock))
        return cls(merchant, listings)

    def listings(self) -> list[Listing]:
        return list(self._listings.values())

    def listing(self, item_id: str) -> Listing | None:
        return self._listings.get(event_key(item_id))

    def _class_percent(self, table: dict[str, int], player_class: PlayerClass | None) -> int:
        if player_class is None:
            return 0
        for raw, pct in table.items():
            if normalize_player_class(raw) is player_class:
                return max(0, min(100, int(pct)))
        return 0

    def price_for(self, item: GameEventBase, player_class: PlayerClass | None = None) -> int:
        base = max(0, item.price or 0)
        discount = self._class_percent(self.trade.buy_discount, player_class)
        return base * (100 - discount) // 100

    def steal_chance(self, player_class: PlayerClass | None = None) -> int:
        chance = self.trade.steal_chance
        if player_class is PlayerClass.ROGUE:
            chance += ROGUE_STEAL_BONUS
        return min(100, chance)

    def buy(
        self,
        item_id: str,
        ledger: PlayerLedger,
        lifecycle: CardLifecycle,
        player_class: PlayerClass | None = None,
    ) -> TradeOutcome:
        listing = self.listing(item_id)
        if listing is None:
            return TradeRejected(item_id=item_id, reason="unknown_item")
        if listing.stock <= 0:
            return TradeRejected(item_id=listing.item.id, reason="out_of_stock")
        price = self.price_for(listing.item, player_class)
        if ledger.state.gold < price:
            return TradeRejected(item_id=listing.item.id, reason="insufficient_gold")

        effects = (ledger.change_gold(-price),) if price else ()
        listing.stock -= 1
        lifecycle.save(listing.item.model_copy(deep=True))
        logger.info("Bought %s for %d gold from %s", listing.item.id, price, self.merchant.id)
        return TradeCompleted(
            item=listing.item,
            price=price,
            stock_left=listing.stock,
            state=ledger.state,
            effects=effects,
        )

    def attempt_steal(
        self,
        item_id: str,
        ledger: PlayerLedger,
        lifecycle: CardLifecycle,
        player_class: PlayerClass | None = None,
        rng: random.Random | None = None,
    ) -> TradeOutcome:
        listing = self.listing(item_id)
        if listing is None:
            return TradeRejected(item_id=item_id, reason="unknown_item")
        if listing.stock <= 0:
            return TradeRejected(item_id=listing.item.id, reason="out_of_stock")
        chance = self.steal_chance(player_class)
        if chance <= 0:
            return TradeRejected(item_id=listing.item.id, reason="steal_not_possible")

        roll = (rng or random).randint(1, 100)
        if roll > chance:
            penalty = self.trade.steal_penalty_hp
            if penalty is None:
                penalty = DEFAULT_STEAL_PENALTY_HP
            ledger.change_hp(-penalty)
            logger.info("Steal of %s caught (roll %d > %d)", listing.item.id, roll, chance)
            return TradeRejected(item_id=listing.item.id, reason="caught")

        listing.stock -= 1
        lifecycle.save(listing.item.model_copy(deep=True))
        return TradeCompleted(
            item=listing.item,
            price=0,
            stock_left=listing.stock,
            stolen=True,
            state=ledger.state,
        )
