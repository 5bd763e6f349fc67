"""Tests for merchant pricing, purchases and steal attempts."""
from __future__ import annotations

import pytest

from backend.app.content.inventory import Inventory
from backend.app.core.ledger import PlayerLedger
from backend.app.core.lifecycle import CardLifecycle
from backend.app.core.merchant import MerchantStall
from backend.app.models.event import PlayerClass
from backend.app.models.outcomes import TradeCompleted, TradeRejected
from backend.app.models.player import PlayerState
from backend.tests.helpers import FixedRoll, make_event


@pytest.fixture
def stall(catalog) -> MerchantStall:
    merchant = make_event(
        id="MERCH-01",
        type="MERCHANT",
        tradeConfig={"buyDiscount": {"Zloděj": 10}, "stealChance": 20},
        merchantItems=[
            {"id": "ITEM-01", "stock": 3},
            {"id": "ITEM-02", "stock": 1},
            {"id": "MISSING", "stock": 9},
        ],
    )
    return MerchantStall.open(merchant, catalog)


@pytest.fixture
def lifecycle() -> CardLifecycle:
    return CardLifecycle(Inventory("p1"))


def test_open_skips_items_missing_from_catalog(stall) -> None:
    assert [listing.item.id for listing in stall.listings()] == ["ITEM-01", "ITEM-02"]


def test_class_discount(stall, catalog) -> None:
    item = catalog.get("ITEM-02")
    assert stall.price_for(item) == 25
    assert stall.price_for(item, PlayerClass.WARRIOR) == 25
    # 25 * 90% rounds down
    assert stall.price_for(item, PlayerClass.ROGUE) == 22


def test_buy_spends_gold_and_saves_item(stall, lifecycle) -> None:
    ledger = PlayerLedger("p1", state=PlayerState(gold=100))
    outcome = stall.buy("item-01", ledger, lifecycle)
    assert isinstance(outcome, TradeCompleted)
    assert outcome.price == 15
    assert outcome.stock_left == 2
    assert ledger.state.gold == 85
    assert "ITEM-01" in lifecycle.inventory



def test_buying_an_owned_locked_card_keeps_it_locked(stall) -> None:
    lifecycle = CardLifecycle(Inventory("p1", [make_event(id="ITEM-01", isLocked=True)]))
    outcome = stall.buy("ITEM-01", PlayerLedger("p1"), lifecycle)
    assert isinstance(outcome, TradeCompleted)
    assert lifecycle.inventory.get("ITEM-01").is_locked is True

def test_buy_rejections(stall, lifecycle) -> None:
    poor = PlayerLedger("p1", state=PlayerState(gold=10))
    assert stall.buy("ITEM-01", poor, lifecycle).reason == "insufficient_gold"
    assert poor.state.gold == 10

    rich = PlayerLedger("p1", state=PlayerState(gold=100))
    assert isinstance(stall.buy("ITEM-02", rich, lifecycle), TradeCompleted)
    assert stall.buy("ITEM-02", rich, lifecycle).reason == "out_of_stock"
    assert stall.buy("NOPE", rich, lifecycle).reason == "unknown_item"


def test_steal_success_is_free(stall, lifecycle) -> None:
    ledger = PlayerLedger("p1", state=PlayerState(gold=0))
    outcome = stall.attempt_steal("ITEM-01", ledger, lifecycle, rng=FixedRoll(20))
    assert isinstance(outcome, TradeCompleted)
    assert outcome.stolen is True
    assert outcome.price == 0
    assert ledger.state.gold == 0
    assert "ITEM-01" in lifecycle.inventory


def test_caught_thief_takes_damage(stall, lifecycle) -> None:
    ledger = PlayerLedger("p1", state=PlayerState(hp=50))
    outcome = stall.attempt_steal("ITEM-01", ledger, lifecycle, rng=FixedRoll(21))
    assert isinstance(outcome, TradeRejected)
    assert outcome.reason == "caught"
    assert ledger.state.hp == 40
    assert "ITEM-01" not in lifecycle.inventory


def test_rogue_steal_bonus(stall, lifecycle) -> None:
    assert stall.steal_chance(PlayerClass.ROGUE) == 30
    ledger = PlayerLedger("p1")
    outcome = stall.attempt_steal("ITEM-01", ledger, lifecycle, PlayerClass.ROGUE, rng=FixedRoll(30))
    assert isinstance(outcome, TradeCompleted)


def test_no_steal_chance(catalog, lifecycle) -> None:
    honest = MerchantStall.open(
        make_event(id="M2", type="MERCHANT", merchantItems=[{"id": "ITEM-01", "stock": 1}]),
        catalog,
    )
    ledger = PlayerLedger("p1")
    assert honest.attempt_steal("ITEM-01", ledger, lifecycle).reason == "steal_not_possible"
    assert ledger.state.hp == 100
