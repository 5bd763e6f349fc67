"""Card ("event") models: one tagged variant per event type.

The store document is a field-for-field mirror of these models using the
camelCase wire names (``isConsumable``, ``trapConfig`` ...). ``parse_event``
picks the variant from ``type``; fields the engine does not know about are
kept so a save/fetch round trip never loses authored data.
"""
from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class EventType(str, Enum):
    ITEM = "ITEM"
    ENCOUNTER = "ENCOUNTER"
    BOSS = "BOSS"
    TRAP = "TRAP"
    MERCHANT = "MERCHANT"
    DILEMMA = "DILEMMA"
    LOCATION = "LOCATION"
    PLANET = "PLANET"


class Rarity(str, Enum):
    COMMON = "Common"
    RARE = "Rare"
    EPIC = "Epic"
    LEGENDARY = "Legendary"


class PlayerClass(str, Enum):
    WARRIOR = "WARRIOR"
    MAGE = "MAGE"
    ROGUE = "ROGUE"
    CLERIC = "CLERIC"


# Wire names written by older (Czech) clients
_TYPE_ALIASES: dict[str, EventType] = {
    "PŘEDMĚT": EventType.ITEM,
    "SETKÁNÍ": EventType.ENCOUNTER,
    "LOKACE": EventType.LOCATION,
    "NÁSTRAHA": EventType.TRAP,
    "OBCHODNÍK": EventType.MERCHANT,
    "DILEMA": EventType.DILEMMA,
    "PLANETA": EventType.PLANET,
}

_CLASS_ALIASES: dict[str, PlayerClass] = {
    "VÁLEČNÍK": PlayerClass.WARRIOR,
    "MÁG": PlayerClass.MAGE,
    "ZLODĚJ": PlayerClass.ROGUE,
    "KNĚZ": PlayerClass.CLERIC,
}


def normalize_event_type(value: Any) -> EventType | None:
    if isinstance(value, EventType):
        return value
    if value is None:
        return None
    raw = str(value).strip().upper()
    if not raw:
        return None
    if raw in _TYPE_ALIASES:
        return _TYPE_ALIASES[raw]
    try:
        return EventType(raw)
    except ValueError:
        return None


def normalize_player_class(value: Any) -> PlayerClass | None:
    if isinstance(value, PlayerClass):
        return value
    if value is None:
        return None
    raw = str(value).strip().upper()
    if not raw:
        return None
    if raw in _CLASS_ALIASES:
        return _CLASS_ALIASES[raw]
    try:
        return PlayerClass(raw)
    except ValueError:
        return None


class _Wire(BaseModel):
    """camelCase on the wire, snake_case in code."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class Stat(_Wire):
    label: str
    value: str | int | float
    icon: str | None = None


class TimeVariant(_Wire):
    enabled: bool = False
    night_title: str | None = Field(None, alias="nightTitle")
    night_description: str | None = Field(None, alias="nightDescription")
    night_type: str | None = Field(None, alias="nightType")
    night_stats: list[Stat] = Field(default_factory=list, alias="nightStats")


class ClassVariant(_Wire):
    override_title: str | None = Field(None, alias="overrideTitle")
    override_description: str | None = Field(None, alias="overrideDescription")
    override_type: str | None = Field(None, alias="overrideType")
    bonus_stats: list[Stat] = Field(default_factory=list, alias="bonusStats")


class DilemmaOption(_Wire):
    label: str
    consequence_text: str = Field("", alias="consequenceText")
    physical_instruction: str | None = Field(None, alias="physicalInstruction")
    effect_type: Literal["none", "hp", "gold"] = Field("none", alias="effectType")
    effect_value: int = Field(0, alias="effectValue")


class TrapConfig(_Wire):
    difficulty: int = 10
    damage: int = 20
    disarm_class: str | None = Field(None, alias="disarmClass")
    success_message: str = Field("", alias="successMessage")
    fail_message: str = Field("", alias="failMessage")


class MerchantItemEntry(_Wire):
    id: str
    stock: int = Field(0, ge=0)


class TradeConfig(_Wire):
    """Per-class discount percentages and steal odds for a merchant."""
    buy_discount: dict[str, int] = Field(default_factory=dict, alias="buyDiscount")
    sell_bonus: dict[str, int] = Field(default_factory=dict, alias="sellBonus")
    steal_chance: int = Field(0, ge=0, le=100, alias="stealChance")
    steal_penalty_hp: int | None = Field(None, ge=0, alias="stealPenaltyHp")


class BossPhase(_Wire):
    name: str
    trigger_type: str = Field("HP_PERCENT", alias="triggerType")
    trigger_value: int = Field(50, alias="triggerValue")
    description: str = ""
    damage_bonus: int = Field(0, alias="damageBonus")


class EnemyLoot(_Wire):
    gold_reward: int = Field(0, alias="goldReward")
    xp_reward: int = Field(0, alias="xpReward")
    drop_item_chance: int = Field(0, alias="dropItemChance")
    drop_item_id: str | None = Field(None, alias="dropItemId")


class CraftingRecipe(_Wire):
    enabled: bool = False
    required_resources: list[dict[str, Any]] = Field(default_factory=list, alias="requiredResources")
    crafting_time_seconds: int = Field(0, alias="craftingTimeSeconds")


class ResourceConfig(_Wire):
    is_resource: bool = Field(False, alias="isResource")
    resource_name: str | None = Field(None, alias="resourceName")
    resource_amount: int = Field(0, alias="resourceAmount")


class PlanetConfig(_Wire):
    planet_id: str | None = Field(None, alias="planetId")
    landing_event_type: str | None = Field(None, alias="landingEventType")
    landing_event_id: str | None = Field(None, alias="landingEventId")
    fuel_cost: int = Field(0, alias="fuelCost")


class StationConfig(_Wire):
    fuel_reward: int = Field(0, alias="fuelReward")
    repair_amount: int = Field(0, alias="repairAmount")
    refill_o2: bool = Field(False, alias="refillO2")
    welcome_message: str | None = Field(None, alias="welcomeMessage")


class MarketConfig(_Wire):
    enabled: bool = False
    items: list[dict[str, Any]] = Field(default_factory=list)


class GameEventBase(_Wire):
    """Fields every card carries regardless of type."""

    id: str = Field(..., min_length=1)
    title: str = ""
    description: str = ""
    rarity: Rarity = Rarity.COMMON
    flavor_text: str | None = Field(None, alias="flavorText")
    stats: list[Stat] = Field(default_factory=list)
    is_consumable: bool = Field(False, alias="isConsumable")
    can_be_saved: bool = Field(True, alias="canBeSaved")
    is_locked: bool = Field(False, alias="isLocked")
    is_shareable: bool = Field(True, alias="isShareable")
    price: int | None = Field(None, ge=0)
    qr_code_url: str | None = Field(None, alias="qrCodeUrl")
    time_variant: TimeVariant | None = Field(None, alias="timeVariant")
    class_variants: dict[str, ClassVariant] = Field(default_factory=dict, alias="classVariants")

    @property
    def key(self) -> str:
        """Case-insensitive identity used for lookups."""
        return event_key(self.id)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class ItemEvent(GameEventBase):
    type: Literal[EventType.ITEM] = EventType.ITEM
    crafting_recipe: CraftingRecipe | None = Field(None, alias="craftingRecipe")
    resource_config: ResourceConfig | None = Field(None, alias="resourceConfig")


class EncounterEvent(GameEventBase):
    type: Literal[EventType.ENCOUNTER] = EventType.ENCOUNTER
    enemy_loot: EnemyLoot | None = Field(None, alias="enemyLoot")


class BossEvent(GameEventBase):
    type: Literal[EventType.BOSS] = EventType.BOSS
    boss_phases: list[BossPhase] = Field(default_factory=list, alias="bossPhases")
    enemy_loot: EnemyLoot | None = Field(None, alias="enemyLoot")


class TrapEvent(GameEventBase):
    type: Literal[EventType.TRAP] = EventType.TRAP
    trap_config: TrapConfig | None = Field(None, alias="trapConfig")


class MerchantEvent(GameEventBase):
    type: Literal[EventType.MERCHANT] = EventType.MERCHANT
    trade_config: TradeConfig | None = Field(None, alias="tradeConfig")
    merchant_items: list[MerchantItemEntry] = Field(default_factory=list, alias="merchantItems")


class DilemmaEvent(GameEventBase):
    type: Literal[EventType.DILEMMA] = EventType.DILEMMA
    dilemma_options: list[DilemmaOption] = Field(default_factory=list, alias="dilemmaOptions")


class LocationEvent(GameEventBase):
    type: Literal[EventType.LOCATION] = EventType.LOCATION
    station_config: StationConfig | None = Field(None, alias="stationConfig")
    market_config: MarketConfig | None = Field(None, alias="marketConfig")


class PlanetEvent(GameEventBase):
    type: Literal[EventType.PLANET] = EventType.PLANET
    planet_config: PlanetConfig | None = Field(None, alias="planetConfig")


GameEvent = Annotated[
    Union[
        ItemEvent,
        EncounterEvent,
        BossEvent,
        TrapEvent,
        MerchantEvent,
        DilemmaEvent,
        LocationEvent,
        PlanetEvent,
    ],
    Field(discriminator="type"),
]

_EVENT_ADAPTER: TypeAdapter[GameEvent] = TypeAdapter(GameEvent)


def event_key(event_id: str) -> str:
    return str(event_id).strip().casefold()


def parse_event(data: dict[str, Any] | GameEventBase) -> GameEventBase:
    """Validate a store document into its tagged variant.

    Unknown or missing ``type`` falls back to ITEM so hand-authored cards
    stay loadable.
    """
    if isinstance(data, GameEventBase):
        data = data.to_wire()
    payload = dict(data)
    payload["type"] = normalize_event_type(payload.get("type")) or EventType.ITEM
    if isinstance(payload.get("classVariants"), dict):
        variants: dict[str, Any] = {}
        for cls_name, variant in payload["classVariants"].items():
            cls = normalize_player_class(cls_name)
            variants[cls.value if cls else str(cls_name)] = variant
        payload["classVariants"] = variants
    return _EVENT_ADAPTER.validate_python(payload)


def parse_events(items: list[dict[str, Any]] | None) -> list[GameEventBase]:
    return [parse_event(item) for item in items or []]
