"""Tests for resolution precedence, fall-through and the unknown-code fallback."""
from __future__ import annotations

from backend.app.constants import UNKNOWN_ARTIFACT_TITLE
from backend.app.content.inventory import Inventory
from backend.app.content.repository import MasterCatalog
from backend.app.core.interpreter import InterpreterError
from backend.app.core.resolution import ResolutionContext, ResolutionPipeline, ScanGate
from backend.app.models.event import EventType, PlayerClass, Rarity
from backend.app.models.outcomes import NotFound, ResolutionSource, ResolvedEvent
from backend.tests.helpers import make_event


class _FailingInterpreter:
    def __init__(self) -> None:
        self.calls = 0

    def interpret_unknown_code(self, code):
        self.calls += 1
        raise InterpreterError("model unavailable")


class _CountingInterpreter:
    def __init__(self) -> None:
        self.calls = 0

    def interpret_unknown_code(self, code):
        self.calls += 1
        return make_event(id=code, title=f"Generated {self.calls}", rarity="Epic")


def _ctx(inventory, catalog, **kwargs) -> ResolutionContext:
    defaults = dict(user_id=inventory.user_id, inventory=inventory, catalog=catalog, admin_scope="admin")
    defaults.update(kwargs)
    return ResolutionContext(**defaults)


def test_inventory_beats_catalog(catalog) -> None:
    inventory = Inventory("p1", [
        make_event(id="ITEM-01", isLocked=True, stats=[{"label": "HP", "value": "+999"}]),
    ])
    outcome = ResolutionPipeline().resolve("ITEM-01", _ctx(inventory, catalog))
    assert isinstance(outcome, ResolvedEvent)
    assert outcome.source is ResolutionSource.INVENTORY
    assert outcome.event.is_locked is True
    assert outcome.event.stats[0].value == "+999"
    assert outcome.from_scanner is False


def test_catalog_lookup_is_case_insensitive(inventory, catalog) -> None:
    outcome = ResolutionPipeline().resolve("  item-02 ", _ctx(inventory, catalog))
    assert outcome.source is ResolutionSource.CATALOG
    assert outcome.event.id == "ITEM-02"
    assert outcome.from_scanner is True


def test_remote_user_scope_before_admin_scope(inventory, catalog, store) -> None:
    store.seed("p1", [make_event(id="R-1", title="Mine")])
    store.seed("admin", [make_event(id="R-1", title="Template"), make_event(id="R-2", title="Admin only")])
    pipeline = ResolutionPipeline(store=store)

    mine = pipeline.resolve("r-1", _ctx(inventory, catalog, user_id="p1"))
    assert (mine.source, mine.event.title) == (ResolutionSource.REMOTE_USER, "Mine")

    admin = pipeline.resolve("R-2", _ctx(inventory, catalog, user_id="p1"))
    assert (admin.source, admin.event.title) == (ResolutionSource.REMOTE_ADMIN, "Admin only")


def test_admin_user_skips_duplicate_admin_lookup(catalog, store) -> None:
    pipeline = ResolutionPipeline(store=store)
    pipeline.resolve("NOPE", _ctx(Inventory("admin"), catalog, user_id="admin"))
    assert store.calls == [("get_event_by_id", "admin")]


def test_unavailable_store_falls_through_to_stub(inventory, catalog, store) -> None:
    store.online = False
    outcome = ResolutionPipeline(store=store).resolve("QR-404", _ctx(inventory, catalog))
    assert outcome.source is ResolutionSource.STUB
    assert [u.source for u in outcome.unavailable] == [
        ResolutionSource.REMOTE_USER,
        ResolutionSource.REMOTE_ADMIN,
    ]


def test_remote_disabled_skips_store(inventory, catalog, store) -> None:
    ResolutionPipeline(store=store).resolve("QR-1", _ctx(inventory, catalog, remote=False))
    assert store.calls == []


def test_generator_failure_yields_stub_deterministically(inventory, catalog) -> None:
    interpreter = _FailingInterpreter()
    pipeline = ResolutionPipeline(interpreter=interpreter)
    first = pipeline.resolve("NEVER-SEEN", _ctx(inventory, catalog))
    second = pipeline.resolve("NEVER-SEEN", _ctx(inventory, catalog))
    for outcome in (first, second):
        assert outcome.source is ResolutionSource.STUB
        assert outcome.event.id == "NEVER-SEEN"
        assert outcome.event.title == UNKNOWN_ARTIFACT_TITLE
        assert outcome.event.type is EventType.ITEM
        assert outcome.event.rarity is Rarity.COMMON
        assert outcome.event.is_consumable is False
        assert [(s.label, s.value) for s in outcome.event.stats] == [("HP", "+5")]
    assert first.event.to_wire() == second.event.to_wire()


def test_generated_card_is_reused_for_same_code(inventory, catalog) -> None:
    interpreter = _CountingInterpreter()
    pipeline = ResolutionPipeline(interpreter=interpreter)
    a = pipeline.resolve("GEN-1", _ctx(inventory, catalog))
    b = pipeline.resolve("gen-1", _ctx(inventory, catalog))
    assert a.source is ResolutionSource.INTERPRETER
    assert a.event.title == b.event.title == "Generated 1"
    assert interpreter.calls == 1


def test_without_generative_fallback_unknown_code_is_not_found(inventory, catalog) -> None:
    outcome = ResolutionPipeline().resolve("QR-X", _ctx(inventory, catalog, generative_fallback=False))
    assert isinstance(outcome, NotFound)
    assert outcome.code == "QR-X"


def test_blank_code_is_not_found(inventory, catalog) -> None:
    assert isinstance(ResolutionPipeline().resolve("   ", _ctx(inventory, catalog)), NotFound)


def test_result_is_context_adjusted_but_template_is_not(inventory) -> None:
    card = make_event(
        id="ENC-9",
        type="ENCOUNTER",
        title="Day",
        timeVariant={"enabled": True, "nightTitle": "Night"},
        classVariants={"ROGUE": {"overrideDescription": "Sneaky"}},
    )
    outcome = ResolutionPipeline().resolve(
        "ENC-9",
        _ctx(inventory, MasterCatalog([card]), night=True, player_class=PlayerClass.ROGUE),
    )
    assert outcome.event.title == "Night"
    assert outcome.event.description == "Sneaky"
    assert outcome.template.title == "Day"


def test_scan_gate_debounce_and_staleness() -> None:
    gate = ScanGate()
    ticket = gate.begin()
    assert ticket is not None
    assert gate.busy
    assert gate.begin() is None
    assert gate.finish(ticket) is True

    ticket = gate.begin()
    gate.invalidate()
    assert gate.finish(ticket) is False
    assert gate.begin() is not None
