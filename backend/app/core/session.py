"""Per-user game session: the explicit owner of one player's engine state.

A session wires the ledger, inventory, lifecycle, sync and resolution
pipeline for one logged-in user and tracks what is currently presented.
All mutations go through the session lock so that one event's effects and
its lifecycle transition are never interleaved with another's.
"""
from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable

from backend.app.content.inventory import Inventory
from backend.app.content.repository import MasterCatalog
from backend.app.core.context_adjuster import adjust_event, effective_night
from backend.app.core.effects import trap_instant_delta
from backend.app.core.interpreter import UnknownCodeInterpreter
from backend.app.core.ledger import FeedbackSink, PlayerLedger
from backend.app.core.lifecycle import CardLifecycle
from backend.app.core.merchant import MerchantStall
from backend.app.core.resolution import ResolutionContext, ResolutionPipeline, ScanGate
from backend.app.core.sync import InventorySync, SyncStatus, refresh_master_catalog
from backend.app.db.local_cache import LocalCache, player_class_key, safe_read, safe_write
from backend.app.models.event import (
    DilemmaEvent,
    EventType,
    GameEventBase,
    MerchantEvent,
    PlayerClass,
    normalize_player_class,
)
from backend.app.models.outcomes import (
    DilemmaResult,
    InvalidMutation,
    MutationApplied,
    MutationOutcome,
    NotFound,
    Presentation,
    ResolutionSource,
    ResolvedEvent,
    ScanIgnored,
    ScanOutcome,
    TradeOutcome,
    TradeRejected,
    UseResult,
)
from backend.app.store.client import EventStore

logger = logging.getLogger(__name__)

GUEST_USER_ID = "guest"

_PREVIEW_TYPES = (EventType.BOSS, EventType.ENCOUNTER)
_TEMPLATE_SOURCES = (ResolutionSource.CATALOG, ResolutionSource.REMOTE_ADMIN)


@dataclass
class CurrentView:
    """The event on screen and whether its one-shot action was taken."""
    resolved: ResolvedEvent
    acted: bool = False


def route_presentation(resolved: ResolvedEvent, in_room: bool) -> Presentation:
    if resolved.event.type is EventType.MERCHANT:
        return Presentation.MERCHANT
    if in_room and resolved.event.type in _PREVIEW_TYPES and resolved.source in _TEMPLATE_SOURCES:
        return Presentation.PREVIEW
    return Presentation.CARD


class GameSession:
    def __init__(
        self,
        user_id: str,
        *,
        catalog: MasterCatalog,
        store: EventStore | None = None,
        cache: LocalCache | None = None,
        interpreter: UnknownCodeInterpreter | None = None,
        admin_scope: str = "admin",
        offline: bool = False,
        player_class: PlayerClass | None = None,
        in_room: bool = False,
        feedback: FeedbackSink | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.user_id = user_id
        self.admin_scope = admin_scope
        self.is_admin = user_id == admin_scope
        self.is_guest = user_id == GUEST_USER_ID
        self.offline = offline
        self.in_room = in_room
        self.night_override: bool | None = None
        self.catalog = catalog
        self.cache = cache
        self._clock = clock or datetime.now
        self._lock = threading.RLock()

        remote = None if (self.is_guest or offline) else store
        self.store = remote
        self.inventory = Inventory.from_backup(user_id, cache)
        self.ledger = PlayerLedger(user_id, cache=cache, feedback=feedback)
        self.lifecycle = CardLifecycle(self.inventory, store=remote, cache=cache, is_admin=self.is_admin)
        self.sync = InventorySync(
            self.inventory,
            remote,
            cache=cache,
            is_admin=self.is_admin,
            offline=offline,
            catalog=catalog,
        )
        self.pipeline = ResolutionPipeline(store=remote, interpreter=interpreter)
        self.gate = ScanGate()

        self.player_class = player_class or normalize_player_class(
            safe_read(cache, player_class_key(user_id))
        )
        self.current: CurrentView | None = None
        self.merchant: MerchantStall | None = None
        self.scan_error: str | None = None
        self.active = True

    @classmethod
    def login(cls, user_id: str, **kwargs: Any) -> "GameSession":
        """Create a session and pull the player's inventory."""
        session = cls(user_id, **kwargs)
        status = session.sync.refresh()
        logger.info("Session for %s started (sync=%s)", user_id, status.value)
        return session

    def logout(self) -> None:
        with self._lock:
            self.gate.invalidate()
            self.inventory.clear()
            self.current = None
            self.merchant = None
            self.scan_error = None
            self.player_class = None
            self.night_override = None
            self.pipeline.forget_generated()
            self.active = False
        logger.info("Session for %s closed", self.user_id)

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------

    @property
    def night(self) -> bool:
        return effective_night(self.night_override, self._clock())

    @property
    def sync_status(self) -> SyncStatus:
        return self.sync.status

    def set_player_class(self, player_class: PlayerClass | str | None) -> PlayerClass | None:
        self.player_class = normalize_player_class(player_class)
        value = self.player_class.value if self.player_class else None
        error = safe_write(self.cache, player_class_key(self.user_id), value)
        if error:
            logger.warning("Could not persist class for %s: %s", self.user_id, error)
        return self.player_class

    def set_night_override(self, value: bool | None) -> None:
        if not self.is_admin:
            logger.info("Ignoring night override from non-admin %s", self.user_id)
            return
        self.night_override = value

    def _context(self) -> ResolutionContext:
        return ResolutionContext(
            user_id=self.user_id,
            inventory=self.inventory,
            catalog=self.catalog,
            admin_scope=self.admin_scope,
            night=self.night,
            player_class=self.player_class,
            remote=self.store is not None,
            generative_fallback=not self.is_guest,
        )

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def scan(self, code: str) -> ScanOutcome:
        code = (code or "").strip()
        if self.scan_error is not None and code == self.scan_error:
            return ScanIgnored(code=code, reason="repeat_failed_code")

        ticket = self.gate.begin()
        if ticket is None:
            return ScanIgnored(code=code, reason="resolution_in_flight")
        try:
            outcome = self.pipeline.resolve(code, self._context())
        finally:
            current = self.gate.finish(ticket)
        if not current or not self.active:
            logger.info("Dropping stale resolution of %s", code)
            return ScanIgnored(code=code, reason="stale")

        with self._lock:
            if isinstance(outcome, NotFound):
                self.scan_error = code
                return outcome
            self.scan_error = None
            return self._present(outcome)

    def _present(self, resolved: ResolvedEvent) -> ResolvedEvent:
        if resolved.source is ResolutionSource.REMOTE_USER:
            # Owned remotely but missing locally
            self.inventory.upsert(resolved.template)
            self.inventory.save_backup(self.cache)

        presentation = route_presentation(resolved, self.in_room)
        instant = None
        if resolved.from_scanner and presentation is Presentation.CARD:
            delta = trap_instant_delta(resolved.event)
            if delta is not None:
                self.ledger.change_hp(delta)
                instant = delta
        resolved = replace(resolved, presentation=presentation, instant_effect=instant)

        self.merchant = None
        if presentation is Presentation.MERCHANT and isinstance(resolved.event, MerchantEvent):
            self.merchant = MerchantStall.open(resolved.event, self.catalog)
        self.current = CurrentView(resolved=resolved, acted=instant is not None)
        return resolved

    def open_inventory_card(self, event_id: str) -> ResolvedEvent | NotFound:
        """Present an owned card (not from a scanner)."""
        with self._lock:
            template = self.inventory.get(event_id)
            if template is None:
                return NotFound(code=event_id)
            resolved = ResolvedEvent(
                event=adjust_event(template, self.night, self.player_class),
                template=template,
                source=ResolutionSource.INVENTORY,
                from_scanner=False,
            )
            return self._present(resolved)

    def dismiss_scan_error(self) -> None:
        self.scan_error = None

    def close_event(self) -> bool:
        """Dismiss the current event without mutation; True offers a turn advance."""
        self.gate.invalidate()
        with self._lock:
            view, self.current = self.current, None
            self.merchant = None
        return view is not None and view.resolved.from_scanner

    # ------------------------------------------------------------------
    # Actions on the presented event
    # ------------------------------------------------------------------

    def use_current(self) -> UseResult | InvalidMutation:
        with self._lock:
            view = self.current
            if view is None:
                return InvalidMutation(event_id="", action="use", reason="nothing_presented")
            if view.acted:
                return InvalidMutation(event_id=view.resolved.event.id, action="use", reason="already_resolved")
            result = self.lifecycle.use(view.resolved.event, self.ledger)
            view.acted = True
            return result

    def use(self, event_id: str) -> UseResult | InvalidMutation:
        """Use an owned card straight from the inventory."""
        with self._lock:
            template = self.inventory.get(event_id)
            if template is None:
                return InvalidMutation(event_id=event_id, action="use", reason="not_in_inventory")
            shown = adjust_event(template, self.night, self.player_class)
            return self.lifecycle.use(shown, self.ledger)

    def choose_dilemma(self, index: int) -> DilemmaResult | InvalidMutation:
        with self._lock:
            view = self.current
            if view is None or not isinstance(view.resolved.event, DilemmaEvent):
                return InvalidMutation(event_id="", action="dilemma", reason="no_dilemma_presented")
            event = view.resolved.event
            if view.acted:
                return InvalidMutation(event_id=event.id, action="dilemma", reason="already_resolved")
            options = event.dilemma_options or []
            if not 0 <= index < len(options):
                return InvalidMutation(event_id=event.id, action="dilemma", reason="invalid_option")
            option = options[index]
            effects = self.ledger.apply_dilemma(option)
            view.acted = True
            return DilemmaResult(
                option_index=index,
                consequence_text=option.consequence_text,
                physical_instruction=option.physical_instruction,
                state=self.ledger.state,
                effects=effects,
            )

    def save_current(self) -> MutationOutcome:
        with self._lock:
            if self.current is None:
                return InvalidMutation(event_id="", action="save", reason="nothing_presented")
            return self.lifecycle.save(self.current.resolved.template, require_savable=True)

    # ------------------------------------------------------------------
    # Lifecycle commands
    # ------------------------------------------------------------------

    def save(self, event: GameEventBase) -> MutationOutcome:
        with self._lock:
            return self.lifecycle.save(event)

    def delete(self, event_id: str) -> MutationOutcome:
        with self._lock:
            return self.lifecycle.delete(event_id)

    def toggle_lock(self, event_id: str) -> MutationOutcome:
        with self._lock:
            return self.lifecycle.toggle_lock(event_id)

    def load_for_edit(self, event_id: str) -> MutationOutcome:
        with self._lock:
            return self.lifecycle.load_for_edit(event_id)

    def send_gift(self, event_id: str) -> MutationOutcome:
        """Remove a card so it can be handed to another player; locked cards stay."""
        with self._lock:
            outcome = self.lifecycle.delete(event_id)
            if isinstance(outcome, MutationApplied):
                outcome = replace(outcome, action="gift")
            return outcome

    def receive_gift(self, event: GameEventBase) -> MutationOutcome:
        with self._lock:
            return self.lifecycle.save(event, preserve_lock=True)

    # ------------------------------------------------------------------
    # Merchant
    # ------------------------------------------------------------------

    def buy(self, item_id: str) -> TradeOutcome:
        with self._lock:
            if self.merchant is None:
                return TradeRejected(item_id=item_id, reason="no_merchant")
            return self.merchant.buy(item_id, self.ledger, self.lifecycle, self.player_class)

    def steal(self, item_id: str, rng: random.Random | None = None) -> TradeOutcome:
        with self._lock:
            if self.merchant is None:
                return TradeRejected(item_id=item_id, reason="no_merchant")
            return self.merchant.attempt_steal(
                item_id, self.ledger, self.lifecycle, self.player_class, rng=rng
            )

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def refresh_inventory(self) -> SyncStatus:
        return self.sync.refresh()

    def refresh_catalog(self) -> str:
        return refresh_master_catalog(self.catalog, self.store, self.cache)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            current = None
            if self.current is not None:
                resolved = self.current.resolved
                current = {
                    "event": resolved.event.to_wire(),
                    "source": resolved.source.value,
                    "presentation": resolved.presentation.value,
                    "fromScanner": resolved.from_scanner,
                    "acted": self.current.acted,
                }
            return {
                "userId": self.user_id,
                "isAdmin": self.is_admin,
                "playerClass": self.player_class.value if self.player_class else None,
                "night": self.night,
                "syncStatus": self.sync.status.value,
                "state": self.ledger.state.model_dump(),
                "inventory": self.inventory.to_wire(),
                "current": current,
                "scanError": self.scan_error,
            }
