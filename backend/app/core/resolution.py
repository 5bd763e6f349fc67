"""Scanned code -> card resolution across ordered sources.

Precedence (first hit wins, ids compared case-insensitively):
  1. the player's inventory (owned instance beats any template)
  2. the local master catalog
  3. the remote store, player's own scope
  4. the remote store, admin scope
  5. generative fallback, or the fixed unknown-artifact stub if it fails

A failing remote source is recorded and skipped, never surfaced on its own.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from backend.app.content.inventory import Inventory
from backend.app.content.repository import MasterCatalog
from backend.app.core.context_adjuster import adjust_event
from backend.app.core.error_handling import log_error_with_context
from backend.app.core.interpreter import UnknownCodeInterpreter, unknown_artifact_stub
from backend.app.models.event import GameEventBase, PlayerClass, event_key
from backend.app.models.outcomes import (
    NotFound,
    ResolutionSource,
    ResolvedEvent,
    SourceUnavailable,
)
from backend.app.store.client import EventStore, StoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolutionContext:
    user_id: str
    inventory: Inventory
    catalog: MasterCatalog
    admin_scope: str
    night: bool = False
    player_class: PlayerClass | None = None
    remote: bool = True
    generative_fallback: bool = True


class ResolutionPipeline:
    def __init__(
        self,
        store: EventStore | None = None,
        interpreter: UnknownCodeInterpreter | None = None,
    ) -> None:
        self.store = store
        self.interpreter = interpreter
        # Generated cards are remembered so a code always yields the same card
        self._generated: dict[str, GameEventBase] = {}
        self._generated_lock = threading.Lock()

    def resolve(self, code: str, ctx: ResolutionContext) -> ResolvedEvent | NotFound:
        code = (code or "").strip()
        if not code:
            return NotFound(code=code)

        unavailable: list[SourceUnavailable] = []

        template = ctx.inventory.get(code)
        if template is not None:
            return self._resolved(template, ResolutionSource.INVENTORY, ctx, unavailable)

        template = ctx.catalog.get(code)
        if template is not None:
            return self._resolved(template, ResolutionSource.CATALOG, ctx, unavailable)

        if ctx.remote and self.store is not None:
            scopes = [(ctx.user_id, ResolutionSource.REMOTE_USER)]
            if ctx.user_id != ctx.admin_scope:
                scopes.append((ctx.admin_scope, ResolutionSource.REMOTE_ADMIN))
            for scope, source in scopes:
                try:
                    template = self.store.get_event_by_id(scope, code)
                except StoreError as exc:
                    logger.info("Source %s unavailable for %s: %s", source.value, code, exc)
                    unavailable.append(SourceUnavailable(source=source, reason=str(exc)))
                    continue
                if template is not None:
                    return self._resolved(template, source, ctx, unavailable)

        if not ctx.generative_fallback:
            return NotFound(code=code, unavailable=tuple(unavailable))

        template, source = self._generate(code, ctx.user_id)
        return self._resolved(template, source, ctx, unavailable)

    def forget_generated(self) -> None:
        with self._generated_lock:
            self._generated.clear()

    def _generate(self, code: str, user_id: str) -> tuple[GameEventBase, ResolutionSource]:
        key = event_key(code)
        with self._generated_lock:
            cached = self._generated.get(key)
        if cached is not None:
            return cached, ResolutionSource.INTERPRETER

        if self.interpreter is not None:
            try:
                card = self.interpreter.interpret_unknown_code(code)
            except Exception as exc:
                # Opaque collaborator: any failure means "use the stub"
                log_error_with_context(exc, "interpret_unknown_code", user_id=user_id, code=code)
            else:
                with self._generated_lock:
                    self._generated[key] = card
                return card, ResolutionSource.INTERPRETER

        logger.warning("Substituting unknown-artifact stub for %s", code)
        return unknown_artifact_stub(code), ResolutionSource.STUB

    @staticmethod
    def _resolved(
        template: GameEventBase,
        source: ResolutionSource,
        ctx: ResolutionContext,
        unavailable: list[SourceUnavailable],
    ) -> ResolvedEvent:
        return ResolvedEvent(
            event=adjust_event(template, ctx.night, ctx.player_class),
            template=template,
            source=source,
            from_scanner=source is not ResolutionSource.INVENTORY,
            unavailable=tuple(unavailable),
        )


class ScanGate:
    """One resolution in flight per scanner; results of superseded scans are dropped.

    ``begin`` hands out a ticket (None while busy); ``invalidate`` marks
    everything started so far as stale, e.g. when the player navigates away.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._in_flight = False
        self._generation = 0

    @property
    def busy(self) -> bool:
        return self._in_flight

    def begin(self) -> int | None:
        with self._lock:
            if self._in_flight:
                return None
            self._in_flight = True
            return self._generation

    def finish(self, ticket: int) -> bool:
        """Release the gate; True when the ticket's result is still wanted."""
        with self._lock:
            self._in_flight = False
            return ticket == self._generation

    def invalidate(self) -> None:
        with self._lock:
            self._generation += 1
