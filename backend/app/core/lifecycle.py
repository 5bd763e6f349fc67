"""Card lifecycle: save, delete, lock toggle, edit-load and use.

Lock rule: a locked card can't be deleted or loaded for edit by anyone.
A locked consumable still fires its effects on use but stays in the
inventory. Deletes are confirmed remotely before the local copy goes;
lock toggles are optimistic.
"""
from __future__ import annotations

import logging

from backend.app.content.inventory import Inventory
from backend.app.core.error_handling import log_error_with_context
from backend.app.core.ledger import PlayerLedger
from backend.app.db.local_cache import LocalCache
from backend.app.models.event import GameEventBase
from backend.app.models.outcomes import (
    InvalidMutation,
    MutationApplied,
    MutationOutcome,
    PersistenceFailure,
    UseResult,
)
from backend.app.store.client import EventStore, StoreError

logger = logging.getLogger(__name__)


def normalize_for_save(event: GameEventBase) -> GameEventBase:
    """Non-consumable cards are always savable."""
    if not event.is_consumable and not event.can_be_saved:
        return event.model_copy(update={"can_be_saved": True})
    return event


class CardLifecycle:
    def __init__(
        self,
        inventory: Inventory,
        store: EventStore | None = None,
        cache: LocalCache | None = None,
        is_admin: bool = False,
    ) -> None:
        self.inventory = inventory
        self.store = store
        self.cache = cache
        self.is_admin = is_admin

    @property
    def user_id(self) -> str:
        return self.inventory.user_id

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def save(
        self,
        event: GameEventBase,
        require_savable: bool = False,
        preserve_lock: bool = False,
    ) -> MutationOutcome:
        """Upsert into the inventory by id. Remote failure keeps the local copy.

        Only an admin save may set the lock flag; everyone else keeps the
        owned card's flag (unlocked for new ids).
        """
        if require_savable and event.is_consumable and not event.can_be_saved:
            return InvalidMutation(event_id=event.id, action="save", reason="not_savable")

        event = normalize_for_save(event)
        if preserve_lock or not self.is_admin:
            event = self._with_owned_lock(event)
        created = self.inventory.upsert(event)
        persistence = self._push(event, "save")
        return MutationApplied(
            event_id=event.id,
            action="save",
            created=created,
            event=event,
            persistence=persistence,
        )

    def _with_owned_lock(self, event: GameEventBase) -> GameEventBase:
        existing = self.inventory.get(event.id)
        locked = existing.is_locked if existing is not None else False
        if event.is_locked == locked:
            return event
        return event.model_copy(update={"is_locked": locked})

    def delete(self, event_id: str) -> MutationOutcome:
        existing = self.inventory.get(event_id)
        if existing is None:
            return InvalidMutation(event_id=event_id, action="delete", reason="not_in_inventory")
        if existing.is_locked:
            return InvalidMutation(event_id=existing.id, action="delete", reason="locked")

        if self.store is not None:
            try:
                self.store.delete_event(self.user_id, existing.id)
            except StoreError as exc:
                log_error_with_context(exc, "delete", user_id=self.user_id, code=existing.id)
                return PersistenceFailure(
                    event_id=existing.id,
                    action="delete",
                    reason=str(exc),
                    reverted=True,
                )

        self.inventory.remove(existing.id)
        error = self.inventory.save_backup(self.cache)
        persistence = None
        if error is not None:
            persistence = PersistenceFailure(
                event_id=existing.id, action="delete", reason=error, reverted=False
            )
        return MutationApplied(
            event_id=existing.id, action="delete", event=existing, persistence=persistence
        )

    def toggle_lock(self, event_id: str) -> MutationOutcome:
        if not self.is_admin:
            return InvalidMutation(event_id=event_id, action="toggle_lock", reason="admin_only")
        existing = self.inventory.get(event_id)
        if existing is None:
            return InvalidMutation(event_id=event_id, action="toggle_lock", reason="not_in_inventory")

        updated = existing.model_copy(update={"is_locked": not existing.is_locked})
        self.inventory.upsert(updated)
        persistence = self._push(updated, "toggle_lock")
        return MutationApplied(
            event_id=updated.id,
            action="toggle_lock",
            created=False,
            event=updated,
            persistence=persistence,
        )

    def load_for_edit(self, event: GameEventBase | str) -> MutationOutcome:
        target = self.inventory.get(event) if isinstance(event, str) else event
        event_id = event if isinstance(event, str) else event.id
        if target is None:
            return InvalidMutation(event_id=event_id, action="edit", reason="not_in_inventory")
        if target.is_locked:
            return InvalidMutation(event_id=target.id, action="edit", reason="locked")
        if not self.is_admin:
            return InvalidMutation(event_id=target.id, action="edit", reason="admin_only")
        return MutationApplied(event_id=target.id, action="edit", event=target.model_copy(deep=True))

    def use(self, event: GameEventBase, ledger: PlayerLedger) -> UseResult:
        """Apply the card's stat effects, then consume it if owned and consumable.

        ``event`` is the card as shown (already context adjusted); the lock
        and consumable flags are read from the owned instance.
        """
        effects = ledger.apply_event(event)
        owned = self.inventory.get(event.id)
        consumed = False
        retained_locked = False
        removal: MutationOutcome | None = None

        if owned is not None and owned.is_consumable:
            if owned.is_locked:
                retained_locked = True
                logger.info("Locked consumable %s used and kept", owned.id)
            else:
                removal = self.delete(owned.id)
                consumed = isinstance(removal, MutationApplied)

        return UseResult(
            event=event,
            state=ledger.state,
            effects=effects,
            consumed=consumed,
            retained_locked=retained_locked,
            removal=removal,
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _push(self, event: GameEventBase, action: str) -> PersistenceFailure | None:
        """Backup locally, then push to the store. Local state is kept either way."""
        reasons: list[str] = []
        error = self.inventory.save_backup(self.cache)
        if error is not None:
            reasons.append(error)
        if self.store is not None:
            try:
                self.store.create_or_update_event(self.user_id, event)
            except StoreError as exc:
                log_error_with_context(exc, action, user_id=self.user_id, code=event.id)
                reasons.append(str(exc))
        if not reasons:
            return None
        return PersistenceFailure(
            event_id=event.id, action=action, reason="; ".join(reasons), reverted=False
        )
