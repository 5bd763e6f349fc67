"""Inventory and master-catalog synchronization with the remote store."""
from __future__ import annotations

import logging
import threading
from enum import Enum

from backend.app.content.inventory import Inventory, load_backup_events
from backend.app.content.loader import load_seed_events
from backend.app.content.repository import MasterCatalog
from backend.app.core.error_handling import log_error_with_context
from backend.app.db.local_cache import MASTER_CATALOG_KEY, LocalCache, safe_read, safe_write
from backend.app.models.event import GameEventBase, parse_event
from backend.app.store.client import EventStore, StoreError

logger = logging.getLogger(__name__)


class SyncStatus(str, Enum):
    IDLE = "idle"
    SYNCED = "synced"
    OFFLINE = "offline"
    RESTORING = "restoring"
    ERROR = "error"
    GUEST = "guest"


def overlay_master(
    owned: list[GameEventBase], master: dict[str, GameEventBase]
) -> list[GameEventBase]:
    """Replace owned cards with the master version, keeping the per-user lock flag.

    With a non-empty master, owned cards it no longer lists are dropped.
    """
    if not master:
        return list(owned)
    result: list[GameEventBase] = []
    for ev in owned:
        template = master.get(ev.key)
        if template is None:
            logger.info("Dropping %s: no longer in the master catalog", ev.id)
            continue
        result.append(template.model_copy(deep=True, update={"is_locked": ev.is_locked}))
    return result


def refresh_master_catalog(
    catalog: MasterCatalog,
    store: EventStore | None,
    cache: LocalCache | None = None,
) -> str:
    """Reload the catalog: store, then cached snapshot, then bundled seed. Returns the origin used."""
    if store is not None:
        try:
            events = store.get_master_catalog()
        except StoreError as exc:
            logger.warning("Master catalog fetch failed: %s", exc)
        else:
            if events:
                catalog.replace(events, origin="store")
                error = safe_write(cache, MASTER_CATALOG_KEY, [e.to_wire() for e in events])
                if error:
                    logger.warning("Could not cache master catalog: %s", error)
                return "store"
            logger.info("Store master catalog is empty; keeping local fallback")

    cached = _cached_catalog(cache)
    if cached:
        catalog.replace(cached, origin="cache")
        return "cache"

    catalog.replace(load_seed_events(), origin="seed")
    return "seed"


def _cached_catalog(cache: LocalCache | None) -> list[GameEventBase]:
    raw = safe_read(cache, MASTER_CATALOG_KEY, [])
    events: list[GameEventBase] = []
    for doc in raw if isinstance(raw, list) else []:
        try:
            events.append(parse_event(doc))
        except (ValueError, TypeError):
            continue
    return events


class InventorySync:
    """Pulls the player's inventory from the store; one refresh at a time.

    First sync after login pushes the local backup up when the store has
    nothing for the player (restore-on-first-sync).
    """

    def __init__(
        self,
        inventory: Inventory,
        store: EventStore | None,
        cache: LocalCache | None = None,
        is_admin: bool = False,
        offline: bool = False,
        catalog: MasterCatalog | None = None,
    ) -> None:
        self.inventory = inventory
        self.store = store
        self.cache = cache
        self.is_admin = is_admin
        self.offline = offline
        self.catalog = catalog
        self.status = SyncStatus.IDLE if store is not None else self._local_status()
        self.initial_sync_complete = False
        self._lock = threading.Lock()

    @property
    def user_id(self) -> str:
        return self.inventory.user_id

    def refresh(self) -> SyncStatus:
        if not self._lock.acquire(blocking=False):
            logger.debug("Inventory refresh already running for %s", self.user_id)
            return self.status
        try:
            self.status = self._refresh()
            return self.status
        finally:
            self._lock.release()

    def _refresh(self) -> SyncStatus:
        local = load_backup_events(self.user_id, self.cache)
        if self.store is None:
            self.inventory.replace_all(local)
            return self._local_status()

        try:
            cloud = self.store.get_inventory(self.user_id)
            master_events = [] if self.is_admin else self.store.get_master_catalog()
            master = {e.key: e for e in master_events}

            if not self.initial_sync_complete and not cloud and local:
                self.status = SyncStatus.RESTORING
                local = overlay_master(local, master)
                logger.info("Restoring %d cards for %s from local backup", len(local), self.user_id)
                self.store.restore_inventory(self.user_id, local)
                final = local
            else:
                final = overlay_master(cloud, master)
        except StoreError as exc:
            log_error_with_context(exc, "sync_inventory", user_id=self.user_id)
            if not len(self.inventory):
                self.inventory.replace_all(local)
            return SyncStatus.OFFLINE

        if master_events and self.catalog is not None:
            self.catalog.replace(master_events, origin="store")

        self.initial_sync_complete = True
        self.inventory.replace_all(final)
        error = self.inventory.save_backup(self.cache)
        if error is not None:
            logger.warning("Inventory backup failed for %s: %s", self.user_id, error)
            return SyncStatus.ERROR
        return SyncStatus.SYNCED

    def _local_status(self) -> SyncStatus:
        return SyncStatus.OFFLINE if self.offline else SyncStatus.GUEST
