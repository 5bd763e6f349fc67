"""Pytest setup: keep caches in the workspace, stay offline and disable the LLM fallback."""
from __future__ import annotations

import os
import tempfile
from pathlib import Path

import pytest

from backend.app.content.inventory import Inventory
from backend.app.content.repository import MasterCatalog
from backend.app.db.local_cache import MemoryLocalCache
from backend.app.store.client import InMemoryEventStore
from backend.tests.helpers import make_event


def pytest_sessionstart(session) -> None:
    """Redirect temp files and the default cache to a writable workspace path."""
    tmp_root = Path(__file__).resolve().parent / ".tmp"
    tmp_root.mkdir(parents=True, exist_ok=True)
    for key in ("TMPDIR", "TEMP", "TMP"):
        os.environ[key] = str(tmp_root)
    tempfile.tempdir = str(tmp_root)
    os.environ["NEXUS_CACHE_PATH"] = str(tmp_root / "nexus_cache.db")
    os.environ["NEXUS_INTERPRETER_ENABLED"] = "0"
    os.environ["NEXUS_OFFLINE"] = "1"


@pytest.fixture
def cache() -> MemoryLocalCache:
    return MemoryLocalCache()


@pytest.fixture
def store() -> InMemoryEventStore:
    return InMemoryEventStore(admin_scope="admin")


@pytest.fixture
def catalog() -> MasterCatalog:
    return MasterCatalog(
        [
            make_event(id="ITEM-01", stats=[{"label": "HP", "value": "+20"}], isConsumable=True, price=15),
            make_event(id="ITEM-02", stats=[{"label": "MANA", "value": "+25"}], isConsumable=True, price=25),
            make_event(id="ENC-01", type="ENCOUNTER", stats=[{"label": "DMG", "value": "10"}]),
        ],
        origin="test",
    )


@pytest.fixture
def inventory() -> Inventory:
    return Inventory("player1")
