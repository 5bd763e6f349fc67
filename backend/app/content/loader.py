"""Bundled seed catalog loading (YAML) used when no store or cache is available."""
from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from backend.app.models.event import GameEventBase, parse_event

logger = logging.getLogger(__name__)

_DEFAULT_SEED_PATH = Path(__file__).resolve().parent / "data" / "seed_catalog.yaml"


def seed_path() -> Path:
    override = os.environ.get("NEXUS_SEED_CATALOG", "").strip()
    return Path(override) if override else _DEFAULT_SEED_PATH


def _load_yaml(path: Path) -> Any:
    return yaml.safe_load(path.read_text(encoding="utf-8"))


def load_event_documents(path: Path) -> list[GameEventBase]:
    """Parse a YAML file with a top-level ``events`` list; invalid cards are skipped."""
    data = _load_yaml(path) or {}
    raw_events = data.get("events") if isinstance(data, dict) else data
    events: list[GameEventBase] = []
    for raw in raw_events or []:
        try:
            events.append(parse_event(raw))
        except ValidationError as e:
            # Log validation errors but don't crash
            logger.warning("Skipping invalid seed card %s: %s", (raw or {}).get("id"), e)
    return events


@lru_cache(maxsize=4)
def _seed_cached(path_str: str) -> tuple[GameEventBase, ...]:
    path = Path(path_str)
    if not path.exists():
        logger.warning("Seed catalog missing: %s", path)
        return ()
    return tuple(load_event_documents(path))


def load_seed_events() -> list[GameEventBase]:
    """Fresh copies of the seed cards (callers may mutate them freely)."""
    return [e.model_copy(deep=True) for e in _seed_cached(str(seed_path()))]
