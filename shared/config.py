"""Shared configuration constants used by the engine, API and CLI."""
from __future__ import annotations

import os
from pathlib import Path

# Project root: resolve relative to this file's location
_PROJECT_ROOT = Path(__file__).resolve().parent.parent

DATA_DIR = os.environ.get("NEXUS_DATA_DIR", str(_PROJECT_ROOT / "data"))

# Durable local cache (player state, inventory backup, master catalog snapshot)
DEFAULT_CACHE_PATH = os.environ.get("NEXUS_CACHE_PATH", str(Path(DATA_DIR) / "nexus_cache.db"))

# Remote key-value document store (inventory per user; admin scope = master catalog)
DEFAULT_STORE_URL = os.environ.get("NEXUS_STORE_URL", "http://localhost:3001/api").strip()
DEFAULT_ADMIN_SCOPE = os.environ.get("NEXUS_ADMIN_SCOPE", "admin").strip()

# Generative fallback (Ollama-compatible endpoint)
DEFAULT_INTERPRETER_URL = os.environ.get("NEXUS_INTERPRETER_URL", "http://localhost:11434").strip()
DEFAULT_INTERPRETER_MODEL = os.environ.get("NEXUS_INTERPRETER_MODEL", "qwen3:4b").strip()
