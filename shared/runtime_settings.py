"""Runtime env parsing helpers used by the session factory, API and CLI."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from shared.config import (
    DEFAULT_ADMIN_SCOPE,
    DEFAULT_CACHE_PATH,
    DEFAULT_INTERPRETER_MODEL,
    DEFAULT_INTERPRETER_URL,
    DEFAULT_STORE_URL,
)

DEFAULT_DEV_CORS_ALLOW_ORIGINS: tuple[str, ...] = (
    "http://localhost",
    "http://127.0.0.1",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
)


@dataclass(frozen=True)
class SecuritySettings:
    """Auth/CORS runtime settings used by the API."""

    dev_mode: bool
    api_token: str
    cors_allow_origins: list[str]


@dataclass(frozen=True)
class NexusSettings:
    """Collaborator wiring for a game session."""

    store_url: str
    admin_scope: str
    store_timeout: float
    admin_token: str
    offline: bool
    cache_path: str
    interpreter_enabled: bool
    interpreter_url: str
    interpreter_model: str
    interpreter_timeout: float


def env_flag(name: str, default: bool = False, environ: Mapping[str, str] | None = None) -> bool:
    """Read boolean env values from common truthy/falsey forms."""
    env = os.environ if environ is None else environ
    val = env.get(name, "").strip().lower()
    if not val:
        return default
    return val in ("1", "true", "yes", "on")


def _env_float(name: str, default: float, env: Mapping[str, str]) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def parse_cors_allowlist(raw: str, fallback: tuple[str, ...] = DEFAULT_DEV_CORS_ALLOW_ORIGINS) -> list[str]:
    origins = [o.strip() for o in raw.split(",") if o and o.strip()]
    if origins:
        return origins
    return list(fallback)


def load_security_settings(environ: Mapping[str, str] | None = None) -> SecuritySettings:
    env = os.environ if environ is None else environ
    return SecuritySettings(
        dev_mode=env_flag("NEXUS_DEV_MODE", default=True, environ=env),
        api_token=env.get("NEXUS_API_TOKEN", "").strip(),
        cors_allow_origins=parse_cors_allowlist(env.get("NEXUS_CORS_ALLOW_ORIGINS", "")),
    )


def load_settings(environ: Mapping[str, str] | None = None) -> NexusSettings:
    env = os.environ if environ is None else environ
    return NexusSettings(
        store_url=(env.get("NEXUS_STORE_URL", "").strip() or DEFAULT_STORE_URL).rstrip("/"),
        admin_scope=env.get("NEXUS_ADMIN_SCOPE", "").strip() or DEFAULT_ADMIN_SCOPE,
        store_timeout=_env_float("NEXUS_STORE_TIMEOUT", 10.0, env),
        admin_token=env.get("NEXUS_ADMIN_TOKEN", "").strip(),
        offline=env_flag("NEXUS_OFFLINE", default=False, environ=env),
        cache_path=env.get("NEXUS_CACHE_PATH", "").strip() or DEFAULT_CACHE_PATH,
        interpreter_enabled=env_flag("NEXUS_INTERPRETER_ENABLED", default=True, environ=env),
        interpreter_url=env.get("NEXUS_INTERPRETER_URL", "").strip() or DEFAULT_INTERPRETER_URL,
        interpreter_model=env.get("NEXUS_INTERPRETER_MODEL", "").strip() or DEFAULT_INTERPRETER_MODEL,
        interpreter_timeout=_env_float("NEXUS_INTERPRETER_TIMEOUT", 60.0, env),
    )
